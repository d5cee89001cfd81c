import io

import pytest


@pytest.fixture
def driver(client, driver_user):
    _, headers = driver_user
    resp = client.post('/api/drivers', json={
        'vehicle_type': 'bike', 'vehicle_license_plate': 'ab-123', 'vehicle_color': 'red'
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['data']


def test_create_driver_uppercases_plate(driver, driver_user):
    user, _ = driver_user
    assert driver['vehicle_license_plate'] == 'AB-123'
    assert driver['user_id'] == user['id']
    assert driver['is_available'] is True
    assert driver['driver']['identifier'] == 'driver@example.com'


def test_only_drivers_create_profiles(client, customer):
    _, headers = customer
    resp = client.post('/api/drivers', json={'vehicle_type': 'car', 'vehicle_license_plate': 'X1'},
                       headers=headers)
    assert resp.status_code == 403


def test_second_profile_is_conflict(client, driver, driver_user):
    _, headers = driver_user
    resp = client.post('/api/drivers', json={'vehicle_type': 'car', 'vehicle_license_plate': 'NEW-1'},
                       headers=headers)
    assert resp.status_code == 400
    assert 'already have a driver profile' in resp.get_json()['message']


def test_license_plate_unique_case_insensitive(client, driver, register):
    _, headers = register('driver2@example.com', role='driver')
    resp = client.post('/api/drivers', json={'vehicle_type': 'car', 'vehicle_license_plate': 'AB-123'},
                       headers=headers)
    assert resp.status_code == 400
    assert 'license plate' in resp.get_json()['message']


def test_required_fields(client, driver_user):
    _, headers = driver_user
    resp = client.post('/api/drivers', json={'vehicle_type': 'bike'}, headers=headers)
    assert resp.status_code == 400


def test_list_and_filters(client, driver):
    resp = client.get('/api/drivers')
    data = resp.get_json()['data']
    assert data['pagination']['total_drivers'] == 1

    assert client.get('/api/drivers?vehicle_type=car').get_json()['data']['drivers'] == []
    assert len(client.get('/api/drivers?is_available=true').get_json()['data']['drivers']) == 1

    resp = client.get('/api/drivers/available/bike')
    assert resp.get_json()['data']['count'] == 1

    assert client.get(f"/api/drivers/{driver['id']}").status_code == 200
    assert client.get('/api/drivers/999').status_code == 404


def test_my_profile(client, driver, driver_user):
    _, headers = driver_user
    resp = client.get('/api/drivers/my/profile', headers=headers)
    assert resp.get_json()['data']['id'] == driver['id']


def test_update_driver(client, driver, driver_user):
    _, headers = driver_user
    resp = client.put(f"/api/drivers/{driver['id']}", json={'vehicle_license_plate': 'zz-999'}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['vehicle_license_plate'] == 'ZZ-999'


def test_update_rejects_derived_fields(client, driver, driver_user):
    _, headers = driver_user
    for field in ('rating', 'total_reviews', 'user_id'):
        resp = client.put(f"/api/drivers/{driver['id']}", json={field: 5}, headers=headers)
        assert resp.status_code == 400, field


def test_update_plate_taken_by_other_driver(client, driver, register):
    _, headers = register('driver2@example.com', role='driver')
    other = client.post('/api/drivers', json={'vehicle_type': 'car', 'vehicle_license_plate': 'CD-456'},
                        headers=headers).get_json()['data']

    resp = client.put(f"/api/drivers/{other['id']}", json={'vehicle_license_plate': 'ab-123'}, headers=headers)
    assert resp.status_code == 400


def test_guarded_mutations(client, driver, register, admin):
    _, stranger = register('driver2@example.com', role='driver')
    assert client.put(f"/api/drivers/{driver['id']}", json={'vehicle_color': 'blue'},
                      headers=stranger).status_code == 403
    assert client.patch(f"/api/drivers/{driver['id']}/toggle-availability", headers=stranger).status_code == 403
    assert client.delete(f"/api/drivers/{driver['id']}", headers=stranger).status_code == 403

    _, admin_headers = admin
    resp = client.patch(f"/api/drivers/{driver['id']}/toggle-availability", headers=admin_headers)
    assert resp.get_json()['data']['is_available'] is False
    assert client.delete(f"/api/drivers/{driver['id']}", headers=admin_headers).status_code == 200


def test_duplicate_plate_caught_by_database(client, driver, register, monkeypatch):
    uploads = []
    monkeypatch.setattr('fooddash.routes.drivers._check_plate_free', lambda *args: None)
    monkeypatch.setattr('cloudinary.uploader.upload',
                        lambda file, **options: uploads.append(options) or {'secure_url': 'https://cdn/x.png'})

    _, headers = register('driver2@example.com', role='driver')
    resp = client.post('/api/drivers', data={
        'vehicle_type': 'car', 'vehicle_license_plate': 'ab-123',
        'image': (io.BytesIO(b'png'), 'me.png')
    }, headers=headers, content_type='multipart/form-data')

    assert resp.status_code == 400
    assert 'conflicts with an existing one' in resp.get_json()['message']
    assert uploads == []
    assert client.get('/api/drivers/my/profile', headers=headers).status_code == 404
