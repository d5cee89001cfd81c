import pytest


@pytest.fixture
def create_item(client, owner, restaurant):
    _, headers = owner

    def _create(**fields):
        payload = {'restaurant_id': restaurant['id'], 'name': 'Dish', 'price': 9.99}
        payload.update(fields)
        resp = client.post('/api/menu/create', json=payload, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()['data']
    return _create


def test_create_menu_item(create_item, restaurant):
    item = create_item(name='Lasagna', category='Mains', spice_level=2, is_vegan=True)
    assert item['restaurant_id'] == restaurant['id']
    assert item['price'] == 9.99
    assert item['is_available'] is True
    # Vegan implies vegetarian
    assert item['is_vegetarian'] is True


def test_price_must_be_positive(client, owner, restaurant):
    _, headers = owner
    for price in (0, -1, 'abc'):
        resp = client.post('/api/menu/create', json={
            'restaurant_id': restaurant['id'], 'name': 'Free', 'price': price
        }, headers=headers)
        assert resp.status_code == 400, price


def test_create_for_unknown_restaurant_is_404(client, owner):
    _, headers = owner
    resp = client.post('/api/menu/create', json={'restaurant_id': 999, 'name': 'x', 'price': 1}, headers=headers)
    assert resp.status_code == 404


def test_create_for_someone_elses_restaurant_is_403(client, register, restaurant):
    _, headers = register('rival@example.com', role='restaurant_owner')
    resp = client.post('/api/menu/create', json={
        'restaurant_id': restaurant['id'], 'name': 'Sabotage', 'price': 1
    }, headers=headers)
    assert resp.status_code == 403


def test_spice_level_range(client, owner, restaurant):
    _, headers = owner
    resp = client.post('/api/menu/create', json={
        'restaurant_id': restaurant['id'], 'name': 'Inferno', 'price': 5, 'spice_level': 9
    }, headers=headers)
    assert resp.status_code == 400


def test_list_restaurant_menu(client, create_item, restaurant):
    create_item(name='Soup', category='Starters')
    create_item(name='Steak', category='Mains', is_available=False)

    resp = client.get(f"/api/menu/restaurant/{restaurant['id']}")
    assert resp.status_code == 200
    assert len(resp.get_json()['data']) == 2

    resp = client.get(f"/api/menu/restaurant/{restaurant['id']}?is_available=true")
    assert [i['name'] for i in resp.get_json()['data']] == ['Soup']

    assert client.get('/api/menu/restaurant/999').status_code == 404


def test_categories_only_count_available_items(client, create_item, restaurant):
    url = f"/api/menu/restaurant/{restaurant['id']}/categories"

    create_item(name='Plain bread')
    assert client.get(url).get_json()['data'] == []

    create_item(name='Soup', category='Starters')
    create_item(name='Salad', category='Starters')
    create_item(name='Cake', category='Desserts', is_available=False)

    assert client.get(url).get_json()['data'] == ['Starters']


def test_get_item(client, create_item):
    item = create_item()
    resp = client.get(f"/api/menu/item/{item['id']}")
    assert resp.status_code == 200
    assert resp.get_json()['data']['name'] == 'Dish'
    assert client.get('/api/menu/item/999').status_code == 404


def test_update_item(client, owner, create_item):
    _, headers = owner
    item = create_item()
    resp = client.put(f"/api/menu/item/{item['id']}", json={'price': '12.50', 'category': 'Mains'},
                      headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['price'] == 12.5


def test_restaurant_id_is_immutable(client, owner, create_item):
    _, headers = owner
    item = create_item()
    resp = client.patch(f"/api/menu/item/{item['id']}", json={'restaurant_id': 42}, headers=headers)
    assert resp.status_code == 400
    assert 'restaurant_id' in resp.get_json()['message']


def test_update_cannot_zero_price(client, owner, create_item):
    _, headers = owner
    item = create_item()
    resp = client.patch(f"/api/menu/item/{item['id']}", json={'price': 0}, headers=headers)
    assert resp.status_code == 400


def test_stranger_cannot_touch_items(client, register, create_item):
    item = create_item()
    _, headers = register('rival@example.com', role='restaurant_owner')

    assert client.put(f"/api/menu/item/{item['id']}", json={'name': 'x'}, headers=headers).status_code == 403
    assert client.delete(f"/api/menu/item/{item['id']}", headers=headers).status_code == 403
    assert client.patch(f"/api/menu/item/{item['id']}/toggle-availability", headers=headers).status_code == 403


def test_toggle_and_delete(client, owner, create_item):
    _, headers = owner
    item = create_item(category='Mains')

    resp = client.patch(f"/api/menu/item/{item['id']}/toggle-availability", headers=headers)
    assert resp.get_json()['data']['is_available'] is False

    resp = client.delete(f"/api/menu/item/{item['id']}", headers=headers)
    assert resp.status_code == 200
    assert client.get(f"/api/menu/item/{item['id']}").status_code == 404


def test_admin_can_manage_any_menu(client, admin, create_item):
    _, headers = admin
    item = create_item()
    resp = client.put(f"/api/menu/item/{item['id']}", json={'name': 'Chef special'}, headers=headers)
    assert resp.status_code == 200
