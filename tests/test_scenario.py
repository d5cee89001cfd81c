from conftest import restaurant_payload


def test_owner_restaurant_menu_order_lifecycle(client, register):
    user, headers = register('u1@example.com', role='restaurant_owner')

    resp = client.post('/api/resturants', json=restaurant_payload(), headers=headers)
    assert resp.status_code == 201
    restaurant = resp.get_json()['data']
    assert restaurant['user_id'] == user['id']

    resp = client.post('/api/resturants', json=restaurant_payload(name='Second', email='second@example.com'),
                       headers=headers)
    assert resp.status_code == 400

    resp = client.post('/api/menu/create', json={
        'restaurant_id': restaurant['id'], 'name': 'M1', 'price': 9.99
    }, headers=headers)
    assert resp.status_code == 201

    resp = client.get(f"/api/menu/restaurant/{restaurant['id']}/categories")
    assert resp.get_json()['data'] == []

    resp = client.post('/api/orders', json={
        'restaurant_id': restaurant['id'], 'total_price': 9.99, 'order': [{'name': 'M1', 'quantity': 1}]
    }, headers=headers)
    assert resp.status_code == 201
    order = resp.get_json()['data']
    assert order['status'] == 'pending'
    assert order['user_id'] == user['id']
    assert order['delivered_at'] is None

    resp = client.patch(f"/api/orders/{order['id']}/status", json={'status': 'delivered'}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['status'] == 'delivered'
    assert resp.get_json()['data']['delivered_at'] is not None

    resp = client.patch(f"/api/orders/{order['id']}/cancel", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['success'] is False
