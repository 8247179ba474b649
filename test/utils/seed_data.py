from chalicelib.constants.constants import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DRIVER, ROLE_RESTAURANT_OWNER
from chalicelib.users import create_db_user, build_driver_profile
from utils.request_utils import make_request

id_admin = '13303309-d941-486f-b600-3e90929ac50f'
id_owner = '8178f948-cdc2-4e8c-b013-07a956e7e72a'
id_other_owner = '1a2b3c4d-0000-4000-8000-000000000001'
id_customer = 'e5b01491-e538-4be3-8d3c-a57db7fc43c1'
id_other_customer = 'e5b01491-e538-4be3-8d3c-a57db7fc43c2'
id_driver = '6f1d2c3b-1111-4222-8333-444455556666'
id_other_driver = '6f1d2c3b-1111-4222-8333-444455556667'
id_inactive = '0d0d0d0d-2222-4333-8444-555566667777'

delivery_address = {
    'street': '5th Avenue, 12',
    'city': 'New York',
    'state': 'NY',
    'zip_code': '10001',
    'instructions': 'Ring twice'
}


def create_test_users():
    create_db_user(id_admin, 'admin@grubz.example.com', ROLE_ADMIN, name='Admin')
    create_db_user(id_owner, 'owner@grubz.example.com', ROLE_RESTAURANT_OWNER, name='Olivia Owner',
                   phone='+15550000001')
    create_db_user(id_other_owner, 'other-owner@grubz.example.com', ROLE_RESTAURANT_OWNER, name='Oscar Owner')
    create_db_user(id_customer, 'customer@grubz.example.com', ROLE_CUSTOMER, name='Casey Customer',
                   phone='+15550000002', address=delivery_address)
    create_db_user(id_other_customer, 'other-customer@grubz.example.com', ROLE_CUSTOMER, name='Chris Customer')
    create_db_user(id_driver, 'driver@grubz.example.com', ROLE_DRIVER, name='Dana Driver', phone='+15550000003',
                   driver_profile=build_driver_profile('bike', 'LIC-1', 'weekdays'))
    create_db_user(id_other_driver, 'other-driver@grubz.example.com', ROLE_DRIVER, name='Drew Driver',
                   driver_profile=build_driver_profile('car', 'LIC-2', 'weekends'))
    create_db_user(id_inactive, 'inactive@grubz.example.com', ROLE_CUSTOMER, name='Inactive')


def create_test_restaurant(chalice_gateway, owner_id=id_owner, **kwargs):
    restaurant_to_create = {
        'name': 'Golden Dragon',
        'owner_id': owner_id,
        'address': {'street': 'Time Square, 1', 'city': 'New York'},
        'description': 'This is my test restaurant',
        'cuisine': 'Chinese',
        'phone': '+15551112233',
        'email': 'dragon@grubz.example.com',
        **kwargs
    }
    response = make_request(chalice_gateway, endpoint='/restaurants', method='POST',
                            json_body=restaurant_to_create, token=id_admin)
    assert response.status_code == 200, response.body
    return response.json_body['id']


def create_test_menu_items(chalice_gateway, restaurant_id, owner_id=id_owner):
    menu_item_to_create = {
        'name': 'Scrambled eggs',
        'category': 'breakfast',
        'description': 'Eggs especially for breakfast',
        'price': 9.99,
        'preparation_time': 10
    }
    menu_item_to_create_2 = {
        'name': 'Burger',
        'category': 'dinner',
        'description': 'The best Burger in the world',
        'price': 18.50
    }
    ids = []
    for item in (menu_item_to_create, menu_item_to_create_2):
        response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}', method='POST',
                                json_body=item, token=owner_id)
        assert response.status_code == 200, response.body
        ids.append(response.json_body['id'])
    return ids


def create_test_order(chalice_gateway, restaurant_id, item_ids, customer_id=id_customer, **kwargs):
    order_data = {
        'restaurant_id': restaurant_id,
        'items': [{'id': item_ids[0], 'quantity': 2, 'price': 0.01},
                  {'id': item_ids[1], 'quantity': 1}],
        'delivery_address': delivery_address,
        'payment_method': 'cash',
        'special_instructions': 'No onions',
        **kwargs
    }
    response = make_request(chalice_gateway, endpoint='/orders', method='POST', json_body=order_data,
                            token=customer_id)
    assert response.status_code == 200, response.body
    return response.json_body


def set_order_status(chalice_gateway, order_id, status, token, notes=None):
    body = {'status': status}
    if notes:
        body['notes'] = notes
    return make_request(chalice_gateway, endpoint=f'/orders/id/{order_id}/status', method='PUT',
                        json_body=body, token=token)


def create_ready_order(chalice_gateway):
    """ Order which went through the kitchen and waits for a driver """
    restaurant_id = create_test_restaurant(chalice_gateway)
    item_ids = create_test_menu_items(chalice_gateway, restaurant_id)
    order = create_test_order(chalice_gateway, restaurant_id, item_ids)
    for status in ('accepted', 'preparing', 'readyForPickup'):
        response = set_order_status(chalice_gateway, order['id'], status, id_owner)
        assert response.status_code == 200, response.body
    return restaurant_id, item_ids, order


def create_delivered_order(chalice_gateway):
    restaurant_id, item_ids, order = create_ready_order(chalice_gateway)
    response = make_request(chalice_gateway, endpoint=f"/orders/id/{order['id']}/claim", method='POST',
                            token=id_driver)
    assert response.status_code == 200, response.body
    for status in ('out_for_delivery', 'delivered'):
        response = set_order_status(chalice_gateway, order['id'], status, id_driver)
        assert response.status_code == 200, response.body
    return restaurant_id, item_ids, response.json_body
