from decimal import Decimal

from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400, http403, http404
from chalicelib.utils import db
from utils.request_utils import make_request


def get_menu_item_db_record(restaurant_id, menu_item_id):
    return db.get_db_item(keys_structure.menu_items_pk.format(restaurant_id=restaurant_id),
                          keys_structure.menu_items_sk.format(menu_item_id=menu_item_id))


def test_create_menu_item(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)
    menu_item_to_create = {
        'name': 'Kung Pao Chicken',
        'category': 'main',
        'description': 'Spicy chicken with peanuts',
        'price': 130.99,
        'preparation_time': 20,
        'ingredients': ['chicken', 'peanuts', 'chili'],
        'allergens': ['peanuts'],
        'popular': True
    }
    response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}', method='POST',
                            json_body=menu_item_to_create, token=users.id_owner)

    assert response.status_code == http200, 'status code not as expected'
    assert 'id' in response.json_body

    db_record = get_menu_item_db_record(restaurant_id, response.json_body['id'])
    assert db_record['name_'] == 'Kung Pao Chicken'
    assert db_record['price'] == Decimal('130.99')
    assert db_record['preparation_time'] == 20
    assert db_record['ingredients'] == ['chicken', 'peanuts', 'chili']
    assert db_record['allergens'] == ['peanuts']
    assert db_record['popular'] is True
    assert db_record['is_available'] is True
    assert db_record['archived'] is False
    assert db_record['created_by'] == users.id_owner


def test_create_menu_item_validation(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    for menu_item in ({'name': 'Free lunch', 'category': 'main', 'price': 0},
                      {'name': 'Priceless', 'category': 'main'},
                      {'category': 'main', 'price': 5}):
        response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}', method='POST',
                                json_body=menu_item, token=users.id_owner)
        assert response.status_code == http400, menu_item


def test_create_menu_item_with_request_data_key(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}', method='POST',
                            json_body={'name': 'Dumplings', 'category': 'main', 'price': 7.5, 'request_data': 'x'},
                            token=users.id_owner)

    assert response.status_code == http200, response.json_body
    assert get_menu_item_db_record(restaurant_id, response.json_body['id'])['name_'] == 'Dumplings'


def test_create_menu_item_access(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)
    menu_item = {'name': 'Soup', 'category': 'starter', 'price': 4.5}

    response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}', method='POST',
                            json_body=menu_item, token=users.id_other_owner)
    assert response.status_code == http403

    response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}', method='POST',
                            json_body=menu_item, token=users.id_admin)
    assert response.status_code == http200

    response = make_request(chalice_gateway, endpoint='/menu-items/missing-restaurant', method='POST',
                            json_body=menu_item, token=users.id_owner)
    assert response.status_code == http404


def test_get_menu_items(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)
    item_id, item_id_2 = users.create_test_menu_items(chalice_gateway, restaurant_id)

    response_get = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}', method='GET')

    assert response_get.status_code == http200, 'status code not as expected'
    response_body_get = response_get.json_body
    assert isinstance(response_body_get, list)
    # sorted by category, then by name
    assert [item['id'] for item in response_body_get] == [item_id, item_id_2]
    assert response_body_get[0]['price'] == 9.99
    assert response_body_get[0]['name'] == 'Scrambled eggs'


def test_update_menu_item(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)
    menu_item_id, _ = users.create_test_menu_items(chalice_gateway, restaurant_id)

    fields_to_update = {
        'name': 'updated menu item',
        'price': 180.55,
        'description': 'This is my updated menu item description',
        'is_available': False
    }
    wrong_fields_to_update = {
        'created_by': 'wrong_string',
        'restaurant_id': 'another-restaurant',
        'new_field': 'new_value'
    }
    response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}/{menu_item_id}', method='PUT',
                            json_body={**fields_to_update, **wrong_fields_to_update}, token=users.id_owner)

    assert response.status_code == http200, 'status code not as expected'

    db_record = get_menu_item_db_record(restaurant_id, menu_item_id)
    assert db_record['name_'] == 'updated menu item'
    assert float(db_record['price']) == 180.55
    assert db_record['description'] == 'This is my updated menu item description'
    assert db_record['is_available'] is False
    for key in wrong_fields_to_update:
        assert wrong_fields_to_update[key] != db_record.get(key)
    assert db_record['archived'] is False
    assert db_record['updated_by'] == users.id_owner

    response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}/{menu_item_id}', method='PUT',
                            json_body={'price': -1}, token=users.id_owner)
    assert response.status_code == http400


def test_archive_menu_item(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)
    menu_item_id, menu_item_id_2 = users.create_test_menu_items(chalice_gateway, restaurant_id)

    response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}/{menu_item_id}',
                            method='DELETE', token=users.id_owner)

    assert response.status_code == http200, 'status code not as expected'
    assert get_menu_item_db_record(restaurant_id, menu_item_id)['archived'] is True

    response_get = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}', method='GET')
    assert [item['id'] for item in response_get.json_body] == [menu_item_id_2]


def test_missing_menu_item(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = make_request(chalice_gateway, endpoint=f'/menu-items/{restaurant_id}/missing-item',
                            method='DELETE', token=users.id_owner)
    assert response.status_code == http404
