from chalicelib.constants import keys_structure
from chalicelib.constants.constants import DEFAULT_OPENING_HOURS
from chalicelib.constants.status_codes import http200, http400, http403, http404
from chalicelib.restaurants import Restaurant
from chalicelib.utils import db
from utils.request_utils import make_request


def get_restaurant_db_record(restaurant_id):
    return db.get_db_item(keys_structure.restaurants_pk,
                          keys_structure.restaurants_sk.format(restaurant_id=restaurant_id))


def test_create_restaurant(chalice_gateway, users):
    restaurant_to_create = {
        'name': 'test restaurant',
        'owner_id': users.id_owner,
        'address': 'Time Square, New York',
        'description': 'This is my test restaurant',
        'cuisine': 'Chinese',
        'delivery_fee': 3.5,
        'rating': 1,
        'total_orders': 100
    }
    response = make_request(chalice_gateway, endpoint='/restaurants', method='POST',
                            json_body=restaurant_to_create, token=users.id_admin)

    assert response.status_code == http200, 'status code not as expected'
    assert 'id' in response.json_body
    db_record = get_restaurant_db_record(response.json_body['id'])
    assert db_record['name_'] == 'test restaurant'
    assert db_record['owner_id'] == users.id_owner
    assert db_record['cuisine'] == 'Chinese'
    assert float(db_record['delivery_fee']) == 3.5
    assert float(db_record['rating']) == 4.5
    assert db_record['total_orders'] == 0
    assert db_record['status_'] == 'approved'
    assert db_record['created_by'] == users.id_admin
    assert db_record['archived'] is False
    assert db_record['hours']['monday'] == {'open': '09:00', 'close': '22:00', 'closed': False}


def test_create_restaurant_validation(chalice_gateway, users):
    response = make_request(chalice_gateway, endpoint='/restaurants', method='POST',
                            json_body={'name': '', 'address': 'Somewhere', 'cuisine': 'Thai'}, token=users.id_admin)
    assert response.status_code == http400

    response = make_request(chalice_gateway, endpoint='/restaurants', method='POST',
                            json_body={'name': 'No cuisine', 'address': 'Somewhere'}, token=users.id_admin)
    assert response.status_code == http400


def test_get_restaurants(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)
    users.create_test_restaurant(chalice_gateway, owner_id=users.id_other_owner, name='Bella Napoli',
                                 cuisine='Italian')

    response_get = make_request(chalice_gateway, endpoint='/restaurants', method='GET')

    assert response_get.status_code == http200, 'status code not as expected'
    assert isinstance(response_get.json_body, list)
    assert [restaurant['name'] for restaurant in response_get.json_body] == ['Bella Napoli', 'Golden Dragon']

    response_get = make_request(chalice_gateway, endpoint='/restaurants', query='cuisine=chinese')
    assert [restaurant['id'] for restaurant in response_get.json_body] == [restaurant_id]


def test_get_restaurant_by_id(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response_get = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}', method='GET')

    assert response_get.status_code == http200, 'status code not as expected'
    assert restaurant_id == response_get.json_body['id']
    assert response_get.json_body['name'] == 'Golden Dragon'

    response_get = make_request(chalice_gateway, endpoint='/restaurants/missing-restaurant', method='GET')
    assert response_get.status_code == http404


def test_get_owner_restaurant(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = make_request(chalice_gateway, endpoint='/owner/restaurant', token=users.id_owner)
    assert response.status_code == http200
    assert response.json_body['id'] == restaurant_id

    response = make_request(chalice_gateway, endpoint='/owner/restaurant', token=users.id_other_owner)
    assert response.status_code == http404


def test_owner_updates_restaurant(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    fields_to_update = {
        'name': 'Golden Dragon Express',
        'description': 'Now with delivery',
        'delivery_fee': 1.5,
        'hours': {'monday': {'open': '10:00', 'close': '20:00', 'closed': False}}
    }
    admin_only_fields = {
        'is_active': False,
        'owner_id': users.id_other_owner,
        'status': 'suspended'
    }
    response = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}', method='PUT',
                            json_body={**fields_to_update, **admin_only_fields, 'archived': True},
                            token=users.id_owner)
    assert response.status_code == http200, 'status code not as expected'

    db_record = get_restaurant_db_record(restaurant_id)
    assert db_record['name_'] == 'Golden Dragon Express'
    assert db_record['description'] == 'Now with delivery'
    assert float(db_record['delivery_fee']) == 1.5
    assert db_record['hours'] == fields_to_update['hours']
    assert db_record['is_active'] is True
    assert db_record['owner_id'] == users.id_owner
    assert db_record['status_'] == 'approved'
    assert db_record['archived'] is False
    assert db_record['updated_by'] == users.id_owner


def test_restaurant_counters_are_not_updatable(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    for user_id in (users.id_owner, users.id_admin):
        response = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}', method='PUT',
                                json_body={'rating': 5, 'rating_sum': 50, 'total_reviews': 10, 'total_orders': 99,
                                           'description': 'Best in town'},
                                token=user_id)
        assert response.status_code == http200, response.json_body

    db_record = get_restaurant_db_record(restaurant_id)
    assert db_record['description'] == 'Best in town'
    assert float(db_record['rating']) == 4.5
    assert db_record['total_orders'] == 0
    assert db_record.get('total_reviews', 0) == 0

    response = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}', method='PUT',
                            json_body={'rating': 5}, token=users.id_owner)
    assert response.status_code == http400


def test_create_restaurant_with_request_data_key(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway, request_data='x')

    assert get_restaurant_db_record(restaurant_id)['name_'] == 'Golden Dragon'


def test_default_hours_are_per_restaurant():
    restaurant = Restaurant('first')
    restaurant.hours['monday']['closed'] = True

    assert Restaurant('second').hours['monday']['closed'] is False
    assert DEFAULT_OPENING_HOURS['monday']['closed'] is False


def test_admin_updates_restaurant(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}', method='PUT',
                            json_body={'is_active': False, 'status': 'suspended'}, token=users.id_admin)
    assert response.status_code == http200

    restaurant = Restaurant.init_get_by_id(restaurant_id)
    assert restaurant.is_active is False
    assert restaurant.status_ == 'suspended'
    assert restaurant.is_accepting_orders() is False

    response = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}', method='PUT',
                            json_body={'status': 'closed_forever'}, token=users.id_admin)
    assert response.status_code == http400


def test_other_owner_can_not_update_restaurant(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}', method='PUT',
                            json_body={'name': 'Stolen'}, token=users.id_other_owner)
    assert response.status_code == http403
    assert get_restaurant_db_record(restaurant_id)['name_'] == 'Golden Dragon'


def test_archive_restaurant(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}',
                            method='DELETE', token=users.id_owner)
    assert response.status_code == http403

    response = make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}',
                            method='DELETE', token=users.id_admin)
    assert response.status_code == http200, 'status code not as expected'

    db_record = get_restaurant_db_record(restaurant_id)
    assert db_record['archived'] is True
    assert db_record['is_active'] is False
    assert make_request(chalice_gateway, endpoint=f'/restaurants/{restaurant_id}').status_code == http404
    assert make_request(chalice_gateway, endpoint='/restaurants').json_body == []


def test_restaurant_rating(users):
    restaurant = Restaurant(id_='rating-restaurant', name_='Rated', address='Somewhere', cuisine='Thai',
                            created_by=users.id_admin)
    restaurant._create_db_record()

    assert float(restaurant.add_review(5)) == 5.0
    assert float(restaurant.add_review(4)) == 4.5
    assert float(restaurant.add_review(2)) == 3.7
    db_record = get_restaurant_db_record('rating-restaurant')
    assert db_record['total_reviews'] == 3
    assert db_record['rating_sum'] == 11
