import pytest

from chalicelib.constants.status_codes import http200, http400, http403
from chalicelib.utils.data import period_start
from chalicelib.utils.exceptions import ValidationException
from utils.request_utils import make_request


def create_test_orders(chalice_gateway, users):
    """ one delivered, one pending and one rejected order of the same restaurant """
    restaurant_id, item_ids, delivered = users.create_delivered_order(chalice_gateway)
    users.create_test_order(chalice_gateway, restaurant_id, item_ids)
    rejected = users.create_test_order(chalice_gateway, restaurant_id, item_ids, customer_id=users.id_other_customer)
    users.set_order_status(chalice_gateway, rejected['id'], 'rejected', users.id_owner)
    return restaurant_id, item_ids, delivered


def test_restaurant_stats(chalice_gateway, users):
    restaurant_id, item_ids, _ = create_test_orders(chalice_gateway, users)

    response = make_request(chalice_gateway, endpoint=f'/stats/restaurant/{restaurant_id}', token=users.id_owner)

    assert response.status_code == http200
    stats = response.json_body
    assert stats['total_orders'] == 3
    assert stats['orders_by_status']['delivered'] == 1
    assert stats['orders_by_status']['pending'] == 1
    assert stats['orders_by_status']['rejected'] == 1
    assert stats['orders_by_status']['preparing'] == 0
    assert stats['pending_orders'] == 1
    assert stats['active_orders'] == 0
    assert stats['delivered_orders'] == 1
    assert stats['revenue'] == pytest.approx(44.55)
    assert stats['average_order_value'] == pytest.approx(44.55)
    assert [(item['id'], item['quantity']) for item in stats['top_items']] == [(item_ids[0], 4), (item_ids[1], 2)]
    assert stats['top_items'][0]['name'] == 'Scrambled eggs'
    assert stats['top_items'][0]['revenue'] == pytest.approx(39.96)


def test_restaurant_stats_period(chalice_gateway, users):
    restaurant_id, _, _ = create_test_orders(chalice_gateway, users)

    for period in ('today', 'week', 'month', 'all'):
        response = make_request(chalice_gateway, endpoint=f'/stats/restaurant/{restaurant_id}',
                                query=f'period={period}', token=users.id_admin)
        assert response.status_code == http200
        assert response.json_body['total_orders'] == 3

    response = make_request(chalice_gateway, endpoint=f'/stats/restaurant/{restaurant_id}', query='period=decade',
                            token=users.id_owner)
    assert response.status_code == http400


def test_restaurant_stats_access(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = make_request(chalice_gateway, endpoint=f'/stats/restaurant/{restaurant_id}',
                            token=users.id_other_owner)
    assert response.status_code == http403

    response = make_request(chalice_gateway, endpoint=f'/stats/restaurant/{restaurant_id}', token=users.id_owner)
    assert response.status_code == http200
    assert response.json_body['total_orders'] == 0
    assert response.json_body['average_order_value'] == 0
    assert response.json_body['top_items'] == []


def test_driver_stats(chalice_gateway, users):
    create_test_orders(chalice_gateway, users)
    _, _, ready = users.create_ready_order(chalice_gateway)
    make_request(chalice_gateway, endpoint=f"/orders/id/{ready['id']}/claim", method='POST', token=users.id_driver)

    response = make_request(chalice_gateway, endpoint='/stats/driver', token=users.id_driver)

    assert response.status_code == http200
    assert response.json_body['completed_deliveries'] == 1
    assert response.json_body['active_deliveries'] == 1
    assert response.json_body['earnings'] == pytest.approx(2.99)
    assert response.json_body['average_per_delivery'] == pytest.approx(2.99)

    response = make_request(chalice_gateway, endpoint='/stats/driver', token=users.id_other_driver)
    assert response.json_body['completed_deliveries'] == 0
    assert response.json_body['earnings'] == 0
    assert response.json_body['average_per_delivery'] == 0


def test_platform_stats(chalice_gateway, users):
    create_test_orders(chalice_gateway, users)
    make_request(chalice_gateway, endpoint='/partner-requests', method='POST', json_body={
        'type': 'delivery_rider',
        'email': 'rider@grubz.example.com',
        'phone': '+15550001111',
        'address': 'Queens, New York',
        'full_name': 'Ray Rider',
        'license_number': 'NY-1',
        'vehicle_type': 'bike'
    })

    response = make_request(chalice_gateway, endpoint='/stats/platform', token=users.id_admin)

    assert response.status_code == http200
    stats = response.json_body
    assert stats['users_by_role'] == {'customer': 3, 'restaurant_owner': 2, 'delivery_rider': 2, 'admin': 1}
    assert stats['total_users'] == 8
    assert stats['active_restaurants'] == 1
    assert stats['total_orders'] == 3
    assert stats['orders_by_status']['rejected'] == 1
    assert stats['gross_revenue'] == pytest.approx(44.55)
    assert stats['pending_partner_requests'] == 1


def test_period_start():
    assert period_start('all') is None
    assert period_start('today').endswith('T00:00:00')
    assert period_start('month')[8:] == '01T00:00:00'
    assert period_start('week') <= period_start('today')
    with pytest.raises(ValidationException):
        period_start('year')
