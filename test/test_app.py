from chalicelib.constants.status_codes import http200, http400, http401, http403
from utils.request_utils import make_request


def test_health_check(chalice_gateway):
    response = chalice_gateway.http.get('/health-check')
    assert response.status_code == http200
    assert response.json_body == {'status': 'ok'}


def test_missing_token(chalice_gateway):
    response = chalice_gateway.http.get('/users/me')
    assert response.status_code == http401


def test_invalid_token(chalice_gateway, users):
    response = chalice_gateway.http.get('/users/me', headers={'Authorization': 'Bearer not-a-jwt'})
    assert response.status_code == http403


def test_unknown_user(chalice_gateway, users):
    response = make_request(chalice_gateway, endpoint='/users/me', token='not-registered-user')
    assert response.status_code == http403


def test_inactive_user(chalice_gateway, users):
    response = make_request(chalice_gateway, endpoint='/users/me', method='PUT', json_body={'is_active': False},
                            token=users.id_inactive)
    assert response.status_code == http400
    response = make_request(chalice_gateway, endpoint=f'/users/{users.id_inactive}', method='PUT',
                            json_body={'is_active': False}, token=users.id_admin)
    assert response.status_code == http200

    response = make_request(chalice_gateway, endpoint='/users/me', token=users.id_inactive)
    assert response.status_code == http403


def test_role_routes(chalice_gateway, users):
    # admin only
    assert make_request(chalice_gateway, endpoint='/users', token=users.id_customer).status_code == http403
    assert make_request(chalice_gateway, endpoint='/stats/platform', token=users.id_owner).status_code == http403
    assert make_request(chalice_gateway, endpoint='/partner-requests', token=users.id_driver).status_code == http403
    # customer only
    assert make_request(chalice_gateway, endpoint='/orders', method='POST', json_body={},
                        token=users.id_driver).status_code == http403
    # driver only
    assert make_request(chalice_gateway, endpoint='/orders/available', token=users.id_customer).status_code == http403
    assert make_request(chalice_gateway, endpoint='/orders/available', token=users.id_driver).status_code == http200
    assert make_request(chalice_gateway, endpoint='/users', token=users.id_admin).status_code == http200
