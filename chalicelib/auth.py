from typing import Dict, List

from chalice import AuthResponse, AuthRoute

from chalicelib.constants.constants import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DRIVER, ROLE_RESTAURANT_OWNER
from chalicelib.users import User, create_db_user
from chalicelib.utils import auth as utils_auth
from chalicelib.utils.exceptions import AuthorizationException, RecordNotFound
from chalicelib.utils.logger import logger

COMMON_ROUTES = [
    AuthRoute(path='/users/me', methods=['GET', 'PUT']),
    AuthRoute(path='/notifications', methods=['GET', 'DELETE']),
    AuthRoute(path='/notifications/*', methods=['PUT', 'DELETE']),
    AuthRoute(path='/orders', methods=['GET']),
    AuthRoute(path='/orders/id/*', methods=['GET'])
]

ROLE_ROUTES: Dict[str, List[AuthRoute]] = {
    ROLE_CUSTOMER: [
        AuthRoute(path='/users/me/favorites', methods=['GET']),
        AuthRoute(path='/users/me/favorites/*', methods=['PUT', 'DELETE']),
        AuthRoute(path='/orders', methods=['POST']),
        AuthRoute(path='/orders/id/*', methods=['PUT', 'POST'])
    ],
    ROLE_RESTAURANT_OWNER: [
        AuthRoute(path='/owner/restaurant', methods=['GET']),
        AuthRoute(path='/restaurants/*', methods=['PUT']),
        AuthRoute(path='/menu-items/*', methods=['POST', 'PUT', 'DELETE']),
        AuthRoute(path='/orders/id/*', methods=['PUT']),
        AuthRoute(path='/stats/restaurant/*', methods=['GET']),
        AuthRoute(path='/image-upload', methods=['POST'])
    ],
    ROLE_DRIVER: [
        AuthRoute(path='/orders/available', methods=['GET']),
        AuthRoute(path='/orders/id/*', methods=['PUT', 'POST']),
        AuthRoute(path='/stats/driver', methods=['GET'])
    ],
    ROLE_ADMIN: [
        AuthRoute(path='/*', methods=['GET', 'POST', 'PUT', 'DELETE'])
    ]
}


def deny(reason: str) -> AuthResponse:
    logger.warning(f'role_authorizer ::: access denied, {reason}')
    return AuthResponse(routes=[], principal_id='')


def role_authorizer(auth_request):
    """
    Verifies the token and opens the routes of the user's role.
    user_id and role are passed to the views through the authorizer context.
    """
    try:
        user_id = utils_auth.decode_token(auth_request.token).get('sub')
    except AuthorizationException as error:
        return deny(f'token is not valid: {error}')
    if not user_id:
        return deny('token has no sub claim')
    try:
        user: User = User.init_by_id(user_id)
    except RecordNotFound:
        return deny(f'user {user_id} is not registered')
    if not user.is_active or user.role not in ROLE_ROUTES:
        return deny(f'user {user_id} is inactive or has unknown role={user.role}')
    return AuthResponse(
        routes=[*COMMON_ROUTES, *ROLE_ROUTES[user.role]],
        principal_id=user.id_,
        context={'user_id': user.id_, 'role': user.role}
    )


def cognito_post_confirmation(event, context):
    logger.info(f'cognito_post_confirmation ::: triggered: event={event}')

    if event.get('triggerSource') == 'PostConfirmation_ConfirmSignUp':
        attributes = event['request'].get('userAttributes', {})
        create_db_user(
            user_id=attributes['sub'],
            email=attributes.get('email', event.get('userName')),
            role=ROLE_CUSTOMER,
            name=attributes.get('name'),
            phone=attributes.get('phone_number')
        )
    else:
        # password reset confirmations don't create users
        logger.info(f"cognito_post_confirmation ::: skipping {event.get('triggerSource')}")

    return event
