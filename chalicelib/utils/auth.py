import functools
import os
import uuid
from functools import lru_cache
from typing import Dict, Iterable

import jwt
from chalice.app import Request

from chalicelib.utils import exceptions as utils_exceptions
from chalicelib.utils.logger import log_request, logger, log_exception


def cognito_idp_url() -> str:
    return f"https://cognito-idp.{os.environ['DEFAULT_REGION']}.amazonaws.com/{os.environ['COGNITO_USER_POOL_ID']}"


@lru_cache(maxsize=4)
def jwks_client(jwk_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwk_url)


def decode_token(token: str) -> Dict:
    """
    Decodes and verifies the bearer token.
    In `cognito` mode the id token is checked against the user pool keys,
    in `local` mode (tests and local development) HS256 tokens signed with LOCAL_JWT_SECRET are accepted.
    """
    if not token:
        raise utils_exceptions.AuthorizationException('Authorization token is missing')
    if token.lower().startswith('bearer '):
        token = token[len('bearer '):]

    try:
        if os.environ.get('AUTH_MODE', 'cognito') == 'local':
            decoded_jwt_token = jwt.decode(
                token,
                os.environ['LOCAL_JWT_SECRET'],
                algorithms=['HS256'],
                audience=os.environ.get('LOCAL_JWT_AUDIENCE', 'grubz-local'))
        else:
            idp_url = cognito_idp_url()
            signing_key = jwks_client(f'{idp_url}/.well-known/jwks.json').get_signing_key_from_jwt(token)
            decoded_jwt_token = jwt.decode(
                token,
                signing_key.key,
                algorithms=['RS256'],
                audience=os.environ['COGNITO_CLIENT_ID'],
                issuer=idp_url)
    except jwt.PyJWTError as error:
        setattr(error, 'LEVEL', 'warning')
        log_exception(error, 401, f"decode_token ::: {error}")
        raise utils_exceptions.AuthorizationException(str(error))

    logger.debug(f"decode_token ::: token decoded for sub={decoded_jwt_token.get('sub')}")
    return decoded_jwt_token


def get_request_id(request: Request) -> str:
    aws_request_id = getattr(request.lambda_context, 'aws_request_id', None) or str(uuid.uuid4())
    return aws_request_id.split('-')[-1]


def get_auth_result(request: Request) -> Dict:
    """
    The authorizer puts user_id and role into the request context,
    so the views don't have to load the user once again
    """
    authorizer_context = (request.context or {}).get('authorizer') or {}
    user_id, role = authorizer_context.get('user_id'), authorizer_context.get('role')
    if not user_id or not role:
        raise utils_exceptions.NotAuthorizedException('Error occurred in authorization process')
    return {'user_id': user_id, 'role': role}


def authenticate(func):
    """
    Wrapper for functions which require user's authentication
    """

    @functools.wraps(func)
    def result_auth(*args, **kwargs):
        request = args[0]
        logger.current_request_id = get_request_id(request)
        log_request(request)
        setattr(request, 'auth_result', get_auth_result(request))
        logger.info(f'authenticate ::: SUCCESS, func.__name__ {func.__name__}')
        return func(*args, **kwargs)

    return result_auth


def authenticate_class(func):
    """
    Wrapper for class methods which require user's authentication
    """

    @functools.wraps(func)
    def result_auth(*args, **kwargs):
        request = args[1]
        logger.current_request_id = get_request_id(request)
        log_request(request)
        setattr(request, 'auth_result', get_auth_result(request))
        return func(*args, **kwargs)

    return result_auth


def require_role(auth_result: Dict, roles: Iterable[str]):
    if auth_result.get('role') not in roles:
        raise utils_exceptions.AccessDenied(f"role={auth_result.get('role')} has no access to this resource")
