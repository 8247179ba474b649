import os
from typing import Tuple, List, Dict

from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from chalice import Response
from pycognito import Cognito

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLES, ROLE_ADMIN, ROLE_DRIVER, DEFAULT_DRIVER_RATING
from chalicelib.constants.status_codes import http200
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db
from chalicelib.utils.exceptions import ValidationException
from chalicelib.utils.logger import logger

PROFILE_FIELDS = ('name_', 'phone', 'address', 'driver_profile')
DRIVER_PROFILE_FIELDS = ('vehicle_type', 'license_number', 'availability', 'is_available')


class User(EntityBase):
    pk = keys_structure.users_pk
    sk = keys_structure.users_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'email': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'role': lambda x: x in ROLES,
        'is_active': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'name_': lambda x: isinstance(x, str),
        'phone': lambda x: isinstance(x, str),
        'address': lambda x: isinstance(x, (str, dict)),
        'driver_profile': lambda x: isinstance(x, dict)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.email: str = kwargs.get('email')
        self.name_: str = kwargs.get('name_')
        self.phone: str = kwargs.get('phone')
        self.address = kwargs.get('address')
        self.role: str = kwargs.get('role')
        self.is_active: bool = kwargs.get('is_active', True)
        self.driver_profile: dict = kwargs.get('driver_profile')
        self.favorites_count = kwargs.get('favorites_count', 0)
        self.date_created: str = kwargs.get('date_created') or utils_data.now_iso()
        self.date_updated: str = kwargs.get('date_updated') or utils_data.now_iso()
        self.record_type = 'user'

    @classmethod
    def init_by_id(cls, id_):
        logger.info("init_by_id ::: started")
        c = cls(id_)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_user(cls, request):
        logger.info("init_request_user ::: started")
        return cls.init_by_id(request.auth_result['user_id'])

    @classmethod
    @utils_auth.authenticate_class
    def init_request_admin(cls, request, user_id):
        logger.info("init_request_admin ::: started")
        utils_auth.require_role(request.auth_result, [ROLE_ADMIN])
        c = cls.init_by_id(user_id)
        c.request_data = request.to_dict()
        c.request_data['auth_result'] = request.auth_result
        return c

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_user(self) -> Response:
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_profile(self, request_body: Dict) -> Response:
        """ Users can change their own profile data only, role and activity are managed by admins """
        utils_data.substitute_keys(dict_to_process=request_body, base_keys={'name': 'name_'})
        update_dict = {key: value for key, value in request_body.items() if key in PROFILE_FIELDS}
        if 'driver_profile' in update_dict:
            if self.role != ROLE_DRIVER or not isinstance(update_dict['driver_profile'], dict):
                raise ValidationException('driver_profile can be updated by delivery riders only')
            update_dict['driver_profile'] = {
                **(self.driver_profile or {}),
                **{key: value for key, value in update_dict['driver_profile'].items()
                   if key in DRIVER_PROFILE_FIELDS}
            }
        ignored = set(request_body.keys()) - set(update_dict.keys())
        if ignored:
            logger.warning(f'endpoint_update_profile ::: fields {ignored} are not allowed, ignoring..')
        if not update_dict:
            raise ValidationException(f'Nothing to update, allowed fields are {list(PROFILE_FIELDS)}')
        self._validate_update_dict(update_dict)
        self._update_db_record(update_dict)
        return Response(status_code=http200, body={'message': 'User was successfully updated', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_admin_update_user(self, request_body: Dict) -> Response:
        update_dict = {key: request_body[key] for key in ('role', 'is_active') if key in request_body}
        if not update_dict:
            raise ValidationException('Only role and is_active can be changed')
        self._validate_update_dict(update_dict)
        self._update_db_record(update_dict)
        return Response(status_code=http200, body={'message': 'User was successfully updated', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_delete_user(self) -> Response:
        if self.request_data and self.request_data['auth_result']['user_id'] == self.id_:
            raise ValidationException('Admin can not delete own account')
        self.delete_cognito_user()
        for favorite in utils_db.query_items_paged(
                Key('partkey').eq(keys_structure.favorites_pk.format(user_id=self.id_))):
            utils_db.delete_db_record({'partkey': favorite['partkey'], 'sortkey': favorite['sortkey']})
        self._delete_db_record()
        return Response(status_code=http200, body={'message': 'user was deleted successfully', 'id': self.id_})

    @staticmethod
    @utils_app.request_exception_handler
    @utils_auth.authenticate
    def endpoint_get_users(request) -> Response:
        utils_auth.require_role(request.auth_result, [ROLE_ADMIN])
        role = (request.query_params or {}).get('role')
        if role is not None and role not in ROLES:
            raise ValidationException(f'Unknown {role=}')
        users: List[Dict] = [User(**record)._to_ui() for record in get_user_records(role)]
        logger.info(f"endpoint_get_users ::: returning {len(users)} users, {role=}")
        return Response(status_code=http200, body={'users': users})

    def delete_cognito_user(self):
        if not os.environ.get('COGNITO_USER_POOL_ID'):
            logger.warning(f'delete_cognito_user ::: user pool is not configured, skipping {self.email=}')
            return
        cognito = Cognito(os.environ['COGNITO_USER_POOL_ID'], os.environ['COGNITO_CLIENT_ID'],
                          user_pool_region=os.environ.get('DEFAULT_REGION'), username=self.email)
        try:
            cognito.admin_delete_user()
        except cognito.client.exceptions.UserNotFoundException:
            logger.warning(f'delete_cognito_user ::: {self.email=} not found in user pool, removing db record only')

    def _validate_update_dict(self, update_dict: Dict):
        validation_dict = {**self.required_mutable_fields_validation, **self.optional_fields_validation}
        for key, value in update_dict.items():
            if validation_dict[key](value) is False:
                self.raise_validation_error(key)

    def is_available_driver(self) -> bool:
        return self.role == ROLE_DRIVER and self.is_active and bool((self.driver_profile or {}).get('is_available'))

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(user_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'email': self.email,
            'name_': self.name_,
            'phone': self.phone,
            'address': self.address,
            'role': self.role,
            'is_active': self.is_active,
            'driver_profile': self.driver_profile,
            'favorites_count': self.favorites_count,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_user_records(role: str = None) -> List[Dict]:
    filter_expression = Attr('role').eq(role) if role else None
    return utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.users_pk),
        filter_expression=filter_expression
    )


def get_users_by_role(role: str) -> List[User]:
    return [User(**record) for record in get_user_records(role)]


def build_driver_profile(vehicle_type=None, license_number=None, availability=None) -> Dict:
    return {
        'vehicle_type': vehicle_type,
        'license_number': license_number,
        'availability': availability,
        'is_available': True,
        'rating': utils_data.to_decimal(DEFAULT_DRIVER_RATING)
    }


def create_db_user(user_id: str, email: str, role: str, name: str = None, phone: str = None,
                   address=None, driver_profile: Dict = None) -> bool:
    """
    Creates user's db record if it does not exist yet
    :return:
    True if a new record was created
    """
    logger.info(f'create_db_user ::: {user_id=}, {email=}, {role=}')
    user = User(id_=user_id, email=email, role=role, name_=name, phone=phone, address=address,
                driver_profile=driver_profile, is_active=True)
    try:
        user._create_db_record(condition_expression=Attr('partkey').not_exists())
    except ClientError as error:
        if not utils_db.is_conditional_check_failed(error):
            raise
        logger.warning(f'create_db_user ::: user {user_id=} already exists, skipping')
        return False
    return True
