import os
import secrets
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError, BotoCoreError
from chalice import Response
from pycognito import Cognito

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import PARTNER_ROLES, ROLE_ADMIN, ROLE_DRIVER, ROLE_RESTAURANT_OWNER, \
    DATE_CREATED_INDEX, DEFAULT_REJECTION_REASON
from chalicelib.constants.status_codes import http200
from chalicelib.constants.substitute_keys import to_db
from chalicelib.notifications import create_notification
from chalicelib.restaurants import Restaurant
from chalicelib.users import User, create_db_user, build_driver_profile, get_users_by_role
from chalicelib.utils import auth as utils_auth, \
    data as utils_data, \
    db as utils_db, \
    app as utils_app, \
    notifications as utils_notifications, \
    email_templates
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.exceptions import AlreadyProcessed, MandatoryFieldsAreNotFilled, RecordNotFound, \
    ValidationException
from chalicelib.utils.logger import logger, log_exception

REQUEST_STATUSES = ('pending', 'approved', 'rejected')

REQUIRED_FIELDS = {
    ROLE_RESTAURANT_OWNER: ('email', 'phone', 'address', 'restaurant_name', 'owner_name', 'cuisine'),
    ROLE_DRIVER: ('email', 'phone', 'address', 'full_name', 'license_number', 'vehicle_type')
}


def is_str(value) -> bool:
    return isinstance(value, str)


def generate_temporary_password() -> str:
    # the pool policy wants upper and lower case letters, digits and symbols
    return f'{secrets.token_urlsafe(8)}Aa1!'


class PartnerRequest(EntityBase):
    pk = keys_structure.partner_requests_pk
    sk = keys_structure.partner_requests_sk

    required_immutable_fields_validation = {
        'id_': is_str,
        'type_': lambda x: x in PARTNER_ROLES,
        'email': lambda x: isinstance(x, str) and '@' in x,
        'phone': is_str,
        'submitted_at': is_str,
        'date_created': is_str
    }

    required_mutable_fields_validation = {
        'status_': lambda x: x in REQUEST_STATUSES,
        'deleted': lambda x: isinstance(x, bool),
        'date_updated': is_str
    }

    optional_fields_validation = {
        'address': lambda x: isinstance(x, (str, dict)),
        'restaurant_name': is_str,
        'owner_name': is_str,
        'cuisine': is_str,
        'description': is_str,
        'experience': is_str,
        'website': is_str,
        'full_name': is_str,
        'date_of_birth': is_str,
        'license_number': is_str,
        'vehicle_type': is_str,
        'availability': lambda x: isinstance(x, (str, list, dict)),
        'emergency_contact': is_str,
        'emergency_phone': is_str,
        'admin_notes': is_str,
        'user_id': is_str,
        'restaurant_id': is_str,
        'processed_at': is_str,
        'processed_by': is_str
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.request_data = kwargs.get('request_data', {})
        self.db_record: dict = {}

        self.type_: str = kwargs.get('type_')
        self.status_: str = kwargs.get('status_', 'pending')
        self.email: str = kwargs.get('email')
        self.phone: str = kwargs.get('phone')
        self.address = kwargs.get('address')
        self.restaurant_name: str = kwargs.get('restaurant_name')
        self.owner_name: str = kwargs.get('owner_name')
        self.cuisine: str = kwargs.get('cuisine')
        self.description: str = kwargs.get('description')
        self.experience: str = kwargs.get('experience')
        self.website: str = kwargs.get('website')
        self.full_name: str = kwargs.get('full_name')
        self.date_of_birth: str = kwargs.get('date_of_birth')
        self.license_number: str = kwargs.get('license_number')
        self.vehicle_type: str = kwargs.get('vehicle_type')
        self.availability = kwargs.get('availability')
        self.emergency_contact: str = kwargs.get('emergency_contact')
        self.emergency_phone: str = kwargs.get('emergency_phone')
        self.admin_notes: str = kwargs.get('admin_notes')
        self.user_id: str = kwargs.get('user_id')
        self.restaurant_id: str = kwargs.get('restaurant_id')
        self.processed_at: str = kwargs.get('processed_at')
        self.processed_by: str = kwargs.get('processed_by')
        self.deleted: bool = kwargs.get('deleted', False)
        self.date_created: str = kwargs.get('date_created') or utils_data.now_iso()
        self.submitted_at: str = kwargs.get('submitted_at') or self.date_created
        self.date_updated: str = kwargs.get('date_updated') or utils_data.now_iso()
        self.record_type = 'partner_request'

    @classmethod
    def init_request_create(cls, request):
        """
        public operation, anyone can apply to become a partner
        """
        logger.info("init_request_create ::: started")
        request_body = utils_data.parse_raw_body(request)
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        request_type = request_body.get('type_')
        if request_type not in PARTNER_ROLES:
            raise ValidationException(f'type must be one of {PARTNER_ROLES}, got {request_type}')
        missing = [field for field in REQUIRED_FIELDS[request_type] if not request_body.get(field)]
        if missing:
            raise MandatoryFieldsAreNotFilled(f'Fields {missing} are mandatory for {request_type} requests')
        for key in ('id_', 'request_data', 'status_', 'deleted', 'admin_notes', 'user_id', 'restaurant_id',
                    'processed_at', 'processed_by', 'submitted_at', 'date_created', 'date_updated'):
            request_body.pop(key, None)
        return cls(id_=str(uuid4()), request_data=request.to_dict(), **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_admin(cls, request, request_id):
        """
        admin operation
        """
        logger.info("init_request_admin ::: started")
        utils_auth.require_role(request.auth_result, [ROLE_ADMIN])
        c = cls(request_id)
        c.__init__(**c._get_db_item())
        if c.deleted:
            raise RecordNotFound(f'Partner request {request_id} not found')
        c.request_data = {**request.to_dict(), 'auth_result': request.auth_result}
        return c

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={
            'message': 'Your application was submitted, we will contact you soon',
            'id': self.id_
        })

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_approve(self, request_body: Dict) -> Response:
        self._check_pending()
        admin_id = self.request_data['auth_result']['user_id']
        admin_notes = request_body.get('admin_notes')

        user_id = self.create_cognito_user()
        user_created, restaurant, restaurant_id = False, None, None
        try:
            driver_profile = build_driver_profile(self.vehicle_type, self.license_number, self.availability) \
                if self.type_ == ROLE_DRIVER else None
            user_created = create_db_user(user_id, self.email, self.type_, name=self.get_applicant_name(),
                                          phone=self.phone, address=self.address, driver_profile=driver_profile)
            if self.type_ == ROLE_RESTAURANT_OWNER:
                restaurant = Restaurant(
                    id_=str(uuid4()),
                    owner_id=user_id,
                    name_=self.restaurant_name,
                    cuisine=self.cuisine,
                    description=self.description,
                    address=self.address,
                    phone=self.phone,
                    email=self.email,
                    website=self.website,
                    status_='approved',
                    is_active=True,
                    created_by=admin_id
                )
                restaurant._create_db_record()
                restaurant_id = restaurant.id_
            self._mark_processed('approved', admin_id, admin_notes, user_id=user_id, restaurant_id=restaurant_id)
        except Exception:
            self.rollback_approval(user_id, user_created, restaurant if restaurant_id else None)
            raise

        email_sent = self.send_email(email_templates.get_approval_subject(self.type_),
                                     email_templates.get_approval_message(self.get_applicant_name(), self.type_,
                                                                          admin_notes))
        return Response(status_code=http200, body={
            'message': 'Partner request was approved',
            'id': self.id_,
            'user_id': user_id,
            'restaurant_id': restaurant_id,
            'email_sent': email_sent
        })

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_reject(self, request_body: Dict) -> Response:
        self._check_pending()
        reason = request_body.get('admin_notes') or DEFAULT_REJECTION_REASON
        self._mark_processed('rejected', self.request_data['auth_result']['user_id'], reason)
        email_sent = self.send_email(email_templates.get_rejection_subject(self.type_),
                                     email_templates.get_rejection_message(self.get_applicant_name(), self.type_,
                                                                           reason))
        return Response(status_code=http200, body={
            'message': 'Partner request was rejected',
            'id': self.id_,
            'email_sent': email_sent
        })

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_delete(self) -> Response:
        self._update_db_record({'deleted': True})
        return Response(status_code=http200, body={'message': 'Partner request was deleted', 'id': self.id_})

    @staticmethod
    @utils_app.request_exception_handler
    @utils_auth.authenticate
    def endpoint_get_requests(request) -> Response:
        utils_auth.require_role(request.auth_result, [ROLE_ADMIN])
        status = (request.query_params or {}).get('status')
        if status is not None and status not in REQUEST_STATUSES:
            raise ValidationException(f'Unknown {status=}, expected one of {REQUEST_STATUSES}')
        requests = [partner_request._to_ui() for partner_request in get_partner_requests(status)]
        logger.info(f'endpoint_get_requests ::: returning {len(requests)} requests, {status=}')
        return Response(status_code=http200, body={'requests': requests})

    def get_applicant_name(self) -> str:
        return self.owner_name or self.full_name or self.email

    def create_cognito_user(self) -> str:
        """
        Creates the partner's account, Cognito e-mails the invitation with a temporary password
        :return:
        id of the new user
        """
        cognito = Cognito(os.environ['COGNITO_USER_POOL_ID'], os.environ['COGNITO_CLIENT_ID'],
                          user_pool_region=os.environ.get('DEFAULT_REGION'))
        try:
            response = cognito.admin_create_user(
                self.email,
                temporary_password=generate_temporary_password(),
                attr_map={'custom:role': 'role'},
                email=self.email,
                role=self.type_
            )
        except cognito.client.exceptions.UsernameExistsException:
            raise ValidationException(f'Account with email {self.email} already exists')
        cognito_user = response['User']
        attributes = {attr['Name']: attr['Value'] for attr in cognito_user.get('Attributes', [])}
        user_id = attributes.get('sub') or cognito_user['Username']
        logger.info(f'create_cognito_user ::: created {user_id=} for {self.email=}, role={self.type_}')
        return user_id

    def rollback_approval(self, user_id: str, user_created: bool, restaurant: Restaurant = None):
        """
        Removes the account and records of a failed approval, the request stays pending and can be approved again
        """
        logger.warning(f'rollback_approval ::: approval of {self.id_} failed, removing {user_id=}')
        if restaurant is not None:
            restaurant._delete_db_record()
        if user_created:
            User(user_id)._delete_db_record()
        cognito = Cognito(os.environ['COGNITO_USER_POOL_ID'], os.environ['COGNITO_CLIENT_ID'],
                          user_pool_region=os.environ.get('DEFAULT_REGION'), username=self.email)
        cognito.admin_delete_user()

    def send_email(self, subject: str, message: str) -> bool:
        email_from = os.environ.get('ORDER_EMAIL_FROM')
        if not email_from:
            logger.warning(f'send_email ::: sender is not configured, {self.email=} is not notified')
            return False
        try:
            utils_notifications.send_email_ses([self.email], email_from, subject, message)
        except (ClientError, BotoCoreError) as error:
            log_exception(error, msg=f'Could not send e-mail to {self.email}: ')
            return False
        return True

    def _check_pending(self):
        if self.status_ != 'pending':
            raise AlreadyProcessed(f'Partner request {self.id_} is already {self.status_}')

    def _mark_processed(self, status: str, admin_id: str, admin_notes: str = None, **kwargs):
        update_dict = {
            'status_': status,
            'processed_at': utils_data.now_iso(),
            'processed_by': admin_id,
            'admin_notes': admin_notes,
            **kwargs
        }
        try:
            self._update_db_record(update_dict, condition_expression=Attr('status_').eq('pending'))
        except ClientError as error:
            if not utils_db.is_conditional_check_failed(error):
                raise
            raise AlreadyProcessed(f'Partner request {self.id_} was processed by someone else')
        self.status_ = status

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(request_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'type_': self.type_,
            'status_': self.status_,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'restaurant_name': self.restaurant_name,
            'owner_name': self.owner_name,
            'cuisine': self.cuisine,
            'description': self.description,
            'experience': self.experience,
            'website': self.website,
            'full_name': self.full_name,
            'date_of_birth': self.date_of_birth,
            'license_number': self.license_number,
            'vehicle_type': self.vehicle_type,
            'availability': self.availability,
            'emergency_contact': self.emergency_contact,
            'emergency_phone': self.emergency_phone,
            'admin_notes': self.admin_notes,
            'user_id': self.user_id,
            'restaurant_id': self.restaurant_id,
            'processed_at': self.processed_at,
            'processed_by': self.processed_by,
            'deleted': self.deleted,
            'submitted_at': self.submitted_at,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_partner_requests(status: str = None) -> List[PartnerRequest]:
    filter_expression = Attr('deleted').ne(True)
    if status:
        filter_expression = filter_expression & Attr('status_').eq(status)
    records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.partner_requests_pk),
        filter_expression=filter_expression,
        index_name=DATE_CREATED_INDEX,
        scan_index_forward=False
    )
    return [PartnerRequest(**record) for record in records]


def db_trigger_partner_request_record(record_old: dict, record_new: dict, event_id: str, event_name: str):
    logger.info(f"db_trigger_partner_request_record ::: request={record_new.get('id_')}, {event_id=}, {event_name=}")
    if event_name.lower() != 'insert':
        return
    applicant = record_new.get('restaurant_name') or record_new.get('full_name') or record_new.get('email')
    role_title = email_templates.ROLE_TITLES.get(record_new.get('type_'), 'partner')
    for admin in get_users_by_role(ROLE_ADMIN):
        create_notification(
            admin.id_, 'system', 'New partner request',
            f'{applicant} applied to become a {role_title}',
            priority='medium', action_url='/admin/partner-requests', action_label='Review request'
        )
