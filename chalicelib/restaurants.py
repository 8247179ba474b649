from copy import deepcopy
from decimal import Decimal
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_ADMIN, ROLE_RESTAURANT_OWNER, DEFAULT_OPENING_HOURS, \
    DEFAULT_RESTAURANT_RATING
from chalicelib.constants.status_codes import http200
from chalicelib.constants.substitute_keys import to_db
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.exceptions import AccessDenied, RecordNotFound, ValidationException
from chalicelib.utils.logger import logger

RESTAURANT_STATUSES = ('pending', 'approved', 'suspended')
# fields only admins are allowed to change
ADMIN_ONLY_FIELDS = ('owner_id', 'is_active', 'status_')
# kept up to date by orders and reviews
COMPUTED_FIELDS = ('rating', 'rating_sum', 'total_reviews', 'total_orders')


class Restaurant(EntityBase):
    pk = keys_structure.restaurants_pk
    sk = keys_structure.restaurants_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'created_by': lambda x: isinstance(x, str),
        "date_created": lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'address': lambda x: isinstance(x, (str, dict)),
        'cuisine': lambda x: isinstance(x, str),
        'is_active': lambda x: isinstance(x, bool),
        'status_': lambda x: x in RESTAURANT_STATUSES,
        "date_updated": lambda x: isinstance(x, str),
        "archived": lambda x: isinstance(x, bool)
    }

    optional_fields_validation = {
        'owner_id': lambda x: isinstance(x, str),
        'description': lambda x: isinstance(x, str),
        'category': lambda x: isinstance(x, str),
        'phone': lambda x: isinstance(x, str),
        'email': lambda x: isinstance(x, str),
        'website': lambda x: isinstance(x, str),
        'hours': lambda x: isinstance(x, dict),
        'delivery_fee': lambda x: isinstance(x, Decimal) and x >= 0,
        'image_url': lambda x: isinstance(x, str),
        "updated_by": lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.request_data = kwargs.get('request_data', {})
        self.db_record: dict = {}

        self.owner_id: str = kwargs.get('owner_id')
        self.name_: str = kwargs.get('name_')
        self.description: str = kwargs.get('description')
        self.cuisine: str = kwargs.get('cuisine')
        self.category: str = kwargs.get('category')
        self.address = kwargs.get('address')
        self.phone: str = kwargs.get('phone')
        self.email: str = kwargs.get('email')
        self.website: str = kwargs.get('website')
        self.hours: dict = kwargs.get('hours') or deepcopy(DEFAULT_OPENING_HOURS)
        self.delivery_fee: Decimal = utils_data.to_money(kwargs.get('delivery_fee'))
        self.image_url: str = kwargs.get('image_url')
        self.rating: Decimal = utils_data.to_decimal(kwargs.get('rating', DEFAULT_RESTAURANT_RATING))
        self.rating_sum: Decimal = utils_data.to_decimal(kwargs.get('rating_sum', 0))
        self.total_reviews: Decimal = utils_data.to_decimal(kwargs.get('total_reviews', 0))
        self.total_orders: Decimal = utils_data.to_decimal(kwargs.get('total_orders', 0))
        self.is_active: bool = kwargs.get('is_active', True)
        self.status_: str = kwargs.get('status_') or 'approved'
        self.created_by: str = kwargs.get('created_by') or self.request_data.get('auth_result', {}).get('user_id')
        self.updated_by: str = kwargs.get('updated_by') or self.request_data.get('auth_result', {}).get('user_id')
        self.date_created: str = kwargs.get('date_created') or utils_data.now_iso()
        self.date_updated: str = kwargs.get('date_updated') or utils_data.now_iso()
        self.archived: bool = kwargs.get('archived', False)
        self.record_type = 'restaurant'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        """
        admin operation
        """
        logger.info("init_request_create ::: started")
        utils_auth.require_role(request.auth_result, [ROLE_ADMIN])
        request_body = utils_data.parse_raw_body(request)
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        for key in ('id_', 'request_data', 'archived', *COMPUTED_FIELDS):
            request_body.pop(key, None)
        request_data = {**request.to_dict(), 'auth_result': request.auth_result}
        return cls(id_=str(uuid4()), request_data=request_data, **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_manage(cls, request, restaurant_id):
        """
        restaurant owner or admin operation
        """
        logger.info("init_request_manage ::: started")
        c = cls.init_get_by_id(restaurant_id)
        c.check_manage_access(request.auth_result)
        c.request_data = {**request.to_dict(), 'auth_result': request.auth_result}
        return c

    @classmethod
    def init_get_by_id(cls, restaurant_id):
        logger.info("init_get_by_id ::: started")
        c = cls(restaurant_id)
        c.__init__(**c._get_db_item())
        return c

    @staticmethod
    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_all(request) -> Response:
        cuisine = (request.query_params or {}).get('cuisine')
        restaurants: List[Dict] = [
            restaurant._to_ui() for restaurant in get_active_restaurants()
            if not cuisine or (restaurant.cuisine or '').lower() == cuisine.lower()
        ]
        restaurants.sort(key=lambda rest: (rest.get('name') or '').lower())
        logger.info(f"endpoint_get_all ::: returning restaurants={[rest['id'] for rest in restaurants]}")
        return Response(status_code=http200, body=restaurants)

    @staticmethod
    @utils_app.request_exception_handler
    @utils_auth.authenticate
    def endpoint_get_owner_restaurant(request) -> Response:
        utils_auth.require_role(request.auth_result, [ROLE_RESTAURANT_OWNER])
        restaurant = get_owner_restaurant(request.auth_result['user_id'])
        return Response(status_code=http200, body=restaurant._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_by_id(self) -> Response:
        if self.archived:
            raise RecordNotFound(f'Restaurant {self.id_} not found')
        restaurant = self._to_ui()
        logger.info(f"endpoint_get_by_id ::: returning restaurant={restaurant['id']}")
        return Response(status_code=http200, body=restaurant)

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={'message': 'Restaurant successfully created', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update(self, request_body: Dict) -> Response:
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        whitelist = [key for key in self._update_fields_whitelist() if key not in ('archived', *COMPUTED_FIELDS)]
        if self.request_data['auth_result']['role'] != ROLE_ADMIN:
            whitelist = [key for key in whitelist if key not in ADMIN_ONLY_FIELDS]
        update_dict = {key: value for key, value in request_body.items() if key in whitelist}
        if 'delivery_fee' in update_dict:
            update_dict['delivery_fee'] = utils_data.to_money(update_dict['delivery_fee'])
        ignored = set(request_body.keys()) - set(update_dict.keys())
        if ignored:
            logger.warning(f'endpoint_update ::: fields {ignored} are not allowed, ignoring..')
        for key, value in update_dict.items():
            if self._get_validator(key)(value) is False:
                self.raise_validation_error(key)
        if not update_dict:
            raise ValidationException('Nothing to update')
        update_dict['updated_by'] = self.request_data['auth_result']['user_id']
        self._update_db_record(update_dict)
        return Response(status_code=http200, body={'message': 'Restaurant was successfully updated', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_archive(self) -> Response:
        if self.request_data['auth_result']['role'] != ROLE_ADMIN:
            raise AccessDenied('Only admins can archive restaurants')
        self._update_db_record({'archived': True, 'is_active': False,
                                'updated_by': self.request_data['auth_result']['user_id']})
        return Response(status_code=http200, body={'message': 'Restaurant was successfully archived', 'id': self.id_})

    def check_manage_access(self, auth_result: Dict):
        if auth_result['role'] == ROLE_ADMIN:
            return
        if auth_result['role'] == ROLE_RESTAURANT_OWNER and self.owner_id == auth_result['user_id']:
            return
        raise AccessDenied(f"user {auth_result['user_id']} can not manage restaurant {self.id_}")

    def is_accepting_orders(self) -> bool:
        return self.is_active and not self.archived and self.status_ == 'approved'

    def get_delivery_fee(self, default_fee: Decimal) -> Decimal:
        return self.delivery_fee if self.delivery_fee is not None else default_fee

    def increment_total_orders(self):
        utils_db.increment_counters(self._get_key(), {'total_orders': 1})

    def add_review(self, rate: Decimal) -> Decimal:
        """
        Review counters are incremented atomically, the average is recalculated from the stored counters
        """
        attributes = utils_db.increment_counters(self._get_key(), {'rating_sum': rate, 'total_reviews': 1})
        rating = (Decimal(attributes['rating_sum']) / Decimal(attributes['total_reviews'])).quantize(Decimal('0.1'))
        self._update_db_record({'rating': rating})
        self.rating = rating
        return rating

    def _get_validator(self, key):
        return {**self.required_mutable_fields_validation, **self.optional_fields_validation}[key]

    def _update_fields_whitelist(self) -> List:
        return [*super()._update_fields_whitelist(), 'rating']

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(restaurant_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'owner_id': self.owner_id,
            'name_': self.name_,
            'description': self.description,
            'cuisine': self.cuisine,
            'category': self.category,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'website': self.website,
            'hours': self.hours,
            'delivery_fee': self.delivery_fee,
            'image_url': self.image_url,
            'rating': self.rating,
            'rating_sum': self.rating_sum,
            'total_reviews': self.total_reviews,
            'total_orders': self.total_orders,
            'is_active': self.is_active,
            'status_': self.status_,
            "date_created": self.date_created,
            "date_updated": self.date_updated,
            'created_by': self.created_by,
            'updated_by': self.updated_by,
            "archived": self.archived
        }


def get_restaurants(filter_expression=None) -> List[Restaurant]:
    restaurant_db_records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.restaurants_pk),
        filter_expression=filter_expression
    )
    return [Restaurant(**record) for record in restaurant_db_records]


def get_active_restaurants() -> List[Restaurant]:
    return get_restaurants(Attr('archived').eq(False) & Attr('is_active').eq(True))


def get_owner_restaurant(owner_id: str) -> Restaurant:
    restaurants = get_restaurants(Attr('owner_id').eq(owner_id) & Attr('archived').eq(False))
    if not restaurants:
        raise RecordNotFound(f'Restaurant of owner {owner_id} not found')
    return sorted(restaurants, key=lambda rest: rest.date_created)[0]
