from decimal import Decimal
from typing import Tuple, List, Dict

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_CUSTOMER, DATE_CREATED_INDEX
from chalicelib.constants.status_codes import http200
from chalicelib.restaurants import Restaurant
from chalicelib.users import User
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.exceptions import RecordNotFound
from chalicelib.utils.logger import logger


class Favorite(EntityBase):
    """ Restaurant saved by a customer, keeps a copy of the restaurant card for listing """
    pk = keys_structure.favorites_pk
    sk = keys_structure.favorites_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'restaurant_name': lambda x: isinstance(x, str),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'cuisine': lambda x: isinstance(x, str),
        'rating': lambda x: isinstance(x, Decimal),
        'address': lambda x: isinstance(x, (str, dict)),
        'image_url': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, user_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_id: str = user_id
        self.restaurant_name: str = kwargs.get('restaurant_name')
        self.cuisine: str = kwargs.get('cuisine')
        self.rating: Decimal = utils_data.to_decimal(kwargs.get('rating'))
        self.address = kwargs.get('address')
        self.image_url: str = kwargs.get('image_url')
        self.date_created: str = kwargs.get('date_created') or utils_data.now_iso()
        self.date_updated: str = kwargs.get('date_updated') or utils_data.now_iso()
        self.record_type = 'favorite'

    @classmethod
    @utils_auth.authenticate_class
    def init_request(cls, request, restaurant_id):
        logger.info("init_request ::: started")
        utils_auth.require_role(request.auth_result, [ROLE_CUSTOMER])
        c = cls(id_=restaurant_id, user_id=request.auth_result['user_id'])
        c.request_data = {**request.to_dict(), 'auth_result': request.auth_result}
        return c

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_add(self) -> Response:
        restaurant = Restaurant.init_get_by_id(self.id_)
        if restaurant.archived:
            raise RecordNotFound(f'Restaurant {self.id_} not found')
        self.restaurant_name = restaurant.name_
        self.cuisine = restaurant.cuisine
        self.rating = restaurant.rating
        self.address = restaurant.address
        self.image_url = restaurant.image_url
        try:
            self._create_db_record(condition_expression=Attr('partkey').not_exists())
        except ClientError as error:
            if not utils_db.is_conditional_check_failed(error):
                raise
            logger.info(f'endpoint_add ::: restaurant {self.id_} is already a favorite of {self.user_id}')
            return Response(status_code=http200, body={'message': 'Restaurant is already in favorites',
                                                       'id': self.id_})
        utils_db.increment_counters(User(self.user_id)._get_key(), {'favorites_count': 1})
        return Response(status_code=http200, body={'message': 'Restaurant was added to favorites', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_remove(self) -> Response:
        try:
            utils_db.get_gen_table().delete_item(
                Key=self._get_key(),
                ConditionExpression=Attr('partkey').exists()
            )
        except ClientError as error:
            if not utils_db.is_conditional_check_failed(error):
                raise
            raise RecordNotFound(f'Restaurant {self.id_} is not in favorites')
        utils_db.increment_counters(User(self.user_id)._get_key(), {'favorites_count': -1})
        return Response(status_code=http200, body={'message': 'Restaurant was removed from favorites', 'id': self.id_})

    @staticmethod
    @utils_app.request_exception_handler
    @utils_auth.authenticate
    def endpoint_get_favorites(request) -> Response:
        utils_auth.require_role(request.auth_result, [ROLE_CUSTOMER])
        favorites = [favorite._to_ui() for favorite in get_user_favorites(request.auth_result['user_id'])]
        return Response(status_code=http200, body={'favorites': favorites})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(user_id=self.user_id), self.sk.format(restaurant_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'restaurant_name': self.restaurant_name,
            'cuisine': self.cuisine,
            'rating': self.rating,
            'address': self.address,
            'image_url': self.image_url,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_user_favorites(user_id: str) -> List[Favorite]:
    records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.favorites_pk.format(user_id=user_id)),
        index_name=DATE_CREATED_INDEX,
        scan_index_forward=False
    )
    return [Favorite(**record) for record in records]
