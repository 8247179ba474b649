from decimal import Decimal
from typing import List, Dict, Tuple
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200
from chalicelib.constants.substitute_keys import to_db
from chalicelib.restaurants import Restaurant
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.exceptions import ValidationException
from chalicelib.utils.logger import logger


class MenuItem(EntityBase):
    pk = keys_structure.menu_items_pk
    sk = keys_structure.menu_items_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        'created_by': lambda x: isinstance(x, str),
        "date_created": lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'category': lambda x: isinstance(x, str),
        'price': lambda x: isinstance(x, Decimal) and x > 0,
        'is_available': lambda x: isinstance(x, bool),
        "date_updated": lambda x: isinstance(x, str),
        "archived": lambda x: isinstance(x, bool)
    }

    optional_fields_validation = {
        'description': lambda x: isinstance(x, str),
        'popular': lambda x: isinstance(x, bool),
        'preparation_time': lambda x: isinstance(x, Decimal) and x >= 0,
        'ingredients': lambda x: isinstance(x, list),
        'allergens': lambda x: isinstance(x, list),
        'image_url': lambda x: isinstance(x, str),
        "updated_by": lambda x: isinstance(x, str)
    }

    def __init__(self, id_, restaurant_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.request_data = kwargs.get('request_data', {})
        self.db_record: dict = {}

        self.restaurant_id: str = restaurant_id
        self.name_: str = kwargs.get('name_')
        self.category: str = kwargs.get('category')
        self.description: str = kwargs.get('description')
        self.price: Decimal = utils_data.to_money(kwargs.get('price'))
        self.preparation_time: Decimal = utils_data.to_decimal(kwargs.get('preparation_time'), Decimal('1'))
        self.ingredients: list = kwargs.get('ingredients', [])
        self.allergens: list = kwargs.get('allergens', [])
        self.image_url: str = kwargs.get('image_url')
        self.popular: bool = kwargs.get('popular', False)
        self.is_available: bool = kwargs.get('is_available', True)
        self.created_by: str = kwargs.get('created_by') or self.request_data.get('auth_result', {}).get('user_id')
        self.updated_by: str = kwargs.get('updated_by') or self.request_data.get('auth_result', {}).get('user_id')
        self.date_created: str = kwargs.get('date_created') or utils_data.now_iso()
        self.date_updated: str = kwargs.get('date_updated') or utils_data.now_iso()
        self.archived: bool = kwargs.get('archived', False)
        self.record_type = 'menu_item'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request, restaurant_id):
        """
        restaurant owner operation
        """
        logger.info("init_request_create ::: started")
        Restaurant.init_get_by_id(restaurant_id).check_manage_access(request.auth_result)
        request_body = utils_data.parse_raw_body(request)
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        for key in ('id_', 'restaurant_id', 'request_data', 'archived', 'created_by'):
            request_body.pop(key, None)
        request_data = {**request.to_dict(), 'auth_result': request.auth_result}
        return cls(id_=str(uuid4()), restaurant_id=restaurant_id, request_data=request_data, **request_body)

    @classmethod
    @utils_auth.authenticate_class
    def init_request_manage(cls, request, restaurant_id, menu_item_id):
        """
        restaurant owner operation
        """
        logger.info("init_request_manage ::: started")
        Restaurant.init_get_by_id(restaurant_id).check_manage_access(request.auth_result)
        c = cls.init_get_by_id(menu_item_id, restaurant_id)
        c.request_data = {**request.to_dict(), 'auth_result': request.auth_result}
        return c

    @classmethod
    def init_get_by_id(cls, menu_item_id, restaurant_id):
        logger.info("init_get_by_id ::: started")
        c = cls(id_=menu_item_id, restaurant_id=restaurant_id)
        c.__init__(**c._get_db_item())
        return c

    @staticmethod
    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_menu_items(restaurant_id) -> Response:
        menu_items: List[Dict] = [item._to_ui() for item in get_restaurant_menu_items(restaurant_id)]
        menu_items.sort(key=lambda item: ((item.get('category') or '').lower(), (item.get('name') or '').lower()))
        logger.info(f"endpoint_get_menu_items ::: returning menu items={[item['id'] for item in menu_items]}")
        return Response(status_code=http200, body=menu_items)

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create_menu_item(self) -> Response:
        self._create_db_record()
        return Response(status_code=http200, body={'message': 'Menu item successfully created', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_menu_item(self, request_body: Dict) -> Response:
        substitute_keys(dict_to_process=request_body, base_keys=to_db)
        whitelist = [key for key in self._update_fields_whitelist() if key not in ('archived', 'updated_by')]
        update_dict = {key: value for key, value in request_body.items() if key in whitelist}
        if 'price' in update_dict:
            update_dict['price'] = utils_data.to_money(update_dict['price'])
        if 'preparation_time' in update_dict:
            update_dict['preparation_time'] = utils_data.to_decimal(update_dict['preparation_time'], Decimal('1'))
        validation_dict = {**self.required_mutable_fields_validation, **self.optional_fields_validation}
        for key, value in update_dict.items():
            if validation_dict[key](value) is False:
                self.raise_validation_error(key)
        if not update_dict:
            raise ValidationException('Nothing to update')
        update_dict['updated_by'] = self.request_data['auth_result']['user_id']
        self._update_db_record(update_dict)
        return Response(status_code=http200, body={'message': 'Menu item was successfully updated', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_archive_menu_item(self) -> Response:
        self._update_db_record({'archived': True, 'updated_by': self.request_data['auth_result']['user_id']})
        return Response(status_code=http200, body={'message': 'Menu item was successfully archived', 'id': self.id_})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(restaurant_id=self.restaurant_id), self.sk.format(menu_item_id=self.id_)

    def is_available_right_now(self) -> bool:
        return self.is_available and not self.archived

    def _to_dict(self):
        return {
            'id_': self.id_,
            'restaurant_id': self.restaurant_id,
            'name_': self.name_,
            'category': self.category,
            'description': self.description,
            'price': self.price,
            'preparation_time': self.preparation_time,
            'ingredients': self.ingredients,
            'allergens': self.allergens,
            'image_url': self.image_url,
            'popular': self.popular,
            'is_available': self.is_available,
            "date_created": self.date_created,
            "date_updated": self.date_updated,
            'created_by': self.created_by,
            'updated_by': self.updated_by,
            "archived": self.archived
        }


def get_restaurant_menu_items(restaurant_id: str) -> List[MenuItem]:
    menu_item_db_records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.menu_items_pk.format(restaurant_id=restaurant_id)),
        filter_expression=Attr('archived').eq(False)
    )
    return [MenuItem(**record) for record in menu_item_db_records]
