import os
import random
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import PAYMENT_METHODS, DATE_CREATED_INDEX, ROLE_ADMIN, ROLE_CUSTOMER, \
    ROLE_DRIVER, ROLE_RESTAURANT_OWNER
from chalicelib.constants.status_codes import http200
from chalicelib.menu_items import MenuItem
from chalicelib.notifications import create_notification
from chalicelib.order_status import OrderStatus, STATUS_TIMESTAMP_FIELDS, check_transition, parse_status, \
    CUSTOMER, OWNER, DRIVER, ADMIN
from chalicelib.restaurants import Restaurant, get_owner_restaurant
from chalicelib.users import User, get_users_by_role
from chalicelib.utils import auth as utils_auth, \
    data as utils_data, \
    db as utils_db, \
    app as utils_app, \
    notifications as utils_notifications, \
    exceptions, \
    email_templates
from chalicelib.utils.data import MONEY
from chalicelib.utils.exceptions import OrderNotFound, RecordNotFound
from chalicelib.utils.logger import logger

PAYMENT_STATUSES = ('pending', 'paid', 'failed', 'refunded')
ORDER_STATUS_VALUES = [status.value for status in OrderStatus]
DEFAULT_PREPARATION_TIME = 15

# customers have no notes field, their notes are dropped
NOTES_FIELDS = {
    OWNER: 'restaurant_notes',
    ADMIN: 'restaurant_notes',
    DRIVER: 'driver_notes'
}

CUSTOMER_STATUS_MESSAGES = {
    OrderStatus.ACCEPTED: ('Order accepted', '{restaurant_name} accepted your order {order_number}'),
    OrderStatus.REJECTED: ('Order rejected', '{restaurant_name} could not accept your order {order_number}'),
    OrderStatus.PREPARING: ('Order is being prepared', 'Your order {order_number} is being prepared'),
    OrderStatus.READY_FOR_PICKUP: ('Order is ready', 'Your order {order_number} is ready and waits for a driver'),
    OrderStatus.ASSIGNED: ('Driver assigned', '{driver_name} will deliver your order {order_number}'),
    OrderStatus.OUT_FOR_DELIVERY: ('Order is on the way', 'Your order {order_number} is out for delivery'),
    OrderStatus.DELIVERED: ('Order delivered', 'Your order {order_number} has been delivered. Enjoy your meal!'),
    OrderStatus.CANCELLED: ('Order cancelled', 'Your order {order_number} has been cancelled'),
}


def is_timestamp(value) -> bool:
    return isinstance(value, str)


class Order(EntityBase):
    pk = keys_structure.orders_pk
    sk = keys_structure.orders_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'order_number': lambda x: isinstance(x, str),
        'customer_id': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        'items': lambda x: isinstance(x, list) and len(x) > 0,
        'delivery_address': lambda x: isinstance(x, dict),
        'subtotal': lambda x: isinstance(x, Decimal),
        'delivery_fee': lambda x: isinstance(x, Decimal),
        'tax': lambda x: isinstance(x, Decimal),
        'total': lambda x: isinstance(x, Decimal),
        'payment_method': lambda x: x in PAYMENT_METHODS,
        'estimated_delivery_time': is_timestamp,
        'date_created': is_timestamp
    }

    required_mutable_fields_validation = {
        'status_': lambda x: x in ORDER_STATUS_VALUES,
        'payment_status': lambda x: x in PAYMENT_STATUSES,
        'date_updated': is_timestamp
    }

    optional_fields_validation = {
        'customer_name': lambda x: isinstance(x, str),
        'customer_email': lambda x: isinstance(x, str),
        'customer_phone': lambda x: isinstance(x, str),
        'restaurant_name': lambda x: isinstance(x, str),
        'restaurant_phone': lambda x: isinstance(x, str),
        'restaurant_address': lambda x: isinstance(x, (str, dict)),
        'special_instructions': lambda x: isinstance(x, str),
        'assigned_driver_id': lambda x: isinstance(x, str),
        'driver_name': lambda x: isinstance(x, str),
        'driver_phone': lambda x: isinstance(x, str),
        'restaurant_notes': lambda x: isinstance(x, str),
        'driver_notes': lambda x: isinstance(x, str),
        'accepted_at': is_timestamp,
        'rejected_at': is_timestamp,
        'ready_at': is_timestamp,
        'assigned_at': is_timestamp,
        'picked_up_at': is_timestamp,
        'delivered_at': is_timestamp,
        'cancelled_at': is_timestamp,
        'actual_delivery_time': is_timestamp,
        'history': lambda x: isinstance(x, list),
        'feedback': lambda x: isinstance(x, str),
        'feedback_rate': lambda x: isinstance(x, Decimal) and 1 <= x <= 5,
        'updated_by': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.request_data = kwargs.get('request_data', {})
        self.auth_result: Dict = {}
        self.db_record: dict = {}
        self.restaurant = None

        self.order_number: str = kwargs.get('order_number')
        self.customer_id: str = kwargs.get('customer_id')
        self.customer_name: str = kwargs.get('customer_name')
        self.customer_email: str = kwargs.get('customer_email')
        self.customer_phone: str = kwargs.get('customer_phone')
        self.delivery_address: dict = kwargs.get('delivery_address')
        self.restaurant_id: str = kwargs.get('restaurant_id')
        self.restaurant_name: str = kwargs.get('restaurant_name')
        self.restaurant_phone: str = kwargs.get('restaurant_phone')
        self.restaurant_address = kwargs.get('restaurant_address')
        self.items: list = kwargs.get('items', [])
        self.subtotal: Decimal = utils_data.to_money(kwargs.get('subtotal'))
        self.delivery_fee: Decimal = utils_data.to_money(kwargs.get('delivery_fee'))
        self.tax: Decimal = utils_data.to_money(kwargs.get('tax'))
        self.total: Decimal = utils_data.to_money(kwargs.get('total'))
        self.payment_method: str = kwargs.get('payment_method', 'cash')
        self.payment_status: str = kwargs.get('payment_status', 'pending')
        self.status_: str = kwargs.get('status_', OrderStatus.PENDING.value)
        self.special_instructions: str = kwargs.get('special_instructions')
        self.estimated_delivery_time: str = kwargs.get('estimated_delivery_time')
        self.assigned_driver_id: str = kwargs.get('assigned_driver_id')
        self.driver_name: str = kwargs.get('driver_name')
        self.driver_phone: str = kwargs.get('driver_phone')
        self.restaurant_notes: str = kwargs.get('restaurant_notes')
        self.driver_notes: str = kwargs.get('driver_notes')
        self.accepted_at: str = kwargs.get('accepted_at')
        self.rejected_at: str = kwargs.get('rejected_at')
        self.ready_at: str = kwargs.get('ready_at')
        self.assigned_at: str = kwargs.get('assigned_at')
        self.picked_up_at: str = kwargs.get('picked_up_at')
        self.delivered_at: str = kwargs.get('delivered_at')
        self.cancelled_at: str = kwargs.get('cancelled_at')
        self.actual_delivery_time: str = kwargs.get('actual_delivery_time')
        self.history: list = kwargs.get('history', [])
        self.feedback: str = kwargs.get('feedback')
        self.feedback_rate: Decimal = kwargs.get('feedback_rate')
        self.updated_by: str = kwargs.get('updated_by')
        self.date_created: str = kwargs.get('date_created') or utils_data.now_iso()
        self.date_updated: str = kwargs.get('date_updated') or utils_data.now_iso()
        self.record_type = 'order'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        """
        customer operation, prices and totals are always calculated from the stored menu
        """
        logger.info("init_request_create ::: started")
        utils_auth.require_role(request.auth_result, [ROLE_CUSTOMER])
        request_body = utils_data.parse_raw_body(request)
        customer = User.init_by_id(request.auth_result['user_id'])

        if not request_body.get('restaurant_id') or not request_body.get('items'):
            raise exceptions.MandatoryFieldsAreNotFilled('restaurant_id and items must be provided')
        payment_method = request_body.get('payment_method', 'cash')
        if payment_method not in PAYMENT_METHODS:
            raise exceptions.ValidationException(f'Unknown {payment_method=}, expected one of {PAYMENT_METHODS}')

        try:
            restaurant = Restaurant.init_get_by_id(request_body['restaurant_id'])
        except RecordNotFound:
            raise exceptions.ValidationException(f"Restaurant {request_body['restaurant_id']} does not exist")
        if not restaurant.is_accepting_orders():
            raise exceptions.ValidationException(f'Restaurant {restaurant.id_} is not accepting orders right now')

        items, subtotal = build_order_items(restaurant.id_, request_body['items'])
        delivery_fee = restaurant.get_delivery_fee(utils_data.to_money(os.environ.get('DEFAULT_DELIVERY_FEE', '2.99')))
        tax = (subtotal * Decimal(os.environ.get('TAX_RATE', '0.08'))).quantize(MONEY, rounding=ROUND_HALF_UP)
        now = datetime.now()

        c = cls(
            id_=str(uuid4()),
            request_data={**request.to_dict(), 'auth_result': request.auth_result},
            order_number=generate_order_number(),
            customer_id=customer.id_,
            customer_name=request_body.get('customer_name') or customer.name_,
            customer_email=customer.email,
            customer_phone=request_body.get('customer_phone') or customer.phone,
            delivery_address=validate_delivery_address(request_body.get('delivery_address')),
            restaurant_id=restaurant.id_,
            restaurant_name=restaurant.name_,
            restaurant_phone=restaurant.phone,
            restaurant_address=restaurant.address,
            items=items,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            tax=tax,
            total=subtotal + delivery_fee + tax,
            payment_method=payment_method,
            special_instructions=request_body.get('special_instructions'),
            estimated_delivery_time=(now + timedelta(
                minutes=int(os.environ.get('ESTIMATED_DELIVERY_MINUTES', 45)))).isoformat(timespec='seconds'),
            history=[{'status': OrderStatus.PENDING.value, 'date': now.isoformat(timespec='seconds'),
                      'by': customer.id_}],
            date_created=now.isoformat(timespec='seconds'),
            updated_by=customer.id_
        )
        c.restaurant = restaurant
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_get(cls, request, order_id):
        """
        Orders are visible to the participants and admins only, anyone else gets 404
        """
        logger.info("init_request_get ::: started")
        c = cls.init_by_id(order_id)
        c.auth_result = request.auth_result
        c.request_data = {**request.to_dict(), 'auth_result': request.auth_result}
        if not c.is_visible_to(request.auth_result):
            raise OrderNotFound(f'Order {order_id} not found')
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_claim(cls, request, order_id):
        """
        driver operation, a claimed order is reported as a conflict rather than hidden
        """
        logger.info("init_request_claim ::: started")
        utils_auth.require_role(request.auth_result, [ROLE_DRIVER])
        c = cls.init_by_id(order_id)
        c.auth_result = request.auth_result
        c.request_data = {**request.to_dict(), 'auth_result': request.auth_result}
        return c

    @classmethod
    def init_by_id(cls, order_id):
        c = cls(order_id)
        try:
            c.__init__(**c._get_db_item())
        except RecordNotFound:
            raise OrderNotFound(f'Order {order_id} not found')
        return c

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_create_order(self):
        self._create_db_record(condition_expression=Attr('partkey').not_exists())
        self.restaurant.increment_total_orders()
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_by_id(self):
        return Response(status_code=http200, body=self._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_update_status(self, request_body: Dict):
        if not request_body.get('status'):
            raise exceptions.MandatoryFieldsAreNotFilled('status must be provided')
        src, dst = parse_status(self.status_), parse_status(request_body['status'])
        if dst == OrderStatus.ASSIGNED:
            raise exceptions.InvalidStatusTransition('Drivers are assigned through the claim or by an admin')
        actor = self.get_actor(self.auth_result)
        if actor is None:
            raise exceptions.AccessDenied(f"user {self.auth_result['user_id']} can not update order {self.id_}")
        check_transition(src, dst, actor)

        update_dict = self._transition_update_dict(dst, self.auth_result['user_id'])
        if request_body.get('notes') and actor in NOTES_FIELDS:
            update_dict[NOTES_FIELDS[actor]] = str(request_body['notes'])
        elif request_body.get('notes'):
            logger.warning(f'endpoint_update_status ::: {actor} notes are not stored, order {self.id_}')
        condition = Attr('status_').eq(src.value)
        if actor == DRIVER:
            condition = condition & Attr('assigned_driver_id').eq(self.auth_result['user_id'])

        attributes = self._conditional_update(update_dict, condition, exceptions.OrderStatusConflict(
            f'Order {self.id_} was changed by someone else, please reload it'))
        logger.info(f'endpoint_update_status ::: order {self.id_} moved from {src.value} to {dst.value} by {actor}')
        return Response(status_code=http200, body=Order(**attributes)._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_claim(self):
        utils_auth.require_role(self.auth_result, [ROLE_DRIVER])
        driver = User.init_by_id(self.auth_result['user_id'])
        attributes = self.assign_driver(driver, self.auth_result['user_id'])
        return Response(status_code=http200, body=Order(**attributes)._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_assign(self, request_body: Dict):
        utils_auth.require_role(self.auth_result, [ROLE_ADMIN])
        if not request_body.get('driver_id'):
            raise exceptions.MandatoryFieldsAreNotFilled('driver_id must be provided')
        try:
            driver = User.init_by_id(request_body['driver_id'])
        except RecordNotFound:
            raise exceptions.ValidationException(f"Driver {request_body['driver_id']} does not exist")
        attributes = self.assign_driver(driver, self.auth_result['user_id'])
        return Response(status_code=http200, body=Order(**attributes)._to_ui())

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_feedback(self, request_body: Dict):
        if self.get_actor(self.auth_result) != CUSTOMER:
            raise exceptions.AccessDenied('Only the customer of the order can leave feedback')
        rate = utils_data.to_decimal(request_body.get('rate'))
        if rate is None or rate != rate.to_integral_value() or not 1 <= rate <= 5:
            raise exceptions.ValidationException('rate must be an integer from 1 to 5')
        if self.status_ != OrderStatus.DELIVERED.value:
            raise exceptions.ValidationException('Feedback can be left for delivered orders only')
        if self.feedback_rate is not None:
            raise exceptions.AlreadyProcessed(f'Feedback for order {self.id_} was already left')

        update_dict = {'feedback_rate': rate.quantize(Decimal('1'))}
        if request_body.get('feedback'):
            update_dict['feedback'] = str(request_body['feedback'])
        self._conditional_update(
            update_dict,
            Attr('status_').eq(OrderStatus.DELIVERED.value) & Attr('feedback_rate').not_exists(),
            exceptions.AlreadyProcessed(f'Feedback for order {self.id_} was already left'))
        restaurant_rating = Restaurant.init_get_by_id(self.restaurant_id).add_review(update_dict['feedback_rate'])
        return Response(status_code=http200, body={'message': 'Thank you for your feedback', 'id': self.id_,
                                                   'restaurant_rating': restaurant_rating})

    def assign_driver(self, driver: User, assigned_by: str) -> Dict:
        """
        Sets the driver on a ready order with a single conditional write,
        so only one of concurrent claims can succeed
        """
        if driver.role != ROLE_DRIVER or not driver.is_active:
            raise exceptions.ValidationException(f'User {driver.id_} is not an active delivery rider')
        if self.assigned_driver_id:
            raise exceptions.OrderAlreadyClaimed(f'Order {self.id_} is already assigned to another driver')
        if self.status_ != OrderStatus.READY_FOR_PICKUP.value:
            raise exceptions.InvalidStatusTransition(
                f"Only orders in {OrderStatus.READY_FOR_PICKUP.value} can be assigned, order {self.id_} is {self.status_}")

        update_dict = {
            **self._transition_update_dict(OrderStatus.ASSIGNED, assigned_by),
            'assigned_driver_id': driver.id_,
            'driver_name': driver.name_ or driver.email,
            'driver_phone': driver.phone
        }
        condition = Attr('status_').eq(OrderStatus.READY_FOR_PICKUP.value) & Attr('assigned_driver_id').not_exists()
        attributes = self._conditional_update(update_dict, condition, exceptions.OrderAlreadyClaimed(
            f'Order {self.id_} has already been claimed by another driver'))
        logger.info(f'assign_driver ::: order {self.id_} assigned to driver {driver.id_} by {assigned_by}')
        return attributes

    def get_actor(self, auth_result: Dict):
        """
        Resolves in which capacity the user acts on this order, None if the user is not a participant
        """
        role, user_id = auth_result['role'], auth_result['user_id']
        if role == ROLE_ADMIN:
            return ADMIN
        if role == ROLE_CUSTOMER and self.customer_id == user_id:
            return CUSTOMER
        if role == ROLE_RESTAURANT_OWNER and self.get_restaurant().owner_id == user_id:
            return OWNER
        if role == ROLE_DRIVER and self.assigned_driver_id == user_id:
            return DRIVER
        return None

    def is_claimable(self) -> bool:
        return self.status_ == OrderStatus.READY_FOR_PICKUP.value and not self.assigned_driver_id

    def is_visible_to(self, auth_result: Dict) -> bool:
        if self.get_actor(auth_result) is not None:
            return True
        return auth_result['role'] == ROLE_DRIVER and self.is_claimable()

    def get_restaurant(self) -> Restaurant:
        if self.restaurant is None:
            self.restaurant = Restaurant.init_get_by_id(self.restaurant_id)
        return self.restaurant

    def _transition_update_dict(self, dst: OrderStatus, actor_id: str) -> Dict:
        now = utils_data.now_iso()
        update_dict = {
            'status_': dst.value,
            'history': [{'status': dst.value, 'date': now, 'by': actor_id}],
            'updated_by': actor_id
        }
        if dst in STATUS_TIMESTAMP_FIELDS:
            update_dict[STATUS_TIMESTAMP_FIELDS[dst]] = now
        if dst == OrderStatus.DELIVERED:
            update_dict['actual_delivery_time'] = now
            if self.payment_method == 'cash':
                update_dict['payment_status'] = 'paid'
        return update_dict

    def _conditional_update(self, update_dict: Dict, condition, conflict_error: Exception) -> Dict:
        try:
            return self._update_db_record(update_dict, condition_expression=condition, attrs_to_append=['history'])
        except ClientError as error:
            if utils_db.is_conditional_check_failed(error):
                raise conflict_error
            raise

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(order_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'order_number': self.order_number,
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'customer_email': self.customer_email,
            'customer_phone': self.customer_phone,
            'delivery_address': self.delivery_address,
            'restaurant_id': self.restaurant_id,
            'restaurant_name': self.restaurant_name,
            'restaurant_phone': self.restaurant_phone,
            'restaurant_address': self.restaurant_address,
            'items': self.items,
            'subtotal': self.subtotal,
            'delivery_fee': self.delivery_fee,
            'tax': self.tax,
            'total': self.total,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'status_': self.status_,
            'special_instructions': self.special_instructions,
            'estimated_delivery_time': self.estimated_delivery_time,
            'assigned_driver_id': self.assigned_driver_id,
            'driver_name': self.driver_name,
            'driver_phone': self.driver_phone,
            'restaurant_notes': self.restaurant_notes,
            'driver_notes': self.driver_notes,
            'accepted_at': self.accepted_at,
            'rejected_at': self.rejected_at,
            'ready_at': self.ready_at,
            'assigned_at': self.assigned_at,
            'picked_up_at': self.picked_up_at,
            'delivered_at': self.delivered_at,
            'cancelled_at': self.cancelled_at,
            'actual_delivery_time': self.actual_delivery_time,
            'history': self.history,
            'feedback': self.feedback,
            'feedback_rate': self.feedback_rate,
            'updated_by': self.updated_by,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def generate_order_number() -> str:
    epoch_ms = str(int(datetime.now().timestamp() * 1000))
    return f'ORD{epoch_ms[-6:]}{random.randint(0, 999):03d}'


def validate_delivery_address(address) -> Dict:
    if not isinstance(address, dict) or not address.get('street') or not address.get('city'):
        raise exceptions.WrongDeliveryAddress('delivery_address must contain at least street and city')
    return {
        'street': str(address['street']),
        'city': str(address['city']),
        'state': address.get('state'),
        'zip_code': address.get('zip_code'),
        'country': address.get('country') or 'US',
        'instructions': address.get('instructions'),
        'coordinates': address.get('coordinates')
    }


def build_order_items(restaurant_id: str, raw_items: List) -> Tuple[List[Dict], Decimal]:
    """
    Snapshots ordered menu items with the prices stored in db, client prices are ignored
    :return:
    order items and their subtotal
    """
    if not isinstance(raw_items, list):
        raise exceptions.ValidationException('items must be a list')
    items, subtotal, not_available = [], Decimal('0.00'), []
    for raw_item in raw_items:
        if not isinstance(raw_item, dict) or not raw_item.get('id'):
            raise exceptions.ValidationException(f'Every item must have an id, got {raw_item=}')
        quantity = raw_item.get('quantity', 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise exceptions.ValidationException(f"Item {raw_item['id']} quantity must be a positive integer")
        try:
            menu_item = MenuItem.init_get_by_id(raw_item['id'], restaurant_id)
        except RecordNotFound:
            not_available.append(raw_item['id'])
            continue
        if not menu_item.is_available_right_now():
            not_available.append(raw_item['id'])
            continue
        items.append({
            'id': menu_item.id_,
            'name': menu_item.name_,
            'description': menu_item.description,
            'price': menu_item.price,
            'quantity': quantity,
            'category': menu_item.category,
            'preparation_time': menu_item.preparation_time
            if menu_item.preparation_time is not None else Decimal(DEFAULT_PREPARATION_TIME),
            'special_instructions': raw_item.get('special_instructions')
        })
        subtotal += menu_item.price * quantity
    if not_available:
        logger.warning(f'build_order_items ::: items {not_available} are not available in {restaurant_id=}')
        raise exceptions.SomeItemsAreNotAvailable(f'Items {not_available} are not available')
    return items, subtotal.quantize(MONEY)


def get_orders(filter_expression=None, date_from: str = None) -> List[Order]:
    """ All orders matching the filter, newest first """
    key_condition = Key('partkey').eq(keys_structure.orders_pk)
    if date_from:
        key_condition = key_condition & Key('date_created').gte(date_from)
    records: List[Dict] = utils_db.query_items_paged(
        key_condition,
        filter_expression=filter_expression,
        index_name=DATE_CREATED_INDEX,
        scan_index_forward=False
    )
    return [Order(**record) for record in records]


def query_orders_page(filter_expression=None, limit: int = None, start_order_id: str = None):
    """
    One page of orders, newest first. Pages are addressed by the id of the last returned order
    :return:
    orders, id of the last evaluated order or None
    """
    start_key = None
    if start_order_id:
        start_order = Order.init_by_id(start_order_id)
        start_key = {**start_order._get_key(), 'date_created': start_order.date_created}
    records, last_key = utils_db.query_items_paginated(
        Key('partkey').eq(keys_structure.orders_pk),
        filter_expression=filter_expression,
        index_name=DATE_CREATED_INDEX,
        limit=limit,
        start_key=start_key,
        scan_index_forward=False
    )
    return [Order(**record) for record in records], (last_key or {}).get('sortkey')


def get_role_orders_filter(auth_result: Dict, query_params: Dict):
    role, user_id = auth_result['role'], auth_result['user_id']
    conditions = []
    if role == ROLE_CUSTOMER:
        conditions.append(Attr('customer_id').eq(user_id))
    elif role == ROLE_RESTAURANT_OWNER:
        if query_params.get('restaurant_id'):
            restaurant = Restaurant.init_get_by_id(query_params['restaurant_id'])
            restaurant.check_manage_access(auth_result)
        else:
            restaurant = get_owner_restaurant(user_id)
        conditions.append(Attr('restaurant_id').eq(restaurant.id_))
    elif role == ROLE_DRIVER:
        conditions.append(Attr('assigned_driver_id').eq(user_id))
    elif role == ROLE_ADMIN:
        for param, attr in (('restaurant_id', 'restaurant_id'), ('customer_id', 'customer_id'),
                            ('driver_id', 'assigned_driver_id')):
            if query_params.get(param):
                conditions.append(Attr(attr).eq(query_params[param]))
    else:
        raise exceptions.AccessDenied(f'Unknown {role=}')
    if query_params.get('status'):
        conditions.append(Attr('status_').eq(parse_status(query_params['status']).value))
    return utils_db.combine_conditions(conditions)


@utils_app.request_exception_handler
@utils_auth.authenticate
def endpoint_get_orders(request) -> Response:
    query_params = request.query_params or {}
    filter_expression = get_role_orders_filter(request.auth_result, query_params)
    page_size = query_params.get('page_size')
    if page_size is not None:
        if not page_size.isdigit() or int(page_size) < 1:
            raise exceptions.ValidationException(f'page_size must be a positive integer, got {page_size}')
        orders, last_evaluated_key = query_orders_page(filter_expression, int(page_size),
                                                       query_params.get('start_key'))
    else:
        orders, last_evaluated_key = get_orders(filter_expression), None
    logger.info(f"endpoint_get_orders ::: returning {len(orders)} orders, role={request.auth_result['role']}")
    return Response(status_code=http200, body={
        'orders': [order._to_ui() for order in orders],
        'last_evaluated_key': last_evaluated_key
    })


@utils_app.request_exception_handler
@utils_auth.authenticate
def endpoint_get_available_orders(request) -> Response:
    utils_auth.require_role(request.auth_result, [ROLE_DRIVER])
    orders = get_orders(Attr('status_').eq(OrderStatus.READY_FOR_PICKUP.value) &
                        Attr('assigned_driver_id').not_exists())
    orders.sort(key=lambda order: order.ready_at or order.date_created, reverse=True)
    return Response(status_code=http200, body={'orders': [order._to_ui() for order in orders]})


def notify_order_created(record: Dict):
    restaurant = Restaurant.init_get_by_id(record['restaurant_id'])
    if restaurant.owner_id:
        create_notification(
            restaurant.owner_id, 'new_order', 'New order received',
            f"Order {record.get('order_number')} from {record.get('customer_name') or 'a customer'}, "
            f"total {record.get('total')}",
            priority='high', order_id=record['id_'], action_url=f"/orders/{record['id_']}", action_label='View order'
        )

    email_from = os.environ.get('ORDER_EMAIL_FROM')
    if not email_from:
        logger.warning('notify_order_created ::: ORDER_EMAIL_FROM is not configured, skipping e-mail')
        return
    subject = f"New order {record.get('order_number')} has been created, " \
              f"address - {email_templates.format_address(record.get('delivery_address'))}"
    utils_notifications.send_email_ses(
        [restaurant.email, record.get('customer_email'), os.environ.get('ALL_ORDERS_EMAIL')],
        email_from,
        subject,
        email_templates.get_new_order_notification_message(record)
    )


def notify_status_changed(record: Dict, status: OrderStatus):
    order_id = record['id_']
    if status in CUSTOMER_STATUS_MESSAGES:
        title, message = CUSTOMER_STATUS_MESSAGES[status]
        create_notification(
            record['customer_id'], 'order_update', title,
            message.format(restaurant_name=record.get('restaurant_name') or 'The restaurant',
                           order_number=record.get('order_number'),
                           driver_name=record.get('driver_name') or 'A driver'),
            order_id=order_id, action_url=f'/orders/{order_id}', action_label='Track order'
        )

    if status == OrderStatus.READY_FOR_PICKUP:
        for driver in get_users_by_role(ROLE_DRIVER):
            if driver.is_available_driver():
                create_notification(
                    driver.id_, 'new_order', 'New delivery available',
                    f"Order {record.get('order_number')} from {record.get('restaurant_name')} is ready for pickup",
                    priority='high', order_id=order_id, action_url='/orders/available', action_label='Claim order'
                )

    if status in (OrderStatus.ASSIGNED, OrderStatus.CANCELLED):
        owner_id = Restaurant.init_get_by_id(record['restaurant_id']).owner_id
        if owner_id:
            message = f"{record.get('driver_name') or 'A driver'} picks up order {record.get('order_number')}" \
                if status == OrderStatus.ASSIGNED else f"Order {record.get('order_number')} was cancelled"
            create_notification(owner_id, 'order_update', f'Order {status.value}', message, order_id=order_id)

    if status == OrderStatus.DELIVERED and record.get('assigned_driver_id'):
        create_notification(
            record['assigned_driver_id'], 'earnings', 'Delivery completed',
            f"You earned {record.get('delivery_fee')} for delivering order {record.get('order_number')}",
            priority='low', order_id=order_id
        )


def db_trigger_order_record(record_old: dict, record_new: dict, event_id: str, event_name: str):
    logger.info(f"db_trigger_order_record ::: order={record_new.get('id_') or record_old.get('id_')}, "
                f"{event_id=}, {event_name=}")
    if event_name.lower() == 'insert':
        notify_order_created(record_new)
    elif event_name.lower() == 'modify' and record_old.get('status_') != record_new.get('status_'):
        notify_status_changed(record_new, parse_status(record_new.get('status_')))
