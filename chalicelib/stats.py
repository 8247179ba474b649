"""Dashboard figures calculated from the stored orders."""

from collections import Counter, defaultdict
from decimal import Decimal
from typing import Dict, List

from boto3.dynamodb.conditions import Attr
from chalice import Response

from chalicelib.constants.constants import ROLES, ROLE_ADMIN, ROLE_DRIVER
from chalicelib.constants.status_codes import http200
from chalicelib.order_status import OrderStatus, ACTIVE_STATUSES, DRIVER_ACTIVE_STATUSES, FAILED_STATUSES
from chalicelib.orders import Order, get_orders
from chalicelib.partner_requests import get_partner_requests
from chalicelib.restaurants import Restaurant, get_active_restaurants
from chalicelib.users import get_user_records
from chalicelib.utils import auth as utils_auth, data as utils_data, app as utils_app
from chalicelib.utils.data import MONEY
from chalicelib.utils.logger import logger

TOP_ITEMS_LIMIT = 5
ZERO = Decimal('0.00')


def get_period_start(request) -> str:
    return utils_data.period_start((request.query_params or {}).get('period', 'all'))


def count_by_status(orders: List[Order]) -> Dict[str, int]:
    counts = Counter(order.status_ for order in orders)
    return {status.value: counts.get(status.value, 0) for status in OrderStatus}


def average(amount: Decimal, count: int) -> Decimal:
    return (amount / count).quantize(MONEY) if count else ZERO


def top_items(orders: List[Order], limit: int = TOP_ITEMS_LIMIT) -> List[Dict]:
    """ Best selling items by quantity, failed orders are not counted """
    quantities, revenues, names = Counter(), defaultdict(Decimal), {}
    for order in orders:
        if OrderStatus(order.status_) in FAILED_STATUSES:
            continue
        for item in order.items:
            quantity = int(item.get('quantity') or 0)
            quantities[item['id']] += quantity
            revenues[item['id']] += utils_data.to_money(item.get('price')) * quantity
            names[item['id']] = item.get('name')
    return [
        {'id': item_id, 'name': names[item_id], 'quantity': quantity, 'revenue': revenues[item_id].quantize(MONEY)}
        for item_id, quantity in quantities.most_common(limit)
    ]


def restaurant_stats(restaurant_id: str, date_from: str = None) -> Dict:
    orders = get_orders(Attr('restaurant_id').eq(restaurant_id), date_from=date_from)
    by_status = count_by_status(orders)
    delivered = [order for order in orders if order.status_ == OrderStatus.DELIVERED.value]
    revenue = sum((order.total for order in delivered), ZERO)
    return {
        'restaurant_id': restaurant_id,
        'total_orders': len(orders),
        'orders_by_status': by_status,
        'pending_orders': by_status[OrderStatus.PENDING.value],
        'active_orders': sum(by_status[status.value] for status in ACTIVE_STATUSES),
        'delivered_orders': len(delivered),
        'revenue': revenue,
        'average_order_value': average(revenue, len(delivered)),
        'top_items': top_items(orders)
    }


def driver_stats(driver_id: str, date_from: str = None) -> Dict:
    orders = get_orders(Attr('assigned_driver_id').eq(driver_id), date_from=date_from)
    delivered = [order for order in orders if order.status_ == OrderStatus.DELIVERED.value]
    earnings = sum((order.delivery_fee or ZERO for order in delivered), ZERO)
    return {
        'driver_id': driver_id,
        'completed_deliveries': len(delivered),
        'active_deliveries': len([order for order in orders
                                  if OrderStatus(order.status_) in DRIVER_ACTIVE_STATUSES]),
        'earnings': earnings,
        'average_per_delivery': average(earnings, len(delivered))
    }


def platform_stats() -> Dict:
    users_by_role = Counter(record.get('role') for record in get_user_records())
    orders = get_orders()
    by_status = count_by_status(orders)
    return {
        'users_by_role': {role: users_by_role.get(role, 0) for role in ROLES},
        'total_users': sum(users_by_role.values()),
        'active_restaurants': len(get_active_restaurants()),
        'orders_by_status': by_status,
        'total_orders': len(orders),
        'gross_revenue': sum((order.total for order in orders
                              if order.status_ == OrderStatus.DELIVERED.value), ZERO),
        'pending_partner_requests': len(get_partner_requests('pending'))
    }


@utils_app.request_exception_handler
@utils_auth.authenticate
def endpoint_restaurant_stats(request, restaurant_id) -> Response:
    Restaurant.init_get_by_id(restaurant_id).check_manage_access(request.auth_result)
    date_from = get_period_start(request)
    logger.info(f'endpoint_restaurant_stats ::: {restaurant_id=}, {date_from=}')
    return Response(status_code=http200, body=restaurant_stats(restaurant_id, date_from))


@utils_app.request_exception_handler
@utils_auth.authenticate
def endpoint_driver_stats(request) -> Response:
    utils_auth.require_role(request.auth_result, [ROLE_DRIVER])
    date_from = get_period_start(request)
    return Response(status_code=http200, body=driver_stats(request.auth_result['user_id'], date_from))


@utils_app.request_exception_handler
@utils_auth.authenticate
def endpoint_platform_stats(request) -> Response:
    utils_auth.require_role(request.auth_result, [ROLE_ADMIN])
    return Response(status_code=http200, body=platform_stats())
