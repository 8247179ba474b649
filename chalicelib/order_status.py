"""Order status enumeration, allowed transitions and who may perform them."""

from enum import Enum
from typing import Dict, List

from chalicelib.constants.constants import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DRIVER, ROLE_RESTAURANT_OWNER
from chalicelib.utils.exceptions import AccessDenied, InvalidStatusTransition


class OrderStatus(str, Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    PREPARING = 'preparing'
    READY_FOR_PICKUP = 'readyForPickup'
    ASSIGNED = 'assigned'
    OUT_FOR_DELIVERY = 'out_for_delivery'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


# Actors of a transition. The owner and the driver are resolved against the order itself.
CUSTOMER = ROLE_CUSTOMER
OWNER = ROLE_RESTAURANT_OWNER
DRIVER = ROLE_DRIVER
ADMIN = ROLE_ADMIN

TRANSITIONS: Dict[OrderStatus, Dict[OrderStatus, tuple]] = {
    OrderStatus.PENDING: {
        OrderStatus.ACCEPTED: (OWNER, ADMIN),
        OrderStatus.REJECTED: (OWNER, ADMIN),
        OrderStatus.CANCELLED: (CUSTOMER, ADMIN),
    },
    OrderStatus.ACCEPTED: {
        OrderStatus.PREPARING: (OWNER, ADMIN),
        OrderStatus.CANCELLED: (ADMIN,),
    },
    OrderStatus.PREPARING: {
        OrderStatus.READY_FOR_PICKUP: (OWNER, ADMIN),
        OrderStatus.CANCELLED: (ADMIN,),
    },
    OrderStatus.READY_FOR_PICKUP: {
        # drivers get there through the claim, admins through the assignment
        OrderStatus.ASSIGNED: (),
        OrderStatus.CANCELLED: (ADMIN,),
    },
    OrderStatus.ASSIGNED: {
        OrderStatus.OUT_FOR_DELIVERY: (DRIVER,),
        OrderStatus.CANCELLED: (ADMIN,),
    },
    OrderStatus.OUT_FOR_DELIVERY: {
        OrderStatus.DELIVERED: (DRIVER,),
    },
    OrderStatus.DELIVERED: {},
    OrderStatus.REJECTED: {},
    OrderStatus.CANCELLED: {},
}

# Timestamp attribute stamped when an order enters the status
STATUS_TIMESTAMP_FIELDS = {
    OrderStatus.ACCEPTED: 'accepted_at',
    OrderStatus.REJECTED: 'rejected_at',
    OrderStatus.READY_FOR_PICKUP: 'ready_at',
    OrderStatus.ASSIGNED: 'assigned_at',
    OrderStatus.OUT_FOR_DELIVERY: 'picked_up_at',
    OrderStatus.DELIVERED: 'delivered_at',
    OrderStatus.CANCELLED: 'cancelled_at',
}

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.REJECTED, OrderStatus.CANCELLED}
ACTIVE_STATUSES = {OrderStatus.ACCEPTED, OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP,
                   OrderStatus.ASSIGNED, OrderStatus.OUT_FOR_DELIVERY}
DRIVER_ACTIVE_STATUSES = {OrderStatus.ASSIGNED, OrderStatus.OUT_FOR_DELIVERY}
FAILED_STATUSES = {OrderStatus.REJECTED, OrderStatus.CANCELLED}


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatusTransition(f'Unknown order status={value}, '
                                      f'expected one of {[status.value for status in OrderStatus]}')


def next_statuses(src: OrderStatus) -> List[OrderStatus]:
    return list(TRANSITIONS.get(src, {}).keys())


def can_transition(src: OrderStatus, dst: OrderStatus) -> bool:
    """Return ``True`` if an order can move from ``src`` to ``dst``."""
    return dst in TRANSITIONS.get(src, {})


def check_transition(src: OrderStatus, dst: OrderStatus, actor: str):
    """
    Raises InvalidStatusTransition when the move is not part of the lifecycle
    and AccessDenied when the actor is not allowed to make it
    """
    if not can_transition(src, dst):
        raise InvalidStatusTransition(f'Order can not be moved from {src.value} to {dst.value}, '
                                      f'allowed: {[status.value for status in next_statuses(src)]}')
    if actor not in TRANSITIONS[src][dst]:
        raise AccessDenied(f'{actor} is not allowed to move an order from {src.value} to {dst.value}')
