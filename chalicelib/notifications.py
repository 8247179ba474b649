from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import NOTIFICATION_TYPES, NOTIFICATION_PRIORITIES, DATE_CREATED_INDEX
from chalicelib.constants.status_codes import http200
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.logger import logger


class Notification(EntityBase):
    pk = keys_structure.notifications_pk
    sk = keys_structure.notifications_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'type_': lambda x: x in NOTIFICATION_TYPES,
        'title': lambda x: isinstance(x, str),
        'message': lambda x: isinstance(x, str),
        'priority': lambda x: x in NOTIFICATION_PRIORITIES,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'read': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'order_id': lambda x: isinstance(x, str),
        'action_url': lambda x: isinstance(x, str),
        'action_label': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, user_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_id: str = user_id
        self.type_: str = kwargs.get('type_', 'system')
        self.title: str = kwargs.get('title')
        self.message: str = kwargs.get('message')
        self.priority: str = kwargs.get('priority', 'medium')
        self.read: bool = kwargs.get('read', False)
        self.order_id: str = kwargs.get('order_id')
        self.action_url: str = kwargs.get('action_url')
        self.action_label: str = kwargs.get('action_label')
        self.date_created: str = kwargs.get('date_created') or utils_data.now_iso()
        self.date_updated: str = kwargs.get('date_updated') or utils_data.now_iso()
        self.record_type = 'notification'

    @classmethod
    @utils_auth.authenticate_class
    def init_request_get(cls, request, notification_id):
        logger.info("init_request_get ::: started")
        c = cls(id_=notification_id, user_id=request.auth_result['user_id'])
        c.__init__(**c._get_db_item())
        return c

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_mark_read(self) -> Response:
        self._update_db_record({'read': True})
        return Response(status_code=http200, body={'message': 'Notification marked as read', 'id': self.id_})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_delete(self) -> Response:
        self._delete_db_record()
        return Response(status_code=http200, body={'message': 'Notification was removed', 'id': self.id_})

    @staticmethod
    @utils_app.request_exception_handler
    @utils_auth.authenticate
    def endpoint_get_notifications(request) -> Response:
        user_id = request.auth_result['user_id']
        unread_only = (request.query_params or {}).get('unread', '').lower() == 'true'
        notifications = get_user_notifications(user_id)
        unread_count = len([item for item in notifications if not item.read])
        if unread_only:
            notifications = [item for item in notifications if not item.read]
        return Response(status_code=http200, body={
            'notifications': [item._to_ui() for item in notifications],
            'unread_count': unread_count
        })

    @staticmethod
    @utils_app.request_exception_handler
    @utils_auth.authenticate
    def endpoint_mark_all_read(request) -> Response:
        unread = get_unread_notifications(request.auth_result['user_id'])
        for notification in unread:
            notification._update_db_record({'read': True})
        return Response(status_code=http200, body={'message': f'{len(unread)} notifications marked as read'})

    @staticmethod
    @utils_app.request_exception_handler
    @utils_auth.authenticate
    def endpoint_clear_all(request) -> Response:
        notifications = get_user_notifications(request.auth_result['user_id'])
        for notification in notifications:
            notification._delete_db_record()
        return Response(status_code=http200, body={'message': f'{len(notifications)} notifications were removed'})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(user_id=self.user_id), self.sk.format(notification_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'type_': self.type_,
            'title': self.title,
            'message': self.message,
            'priority': self.priority,
            'read': self.read,
            'order_id': self.order_id,
            'action_url': self.action_url,
            'action_label': self.action_label,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_user_notifications(user_id: str, filter_expression=None) -> List[Notification]:
    records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.notifications_pk.format(user_id=user_id)),
        filter_expression=filter_expression,
        index_name=DATE_CREATED_INDEX,
        scan_index_forward=False
    )
    return [Notification(**record) for record in records]


def get_unread_notifications(user_id: str) -> List[Notification]:
    return get_user_notifications(user_id, filter_expression=Attr('read').eq(False))


def create_notification(user_id: str, type_: str, title: str, message: str, priority: str = 'medium',
                        order_id: str = None, action_url: str = None, action_label: str = None) -> Notification:
    notification = Notification(
        id_=str(uuid4()),
        user_id=user_id,
        type_=type_,
        title=title,
        message=message,
        priority=priority,
        order_id=order_id,
        action_url=action_url,
        action_label=action_label
    )
    notification._create_db_record()
    logger.info(f'create_notification ::: {type_=} sent to {user_id=}, {title=}')
    return notification
