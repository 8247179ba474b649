import os

from chalice import Chalice, Response

from chalicelib import auth, orders, menu_items, restaurants, images, users, triggers, favorites, notifications, \
    partner_requests, stats
from chalicelib.constants.status_codes import http200
from chalicelib.utils import data as utils_data, app as utils_app

app = Chalice(app_name='grubz-delivery')

app.api.binary_types.insert(0, 'multipart/form-data')
app.debug = os.environ.get('APP_DEBUG', 'false').lower() == 'true'


def get_table_stream_arn():
    return os.environ["ORDERS_TABLE_STREAM_ARN"]


@app.authorizer()
def role_authorizer(auth_request):
    return auth.role_authorizer(auth_request)


@app.on_dynamodb_record(stream_arn=get_table_stream_arn())
def db_table_stream_trigger(event):
    return triggers.db_table_stream_trigger(event)


@app.lambda_function(name='cognito_post_confirmation')
def cognito_post_confirmation(event, context):
    return auth.cognito_post_confirmation(event, context)


@app.route('/health-check', methods=['GET'], cors=True)
def health_check():
    return Response(status_code=http200, body={'status': 'ok'})


# USERS
@app.route('/users/me', methods=['GET'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def get_user():
    return users.User.init_request_user(app.current_request).endpoint_get_user()


@app.route('/users/me', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def update_user():
    return users.User.init_request_user(app.current_request).\
        endpoint_update_profile(utils_data.parse_raw_body(app.current_request))


@app.route('/users', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_users():
    """
    admin operation, optional ?role= filter
    """
    return users.User.endpoint_get_users(app.current_request)


@app.route('/users/{user_id}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def admin_update_user(user_id):
    """
    admin operation, role and is_active only
    """
    return users.User.init_request_admin(app.current_request, user_id).\
        endpoint_admin_update_user(utils_data.parse_raw_body(app.current_request))


@app.route('/users/{user_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def delete_user(user_id):
    """
    admin operation
    """
    return users.User.init_request_admin(app.current_request, user_id).endpoint_delete_user()


# FAVORITES
@app.route('/users/me/favorites', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_favorites():
    return favorites.Favorite.endpoint_get_favorites(app.current_request)


@app.route('/users/me/favorites/{restaurant_id}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def add_favorite(restaurant_id):
    return favorites.Favorite.init_request(app.current_request, restaurant_id).endpoint_add()


@app.route('/users/me/favorites/{restaurant_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def remove_favorite(restaurant_id):
    return favorites.Favorite.init_request(app.current_request, restaurant_id).endpoint_remove()


# RESTAURANTS
@app.route('/restaurants', methods=['GET'], cors=True)
def get_restaurants():
    return restaurants.Restaurant.endpoint_get_all(app.current_request)


@app.route('/restaurants/{restaurant_id}', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def get_restaurant_by_id(restaurant_id):
    return restaurants.Restaurant.init_get_by_id(restaurant_id).endpoint_get_by_id()


@app.route('/owner/restaurant', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_owner_restaurant():
    """
    restaurant owner operation
    """
    return restaurants.Restaurant.endpoint_get_owner_restaurant(app.current_request)


@app.route('/restaurants', methods=['POST'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def create_restaurant():
    """
    admin operation
    """
    return restaurants.Restaurant.init_request_create(app.current_request).endpoint_create()


@app.route('/restaurants/{restaurant_id}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def update_restaurant(restaurant_id):
    """
    restaurant owner or admin operation
    """
    return restaurants.Restaurant.init_request_manage(app.current_request, restaurant_id).\
        endpoint_update(utils_data.parse_raw_body(app.current_request))


@app.route('/restaurants/{restaurant_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def archive_restaurant(restaurant_id):
    """
    admin operation
    """
    return restaurants.Restaurant.init_request_manage(app.current_request, restaurant_id).endpoint_archive()


# MENU ITEMS
@app.route('/menu-items/{restaurant_id}', methods=['GET'], cors=True)
def get_restaurant_menu(restaurant_id):
    return menu_items.MenuItem.endpoint_get_menu_items(restaurant_id)


@app.route('/menu-items/{restaurant_id}', methods=['POST'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def create_menu_item(restaurant_id):
    """
    restaurant owner operation
    """
    return menu_items.MenuItem.init_request_create(app.current_request, restaurant_id).endpoint_create_menu_item()


@app.route('/menu-items/{restaurant_id}/{menu_item_id}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def update_menu_item(restaurant_id, menu_item_id):
    """
    restaurant owner operation
    """
    return menu_items.MenuItem.init_request_manage(app.current_request, restaurant_id, menu_item_id).\
        endpoint_update_menu_item(utils_data.parse_raw_body(app.current_request))


@app.route('/menu-items/{restaurant_id}/{menu_item_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def delete_menu_item(restaurant_id, menu_item_id):
    """
    restaurant owner operation
    """
    return menu_items.MenuItem.init_request_manage(app.current_request, restaurant_id, menu_item_id).\
        endpoint_archive_menu_item()


# ORDERS
@app.route('/orders', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_orders():
    """
    customer gets own orders
    restaurant owner gets the restaurant's orders
    driver gets assigned orders
    admin gets any orders
    """
    return orders.endpoint_get_orders(app.current_request)


@app.route('/orders/available', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_available_orders():
    """
    driver operation, orders which are ready and have no driver yet
    """
    return orders.endpoint_get_available_orders(app.current_request)


@app.route('/orders', methods=['POST'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def create_order():
    """
    customer operation
    """
    return orders.Order.init_request_create(app.current_request).endpoint_create_order()


@app.route('/orders/id/{order_id}', methods=['GET'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def get_order_by_id(order_id):
    return orders.Order.init_request_get(app.current_request, order_id).endpoint_get_by_id()


@app.route('/orders/id/{order_id}/status', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def update_order_status(order_id):
    return orders.Order.init_request_get(app.current_request, order_id).\
        endpoint_update_status(utils_data.parse_raw_body(app.current_request))


@app.route('/orders/id/{order_id}/claim', methods=['POST'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def claim_order(order_id):
    """
    driver operation
    """
    return orders.Order.init_request_claim(app.current_request, order_id).endpoint_claim()


@app.route('/orders/id/{order_id}/assign', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def assign_order(order_id):
    """
    admin operation
    """
    return orders.Order.init_request_get(app.current_request, order_id).\
        endpoint_assign(utils_data.parse_raw_body(app.current_request))


@app.route('/orders/id/{order_id}/feedback', methods=['POST'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def order_feedback(order_id):
    """
    customer operation
    """
    return orders.Order.init_request_get(app.current_request, order_id).\
        endpoint_feedback(utils_data.parse_raw_body(app.current_request))


# NOTIFICATIONS
@app.route('/notifications', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_notifications():
    return notifications.Notification.endpoint_get_notifications(app.current_request)


@app.route('/notifications/read-all', methods=['PUT'], authorizer=role_authorizer, cors=True)
def mark_all_notifications_read():
    return notifications.Notification.endpoint_mark_all_read(app.current_request)


@app.route('/notifications', methods=['DELETE'], authorizer=role_authorizer, cors=True)
def clear_notifications():
    return notifications.Notification.endpoint_clear_all(app.current_request)


@app.route('/notifications/{notification_id}/read', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def mark_notification_read(notification_id):
    return notifications.Notification.init_request_get(app.current_request, notification_id).endpoint_mark_read()


@app.route('/notifications/{notification_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def delete_notification(notification_id):
    return notifications.Notification.init_request_get(app.current_request, notification_id).endpoint_delete()


# PARTNER REQUESTS
@app.route('/partner-requests', methods=['POST'], cors=True)
@utils_app.request_exception_handler
def create_partner_request():
    """
    The endpoint is for partner applications, authorization is not needed
    """
    return partner_requests.PartnerRequest.init_request_create(app.current_request).endpoint_create()


@app.route('/partner-requests', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_partner_requests():
    """
    admin operation, optional ?status= filter
    """
    return partner_requests.PartnerRequest.endpoint_get_requests(app.current_request)


@app.route('/partner-requests/{request_id}/approve', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def approve_partner_request(request_id):
    """
    admin operation
    """
    return partner_requests.PartnerRequest.init_request_admin(app.current_request, request_id).\
        endpoint_approve(utils_data.parse_raw_body(app.current_request))


@app.route('/partner-requests/{request_id}/reject', methods=['PUT'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def reject_partner_request(request_id):
    """
    admin operation
    """
    return partner_requests.PartnerRequest.init_request_admin(app.current_request, request_id).\
        endpoint_reject(utils_data.parse_raw_body(app.current_request))


@app.route('/partner-requests/{request_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@utils_app.request_exception_handler
def delete_partner_request(request_id):
    """
    admin operation
    """
    return partner_requests.PartnerRequest.init_request_admin(app.current_request, request_id).endpoint_delete()


# STATS
@app.route('/stats/restaurant/{restaurant_id}', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_restaurant_stats(restaurant_id):
    """
    restaurant owner or admin operation, optional ?period=today|week|month|all
    """
    return stats.endpoint_restaurant_stats(app.current_request, restaurant_id)


@app.route('/stats/driver', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_driver_stats():
    return stats.endpoint_driver_stats(app.current_request)


@app.route('/stats/platform', methods=['GET'], authorizer=role_authorizer, cors=True)
def get_platform_stats():
    """
    admin operation
    """
    return stats.endpoint_platform_stats(app.current_request)


# IMAGES
@app.route('/image-upload', methods=['POST'], content_types=['multipart/form-data'], authorizer=role_authorizer,
           cors=True)
def image_upload():
    """
    restaurant owner or admin operation
    """
    return images.image_upload(app.current_request)
