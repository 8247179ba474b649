users_pk = 'users'
users_sk = '{user_id}'

restaurants_pk = 'restaurants'
restaurants_sk = '{restaurant_id}'

menu_items_pk = 'menu_items_{restaurant_id}'
menu_items_sk = '{menu_item_id}'

orders_pk = 'orders'
orders_sk = '{order_id}'

notifications_pk = 'notifications_{user_id}'
notifications_sk = '{notification_id}'

partner_requests_pk = 'partner_requests'
partner_requests_sk = '{request_id}'

favorites_pk = 'favorites_{user_id}'
favorites_sk = '{restaurant_id}'
