MAIN_IMAGE_NAME = 'main.jpg'
THUMB_IMAGE_NAME = 'thumbnail.jpg'

ROLE_CUSTOMER = 'customer'
ROLE_RESTAURANT_OWNER = 'restaurant_owner'
ROLE_DRIVER = 'delivery_rider'
ROLE_ADMIN = 'admin'

ROLES = (ROLE_CUSTOMER, ROLE_RESTAURANT_OWNER, ROLE_DRIVER, ROLE_ADMIN)
PARTNER_ROLES = (ROLE_RESTAURANT_OWNER, ROLE_DRIVER)

PAYMENT_METHODS = ('cash', 'card', 'digital_wallet')

NOTIFICATION_TYPES = ('new_order', 'order_update', 'earnings', 'system', 'promotion')
NOTIFICATION_PRIORITIES = ('low', 'medium', 'high')

DATE_CREATED_INDEX = 'date_created-index'

DEFAULT_REJECTION_REASON = 'Application did not meet our current requirements'

DEFAULT_RESTAURANT_RATING = '4.5'
DEFAULT_DRIVER_RATING = '5.0'

DEFAULT_OPENING_HOURS = {
    'monday': {'open': '09:00', 'close': '22:00', 'closed': False},
    'tuesday': {'open': '09:00', 'close': '22:00', 'closed': False},
    'wednesday': {'open': '09:00', 'close': '22:00', 'closed': False},
    'thursday': {'open': '09:00', 'close': '22:00', 'closed': False},
    'friday': {'open': '09:00', 'close': '23:00', 'closed': False},
    'saturday': {'open': '09:00', 'close': '23:00', 'closed': False},
    'sunday': {'open': '10:00', 'close': '21:00', 'closed': False}
}
