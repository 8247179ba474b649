ROLE_TITLES = {
    'restaurant_owner': 'Restaurant Partner',
    'delivery_rider': 'Delivery Partner'
}


def format_items(items):
    return ', '.join(f"{item.get('name')} x {item.get('quantity')}" for item in items or [])


def format_address(address):
    if not isinstance(address, dict):
        return str(address or '')
    parts = [address.get('street'), address.get('city'), address.get('state'), address.get('zip_code')]
    return ', '.join(str(part) for part in parts if part)


def get_new_order_notification_message(order_record):
    return f"""
        Order details: \n
        Number: {order_record.get('order_number')}\n
        ID: {order_record.get('id_')}\n
        Restaurant: {order_record.get('restaurant_name')}\n
        Items: {format_items(order_record.get('items'))}\n
        Total: {order_record.get('total')}\n
        Payment method: {order_record.get('payment_method')}\n
        Address: {format_address(order_record.get('delivery_address'))}\n
        Phone: {order_record.get('customer_phone')}\n
        Customer: {order_record.get('customer_name')}\n
        Instructions: {order_record.get('special_instructions') or '-'}
    """


def get_approval_subject(request_type):
    return f"Welcome aboard! Your {ROLE_TITLES.get(request_type, 'partner')} application was approved"


def get_approval_message(name, request_type, admin_notes):
    return f"""
        Hello {name},\n
        Congratulations! Your application to join us as a {ROLE_TITLES.get(request_type, 'partner')} has been approved.\n
        An invitation with your temporary password has been sent in a separate email.
        Please sign in and change the password to access your dashboard.\n
        Notes from our team: {admin_notes or '-'}
    """


def get_rejection_subject(request_type):
    return f"Your {ROLE_TITLES.get(request_type, 'partner')} application"


def get_rejection_message(name, request_type, reason):
    return f"""
        Hello {name},\n
        Thank you for your interest in becoming a {ROLE_TITLES.get(request_type, 'partner')}.
        Unfortunately we are not able to approve your application at this time.\n
        Reason: {reason}\n
        You are welcome to apply again in the future.
    """
