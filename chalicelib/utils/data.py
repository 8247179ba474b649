import json
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from chalicelib.utils.exceptions import ValidationException

MONEY = Decimal('1.00')


def replace_dict_key(item, orig_key, new_key):
    if orig_key in item:
        if new_key not in item:
            item[new_key] = item[orig_key]
        del item[orig_key]


def substitute_keys(dict_to_process: dict, base_keys: dict, opt_dict=None):
    if opt_dict is None:
        opt_dict = {}
    all_keys = {**base_keys, **opt_dict}
    for key, val in all_keys.items():
        if val:
            replace_dict_key(dict_to_process, key, val)
        elif key in dict_to_process.keys():
            dict_to_process.pop(key, None)


def parse_raw_body(chalice_request):
    request_raw_body = chalice_request.raw_body
    if request_raw_body:
        try:
            body = json.loads(request_raw_body)
        except ValueError as error:
            raise ValidationException(f'Request body is not a valid json: {error}')
        if not isinstance(body, dict):
            raise ValidationException('Request body must be a json object')
        return fix_values_from_ui(item=body)
    else:
        return {}


def fix_values_from_ui(item):
    """
    Remove keys with empty or None values and transform float to Decimal
    """
    if item.get('_values_from_ui_strategy') == 'delete_empty':
        list_to_cleanup = ['', None]
    else:
        list_to_cleanup = [None]
    item = cleanup_dict(item, list_to_cleanup)
    item.pop('_values_from_ui_strategy', None)
    result = json.dumps(item)
    return json.loads(result, parse_float=Decimal)


def cleanup_dict(item: dict, list_of_values: list):
    """ Remove None fields in dict with. Supports one nesting.  """

    def sub_clean(sub_item):
        return {
            key: value
            for key, value in sub_item.items()
            if value not in list_of_values
        }

    clean = {}
    for k, v in item.items():
        if isinstance(v, dict):
            nested = sub_clean(v)
            if len(nested.keys()) > 0:
                clean[k] = nested
        elif v not in list_of_values:
            clean[k] = v
    return clean


def to_decimal(value: Any, quantize: Decimal = None):
    """ Numbers from json or db are converted to Decimal, anything else is returned as None """
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number.quantize(quantize) if quantize is not None else number


def to_money(value: Any) -> Decimal:
    return to_decimal(value, MONEY)


def now_iso() -> str:
    return datetime.now().isoformat(timespec='seconds')


def period_start(period: str):
    """ Returns iso date string of the beginning of the period or None for the whole history """
    now = datetime.now()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    starts = {
        'today': today,
        'week': today - timedelta(days=today.weekday()),
        'month': today.replace(day=1),
        'all': None
    }
    if period not in starts:
        raise ValidationException(f'Unknown period={period}, expected one of {list(starts.keys())}')
    start = starts[period]
    return start.isoformat(timespec='seconds') if start else None
