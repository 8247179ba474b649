import functools
import os
from random import uniform
from time import sleep

import boto3 as boto3
from botocore.exceptions import ClientError

from chalicelib.constants import substitute_keys
from chalicelib.utils import data
from chalicelib.utils import exceptions
from chalicelib.utils.boto_clients import aws_config_ddb
from chalicelib.utils.logger import logger, log_exception

# For safe db operations
RETRY_EXCEPTIONS = ('ProvisionedThroughputExceededException', 'ThrottlingException')
need_return_capacity = ('put_item', 'get_item', 'update_item', 'delete_item', 'query')

_TABLES = {}


def exp_db_backoff(func):
    """
        should be used for any atomic
        get/put item in the code
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f'{func.__name__}:: args={args}, kwargs={kwargs}')
        max_retries = int(os.environ.get('MAX_DB_RETRIES', 15))
        timeout_seed = uniform(0.1, 0.99)

        if func.__name__ not in need_return_capacity:
            raise RuntimeError("This decorator only for DynamoDB methods")
        kwargs.update({'ReturnConsumedCapacity': 'TOTAL'})

        for retries in range(max_retries):
            try:
                result = func(*args, **kwargs)
                logger.info(f'{func.__name__}:: SUCCESS, consumed capacity={result.get("ConsumedCapacity")}')
                return result

            except ClientError as e:
                error_code = e.response.get('Error', {}).get('Code')
                if error_code in RETRY_EXCEPTIONS:
                    timeout = min(timeout_seed * 2 ** retries, 20)
                    logger.warning(f'{func.__name__}:: {error_code}, retry {retries + 1} of {max_retries} '
                                   f'in {timeout:.2f} sec')
                    sleep(timeout)
                    continue
                if error_code == 'ConditionalCheckFailedException':
                    setattr(e, 'LEVEL', 'warning')
                log_exception(e, msg=f'Got exception while trying to {func.__name__}: ')
                raise

        raise exceptions.NumberOfRetriesExceeded(
            f"MaxNumber={max_retries} of DB retries has exceeded"
        )

    return wrapper


def get_table(table_name: str) -> boto3.session.Session.resource:
    gl_table = _TABLES.get(table_name)
    if gl_table is None:
        if os.environ.get('ENDPOINT_URL'):
            gl_table = boto3.resource('dynamodb', endpoint_url=os.environ.get('ENDPOINT_URL'),
                                      config=aws_config_ddb()).Table(table_name)
        else:
            gl_table = boto3.resource('dynamodb', config=aws_config_ddb()).Table(table_name)

        gl_table.put_item = exp_db_backoff(gl_table.put_item)
        gl_table.get_item = exp_db_backoff(gl_table.get_item)
        gl_table.update_item = exp_db_backoff(gl_table.update_item)
        gl_table.delete_item = exp_db_backoff(gl_table.delete_item)
        gl_table.query = exp_db_backoff(gl_table.query)
        _TABLES[table_name] = gl_table

    return gl_table


def get_gen_table():
    return get_table(os.environ.get('GEN_TABLE_NAME'))


def reset_tables():
    _TABLES.clear()


def combine_conditions(conditions):
    """ Joins boto3 conditions with AND, None items are skipped """
    conditions = [condition for condition in conditions if condition is not None]
    if not conditions:
        return None
    return functools.reduce(lambda left, right: left & right, conditions)


def is_conditional_check_failed(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


def put_db_record(item: dict, condition_expression=None, table=get_gen_table):
    kwargs = {'Item': item}
    if condition_expression is not None:
        kwargs['ConditionExpression'] = condition_expression
    table().put_item(**kwargs)


def delete_db_record(key: dict, table=get_gen_table):
    table().delete_item(Key=key)


def update_db_record(key: dict, update_body: dict, allowed_attrs_to_update: list,
                     allowed_attrs_to_delete: list, condition_expression=None,
                     attrs_to_append: list = None, table=get_gen_table):
    data.substitute_keys(dict_to_process=update_body, base_keys=substitute_keys.to_db)
    set_expr, expr_attr_values, remove_expr, expr_attr_names = generate_update_expression(
        update_body=update_body,
        allowed_attrs_to_update=allowed_attrs_to_update,
        allowed_attrs_to_delete=allowed_attrs_to_delete,
        attrs_to_append=attrs_to_append or []
    )
    update_item_dict = {"Key": key, "ReturnValues": "ALL_NEW"}
    if condition_expression is not None:
        update_item_dict['ConditionExpression'] = condition_expression

    if set_expr and remove_expr:
        set_expr = f'{set_expr} {remove_expr}'
    elif remove_expr:
        set_expr = remove_expr

    if not set_expr:
        logger.warning(f'update_db_record ::: nothing to update for {key=}')
        return None

    update_item_dict.update({
        "UpdateExpression": set_expr,
        "ExpressionAttributeNames": expr_attr_names
    })
    if expr_attr_values:
        update_item_dict["ExpressionAttributeValues"] = expr_attr_values

    return table().update_item(**update_item_dict).get('Attributes')


def generate_update_expression(update_body: dict, allowed_attrs_to_update: list, allowed_attrs_to_delete: list,
                               attrs_to_append: list = ()):
    """
    Generate expressions to update and delete attributes.
    if a key of update_body is empty - the attribute is deleted, else - attribute is updated.
    Attributes listed in attrs_to_append must hold a list which is appended to the stored one.
    Every attribute name goes through a placeholder, many of ours are DynamoDB reserved words.
    """
    expr_attr_values = {}
    expr_attr_names = {}
    set_parts = []
    remove_parts = []
    return_value = [None, None, None, None]
    for field in allowed_attrs_to_update:
        field_value = update_body.get(field, None)
        if field_value is None:
            continue
        expr_attr_names[f'#{field}'] = field
        # if field is in update_body but is equal to empty string, list etc. - delete field
        if field_value in ['', [], {}] and field in allowed_attrs_to_delete:
            remove_parts.append(f'#{field}')
        elif field in attrs_to_append:
            expr_attr_values[f':{field}'] = field_value
            expr_attr_values[':empty_list'] = []
            set_parts.append(f'#{field}=list_append(if_not_exists(#{field}, :empty_list), :{field})')
        else:
            # if field is in update_body and has a real value - update field
            expr_attr_values[f':{field}'] = field_value
            set_parts.append(f'#{field}=:{field}')

    if set_parts:
        return_value[0] = 'SET ' + ', '.join(set_parts)
        return_value[1] = expr_attr_values

    if remove_parts:
        return_value[2] = 'REMOVE ' + ', '.join(remove_parts)

    return_value[3] = expr_attr_names
    return return_value


def increment_counters(key: dict, counters: dict, table=get_gen_table):
    """ Atomically adds the given numbers to the counters of a record """
    add_expr = ', '.join(f'#{name} :{name}' for name in counters)
    return table().update_item(
        Key=key,
        UpdateExpression=f'ADD {add_expr}',
        ExpressionAttributeNames={f'#{name}': name for name in counters},
        ExpressionAttributeValues={f':{name}': value for name, value in counters.items()},
        ReturnValues='ALL_NEW'
    ).get('Attributes')


def get_db_item(partkey, sortkey, table=get_gen_table):
    result = table().get_item(
        Key={
            'partkey': partkey,
            'sortkey': sortkey
        }
    )

    if result.__contains__('Item'):
        return result['Item']
    else:
        logger.error(f"get_db_item ::: record partkey={partkey} sortkey={sortkey} not found")
        raise exceptions.RecordNotFound(f'record partkey={partkey} sortkey={sortkey} not found')


def query_items_paginated(
        key_condition_expression,
        filter_expression=None,
        projection_expression=None,
        table=get_gen_table,
        index_name=None,
        expr_attr_names=None,
        limit=None,
        start_key=None,
        scan_index_forward=True
):
    kwargs = {'KeyConditionExpression': key_condition_expression}
    if filter_expression:
        kwargs.update({'FilterExpression': filter_expression})

    if projection_expression:
        kwargs.update({'ProjectionExpression': projection_expression})

    if expr_attr_names:
        kwargs.update({'ExpressionAttributeNames': expr_attr_names})

    if limit:
        kwargs.update({'Limit': int(limit)})

    if index_name:
        kwargs.update({'IndexName': index_name})

    if start_key:
        kwargs.update({'ExclusiveStartKey': start_key})

    if not scan_index_forward:
        kwargs.update({'ScanIndexForward': False})

    resp = table().query(**kwargs)
    return resp['Items'], resp.get('LastEvaluatedKey')


def query_items_paged(key_condition_expression, filter_expression=None, projection_expression=None,
                      table=get_gen_table, index_name=None, expr_attr_names=None, scan_index_forward=True):
    """ This method shall be used whenever you think the query will
        return more than 1mb of data at once"""
    all_items = []
    items, last_evaluated_key = query_items_paginated(
        key_condition_expression,
        filter_expression=filter_expression,
        projection_expression=projection_expression,
        table=table,
        index_name=index_name,
        expr_attr_names=expr_attr_names,
        scan_index_forward=scan_index_forward
    )
    all_items.extend(items)

    while last_evaluated_key is not None:
        items, last_evaluated_key = query_items_paginated(
            key_condition_expression,
            filter_expression=filter_expression,
            projection_expression=projection_expression,
            table=table,
            index_name=index_name,
            expr_attr_names=expr_attr_names,
            start_key=last_evaluated_key,
            scan_index_forward=scan_index_forward
        )
        all_items.extend(items)

    return all_items
