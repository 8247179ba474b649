# Attribute names that collide with DynamoDB reserved words are stored with a trailing underscore

to_db = {
    'id': 'id_',
    'name': 'name_',
    'status': 'status_',
    'type': 'type_',
    'comment': 'comment_'
}

from_db = {
    'id_': 'id',
    'name_': 'name',
    'status_': 'status',
    'type_': 'type',
    'comment_': 'comment',
    'partkey': None,
    'sortkey': None,
    'record_type': None
}
