from io import BytesIO

import pytest
from PIL import Image
from requests_toolbelt.multipart.encoder import MultipartEncoder

from chalicelib.constants.constants import MAIN_IMAGE_NAME, THUMB_IMAGE_NAME
from chalicelib.constants.status_codes import http200, http400, http403, http404
from chalicelib.images import get_resize_width_height, compress_images
from chalicelib.menu_items import MenuItem
from chalicelib.restaurants import Restaurant
from chalicelib.utils.boto_clients import s3_client
from chalicelib.utils.exceptions import ValidationException
from chalicelib.utils.s3 import images_bucket
from utils.request_utils import make_token


def create_test_image(width=800, height=600, image_format='PNG') -> bytes:
    buf = BytesIO()
    Image.new('RGBA' if image_format == 'PNG' else 'RGB', (width, height), color='red').save(buf, format=image_format)
    return buf.getvalue()


def upload_image(chalice_gateway, token, file_content=None, **fields):
    multipart_fields = {key: value for key, value in fields.items() if value is not None}
    if file_content is not None:
        multipart_fields['fileContent'] = ('image.png', file_content, 'image/png')
    encoder = MultipartEncoder(fields=multipart_fields)
    return chalice_gateway.http.post(
        '/image-upload',
        headers={'Content-Type': encoder.content_type, 'Authorization': f'Bearer {make_token(token)}'},
        body=encoder.to_string()
    )


def get_s3_image(key) -> Image:
    return Image.open(BytesIO(s3_client().get_object(Bucket=images_bucket(), Key=key)['Body'].read()))


def test_restaurant_image_upload(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = upload_image(chalice_gateway, users.id_owner, create_test_image(),
                            entityType='restaurant', restaurantId=restaurant_id)

    assert response.status_code == http200, response.body
    body = response.json_body
    assert body['main_key'] == f'restaurants/{restaurant_id}/images/{MAIN_IMAGE_NAME}'
    assert body['thumbnail_key'] == f'restaurants/{restaurant_id}/images/{THUMB_IMAGE_NAME}'
    assert body['image_url'].endswith(body['main_key'])

    main_image = get_s3_image(body['main_key'])
    assert main_image.format == 'JPEG'
    assert main_image.size == (400, 300)
    assert get_s3_image(body['thumbnail_key']).size == (100, 75)
    assert s3_client().head_object(Bucket=images_bucket(), Key=body['main_key'])['ContentType'] == 'image/jpeg'

    assert Restaurant.init_get_by_id(restaurant_id).image_url == body['image_url']


def test_menu_item_image_upload(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)
    menu_item_id, _ = users.create_test_menu_items(chalice_gateway, restaurant_id)

    response = upload_image(chalice_gateway, users.id_admin, create_test_image(200, 100, 'JPEG'),
                            entityType='menu_item', restaurantId=restaurant_id, menuItemId=menu_item_id)

    assert response.status_code == http200, response.body
    assert response.json_body['main_key'] == \
        f'restaurants/{restaurant_id}/menu_items/{menu_item_id}/images/{MAIN_IMAGE_NAME}'
    # small images are not enlarged
    assert get_s3_image(response.json_body['main_key']).size == (200, 100)
    assert MenuItem.init_get_by_id(menu_item_id, restaurant_id).image_url == response.json_body['image_url']


@pytest.mark.parametrize('fields, expected_code', [
    ({'entityType': 'order'}, http400),
    ({'entityType': 'restaurant', 'restaurantId': None}, http400),
    ({'entityType': 'menu_item'}, http400),
    ({'entityType': 'menu_item', 'menuItemId': 'missing-item'}, http404),
    ({'entityType': 'restaurant', 'restaurantId': 'missing-restaurant'}, http404),
])
def test_image_upload_validation(chalice_gateway, users, fields, expected_code):
    restaurant_id = users.create_test_restaurant(chalice_gateway)
    fields = {'restaurantId': restaurant_id, **fields}

    response = upload_image(chalice_gateway, users.id_owner, create_test_image(), **fields)

    assert response.status_code == expected_code, response.body


def test_image_upload_without_file(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = upload_image(chalice_gateway, users.id_owner, entityType='restaurant', restaurantId=restaurant_id)
    assert response.status_code == http400

    response = upload_image(chalice_gateway, users.id_owner, b'definitely not an image',
                            entityType='restaurant', restaurantId=restaurant_id)
    assert response.status_code == http400
    assert Restaurant.init_get_by_id(restaurant_id).image_url is None


def test_image_upload_access(chalice_gateway, users):
    restaurant_id = users.create_test_restaurant(chalice_gateway)

    response = upload_image(chalice_gateway, users.id_other_owner, create_test_image(),
                            entityType='restaurant', restaurantId=restaurant_id)
    assert response.status_code == http403

    response = upload_image(chalice_gateway, users.id_customer, create_test_image(),
                            entityType='restaurant', restaurantId=restaurant_id)
    assert response.status_code == http403


def test_get_resize_width_height():
    assert get_resize_width_height(Image.new('RGB', (2000, 1000)), 1000) == (1000, 500)
    assert get_resize_width_height(Image.new('RGB', (500, 1000)), 250) == (125, 250)
    assert get_resize_width_height(Image.new('RGB', (300, 200)), 1000) == (300, 200)


def test_compress_images_invalid_content():
    with pytest.raises(ValidationException):
        compress_images(BytesIO(b'not an image'))
