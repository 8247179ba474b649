import os
import re
from io import BytesIO
from typing import Tuple, Dict

from chalice import Response
from PIL import Image
from requests_toolbelt.multipart.decoder import MultipartDecoder

from chalicelib.constants.constants import MAIN_IMAGE_NAME, THUMB_IMAGE_NAME
from chalicelib.constants.status_codes import http200
from chalicelib.menu_items import MenuItem
from chalicelib.restaurants import Restaurant
from chalicelib.utils import auth as utils_auth, app as utils_app
from chalicelib.utils.exceptions import MandatoryFieldsAreNotFilled, MissingRestaurantId, ValidationException
from chalicelib.utils.logger import logger
from chalicelib.utils.s3 import upload_file_to_s3, get_public_url

entities_to_upload_attachment_white_list = ['restaurant', 'menu_item']
FIELD_NAME_PATTERN = re.compile(r'name="([^"]+)"')


def get_resize_width_height(image: Image, max_width: int) -> Tuple[int, int]:
    width, height = image.size
    divider = max(max([width, height]) / max_width, 1)
    return int(width / divider), int(height / divider)


def get_thumbnail(image: Image) -> Image:
    image_thumb = image.copy()
    image_thumb.thumbnail(size=get_resize_width_height(image_thumb, int(os.environ.get('MAX_THUMBNAIL_WIDTH', 200))))
    return image_thumb


def compress_images(image_file_obj: BytesIO) -> Tuple[bytes, bytes]:
    """
    :return:
    resized main image and its thumbnail, both as JPEG
    """
    try:
        image: Image = Image.open(image_file_obj)
        image = image.convert('RGB')
    except (OSError, ValueError) as error:
        raise ValidationException(f'fileContent is not a valid image: {error}')
    image = image.resize(size=get_resize_width_height(image, int(os.environ.get('MAX_IMG_WIDTH', 1024))))

    image_thumb: Image = get_thumbnail(image)

    buf_main = BytesIO()
    image.save(buf_main, format='JPEG', optimize=True, quality=90)

    buf_thumb = BytesIO()
    image_thumb.save(buf_thumb, format='JPEG', optimize=True, quality=90)

    return buf_main.getvalue(), buf_thumb.getvalue()


def parse_multipart_request_data(current_request) -> Dict[str, bytes]:
    content_type = current_request.headers.get('content-type', '')
    if not content_type.startswith('multipart/form-data'):
        raise ValidationException(f'multipart/form-data is expected, got {content_type=}')
    fields = {}
    for part in MultipartDecoder(current_request.raw_body, content_type).parts:
        disposition = part.headers.get(b'Content-Disposition', b'').decode('utf-8')
        match = FIELD_NAME_PATTERN.search(disposition)
        if match:
            fields[match.group(1)] = part.content
    return fields


def get_image_entity(entity_type: str, restaurant_id: str, menu_item_id: str, auth_result: Dict):
    """
    Loads the entity to attach the image to, only the restaurant's owner or an admin may do it
    :return:
    entity, s3 folder of its images
    """
    restaurant = Restaurant.init_get_by_id(restaurant_id)
    restaurant.check_manage_access(auth_result)
    if entity_type == 'restaurant':
        return restaurant, f'restaurants/{restaurant_id}/images'
    if not menu_item_id:
        raise MandatoryFieldsAreNotFilled('menuItemId is mandatory for menu item images')
    menu_item = MenuItem.init_get_by_id(menu_item_id, restaurant_id)
    return menu_item, f'restaurants/{restaurant_id}/menu_items/{menu_item_id}/images'


@utils_app.request_exception_handler
@utils_auth.authenticate
def image_upload(current_request) -> Response:
    fields = parse_multipart_request_data(current_request)
    entity_type = fields.get('entityType', b'').decode('utf-8')
    restaurant_id = fields.get('restaurantId', b'').decode('utf-8')
    menu_item_id = fields.get('menuItemId', b'').decode('utf-8')
    if entity_type not in entities_to_upload_attachment_white_list:
        raise ValidationException(f'You could not upload attachment to {entity_type=}')
    if not restaurant_id:
        raise MissingRestaurantId('restaurantId is mandatory')
    if not fields.get('fileContent'):
        raise MandatoryFieldsAreNotFilled('fileContent is mandatory')

    entity, images_path = get_image_entity(entity_type, restaurant_id, menu_item_id, current_request.auth_result)
    content_main, content_thumb = compress_images(BytesIO(fields['fileContent']))

    path_main, path_thumb = f'{images_path}/{MAIN_IMAGE_NAME}', f'{images_path}/{THUMB_IMAGE_NAME}'
    upload_file_to_s3(content_main, path_main, 'image/jpeg')
    upload_file_to_s3(content_thumb, path_thumb, 'image/jpeg')

    entity.request_data = {'auth_result': current_request.auth_result}
    entity._update_db_record({'image_url': get_public_url(path_main),
                              'updated_by': current_request.auth_result['user_id']})
    logger.info(f'image_upload ::: {entity_type} {entity.id_} image uploaded to {path_main}')
    return Response(status_code=http200, headers={"Content-Type": 'application/json'},
                    body={'message': f'{entity_type} image was updated successfully',
                          'image_url': get_public_url(path_main),
                          'main_key': path_main,
                          'thumbnail_key': path_thumb})
