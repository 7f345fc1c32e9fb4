"""
Custom validators for marketplace models.
"""

from django.core.exceptions import ValidationError
from django.utils import timezone


MAX_IMAGE_URLS = 10
MAX_IMAGE_URL_LENGTH = 500
MAX_PRICE = 99999999.99


def validate_avatar_image(image):
    """
    Validate an uploaded avatar file.

    Checks:
    - File size (max 5MB)
    - File format (jpg, jpeg, png, webp)

    Args:
        image: UploadedFile object

    Raises:
        ValidationError: If image is invalid
    """
    if not image:
        return

    max_size = 5 * 1024 * 1024
    if image.size > max_size:
        raise ValidationError(
            f'Image file size cannot exceed 5MB. Current size: {image.size / (1024 * 1024):.2f}MB',
            code='image_too_large'
        )

    valid_extensions = ['jpg', 'jpeg', 'png', 'webp']
    file_name = image.name.lower()

    if not any(file_name.endswith(f'.{ext}') for ext in valid_extensions):
        raise ValidationError(
            f'Invalid image format. Allowed formats: {", ".join(valid_extensions)}',
            code='invalid_image_format'
        )

    valid_content_types = ['image/jpeg', 'image/png', 'image/webp']

    content_type = getattr(image, 'content_type', None)
    if content_type and content_type not in valid_content_types:
        raise ValidationError(
            f'Invalid image content type: {content_type}',
            code='invalid_content_type'
        )


def validate_image_urls(value):
    """
    Validate the list of image URLs attached to a listing.

    A listing carries between 1 and 10 URLs, each a string of at most
    500 characters. Uploading and compressing the images happens elsewhere.

    Raises:
        ValidationError: If the value is not a valid URL list
    """
    if not isinstance(value, list):
        raise ValidationError('image_urls must be a list.', code='invalid_image_urls')

    if len(value) == 0:
        raise ValidationError('At least one image is required.', code='images_required')

    if len(value) > MAX_IMAGE_URLS:
        raise ValidationError(
            f'A listing can have at most {MAX_IMAGE_URLS} images.',
            code='too_many_images'
        )

    for url in value:
        if not isinstance(url, str) or not url.strip() or len(url) > MAX_IMAGE_URL_LENGTH:
            raise ValidationError('Invalid image URL.', code='invalid_image_url')


def validate_listing_year(value):
    """Production year must lie between 1900 and next year."""
    if value is None:
        return

    latest = timezone.now().year + 1
    if value < 1900 or value > latest:
        raise ValidationError(
            f'Year must be between 1900 and {latest}.',
            code='invalid_year'
        )


def validate_listing_price(value):
    """Prices are optional, but never negative and never absurdly large."""
    if value is None:
        return

    if value < 0:
        raise ValidationError('Price must be a positive number.', code='negative_price')

    if value > MAX_PRICE:
        raise ValidationError('Price is too high.', code='price_too_high')
