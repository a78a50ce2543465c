"""
Product image uploads.

Images are written to ``UPLOADS_ROOT/products`` under a timestamped,
randomly suffixed name and served back from ``/uploads/products/...``.
Replaced images are left on disk.
"""
import logging
import os
import random
import time

from django.conf import settings
from django.core.files.storage import FileSystemStorage
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.jpeg', '.jpg', '.png', '.gif', '.webp'}
ALLOWED_CONTENT_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp'}
PRODUCT_UPLOAD_DIR = 'products'


class ImageUploadError(ValueError):
    """Raised when an uploaded file is not an acceptable product image"""


def get_upload_storage():
    return FileSystemStorage(
        location=str(settings.UPLOADS_ROOT),
        base_url=getattr(settings, 'UPLOADS_URL', '/uploads/'),
    )


def generate_upload_name(original_name):
    ext = os.path.splitext(original_name or '')[1].lower()
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}"
    return f"product-{unique_suffix}{ext}"


def validate_image(uploaded_file):
    max_bytes = getattr(settings, 'UPLOAD_MAX_BYTES', 5 * 1024 * 1024)
    if uploaded_file.size > max_bytes:
        raise ImageUploadError(f"Image exceeds the {max_bytes} byte limit")

    ext = os.path.splitext(uploaded_file.name or '')[1].lower()
    content_type = (getattr(uploaded_file, 'content_type', '') or '').lower()
    if ext not in ALLOWED_EXTENSIONS or content_type not in ALLOWED_CONTENT_TYPES:
        raise ImageUploadError(
            "File upload only supports the following filetypes - jpeg|jpg|png|gif|webp"
        )

    try:
        uploaded_file.seek(0)
        with Image.open(uploaded_file) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ImageUploadError(f"Uploaded file is not a valid image: {str(e)}")
    finally:
        uploaded_file.seek(0)


def save_product_image(uploaded_file, storage=None):
    """Validate and store an uploaded image; returns its public path"""
    validate_image(uploaded_file)
    storage = storage or get_upload_storage()
    name = generate_upload_name(uploaded_file.name)
    saved_name = storage.save(f"{PRODUCT_UPLOAD_DIR}/{name}", uploaded_file)
    logger.info(f"Stored product image {saved_name} ({uploaded_file.size} bytes)")
    return f"/uploads/{saved_name}"


def delete_product_image(public_path, storage=None):
    """Remove an image stored by ``save_product_image``"""
    prefix = '/uploads/'
    if not public_path or not public_path.startswith(prefix):
        return
    storage = storage or get_upload_storage()
    name = public_path[len(prefix):]
    if storage.exists(name):
        storage.delete(name)
        logger.info(f"Removed product image {name}")
