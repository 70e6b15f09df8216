"""Image processing utilities."""

import base64
import binascii
import mimetypes
from io import BytesIO
from typing import List, Optional

from PIL import Image, UnidentifiedImageError

from .errors import ImageProcessingError

# Phone cameras write multi-picture JPEGs that Pillow reports as MPO
DEFAULT_ALLOWED_FORMATS = ['PNG', 'JPEG', 'MPO', 'WEBP', 'GIF', 'BMP']

# Pillow format name -> mime type
_FORMAT_MIME_TYPES = {
    'PNG': 'image/png',
    'JPEG': 'image/jpeg',
    'MPO': 'image/jpeg',
    'WEBP': 'image/webp',
    'GIF': 'image/gif',
    'BMP': 'image/bmp',
}

_MIME_EXTENSIONS = {
    'image/png': 'png',
    'image/jpeg': 'jpg',
    'image/jpg': 'jpg',
    'image/webp': 'webp',
    'image/gif': 'gif',
    'image/bmp': 'bmp',
}


def base64_to_bytes(base64_string: str) -> bytes:
    """
    Convert base64 string (or data URL) to bytes.
    
    Raises:
        ValueError: If the payload is not valid base64
    """
    if base64_string.startswith("data:") and "," in base64_string:
        base64_string = base64_string.split(",", 1)[1]
    
    try:
        return base64.b64decode(base64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def extension_for_mime_type(mime_type: Optional[str], default: str = "png") -> str:
    """File extension for a mime type, without the leading dot."""
    if not mime_type:
        return default
    mime_type = mime_type.split(";")[0].strip().lower()
    if mime_type in _MIME_EXTENSIONS:
        return _MIME_EXTENSIONS[mime_type]
    guessed = mimetypes.guess_extension(mime_type)
    return guessed.lstrip(".") if guessed else default


def validate_image_format(image_bytes: bytes, allowed_formats: List[str] = None) -> str:
    """
    Validate image format and return its mime type.
    
    Args:
        image_bytes: Raw image bytes
        allowed_formats: List of allowed Pillow formats (e.g., ['PNG', 'JPEG'])
        
    Returns:
        Mime type detected from the image content (e.g., 'image/png')
        
    Raises:
        ImageProcessingError: If format is invalid or not allowed
    """
    if allowed_formats is None:
        allowed_formats = DEFAULT_ALLOWED_FORMATS
    
    if not image_bytes:
        raise ImageProcessingError("Empty image payload")
    
    try:
        with Image.open(BytesIO(image_bytes)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError(f"Failed to read image: {e}") from e
    
    if image_format not in allowed_formats:
        raise ImageProcessingError(
            f"Invalid image format: {image_format}. "
            f"Allowed formats: {', '.join(allowed_formats)}"
        )
    
    return _FORMAT_MIME_TYPES.get(image_format, f"image/{image_format.lower()}")
