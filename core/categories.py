"""
File Categories Module
Defines which bucket objects are shown as images.
"""

# Only JPEG objects are part of the gallery; everything else is ignored
IMAGE_EXTENSIONS = ('.jpg', '.jpeg')


def is_image_key(key: str) -> bool:
    """Check if an object key names a JPEG image (case-insensitive)."""
    return key.lower().endswith(IMAGE_EXTENSIONS)


def display_name(key: str) -> str:
    """Return the last path segment of an object key."""
    return key.rsplit('/', 1)[-1]
