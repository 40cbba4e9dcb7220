"""
Object storage for binary assets

Objects are addressed by slash-separated keys and stored as files below
UPLOAD_DIR, served publicly from UPLOAD_BASE_URL.

Key layout:
- item/object/{item_id}.{ext}       3D model of a catalog item
- item/thumbnail/{item_id}.{ext}    thumbnail of a catalog item
- item/user_image/{image_id}.png    photo uploaded or generated for a photo frame
"""
import os
import glob
import logging

import aiofiles

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "/home/advent/uploads")
UPLOAD_BASE_URL = os.getenv("UPLOAD_BASE_URL", "https://assets.advent-sphere.com")

ITEM_OBJECT_PREFIX = "item/object"
ITEM_THUMBNAIL_PREFIX = "item/thumbnail"
USER_IMAGE_PREFIX = "item/user_image"


class StorageError(Exception):
    """Raised when an object cannot be written."""


def object_path(key: str) -> str:
    """Filesystem path for an object key, refusing keys that escape UPLOAD_DIR."""
    parts = key.split("/")
    if not key or key.startswith("/") or any(part in ("", ".", "..") for part in parts):
        raise ValueError(f"Invalid object key: {key!r}")
    return os.path.join(UPLOAD_DIR, *parts)


def public_url(key: str) -> str:
    return f"{UPLOAD_BASE_URL.rstrip('/')}/{key}"


def file_extension(filename: str, default: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else default


def user_image_key(image_id: str) -> str:
    return f"{USER_IMAGE_PREFIX}/{image_id}.png"


async def put_object(key: str, contents: bytes) -> str:
    """Store bytes under key and return the public URL."""
    path = object_path(key)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(contents)
    except OSError as e:
        raise StorageError(f"Could not store {key}: {e}") from e

    logger.info(f"Stored object: {key} ({len(contents)} bytes)")
    return public_url(key)


def delete_object(key: str) -> bool:
    """Delete one object. Returns False if it did not exist."""
    path = object_path(key)
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    logger.info(f"Deleted object: {key}")
    return True


def delete_objects_by_stem(prefix: str, stem: str) -> int:
    """Delete every object named {prefix}/{stem}.<any extension>."""
    pattern = os.path.join(object_path(prefix), f"{glob.escape(str(stem))}.*")
    deleted = 0
    for path in glob.glob(pattern):
        os.remove(path)
        deleted += 1
    if deleted:
        logger.info(f"Deleted {deleted} object(s) for {prefix}/{stem}")
    return deleted
