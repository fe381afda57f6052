"""Loads page images from disk into ImageTasks."""

import io
import logging
import os
from typing import List

from PIL import Image, UnidentifiedImageError

from .exceptions import ImageLoadError
from .models import ImageTask
from .utils import make_task_id

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = ("image/png", "image/jpeg", "image/webp", "image/gif", "image/heic", "image/heif")

def sniff_mime_type(data: bytes, source_ref: str = "<bytes>") -> str:
    """
    Detects the MIME type of image bytes with Pillow.

    Args:
        data: Raw file contents.
        source_ref: Name used in error messages.

    Returns:
        The MIME type reported for the decoded image format.

    Raises:
        ImageLoadError: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.verify()
            image_format = im.format
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ImageLoadError(f"Not a readable image: {source_ref}: {e}") from e

    mime_type = Image.MIME.get(image_format or "")
    if not mime_type:
        raise ImageLoadError(f"Unknown image format '{image_format}' for {source_ref}")
    if mime_type not in SUPPORTED_MIME_TYPES:
        logger.warning(f"Image {source_ref} has format {mime_type}, which the analysis service may reject.")
    return mime_type

def load_image_task(path: str) -> ImageTask:
    """
    Reads an image file and wraps it in a pending ImageTask.

    The task id is derived from file name, size and modification time, so the
    same file loaded twice yields the same id.

    Raises:
        ImageLoadError: If the file is missing, unreadable or not an image.
    """
    if not os.path.isfile(path):
        raise ImageLoadError(f"Image file not found or is not a file: {path}")
    try:
        stat = os.stat(path)
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        logger.error(f"Could not read image {path}: {e}", exc_info=True)
        raise ImageLoadError(f"Could not read image {path}: {e}") from e

    mime_type = sniff_mime_type(data, path)
    task = ImageTask(
        id=make_task_id(os.path.basename(path), stat.st_size, stat.st_mtime_ns),
        source_ref=path,
        data=data,
        mime_type=mime_type,
    )
    logger.debug(f"Loaded image {path} ({mime_type}, {len(data)} bytes) as task {task.id}")
    return task

def load_image_tasks(paths: List[str]) -> List[ImageTask]:
    """Loads several images, preserving order and dropping duplicate files."""
    tasks: List[ImageTask] = []
    seen = set()
    for path in paths:
        task = load_image_task(path)
        if task.id in seen:
            logger.info(f"Skipping duplicate image: {path}")
            continue
        seen.add(task.id)
        tasks.append(task)
    return tasks
