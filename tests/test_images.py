from __future__ import annotations

import os

import pytest
from PIL import Image

from tibetscribe.exceptions import ImageLoadError
from tibetscribe.images import load_image_task, load_image_tasks, sniff_mime_type
from tibetscribe.models import ImageStatus


def save_image(path, image_format: str) -> str:
    Image.new("RGB", (8, 8), color=(250, 240, 220)).save(path, format=image_format)
    return str(path)


def test_load_png_builds_pending_task(tmp_path) -> None:
    path = save_image(tmp_path / "folio_1.png", "PNG")

    task = load_image_task(path)

    stat = os.stat(path)
    assert task.id == f"folio_1.png-{stat.st_size}-{stat.st_mtime_ns}"
    assert task.source_ref == path
    assert task.mime_type == "image/png"
    assert task.status == ImageStatus.PENDING
    with open(path, "rb") as f:
        assert task.data == f.read()


def test_jpeg_is_detected_from_content(tmp_path) -> None:
    path = save_image(tmp_path / "scan.bin", "JPEG")
    assert load_image_task(path).mime_type == "image/jpeg"


def test_duplicate_files_are_loaded_once(tmp_path) -> None:
    first = save_image(tmp_path / "a.png", "PNG")
    second = save_image(tmp_path / "b.png", "PNG")

    tasks = load_image_tasks([first, second, first])

    assert [task.source_ref for task in tasks] == [first, second]


def test_missing_file_is_rejected(tmp_path) -> None:
    with pytest.raises(ImageLoadError):
        load_image_task(str(tmp_path / "absent.png"))


def test_non_image_bytes_are_rejected(tmp_path) -> None:
    path = tmp_path / "notes.png"
    path.write_bytes(b"not an image at all")
    with pytest.raises(ImageLoadError):
        load_image_task(str(path))
    with pytest.raises(ImageLoadError):
        sniff_mime_type(b"")
