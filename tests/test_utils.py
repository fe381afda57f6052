from __future__ import annotations

import pytest

from tibetscribe.exceptions import FileSystemError
from tibetscribe.utils import ensure_dir_exists, make_task_id, preview, scale_quality_budget


@pytest.mark.parametrize("level, effort", [
    (0, 128),
    (50, 16448),
    (100, 32768),
    (None, None),
    (25.0, 8288),
])
def test_scale_quality_budget(level, effort) -> None:
    assert scale_quality_budget(level) == effort


@pytest.mark.parametrize("level", [-0.1, 100.5, 1000])
def test_scale_quality_budget_rejects_out_of_range(level) -> None:
    with pytest.raises(ValueError):
        scale_quality_budget(level)


def test_make_task_id() -> None:
    assert make_task_id("folio_1.png", 2048, 1700000000123456789) == "folio_1.png-2048-1700000000123456789"


def test_preview_flattens_and_truncates() -> None:
    assert preview(None) == ""
    assert preview("ཀ་ཁ་\n\nག་") == "ཀ་ཁ་ ག་"
    assert preview("x" * 60, limit=10) == "x" * 10 + "..."


def test_ensure_dir_exists(tmp_path) -> None:
    target = tmp_path / "logs" / "nested"
    ensure_dir_exists(str(target))
    assert target.is_dir()
    ensure_dir_exists(str(target))

    blocker = tmp_path / "file.txt"
    blocker.write_text("x")
    with pytest.raises(FileSystemError):
        ensure_dir_exists(str(blocker))
    with pytest.raises(ValueError):
        ensure_dir_exists("")
