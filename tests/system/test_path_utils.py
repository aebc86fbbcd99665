"""路径规范化与拼接。"""

import pytest

from app.packages.system.core.exceptions import InvalidPathError
from app.packages.system.utils.path_utils import build_object_path, normalize_storage_path


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, ""),
        ("", ""),
        ("/", ""),
        ("a//b/", "a/b"),
        ("  /docs//2024/ ", "docs/2024"),
        ("docs\\sub\\a.txt", "docs/sub/a.txt"),
        ("a/.../b", "a/.../b"),
        ("中文/报告.pdf", "中文/报告.pdf"),
    ],
)
def test_normalize_storage_path(raw, expected):
    assert normalize_storage_path(raw) == expected


@pytest.mark.parametrize("raw", ["..", "../etc", "a/../../b", "a/./../..", "./a", "a/.", "docs\\..\\secret"])
def test_normalize_rejects_dot_segments(raw):
    with pytest.raises(InvalidPathError) as exc_info:
        normalize_storage_path(raw)
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Invalid path"


def test_required_path_must_not_be_empty():
    with pytest.raises(InvalidPathError):
        normalize_storage_path("//", required=True)
    assert normalize_storage_path("a", required=True) == "a"


def test_build_object_path():
    assert build_object_path("docs", "a.txt") == "docs/a.txt"
    assert build_object_path("", "a.txt") == "a.txt"
    assert build_object_path("/docs/", "/sub/a.txt") == "docs/sub/a.txt"

    with pytest.raises(InvalidPathError):
        build_object_path("docs", "")
    with pytest.raises(InvalidPathError):
        build_object_path("docs", "../a.txt")
