"""Path utilities: normalize logical storage paths and join directory/name pairs.

Every user-supplied path goes through ``normalize_storage_path`` before it is
turned into a storage key:
- backslashes become '/', empty segments are dropped (leading/trailing/doubled slashes vanish);
- any '.' or '..' segment is rejected, so a normalized path can never leave the logical root;
- the logical root is represented by the empty string ''.
"""

from __future__ import annotations

from app.packages.system.core.exceptions import InvalidPathError

_FORBIDDEN_SEGMENTS = frozenset({".", ".."})


def split_segments(p: str | None) -> list[str]:
    s = (p or "").strip().replace("\\", "/")
    return [part for part in s.split("/") if part]


def normalize_storage_path(p: str | None, *, required: bool = False) -> str:
    parts = split_segments(p)
    if any(part in _FORBIDDEN_SEGMENTS for part in parts):
        raise InvalidPathError(p)
    if required and not parts:
        raise InvalidPathError(p)
    return "/".join(parts)


def build_object_path(directory: str | None, name: str) -> str:
    safe_dir = normalize_storage_path(directory)
    safe_name = normalize_storage_path(name, required=True)
    return f"{safe_dir}/{safe_name}" if safe_dir else safe_name
