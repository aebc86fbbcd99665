"""文件夹遍历：在扁平对象存储上广度优先展开“虚拟目录树”，收集其下所有文件。

使用显式队列而不是递归，深层目录不会撑爆调用栈；同一时刻只有一个列举请求在途。
任何一次列举失败都会中止整个遍历，不返回部分结果，避免下游在不完整的清单上执行删除。

每个文件同时给出逻辑路径与实际存储的相对键：子目录沿用列举结果中的原始键名向下展开，
历史遗留的未编码键、大写十六进制的哨兵键等也能被准确定位和删除。
"""

from __future__ import annotations

from collections import deque
from typing import NamedTuple

from app.packages.system.core.constants import DEFAULT_PAGE_LIMIT
from app.packages.system.core.exceptions import StorageUnavailableError
from app.packages.system.core.logger import logger
from app.packages.system.services.storage_backends import ListEntry, StorageBackend, is_folder_entry
from app.packages.system.services.storage_scope import StorageScope
from app.packages.system.utils.key_codec import decode_segment, to_storage_key
from app.packages.system.utils.path_utils import build_object_path, normalize_storage_path


class StoredFile(NamedTuple):
    path: str  # 解码后的逻辑路径
    key: str  # 不含前缀的存储键，原样来自列举结果


def iter_directory(
    backend: StorageBackend,
    scope: StorageScope,
    key: str,
    *,
    page_limit: int = DEFAULT_PAGE_LIMIT,
):
    """逐页列举单个目录（已编码的相对键）的全部直接子项，直到某一页不足 ``page_limit`` 条。"""
    prefix = scope.join(key)
    offset = 0
    while True:
        page: list[ListEntry] = backend.list(prefix, limit=page_limit, offset=offset)
        yield from page
        if len(page) < page_limit:
            return
        offset += len(page)


def walk_files(
    backend: StorageBackend,
    scope: StorageScope,
    root: str,
    *,
    page_limit: int = DEFAULT_PAGE_LIMIT,
) -> list[StoredFile]:
    root = normalize_storage_path(root)
    queue: deque[tuple[str, str]] = deque([(root, to_storage_key(root))])
    files: list[StoredFile] = []
    visited = 0

    try:
        while queue:
            current, current_key = queue.popleft()
            visited += 1
            for entry in iter_directory(backend, scope, current_key, page_limit=page_limit):
                child = build_object_path(current, decode_segment(entry.name))
                child_key = f"{current_key}/{entry.name}" if current_key else entry.name
                if is_folder_entry(entry):
                    queue.append((child, child_key))
                else:
                    files.append(StoredFile(child, child_key))
    except StorageUnavailableError:
        logger.warning("folder_walker aborted root=%s after %s directories", root, visited)
        raise
    except Exception as exc:
        logger.warning("folder_walker aborted root=%s after %s directories: %s", root, visited, exc)
        raise StorageUnavailableError(f"列举失败: {exc}") from exc

    logger.debug("folder_walker root=%s directories=%s files=%s", root, visited, len(files))
    return files


def list_all_files(
    backend: StorageBackend,
    scope: StorageScope,
    root: str,
    *,
    page_limit: int = DEFAULT_PAGE_LIMIT,
) -> list[str]:
    return [f.path for f in walk_files(backend, scope, root, page_limit=page_limit)]
