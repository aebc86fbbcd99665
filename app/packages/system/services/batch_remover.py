"""批量删除：按固定大小分批调用后端 remove，遇到第一批失败立即停止并返回已删除部分。

输入是不含前缀的存储键（已编码），这里只负责加前缀，不再重新编码。
本层不做重试或退避；调用方拿到 ``error`` 后应只针对 ``remaining()`` 重试。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

from app.packages.system.core.constants import DEFAULT_CHUNK_SIZE
from app.packages.system.core.exceptions import StorageUnavailableError
from app.packages.system.core.logger import logger
from app.packages.system.services.storage_backends import StorageBackend
from app.packages.system.services.storage_scope import StorageScope


@dataclass
class RemovalResult:
    removed: list[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def remaining(self, keys: Sequence[str]) -> list[str]:
        """输入减去已删除部分，保持原顺序。"""
        done = set(self.removed)
        return [k for k in keys if k not in done]


def iter_chunks(items: Sequence[str], size: int) -> Iterator[list[str]]:
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def remove_all(
    backend: StorageBackend,
    scope: StorageScope,
    keys: Sequence[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> RemovalResult:
    result = RemovalResult()
    for index, chunk in enumerate(iter_chunks(keys, chunk_size)):
        try:
            backend.remove([scope.join(k) for k in chunk])
        except StorageUnavailableError as exc:
            result.error = exc
        except Exception as exc:
            result.error = StorageUnavailableError(f"删除失败: {exc}")
            result.error.__cause__ = exc
        if result.error is not None:
            logger.warning(
                "batch_remover stopped at chunk=%s removed=%s total=%s: %s",
                index, len(result.removed), len(keys), result.error,
            )
            break
        result.removed.extend(chunk)
    return result
