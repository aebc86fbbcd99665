"""存储命名空间隔离：为每个对象键加上已编码的根前缀，使多个部署/租户可共享同一个桶。"""

from __future__ import annotations

from dataclasses import dataclass

from app.packages.system.core.constants import DEFAULT_CHUNK_SIZE, DEFAULT_PAGE_LIMIT
from app.packages.system.core.exceptions import InvalidPathError
from app.packages.system.utils.key_codec import from_storage_key, to_storage_key


@dataclass(frozen=True)
class StorageOptions:
    """注入文件服务的存储配置。"""

    bucket: str = "admin"
    prefix: str = ""
    page_limit: int = DEFAULT_PAGE_LIMIT
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if self.page_limit < 1:
            raise ValueError("page_limit must be >= 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")


class StorageScope:
    """逻辑路径与对象键之间的双向映射（前缀 + 逐段编码）。

    空前缀表示不做隔离。前缀本身同样经过规范化与编码，因此含中文的前缀也是安全的。
    """

    def __init__(self, prefix: str = "") -> None:
        self.prefix = to_storage_key(prefix)

    def __repr__(self) -> str:
        return f"StorageScope(prefix={self.prefix!r})"

    def scope(self, path: str | None) -> str:
        return self.join(to_storage_key(path))

    def join(self, key: str | None) -> str:
        """为已编码的相对键加上前缀，不再做任何编码。"""
        key = "/".join(part for part in (key or "").split("/") if part)
        if not self.prefix:
            return key
        return f"{self.prefix}/{key}" if key else self.prefix

    def relative(self, key: str | None) -> str:
        """去掉前缀，返回仍处于编码状态的相对键；不属于本命名空间的键视为非法。"""
        cleaned = "/".join(part for part in (key or "").split("/") if part)
        if not self.prefix:
            return cleaned
        if cleaned == self.prefix:
            return ""
        head = self.prefix + "/"
        if not cleaned.startswith(head):
            raise InvalidPathError(key)
        return cleaned[len(head):]

    def unscope(self, key: str | None) -> str:
        return from_storage_key(self.relative(key))

    def contains(self, key: str | None) -> bool:
        try:
            self.unscope(key)
        except InvalidPathError:
            return False
        return True
