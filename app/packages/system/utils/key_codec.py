"""对象键编码：把逻辑路径逐段转换为对象存储可安全使用的键。

部分对象存储对键的字符集有限制，或会对非 ASCII 字符做大小写折叠/Unicode 规范化，
导致用户命名被篡改甚至冲突。含非 ASCII 字符的片段会被替换为
``__u8hex_<utf8 十六进制>__``，解码时再还原；纯 ASCII 片段原样保留（字面上形似哨兵的除外）。

解码永远不会让请求失败：形似哨兵但十六进制非法的片段按原样返回。
"""

from __future__ import annotations

import re

from app.packages.system.core.logger import logger
from app.packages.system.utils.path_utils import normalize_storage_path

SENTINEL_PREFIX = "__u8hex_"
SENTINEL_SUFFIX = "__"

_ENCODED_SEGMENT_RE = re.compile(r"__u8hex_([0-9a-fA-F]+)__(.*)", re.DOTALL)


def _needs_encoding(segment: str) -> bool:
    if not segment.isascii():
        return True
    # 字面上就长得像哨兵的 ASCII 名称也要包一层，否则解码时会被误还原
    return _ENCODED_SEGMENT_RE.fullmatch(segment) is not None


def encode_segment(segment: str) -> str:
    if not segment or not _needs_encoding(segment):
        return segment
    hex_part = segment.encode("utf-8", "surrogatepass").hex()
    return f"{SENTINEL_PREFIX}{hex_part}{SENTINEL_SUFFIX}"


def decode_segment(segment: str) -> str:
    match = _ENCODED_SEGMENT_RE.fullmatch(segment or "")
    if match is None:
        return segment
    hex_part, suffix = match.groups()
    if len(hex_part) % 2:
        logger.debug("key_codec.decode anomaly (odd hex length): %s", segment)
        return segment
    try:
        raw = bytes.fromhex(hex_part).decode("utf-8", "surrogatepass")
    except (ValueError, UnicodeDecodeError):
        logger.debug("key_codec.decode anomaly (invalid utf-8): %s", segment)
        return segment
    return raw + suffix


def to_storage_key(path: str | None) -> str:
    normalized = normalize_storage_path(path)
    if not normalized:
        return ""
    return "/".join(encode_segment(segment) for segment in normalized.split("/"))


def from_storage_key(key: str | None) -> str:
    parts = [segment for segment in (key or "").split("/") if segment]
    return "/".join(decode_segment(segment) for segment in parts)
