"""对象键编码：非 ASCII 片段的十六进制包装与还原。"""

import pytest

from app.packages.system.utils.key_codec import (
    decode_segment,
    encode_segment,
    from_storage_key,
    to_storage_key,
)


def test_ascii_segment_is_kept():
    assert encode_segment("report-2024_v1.pdf") == "report-2024_v1.pdf"
    assert encode_segment("") == ""


def test_non_ascii_segment_is_hex_wrapped():
    assert encode_segment("中") == "__u8hex_e4b8ad__"
    encoded = encode_segment("报告.pdf")
    assert encoded.isascii()
    assert encoded == "__u8hex_" + "报告.pdf".encode("utf-8").hex() + "__"


def test_decode_keeps_trailing_suffix():
    assert decode_segment("__u8hex_e4b8ad__.txt") == "中.txt"


@pytest.mark.parametrize(
    "segment",
    [
        "__u8hex_abc__",  # 奇数长度
        "__u8hex_ff__",  # 非法 UTF-8
        "__u8hex___",
        "__u8hex_zz__",
        "plain.txt",
    ],
)
def test_decode_anomalies_pass_through(segment):
    assert decode_segment(segment) == segment


@pytest.mark.parametrize("name", ["中文目录", "résumé.docx", "图片 😀.png", "__u8hex_41__", "__u8hex_e4b8ad__.txt"])
def test_segment_round_trip(name):
    assert decode_segment(encode_segment(name)) == name


def test_sentinel_lookalike_is_not_decoded_as_is():
    assert encode_segment("__u8hex_41__") != "__u8hex_41__"


def test_storage_key_is_encoded_per_segment():
    key = to_storage_key("/docs//中/a.txt")
    assert key == "docs/__u8hex_e4b8ad__/a.txt"
    assert from_storage_key(key) == "docs/中/a.txt"
    assert to_storage_key("") == ""
    assert from_storage_key(None) == ""
