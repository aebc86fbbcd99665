"""S3 后端的列举：公共前缀映射为文件夹，升序列举时按需翻页。"""

from app.packages.system.services.storage_backends import S3Backend, is_folder_entry


class FakePaginator:
    def __init__(self, pages):
        self.pages = pages
        self.served = 0
        self.kwargs = None

    def paginate(self, **kwargs):
        self.kwargs = kwargs
        for page in self.pages:
            self.served += 1
            yield page


class FakeS3Client:
    def __init__(self, pages):
        self.paginator = FakePaginator(pages)

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        return self.paginator


def _file(key, size=1):
    return {"Key": key, "Size": size, "ETag": f'"{key}"'}


def _backend(pages):
    backend = S3Backend(bucket="files", region="us-east-1")
    backend._client = FakeS3Client(pages)
    return backend


def test_common_prefixes_become_folders():
    backend = _backend([
        {
            "CommonPrefixes": [{"Prefix": "docs/sub/"}],
            "Contents": [_file("docs/a.txt", 3), _file("docs/sub.txt")],
        }
    ])

    entries = backend.list("docs", limit=10)

    assert [e.name for e in entries] == ["a.txt", "sub.txt", "sub"]
    assert is_folder_entry(entries[2])
    assert entries[0].size == 3
    assert backend._client.paginator.kwargs == {"Bucket": "files", "Prefix": "docs/", "Delimiter": "/"}


def test_stops_paging_once_window_is_filled():
    pages = [
        {"Contents": [_file("big/0.txt"), _file("big/1.txt")]},
        {"Contents": [_file("big/2.txt"), _file("big/3.txt")]},
        {"Contents": [_file("big/4.txt"), _file("big/5.txt")]},
    ]
    backend = _backend(pages)

    entries = backend.list("big", limit=2, offset=1)

    assert [e.name for e in entries] == ["1.txt", "2.txt"]
    assert backend._client.paginator.served == 2


def test_descending_reads_every_page():
    pages = [
        {"Contents": [_file("big/0.txt")]},
        {"Contents": [_file("big/1.txt")]},
    ]
    backend = _backend(pages)

    entries = backend.list("big", limit=1, order="desc")

    assert [e.name for e in entries] == ["1.txt"]
    assert backend._client.paginator.served == 2
