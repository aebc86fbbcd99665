"""常量定义：集中维护 HTTP 状态码、权限标识与存储相关的默认值。"""

from fastapi import status

HTTP_STATUS_OK = status.HTTP_200_OK
HTTP_STATUS_BAD_REQUEST = status.HTTP_400_BAD_REQUEST
HTTP_STATUS_FORBIDDEN = status.HTTP_403_FORBIDDEN
HTTP_STATUS_NOT_FOUND = status.HTTP_404_NOT_FOUND
HTTP_STATUS_CONFLICT = status.HTTP_409_CONFLICT
HTTP_STATUS_INTERNAL_ERROR = status.HTTP_500_INTERNAL_SERVER_ERROR
HTTP_STATUS_BAD_GATEWAY = status.HTTP_502_BAD_GATEWAY

# 文件管理权限标识
PERM_FILE_READ = "system.file.read"
PERM_FILE_UPLOAD = "system.file.upload"
PERM_FILE_DELETE = "system.file.delete"
PERM_FOLDER_CREATE = "system.file.folder.create"
PERM_FOLDER_DELETE = "system.file.folder.delete"

# 空文件夹占位对象
FOLDER_MARKER_NAME = ".keep"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# 对象存储接口限制
DEFAULT_PAGE_LIMIT = 1000
DEFAULT_CHUNK_SIZE = 100
DEFAULT_LIST_LIMIT = 200

# 签名链接有效期（秒）
SIGNED_URL_DEFAULT_EXPIRES = 3600
SIGNED_URL_MIN_EXPIRES = 60
SIGNED_URL_MAX_EXPIRES = 60 * 60 * 24
