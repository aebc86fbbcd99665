"""异常处理模块：定义统一的业务异常与响应格式。"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.packages.system.core.constants import (
    HTTP_STATUS_BAD_GATEWAY,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
)
from app.packages.system.core.logger import logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


class InvalidPathError(AppException):
    """路径非法：包含 ``.``/``..`` 片段，或在要求非空时为空。属于客户端错误。"""

    def __init__(self, raw: Optional[str] = None) -> None:
        super().__init__("Invalid path", HTTP_STATUS_BAD_REQUEST)
        self.raw = raw


class StorageUnavailableError(AppException):
    """对象存储调用失败（网络、鉴权、配额等），中止当前的组合操作。"""

    def __init__(self, msg: str, data=None) -> None:
        super().__init__(msg, HTTP_STATUS_BAD_GATEWAY, data)


class ObjectExistsError(AppException):
    """非覆盖上传命中已存在的对象。"""

    def __init__(self, key: str) -> None:
        super().__init__(f"对象已存在: {key}", HTTP_STATUS_CONFLICT)
        self.key = key


class PartialDeletionError(AppException):
    """批量删除中途失败：``data`` 中携带已删除与剩余的路径，调用方可只重试剩余部分。"""

    def __init__(self, deleted: list[str], remaining: list[str], error: Exception) -> None:
        detail = getattr(error, "detail", None) or str(error)
        data: dict[str, Any] = {"deleted": deleted, "remaining": remaining, "error": detail}
        super().__init__(f"删除未完成: {detail}", HTTP_STATUS_BAD_GATEWAY, data)
        self.deleted = deleted
        self.remaining = remaining
        self.error = error


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.detail)
    payload = {"msg": exc.detail, "data": getattr(exc, "data", None), "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    payload = {
        "msg": "服务器内部错误",
        "data": None,
        "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)
