"""依赖注入模块：封装文件路由复用的依赖函数（文件服务实例、权限校验）。"""

from functools import lru_cache
from typing import Callable

from fastapi import Depends, Request

from app.packages.system.core.config import Settings, get_settings
from app.packages.system.core.constants import HTTP_STATUS_FORBIDDEN
from app.packages.system.core.exceptions import AppException
from app.packages.system.core.logger import logger
from app.packages.system.services.file_service import FileService, build_file_service

PermissionChecker = Callable[[Request, str], bool]


@lru_cache
def _default_file_service() -> FileService:
    return build_file_service(get_settings())


def get_file_service() -> FileService:
    """返回按当前配置构建的文件服务；测试中可通过 ``dependency_overrides`` 替换。"""
    return _default_file_service()


def _allow_all(request: Request, code: str) -> bool:
    return True


def _deny_all(request: Request, code: str) -> bool:
    return False


def get_permission_checker(settings: Settings = Depends(get_settings)) -> PermissionChecker:
    """返回外部权限系统的校验函数。

    鉴权与 RBAC 查询不在本服务内实现，部署方通过 ``app.dependency_overrides``
    注入真实的校验函数。未注入时一律拒绝；仅当显式开启 ``PERMISSION_ALLOW_ALL``
    （本地开发）时放行。
    """
    return _allow_all if settings.permission_allow_all else _deny_all


def require_permission(code: str):
    """生成一个依赖：调用权限校验函数，不通过时返回 403。"""

    def _guard(request: Request, checker: PermissionChecker = Depends(get_permission_checker)) -> None:
        if not checker(request, code):
            logger.info("permission denied code=%s path=%s", code, request.url.path)
            raise AppException("权限不足", HTTP_STATUS_FORBIDDEN)

    return _guard
