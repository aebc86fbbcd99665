"""文件与文件夹操作路由。

路由层只负责取参与权限校验，路径规范化、编码与存储调用全部在 ``FileService`` 中完成；
错误以 ``AppException`` 抛出，由全局异常处理器转换为统一响应结构。
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.packages.system.api.v1.schemas.files import (
    DeleteBody,
    FilesMutationResponse,
    FilesQueryResponse,
    FolderBody,
    FoldersListResponse,
)
from app.packages.system.core.constants import (
    PERM_FILE_DELETE,
    PERM_FILE_READ,
    PERM_FILE_UPLOAD,
    PERM_FOLDER_CREATE,
    PERM_FOLDER_DELETE,
)
from app.packages.system.core.dependencies import get_file_service, require_permission
from app.packages.system.core.exceptions import AppException
from app.packages.system.core.logger import logger
from app.packages.system.core.responses import create_response
from app.packages.system.services.file_service import FileService

router = APIRouter(tags=["files"])

_TRUTHY = {"1", "true"}


def _require_path(path: Optional[str]) -> str:
    if not path:
        raise AppException("缺少 path")
    return path


# 固定路径 /files/folders 需先于 /files 的同前缀路由注册
@router.get(
    "/files/folders",
    response_model=FoldersListResponse,
    dependencies=[Depends(require_permission(PERM_FILE_READ))],
)
def list_folders(
    path: Optional[str] = Query(None),
    service: FileService = Depends(get_file_service),
):
    return create_response("获取文件夹成功", service.list_folders(path))


@router.post(
    "/files/folders",
    response_model=FilesMutationResponse,
    dependencies=[Depends(require_permission(PERM_FOLDER_CREATE))],
)
def create_folder(
    payload: Optional[FolderBody] = None,
    service: FileService = Depends(get_file_service),
):
    raw = _require_path(payload.path if payload else None)
    return create_response("创建文件夹成功", service.create_folder(raw))


@router.delete(
    "/files/folders",
    response_model=FilesMutationResponse,
    dependencies=[Depends(require_permission(PERM_FOLDER_DELETE))],
)
def delete_folder(
    payload: Optional[FolderBody] = None,
    service: FileService = Depends(get_file_service),
):
    raw = _require_path(payload.path if payload else None)
    return create_response("删除文件夹成功", service.delete_folder(raw))


@router.get(
    "/files",
    response_model=FilesQueryResponse,
    dependencies=[Depends(require_permission(PERM_FILE_READ))],
)
def list_items(
    path: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    expires_in: Optional[int] = Query(None, alias="expiresIn"),
    service: FileService = Depends(get_file_service),
):
    if action == "signedUrl":
        data = service.create_signed_url(_require_path(path), expires_in)
        return create_response("获取签名链接成功", data)
    logger.debug("files.list path=%s limit=%s offset=%s", path, limit, offset)
    return create_response("获取文件列表成功", service.list_directory(path, limit=limit, offset=offset))


@router.post(
    "/files",
    response_model=FilesMutationResponse,
    dependencies=[Depends(require_permission(PERM_FILE_UPLOAD))],
)
async def upload_files(
    files: list[UploadFile] = File(default=[]),
    path: str = Form(""),
    upsert: str = Form("0"),
    service: FileService = Depends(get_file_service),
):
    materials = []
    for up in files:
        content = await up.read()
        materials.append((up.filename or "", content, up.content_type))
    data = service.upload_files(path, materials, upsert=upsert.strip().lower() in _TRUTHY)
    return create_response("上传完成", data)


@router.delete(
    "/files",
    response_model=FilesMutationResponse,
    dependencies=[Depends(require_permission(PERM_FILE_DELETE))],
)
def delete_items(
    payload: Optional[DeleteBody] = None,
    service: FileService = Depends(get_file_service),
):
    paths = payload.collect() if payload else []
    if not paths:
        raise AppException("缺少 path")
    return create_response("删除成功", service.delete_files(paths))
