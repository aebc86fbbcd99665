"""文件管理 - 文件/文件夹 操作请求/响应模型。"""

from typing import Any, Optional, Union

from pydantic import BaseModel

from app.packages.system.api.v1.schemas.common import ResponseEnvelope


class FileItem(BaseModel):
    name: str
    path: str
    isFolder: bool
    size: Optional[int] = None
    mimeType: Optional[str] = None
    updatedAt: Optional[str] = None
    createdAt: Optional[str] = None
    lastAccessedAt: Optional[str] = None


class FilesListData(BaseModel):
    path: str
    items: list[FileItem]


class FolderItem(BaseModel):
    name: str
    path: str
    updatedAt: Optional[str] = None


class FoldersListData(BaseModel):
    path: str
    folders: list[FolderItem]


class SignedUrlData(BaseModel):
    url: str
    expiresIn: int


class DeleteBody(BaseModel):
    """``path`` 与 ``paths`` 二选一；只要提供了 ``paths``（即使为空）就以它为准。"""

    path: Optional[str] = None
    paths: Optional[list[str]] = None

    def collect(self) -> list[str]:
        if self.paths is not None:
            return [str(p) for p in self.paths]
        return [self.path] if self.path else []


class FolderBody(BaseModel):
    path: Optional[str] = None


FilesListResponse = ResponseEnvelope[FilesListData]
FoldersListResponse = ResponseEnvelope[FoldersListData]
FilesMutationResponse = ResponseEnvelope[Any]
FilesQueryResponse = ResponseEnvelope[Union[FilesListData, SignedUrlData]]
