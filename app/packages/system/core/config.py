"""配置模块：负责加载和缓存基于环境变量的应用设置。"""

import os
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.packages.system.core.constants import DEFAULT_CHUNK_SIZE, DEFAULT_PAGE_LIMIT

if TYPE_CHECKING:
    from app.packages.system.services.storage_scope import StorageOptions


# 探测项目根目录并加载环境文件，支持通过 ENV_FILE/ENVIRONMENT 定制优先级。
def _detect_base_dir() -> Path:
    """向上遍历目录树，寻找包含 `app` 目录的项目根路径。"""
    current = Path(__file__).resolve()
    for candidate in current.parents:
        if (candidate / "app").is_dir():
            return candidate
    return current.parent


BASE_DIR = _detect_base_dir()


def _as_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _load_environment() -> None:
    env_file_override = os.getenv("ENV_FILE")
    if env_file_override:
        candidate = BASE_DIR / env_file_override
        if candidate.exists():
            load_dotenv(candidate, override=True, encoding="utf-8")
        return

    base_env = BASE_DIR / ".env"
    if base_env.exists():
        load_dotenv(base_env, override=False, encoding="utf-8")

    environment = os.getenv("ENVIRONMENT")
    if environment is None and _as_bool(os.getenv("DEBUG")):
        environment = "development"

    if environment:
        if environment.startswith(".env"):
            candidate_name = environment
        else:
            candidate_name = f".env.{environment}"
        candidate_path = BASE_DIR / candidate_name
        if candidate_path.exists():
            load_dotenv(candidate_path, override=True, encoding="utf-8")


_load_environment()


class Settings(BaseSettings):
    """
    封装应用运行所需的所有配置项，每个字段都可以通过环境变量重写。
    存储相关配置在启动时一次性读取，再以 ``StorageOptions`` 的形式注入文件服务，
    业务代码不直接访问进程环境变量。
    """

    project_name: str = Field(default="ASM FileStore API", alias="PROJECT_NAME")
    api_v1_str: str = Field(default="/api/v1", alias="API_V1_STR")
    debug: bool = Field(default=False, alias="DEBUG")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    app_port: int = Field(default=8000, alias="APP_PORT")
    timezone: str = Field(default="Asia/Shanghai", alias="TIMEZONE")

    # 未接入外部权限系统时的兜底策略；默认拒绝，仅供本地开发时开启
    permission_allow_all: bool = Field(default=False, alias="PERMISSION_ALLOW_ALL")

    # 存储后端：SUPABASE / S3 / LOCAL
    storage_type: str = Field(default="LOCAL", alias="STORAGE_TYPE")
    storage_bucket: str = Field(
        default="admin",
        validation_alias=AliasChoices("STORAGE_BUCKET", "SUPABASE_STORAGE_BUCKET", "SUPABASE_UPLOADS_BUCKET"),
    )
    storage_prefix: str = Field(
        default="",
        validation_alias=AliasChoices("STORAGE_PREFIX", "SUPABASE_STORAGE_PREFIX"),
    )
    storage_page_limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, alias="STORAGE_PAGE_LIMIT")
    storage_chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1, alias="STORAGE_CHUNK_SIZE")
    storage_local_root: str = Field(default="storage", alias="STORAGE_LOCAL_ROOT")

    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_service_role_key: Optional[str] = Field(default=None, alias="SUPABASE_SERVICE_ROLE_KEY")

    s3_region: Optional[str] = Field(default=None, alias="S3_REGION")
    s3_endpoint_url: Optional[str] = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_access_key_id: Optional[str] = Field(default=None, alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: Optional[str] = Field(default=None, alias="S3_SECRET_ACCESS_KEY")

    model_config = SettingsConfigDict(extra='ignore', populate_by_name=True)

    def _resolve_path(self, raw: str) -> Path:
        path = Path(raw)
        if not path.is_absolute():
            path = BASE_DIR / path
        return path

    @property
    def log_directory(self) -> Path:
        """返回日志目录的绝对路径，支持相对路径配置。"""
        return self._resolve_path(self.log_dir)

    @property
    def log_file_path(self) -> Path:
        """组合日志目录与文件名，得到完整的日志文件路径。"""
        return self.log_directory / self.log_file_name

    @property
    def local_storage_root(self) -> Path:
        """本地存储根目录的绝对路径。"""
        return self._resolve_path(self.storage_local_root)

    @property
    def timezone_info(self) -> ZoneInfo:
        """返回当前配置对应的时区信息，无法解析时回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")

    @property
    def storage_options(self) -> "StorageOptions":
        """组装注入文件服务的存储选项。"""
        # storage_scope 经 exceptions/logger 间接依赖本模块，运行时在此处导入
        from app.packages.system.services.storage_scope import StorageOptions

        return StorageOptions(
            bucket=self.storage_bucket,
            prefix=self.storage_prefix,
            page_limit=self.storage_page_limit,
            chunk_size=self.storage_chunk_size,
        )


@lru_cache
def get_settings() -> Settings:
    """返回单例化的配置对象，避免重复解析环境变量造成性能浪费。"""
    return Settings()
