"""系统业务包：对象存储之上的文件管理能力（目录列举、上传、删除、文件夹生命周期）。

主应用从这里取得路由、配置、日志与异常处理器，不直接依赖包内的模块布局。
"""

from .api.v1 import api_router
from .core.config import get_settings
from .core.exceptions import generic_exception_handler, http_exception_handler
from .core.logger import logger, setup_logging
from .core.responses import create_response

__all__ = [
    "api_router",
    "create_response",
    "generic_exception_handler",
    "get_settings",
    "http_exception_handler",
    "logger",
    "setup_logging",
]
