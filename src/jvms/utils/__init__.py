"""
JVMS 工具模块。

提供日志记录、输入验证和权限检测等工具功能。
"""

from .logger import get_logger, setup_logger
from .permission_manager import is_admin, needs_elevation
from .input_validator import InputValidator, InputValidationError

__all__ = [
    "get_logger",
    "setup_logger",
    "is_admin",
    "needs_elevation",
    "InputValidator",
    "InputValidationError",
]
