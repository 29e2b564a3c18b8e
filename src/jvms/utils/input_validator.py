"""
输入验证模块。

提供用户输入的验证和 sanitization 功能。
"""

import os
import re
from typing import Optional

from jvms.utils.logger import get_logger

logger = get_logger()


class InputValidationError(Exception):
    """输入验证错误异常。"""
    pass


class InputValidator:
    """
    输入验证器类。

    提供用户输入的验证和 sanitization 功能。
    """

    VERSION_PATTERN = re.compile(r'^[a-zA-Z0-9._+-]+$')
    URL_PATTERN = re.compile(
        r'^(?:https?|socks5h?)://'
        r'(?:[^\s:@/]+(?::[^\s@/]*)?@)?'
        r'(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+'
        r'(?:[A-Z]{2,63}|[A-Z0-9-]{2,})'
        r'|localhost'
        r'|\d{1,3}(?:\.\d{1,3}){3})'
        r'(?::\d+)?'
        r'(?:/?|[/?]\S+)$',
        re.IGNORECASE
    )
    MAX_PATH_LENGTH = 1024
    MAX_VERSION_LENGTH = 100

    @classmethod
    def validate_version_string(cls, version: str) -> bool:
        """
        验证版本号字符串的有效性。

        版本号同时用作存储目录名，因此不允许路径分隔符和 ..。

        参数:
            version: 版本号字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not version or not version.strip():
            raise InputValidationError("版本号不能为空")

        version = version.strip()

        if len(version) > cls.MAX_VERSION_LENGTH:
            raise InputValidationError(f"版本号不能超过 {cls.MAX_VERSION_LENGTH} 个字符")

        if not cls.VERSION_PATTERN.match(version):
            raise InputValidationError("版本号格式无效")

        if version in (".", "..") or ".." in version:
            raise InputValidationError("版本号不能包含 ..")

        return True

    @classmethod
    def sanitize_version_string(cls, version: str) -> str:
        """
        sanitize 版本号字符串。

        参数:
            version: 原始版本号

        返回:
            sanitized 后的版本号
        """
        if not version:
            return ""
        return version.strip()

    @classmethod
    def validate_url(cls, url: str) -> bool:
        """
        验证 URL 的有效性。空字符串视为"未设置"，验证通过。

        参数:
            url: URL 字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not url or not url.strip():
            return True

        if not cls.URL_PATTERN.match(url.strip()):
            raise InputValidationError(f"URL 格式无效: {url}")

        return True

    @classmethod
    def sanitize_url(cls, url: Optional[str]) -> str:
        """
        sanitize URL 字符串。

        参数:
            url: 原始 URL

        返回:
            sanitized 后的 URL
        """
        if not url:
            return ""
        return url.strip()

    @classmethod
    def validate_path(cls, path: Optional[str]) -> bool:
        """
        验证路径的有效性。

        参数:
            path: 路径字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if path is None:
            return True

        if not path.strip():
            raise InputValidationError("路径不能为空")

        if len(path) > cls.MAX_PATH_LENGTH:
            raise InputValidationError(f"路径不能超过 {cls.MAX_PATH_LENGTH} 个字符")

        if '..' in path.replace("\\", "/").split("/"):
            raise InputValidationError("路径不能包含 ..")

        return True

    @classmethod
    def safe_join_path(cls, base_path: str, *paths: str) -> str:
        """
        安全连接路径，防止路径遍历。

        参数:
            base_path: 基础路径
            *paths: 要连接的路径部分

        返回:
            安全连接后的路径

        抛出:
            InputValidationError: 如果结果路径不在 base_path 内部
        """
        base = os.path.abspath(base_path)
        joined = os.path.abspath(os.path.join(base, *paths))
        if joined != base and not joined.startswith(base + os.sep):
            raise InputValidationError(f"路径遍历检测: {joined}")
        return joined
