"""
版本工具模块。

提供版本号解析和排序工具函数。
"""

import re
from typing import List


def _parse_version(version_str: str) -> tuple:
    """
    解析版本字符串为可比较的元组。

    参数:
        version_str: 版本字符串

    返回:
        版本元组 (major, minor, patch, ...)
    """
    parts = re.findall(r'\d+', version_str)
    return tuple(int(p) for p in parts) if parts else (0,)


def sort_versions(versions: List[str], reverse: bool = False) -> List[str]:
    """
    按数字顺序排列版本号，数字部分相同时按字符串排序。

    参数:
        versions: 版本号列表
        reverse: 是否降序

    返回:
        排序后的新列表
    """
    return sorted(versions, key=lambda v: (_parse_version(v), v), reverse=reverse)
