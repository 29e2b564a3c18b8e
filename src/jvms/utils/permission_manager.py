import ctypes
import os
import sys


def is_admin() -> bool:
    """
    检测当前进程是否具有管理员权限。

    Windows 下调用 IsUserAnAdmin，其他平台检查是否为 root 用户。

    Returns:
        bool: 如果具有管理员权限返回 True，否则返回 False
    """
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None:
        return False
    return geteuid() == 0


def needs_elevation() -> bool:
    """
    判断设置系统级环境变量前是否需要提权。

    只有 Windows 上写入 HKEY_LOCAL_MACHINE 需要管理员权限。

    Returns:
        bool: 需要提权返回 True
    """
    return sys.platform == "win32" and not is_admin()
