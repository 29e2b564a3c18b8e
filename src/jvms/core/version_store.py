"""
本地版本存储模块。

每个已安装版本对应存储根目录下的一个子目录，目录存在即表示已安装，
没有额外的清单文件。
"""

import os
import shutil
from typing import List

from jvms.core.interfaces import IVersionStore
from jvms.utils.input_validator import InputValidationError, InputValidator
from jvms.utils.logger import get_logger

logger = get_logger()


class StoreError(Exception):
    """版本存储错误异常。"""
    pass


class NotInstalledError(StoreError):
    """版本未安装错误异常。"""
    pass


class VersionStore(IVersionStore):
    """
    版本存储类。

    只做文件系统查询和修改，不保存任何隐藏状态，也不跟踪活动版本。
    实现 IVersionStore 抽象接口。
    """

    def __init__(self, root: str):
        """
        初始化版本存储。

        参数:
            root: 存储根目录
        """
        self.root = root

    def version_path(self, version: str) -> str:
        """
        获取版本的安装目录。

        参数:
            version: 版本号

        返回:
            <root>/<version> 路径

        抛出:
            StoreError: 版本号会逃逸出存储根目录
        """
        try:
            return InputValidator.safe_join_path(self.root, version)
        except InputValidationError as e:
            raise StoreError(f"非法版本号 {version!r}: {e}") from e

    def list_versions(self) -> List[str]:
        """
        列出已安装的版本。

        返回:
            存储根目录下的子目录名，顺序为文件系统枚举顺序；根目录不存在时为空列表
        """
        if not os.path.isdir(self.root):
            logger.debug(f"存储目录不存在: {self.root}")
            return []
        with os.scandir(self.root) as it:
            return [entry.name for entry in it if entry.is_dir(follow_symlinks=False)]

    def is_installed(self, version: str) -> bool:
        """
        检查版本是否已安装。

        参数:
            version: 版本号

        返回:
            对应目录存在返回 True
        """
        if not version:
            return False
        try:
            path = self.version_path(version)
        except StoreError:
            return False
        return os.path.isdir(path) and path != os.path.abspath(self.root)

    def remove(self, version: str) -> None:
        """
        递归删除已安装的版本。

        如果该版本是活动版本，调用方需先清除活动链接。

        参数:
            version: 版本号

        抛出:
            NotInstalledError: 版本未安装
            StoreError: 删除失败
        """
        if not self.is_installed(version):
            raise NotInstalledError(f"JDK {version} 未安装")

        path = self.version_path(version)
        logger.info(f"删除 JDK {version}: {path}")
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.error(f"删除 {path} 失败: {e}")
            raise StoreError(f"删除 JDK {version} 失败，请手动删除 {path}: {e}") from e
