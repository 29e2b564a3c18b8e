"""
活动版本切换模块。

通过 java_home 处的目录符号链接指定当前使用的 JDK。
链接目标是"当前版本"的唯一可信来源，配置中的 current_jdk_version 只用于显示。
"""

import os
from typing import Optional

from jvms.core.version_store import NotInstalledError, VersionStore
from jvms.utils.logger import get_logger

logger = get_logger()

TEMP_LINK_SUFFIX = ".jvms-tmp"


class SwitchError(Exception):
    """切换活动版本错误异常。"""
    pass


def _normalize(path: str) -> str:
    """规范化路径以便比较。"""
    if path.startswith("\\\\?\\"):
        path = path[4:]
    return os.path.normcase(os.path.abspath(path))


def _remove_link(path: str) -> None:
    """删除目录链接本身，不触及其目标。"""
    if os.name == "nt":
        os.rmdir(path)
    else:
        os.unlink(path)


class ActiveSwitch:
    """
    活动版本切换器类。

    两种状态：未链接（链接不存在或目标失效）和已链接到某个已安装版本。

    支持原子替换（先创建临时链接再 os.replace，POSIX 默认）和
    先删后建（Windows 默认，目录链接无法原子替换）两种策略。
    """

    def __init__(self, java_home: str, store: VersionStore, atomic: Optional[bool] = None):
        """
        初始化活动版本切换器。

        参数:
            java_home: 活动链接路径
            store: 版本存储实例
            atomic: 是否使用原子替换策略，默认非 Windows 平台为 True
        """
        self.java_home = java_home
        self.store = store
        self.atomic = (os.name != "nt") if atomic is None else atomic

    def link_target(self) -> Optional[str]:
        """
        读取活动链接的目标路径。

        返回:
            目标的绝对路径，链接不存在返回 None
        """
        if not os.path.islink(self.java_home):
            return None
        try:
            target = os.readlink(self.java_home)
        except OSError as e:
            logger.warning(f"读取链接 {self.java_home} 失败: {e}")
            return None
        if not os.path.isabs(target):
            target = os.path.join(os.path.dirname(self.java_home), target)
        return target

    def current_version(self) -> Optional[str]:
        """
        根据链接目标解析当前版本。

        只有目标是存储根目录下直接存在的版本目录时才视为已链接。

        返回:
            版本号，未链接返回 None
        """
        target = self.link_target()
        if target is None:
            return None

        normalized = _normalize(target)
        if os.path.dirname(normalized) != _normalize(self.store.root):
            logger.debug(f"链接目标 {target} 不在存储目录中")
            return None
        if not os.path.isdir(normalized):
            logger.debug(f"链接目标 {target} 已失效")
            return None
        return os.path.basename(target.rstrip("\\/"))

    def is_linked(self) -> bool:
        """链接是否指向一个已安装的版本。"""
        return self.current_version() is not None

    def clear(self) -> None:
        """
        删除活动链接（如果存在）。

        抛出:
            SwitchError: java_home 是真实目录或删除失败
        """
        if not os.path.lexists(self.java_home):
            return
        if not os.path.islink(self.java_home):
            raise SwitchError(f"{self.java_home} 不是链接，拒绝删除，请手动处理")
        try:
            _remove_link(self.java_home)
        except OSError as e:
            logger.error(f"删除链接 {self.java_home} 失败: {e}")
            raise SwitchError(f"删除链接失败，请手动删除 {self.java_home}: {e}") from e
        logger.info(f"已删除活动链接 {self.java_home}")

    def switch_to(self, version: str) -> None:
        """
        把活动链接切换到指定版本。

        参数:
            version: 已安装的版本号

        抛出:
            NotInstalledError: 版本未安装，不做任何修改
            SwitchError: 链接修改失败
        """
        if not self.store.is_installed(version):
            raise NotInstalledError(f"JDK {version} 未安装")

        target = self.store.version_path(version)

        if os.path.lexists(self.java_home) and not os.path.islink(self.java_home):
            raise SwitchError(f"{self.java_home} 已存在且不是链接，请手动删除后重试")

        parent = os.path.dirname(os.path.abspath(self.java_home))
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise SwitchError(f"无法创建目录 {parent}: {e}") from e

        if self.atomic:
            self._replace_atomically(target)
        else:
            self._remove_then_create(target)
        logger.info(f"活动链接已切换: {self.java_home} -> {target}")

    def _replace_atomically(self, target: str) -> None:
        """先创建临时链接，再原子替换旧链接；失败时旧链接保持不变。"""
        temp_link = self.java_home + TEMP_LINK_SUFFIX
        try:
            if os.path.lexists(temp_link):
                _remove_link(temp_link)
            os.symlink(target, temp_link, target_is_directory=True)
        except OSError as e:
            logger.error(f"创建临时链接 {temp_link} 失败: {e}")
            raise SwitchError(f"切换失败，创建链接出错: {e}") from e

        try:
            os.replace(temp_link, self.java_home)
        except OSError as e:
            logger.error(f"替换链接 {self.java_home} 失败: {e}")
            try:
                _remove_link(temp_link)
            except OSError as cleanup_error:
                logger.warning(f"清理临时链接 {temp_link} 失败: {cleanup_error}")
            raise SwitchError(f"切换失败，原链接保持不变: {e}") from e

    def _remove_then_create(self, target: str) -> None:
        """先删除旧链接再创建新链接；创建失败时处于未链接状态。"""
        if os.path.lexists(self.java_home):
            try:
                _remove_link(self.java_home)
            except OSError as e:
                logger.error(f"删除旧链接 {self.java_home} 失败: {e}")
                raise SwitchError(f"切换失败，请手动删除 {self.java_home}: {e}") from e

        try:
            os.symlink(target, self.java_home, target_is_directory=True)
        except OSError as e:
            logger.error(f"创建链接 {self.java_home} 失败: {e}")
            raise SwitchError(
                f"旧链接已删除但新链接创建失败，当前没有活动的 JDK: {e}"
            ) from e
