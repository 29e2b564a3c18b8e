"""
版本管理器模块。

协调远程版本目录、下载安装、本地存储、活动版本切换和环境变量，
提供 install / switch / remove / list 等操作。
"""

import os
from typing import Any, Callable, Dict, List, Optional

from jvms.core.active_switch import ActiveSwitch, SwitchError
from jvms.core.config_manager import ConfigManager
from jvms.core.download_manager import DownloadManager
from jvms.core.env_manager import EnvManagerError
from jvms.core.http_client import HttpClient
from jvms.core.interfaces import IEnvManager
from jvms.core.remote_fetcher import RemoteFetcher, find_version
from jvms.core.version_store import NotInstalledError, VersionStore
from jvms.core import version_utils
from jvms.utils.input_validator import InputValidationError, InputValidator
from jvms.utils.logger import get_logger

logger = get_logger()

JAVA_HOME_VAR = "JAVA_HOME"


class VersionManagerError(Exception):
    """版本管理错误异常。"""
    pass


class VersionNotFoundError(VersionManagerError):
    """远程目录中没有指定版本。"""
    pass


class VersionManager:
    """
    版本管理器类。

    本类作为协调者，将具体工作委托给各个专用模块。
    配置通过 ConfigManager 显式传入，所有修改只发生在内存中，
    由调用方在命令成功后统一保存。
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        env_manager: IEnvManager,
        http_client: Optional[HttpClient] = None,
        remote_fetcher: Optional[RemoteFetcher] = None,
        download_manager: Optional[DownloadManager] = None,
        store: Optional[VersionStore] = None,
        switch: Optional[ActiveSwitch] = None
    ):
        """
        初始化版本管理器。

        参数:
            config_manager: 配置管理器实例
            env_manager: 环境变量管理器实例
            http_client: 网络获取器，默认按配置的代理创建
            remote_fetcher: 远程版本目录聚合器，默认使用配置的索引地址
            download_manager: 下载管理器
            store: 版本存储，默认使用配置的存储目录
            switch: 活动版本切换器，默认使用配置的 java_home
        """
        self.config_manager = config_manager
        self.env_manager = env_manager
        self.http_client = http_client or HttpClient(proxy=config_manager.get_proxy())
        self.remote_fetcher = remote_fetcher or RemoteFetcher(
            self.http_client, config_manager.get_original_path()
        )
        self.download_manager = download_manager or DownloadManager(self.http_client)
        self.store = store or VersionStore(config_manager.get_store_dir())
        self.switch = switch or ActiveSwitch(config_manager.get_java_home(), self.store)

    @staticmethod
    def _validate_version(version: str) -> str:
        """校验并清理版本号参数。"""
        try:
            InputValidator.validate_version_string(version)
        except InputValidationError as e:
            raise VersionManagerError(f"无效的版本号 {version!r}: {e}") from e
        return InputValidator.sanitize_version_string(version)

    def get_remote_versions(self) -> List[Dict[str, str]]:
        """
        获取远程可用的 JDK 版本。

        返回:
            合并后的版本条目列表
        """
        return self.remote_fetcher.fetch_catalog()

    def install_version(
        self,
        version: str,
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> bool:
        """
        下载并安装指定版本。

        已安装时直接返回，不访问网络。

        参数:
            version: 版本号
            progress_callback: 下载进度回调函数

        返回:
            新安装返回 True，已安装返回 False

        抛出:
            VersionNotFoundError: 远程目录中没有该版本
            NetworkError, ParseError, DownloadManagerError: 获取或安装失败
        """
        version = self._validate_version(version)
        if self.store.is_installed(version):
            logger.info(f"JDK {version} 已安装，跳过")
            return False

        entry = find_version(self.get_remote_versions(), version)
        if entry is None:
            raise VersionNotFoundError(f"远程目录中没有版本 {version}")

        logger.info(f"开始安装 JDK {version}: {entry['url']}")
        return self.download_manager.install(
            version,
            entry["url"],
            self.config_manager.get_download_dir(),
            self.store.root,
            progress_callback,
        )

    def switch_version(self, version: str) -> None:
        """
        切换到指定版本。

        先切换链接，再持久化 JAVA_HOME；两者之间没有回滚，
        后者失败时抛出说明当前状态的 SwitchError。

        参数:
            version: 已安装的版本号

        抛出:
            NotInstalledError: 版本未安装
            SwitchError: 链接或环境变量修改失败
        """
        version = self._validate_version(version)
        logger.info(f"正在切换到 JDK {version}")
        self.switch.switch_to(version)
        self.config_manager.set_current_version_label(version)

        java_home = self.switch.java_home
        try:
            self.env_manager.set_env_var(JAVA_HOME_VAR, java_home)
        except EnvManagerError as e:
            raise SwitchError(
                f"链接已切换到 JDK {version}，但设置 {JAVA_HOME_VAR}={java_home} 失败: {e}"
            ) from e
        logger.info(f"已切换到 JDK {version}")

    def remove_version(self, version: str) -> None:
        """
        删除指定版本。

        如果它是活动版本，先删除活动链接并清空缓存的版本标签。

        参数:
            version: 版本号

        抛出:
            NotInstalledError: 版本未安装
            SwitchError: 清除活动链接失败
            StoreError: 删除目录失败
        """
        version = self._validate_version(version)
        if not self.store.is_installed(version):
            raise NotInstalledError(f"JDK {version} 未安装")

        if self.switch.current_version() == version:
            logger.info(f"JDK {version} 是当前版本，先删除活动链接")
            self.switch.clear()
        if self.config_manager.get_current_version_label() == version:
            self.config_manager.set_current_version_label("")

        self.store.remove(version)

    def get_current_version(self) -> Optional[str]:
        """
        获取当前使用的版本。

        以链接目标为准，不使用配置中缓存的标签。

        返回:
            当前版本号，未链接返回 None
        """
        return self.switch.current_version()

    def get_stale_label(self) -> Optional[str]:
        """
        获取与链接目标不一致的缓存版本标签。

        返回:
            不一致时返回缓存的标签，一致或未设置返回 None
        """
        label = self.config_manager.get_current_version_label()
        if label and label != self.get_current_version():
            return label
        return None

    def list_installed(self) -> List[Dict[str, Any]]:
        """
        列出已安装版本。

        返回:
            按版本号排序的 {"version", "active"} 列表
        """
        current = self.get_current_version()
        versions = version_utils.sort_versions(self.store.list_versions())
        return [{"version": v, "active": v == current} for v in versions]

    def init_environment(
        self,
        java_home: Optional[str] = None,
        original_path: Optional[str] = None
    ) -> None:
        """
        初始化配置和环境变量。

        设置 JAVA_HOME 指向活动链接，并把 <java_home>/bin 加入 PATH。

        参数:
            java_home: 活动链接路径，None 表示保留已有配置或使用默认值
            original_path: 主版本索引 URL，None 表示保留已有配置

        抛出:
            VersionManagerError: 参数无效
            EnvManagerError: 环境变量设置失败
        """
        if java_home is not None:
            try:
                InputValidator.validate_path(java_home)
            except InputValidationError as e:
                raise VersionManagerError(f"无效的 java_home: {e}") from e
            self.config_manager.set("java_home", os.path.abspath(java_home))
        elif not self.config_manager.get("java_home"):
            self.config_manager.set("java_home", self.config_manager.get_java_home())

        if original_path is not None:
            try:
                InputValidator.validate_url(original_path)
            except InputValidationError as e:
                raise VersionManagerError(f"无效的索引地址: {e}") from e
            self.config_manager.set("original_path", InputValidator.sanitize_url(original_path))

        java_home = self.config_manager.get_java_home()
        self.switch.java_home = java_home
        self.env_manager.set_env_var(JAVA_HOME_VAR, java_home)
        self.env_manager.add_to_path(os.path.join(java_home, "bin"))
        logger.info(f"初始化完成: {JAVA_HOME_VAR}={java_home}")

    def set_proxy(self, proxy: str) -> None:
        """
        设置下载代理。

        参数:
            proxy: 代理 URL，空字符串表示清除

        抛出:
            VersionManagerError: URL 格式无效
        """
        try:
            InputValidator.validate_url(proxy)
        except InputValidationError as e:
            raise VersionManagerError(f"无效的代理地址: {e}") from e
        proxy = InputValidator.sanitize_url(proxy)
        self.config_manager.set_proxy(proxy)
        self.http_client.set_proxy(proxy)
        logger.info(f"代理已设置为: {proxy or '无'}")
