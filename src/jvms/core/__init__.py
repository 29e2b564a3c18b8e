"""
JVMS 核心模块。

提供远程版本目录、下载安装、版本存储、活动版本切换和配置管理功能。
"""

from .interfaces import IConfigManager, IHttpClient, IVendorSource, IRemoteFetcher, IVersionStore, IEnvManager
from .config_manager import ConfigManager, ConfigError, ConfigValidationError, ConfigLoadError, ConfigSaveError
from .http_client import HttpClient, NetworkError, ParseError, DownloadError
from .remote_fetcher import RemoteFetcher, AdoptiumSource, AzulSource, find_version
from .download_manager import DownloadManager, DownloadManagerError, ExtractError, LayoutError, MoveError, find_runtime_root
from .version_store import VersionStore, StoreError, NotInstalledError
from .active_switch import ActiveSwitch, SwitchError
from .env_manager import EnvManager, ProfileEnvManager, EnvManagerError, RegistryAccessError, create_env_manager
from .version_manager import VersionManager, VersionManagerError, VersionNotFoundError
from . import version_utils

__all__ = [
    "IConfigManager", "IHttpClient", "IVendorSource", "IRemoteFetcher", "IVersionStore", "IEnvManager",
    "ConfigManager", "ConfigError", "ConfigValidationError", "ConfigLoadError", "ConfigSaveError",
    "HttpClient", "NetworkError", "ParseError", "DownloadError",
    "RemoteFetcher", "AdoptiumSource", "AzulSource", "find_version",
    "DownloadManager", "DownloadManagerError", "ExtractError", "LayoutError", "MoveError", "find_runtime_root",
    "VersionStore", "StoreError", "NotInstalledError",
    "ActiveSwitch", "SwitchError",
    "EnvManager", "ProfileEnvManager", "EnvManagerError", "RegistryAccessError", "create_env_manager",
    "VersionManager", "VersionManagerError", "VersionNotFoundError",
    "version_utils",
]
