"""
核心模块抽象接口定义。

定义网络获取、版本目录、安装、存储、切换和环境变量等核心模块的抽象接口。
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional


class IConfigManager(ABC):
    """配置管理器抽象接口。"""

    @abstractmethod
    def load_config(self) -> dict[str, Any]:
        """从文件加载配置。"""
        pass

    @abstractmethod
    def save_config(self, config: dict[str, Any] | None = None) -> None:
        """保存配置到文件。"""
        pass

    @abstractmethod
    def get_java_home(self) -> str:
        """获取活动版本链接路径。"""
        pass

    @abstractmethod
    def get_current_version_label(self) -> str:
        """获取缓存的当前版本标签。"""
        pass

    @abstractmethod
    def get_original_path(self) -> str:
        """获取主版本索引 URL。"""
        pass

    @abstractmethod
    def get_proxy(self) -> str:
        """获取代理地址。"""
        pass

    @abstractmethod
    def get_store_dir(self) -> str:
        """获取版本存储根目录。"""
        pass

    @abstractmethod
    def get_download_dir(self) -> str:
        """获取下载及临时解压目录。"""
        pass


class IHttpClient(ABC):
    """网络获取器抽象接口。"""

    @abstractmethod
    def fetch_text(self, url: str) -> str:
        """获取文本内容。"""
        pass

    @abstractmethod
    def fetch_json(self, url: str) -> Any:
        """获取并解析 JSON 内容。"""
        pass

    @abstractmethod
    def download(
        self,
        url: str,
        dest_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> str:
        """下载文件到指定路径。"""
        pass


class IVendorSource(ABC):
    """厂商版本源抽象接口。"""

    name: str = ""

    @abstractmethod
    def list_versions(self) -> List[Dict[str, str]]:
        """获取该源提供的版本条目列表。"""
        pass


class IRemoteFetcher(ABC):
    """远程版本目录抽象接口。"""

    @abstractmethod
    def fetch_catalog(self) -> List[Dict[str, str]]:
        """获取合并后的远程版本目录。"""
        pass


class IVersionStore(ABC):
    """本地版本存储抽象接口。"""

    @abstractmethod
    def list_versions(self) -> List[str]:
        """列出已安装的版本。"""
        pass

    @abstractmethod
    def is_installed(self, version: str) -> bool:
        """检查版本是否已安装。"""
        pass

    @abstractmethod
    def version_path(self, version: str) -> str:
        """获取版本的安装目录。"""
        pass

    @abstractmethod
    def remove(self, version: str) -> None:
        """删除已安装的版本。"""
        pass


class IEnvManager(ABC):
    """环境变量管理器抽象接口。"""

    @abstractmethod
    def get_env_var(self, name: str) -> Optional[str]:
        """获取持久化的环境变量值。"""
        pass

    @abstractmethod
    def set_env_var(self, name: str, value: str) -> None:
        """持久化设置环境变量。"""
        pass

    @abstractmethod
    def add_to_path(self, entry: str) -> None:
        """向 PATH 环境变量添加新条目。"""
        pass
