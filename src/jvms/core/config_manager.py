"""
配置管理器模块。

提供应用程序配置的加载、保存和验证功能。

配置在进程启动时加载一次，命令执行期间只在内存中修改，
命令成功结束时保存一次。
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from jvms.core.interfaces import IConfigManager
from jvms.utils.logger import get_app_dir, get_logger

logger = get_logger()

DEFAULT_ORIGINAL_PATH = "https://raw.githubusercontent.com/ystyle/jvms/new/jdkdlindex.json"


class ConfigError(Exception):
    """配置错误异常。"""
    pass


class ConfigValidationError(ConfigError):
    """配置验证错误异常。"""
    pass


class ConfigLoadError(ConfigError):
    """配置加载错误异常。"""
    pass


class ConfigSaveError(ConfigError):
    """配置保存错误异常。"""
    pass


def default_java_home(app_dir: Optional[Path] = None) -> str:
    """
    获取默认的 JAVA_HOME 链接路径。

    参数:
        app_dir: 应用数据目录，默认为 get_app_dir()

    返回:
        Windows 下为 %ProgramFiles%\\jdk，其他平台为应用目录下的 jdk
    """
    if os.name == "nt":
        program_files = os.environ.get("ProgramFiles", r"C:\Program Files")
        return os.path.join(program_files, "jdk")
    return str((app_dir or get_app_dir()) / "jdk")


def _atomic_save_json(file_path: Path, data: Any, indent: int = 4) -> None:
    """
    原子保存 JSON 数据到文件，防止写入中断导致文件损坏。

    参数:
        file_path: 目标文件路径
        data: 要保存的数据
        indent: JSON 缩进
    """
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
        os.replace(temp_path, file_path)
    except Exception:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as cleanup_error:
                logger.warning(f"清理临时配置文件失败: {cleanup_error}")
        raise


class ConfigManager(IConfigManager):
    """
    配置管理器类。

    负责 jvms.json 的加载、保存、验证和访问。未知字段原样保留并写回。
    实现 IConfigManager 抽象接口。
    """

    CONFIG_FILE_NAME = "jvms.json"

    STRING_FIELDS = (
        "java_home",
        "current_jdk_version",
        "original_path",
        "proxy",
    )

    OPTIONAL_PATH_FIELDS = (
        "store_path",
        "download_path",
    )

    def __init__(self, app_dir: Optional[Path] = None):
        """
        初始化配置管理器。

        参数:
            app_dir: 应用数据目录，默认为 get_app_dir()
        """
        self.app_dir = Path(app_dir) if app_dir is not None else get_app_dir()
        self.config_dir = self.app_dir / "config"
        self.config_file = self.config_dir / self.CONFIG_FILE_NAME
        self._config: dict[str, Any] = {}
        self._loaded = False

    def _get_builtin_default_config(self) -> dict[str, Any]:
        """获取内置默认配置。"""
        return {
            "java_home": "",
            "current_jdk_version": "",
            "original_path": DEFAULT_ORIGINAL_PATH,
            "proxy": "",
        }

    def load_config(self) -> dict[str, Any]:
        """
        加载配置文件。

        文件不存在时使用默认配置（不立即写盘）；缺失的字段补为默认值。

        返回:
            配置字典

        抛出:
            ConfigLoadError: 文件无法读取或不是合法的 JSON 对象
        """
        if not self.config_file.exists():
            logger.info(f"配置文件不存在，使用默认配置: {self.config_file}")
            self._config = self._get_builtin_default_config()
            self._loaded = True
            return self._config

        try:
            logger.debug(f"从文件加载配置: {self.config_file}")
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (IOError, OSError, json.JSONDecodeError) as e:
            logger.error(f"加载配置文件失败: {e}")
            raise ConfigLoadError(f"无法加载配置文件 {self.config_file}: {e}") from e

        try:
            self.validate_config(data)
        except ConfigValidationError as e:
            logger.error(f"配置验证失败: {e}")
            raise ConfigLoadError(f"配置文件 {self.config_file} 无效: {e}") from e

        self._config = data
        self._fill_missing_fields()
        self._loaded = True
        logger.debug("配置加载成功")
        return self._config

    def _fill_missing_fields(self) -> None:
        """为旧版本或手工编辑的配置补全缺失字段。"""
        for field in self.STRING_FIELDS:
            if self._config.get(field) is None:
                self._config[field] = ""
        if not self._config["original_path"]:
            self._config["original_path"] = DEFAULT_ORIGINAL_PATH

    def validate_config(self, config: Any) -> bool:
        """
        验证配置的有效性。

        参数:
            config: 要验证的配置

        返回:
            验证通过返回 True

        抛出:
            ConfigValidationError: 配置验证失败时抛出
        """
        if not isinstance(config, dict):
            raise ConfigValidationError(
                f"配置必须是 JSON 对象，实际为 {type(config).__name__}"
            )

        for field in self.STRING_FIELDS + self.OPTIONAL_PATH_FIELDS:
            value = config.get(field)
            if value is not None and not isinstance(value, str):
                raise ConfigValidationError(
                    f"字段 '{field}' 必须是 str 类型，实际为 {type(value).__name__}"
                )

        logger.debug("配置验证通过")
        return True

    def save_config(self, config: dict[str, Any] | None = None) -> None:
        """
        保存配置到文件。

        参数:
            config: 要保存的配置字典，如果为 None 则保存当前配置

        抛出:
            ConfigSaveError: 写入失败时抛出
        """
        if config is not None:
            self._config = config

        self.validate_config(self._config)

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            logger.debug(f"保存配置到 {self.config_file}")
            _atomic_save_json(self.config_file, self._config)
            logger.debug("配置保存成功")
        except (IOError, OSError, TypeError, ValueError) as e:
            logger.error(f"保存配置失败: {e}")
            raise ConfigSaveError(f"无法保存配置到 {self.config_file}: {e}") from e

    @property
    def config(self) -> dict[str, Any]:
        """
        获取配置字典（延迟加载）。

        返回:
            配置字典
        """
        if not self._loaded:
            self.load_config()
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        获取指定键的配置值。

        参数:
            key: 配置键名
            default: 默认值

        返回:
            配置值或默认值
        """
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        设置指定键的配置值（仅修改内存，需调用 save_config 持久化）。

        参数:
            key: 配置键名
            value: 配置值
        """
        self.config[key] = value

    def get_java_home(self) -> str:
        """
        获取活动版本链接路径。

        返回:
            配置的 java_home，未配置时为平台默认值
        """
        return self.get("java_home") or default_java_home(self.app_dir)

    def get_current_version_label(self) -> str:
        """
        获取缓存的当前版本标签。

        该值仅用于显示，可能与链接的真实目标不一致。

        返回:
            版本标签，未设置为空字符串
        """
        return self.get("current_jdk_version", "")

    def set_current_version_label(self, version: str) -> None:
        """
        设置缓存的当前版本标签。

        参数:
            version: 版本号，空字符串表示无活动版本
        """
        self.set("current_jdk_version", version)

    def get_original_path(self) -> str:
        """
        获取主版本索引 URL。

        返回:
            索引 URL
        """
        return self.get("original_path") or DEFAULT_ORIGINAL_PATH

    def get_proxy(self) -> str:
        """
        获取代理地址。

        返回:
            代理 URL，未设置为空字符串
        """
        return self.get("proxy", "")

    def set_proxy(self, proxy: str) -> None:
        """
        设置代理地址。

        参数:
            proxy: 代理 URL，空字符串表示不使用代理
        """
        self.set("proxy", proxy)

    def get_store_dir(self) -> str:
        """
        获取版本存储根目录。

        返回:
            store_path 字段或应用目录下的 store
        """
        return self.get("store_path") or str(self.app_dir / "store")

    def get_download_dir(self) -> str:
        """
        获取下载及临时解压目录。

        返回:
            download_path 字段或应用目录下的 download
        """
        return self.get("download_path") or str(self.app_dir / "download")
