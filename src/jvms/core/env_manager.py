"""
环境变量管理器模块。

Windows 下读写注册表中的系统环境变量；其他平台把 export 语句写入
配置目录下的 env.sh，由用户在 shell 配置中 source。
"""

import ctypes
import os
import re
import sys
from pathlib import Path
from typing import Dict, List, Optional

from jvms.core.interfaces import IEnvManager
from jvms.utils.logger import get_logger

logger = get_logger()

ENV_KEY_PATH = r"SYSTEM\CurrentControlSet\Control\Session Manager\Environment"
WM_SETTINGCHANGE = 0x001A
HWND_BROADCAST = 0xFFFF
SMTO_ABORTIFHUNG = 0x0002

PROFILE_FILE_NAME = "env.sh"
_EXPORT_RE = re.compile(r'^export ([A-Za-z_][A-Za-z0-9_]*)="(.*)"$')


class EnvManagerError(Exception):
    """环境变量管理错误异常。"""
    pass


class RegistryAccessError(EnvManagerError):
    """注册表访问错误异常。"""
    pass


class EnvManager(IEnvManager):
    """
    Windows 环境变量管理器类。

    读写 HKEY_LOCAL_MACHINE 下的系统环境变量（需要管理员权限），
    修改后广播 WM_SETTINGCHANGE。
    实现 IEnvManager 抽象接口。
    """

    def __init__(self):
        """初始化环境变量管理器。"""
        import winreg
        self._winreg = winreg
        self._key = None

    def _open_key(self, writable: bool = True):
        """
        打开注册表环境变量键。

        参数:
            writable: 是否以可写模式打开

        返回:
            打开的注册表键句柄

        抛出:
            RegistryAccessError: 打开失败（通常是权限不足）
        """
        winreg = self._winreg
        access = winreg.KEY_READ | winreg.KEY_SET_VALUE if writable else winreg.KEY_READ
        try:
            self._key = winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, ENV_KEY_PATH, 0, access)
            logger.debug(f"注册表键已打开 (writable={writable})")
            return self._key
        except OSError as e:
            error_msg = f"打开注册表键失败，请以管理员身份运行: {e}"
            logger.error(error_msg)
            raise RegistryAccessError(error_msg) from e

    def _close_key(self):
        """关闭注册表键。"""
        if self._key is not None:
            try:
                self._winreg.CloseKey(self._key)
            except (TypeError, OSError):
                pass
            self._key = None

    def get_env_var(self, name: str) -> Optional[str]:
        """
        获取环境变量值。

        参数:
            name: 环境变量名称

        返回:
            环境变量值，不存在则返回 None
        """
        try:
            key = self._open_key(writable=False)
            value, _ = self._winreg.QueryValueEx(key, name)
            logger.debug(f"读取环境变量 {name}={value}")
            return value
        except FileNotFoundError:
            logger.debug(f"环境变量 {name} 不存在")
            return None
        finally:
            self._close_key()

    def set_env_var(self, name: str, value: str) -> None:
        """
        设置环境变量值。

        参数:
            name: 环境变量名称
            value: 环境变量值

        抛出:
            EnvManagerError: 写入失败
        """
        winreg = self._winreg
        try:
            key = self._open_key(writable=True)
            reg_type = winreg.REG_EXPAND_SZ if "%" in value else winreg.REG_SZ
            winreg.SetValueEx(key, name, 0, reg_type, value)
        except RegistryAccessError:
            raise
        except OSError as e:
            error_msg = f"设置环境变量 {name} 失败: {e}"
            logger.error(error_msg)
            raise EnvManagerError(error_msg) from e
        finally:
            self._close_key()
        logger.info(f"设置环境变量 {name}={value}")
        self.broadcast_change()

    def get_path_entries(self) -> List[str]:
        """
        获取 PATH 环境变量的所有条目。

        返回:
            PATH 条目列表
        """
        path_value = self.get_env_var("Path")
        if not path_value:
            return []
        return [e.strip() for e in path_value.split(";") if e.strip()]

    def add_to_path(self, entry: str) -> None:
        """
        向 PATH 环境变量开头添加新条目，已存在时不做修改。

        参数:
            entry: 要添加的路径条目

        抛出:
            EnvManagerError: 条目为空或写入失败
        """
        if not entry or not entry.strip():
            raise EnvManagerError("PATH 条目不能为空")

        entries = self.get_path_entries()
        normalized_entry = entry.strip().rstrip("\\")
        for existing in entries:
            if existing.rstrip("\\").lower() == normalized_entry.lower():
                logger.debug(f"PATH 已包含 {entry}")
                return
        entries.insert(0, normalized_entry)
        self.set_env_var("Path", ";".join(entries))
        logger.info(f"已添加 {entry} 到 PATH")

    def broadcast_change(self) -> None:
        """
        广播环境变量更改消息。

        通知系统和其他应用程序环境变量已更改。
        """
        try:
            result = ctypes.c_long()
            ctypes.windll.user32.SendMessageTimeoutW(
                HWND_BROADCAST,
                WM_SETTINGCHANGE,
                0,
                "Environment",
                SMTO_ABORTIFHUNG,
                5000,
                ctypes.byref(result)
            )
            logger.debug("已广播 WM_SETTINGCHANGE 消息")
        except (AttributeError, OSError) as e:
            logger.warning(f"广播环境变量更改消息失败: {e}")


class ProfileEnvManager(IEnvManager):
    """
    基于 shell 脚本的环境变量管理器类。

    非 Windows 平台没有系统级持久环境变量，改为维护一个 env.sh：
    每个变量一行 export，PATH 条目追加在前面。
    """

    def __init__(self, config_dir: Path):
        """
        初始化环境变量管理器。

        参数:
            config_dir: env.sh 所在目录
        """
        self.profile_path = Path(config_dir) / PROFILE_FILE_NAME

    def _read(self) -> Dict[str, str]:
        """读取 env.sh 中的变量。"""
        if not self.profile_path.exists():
            return {}
        try:
            lines = self.profile_path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise EnvManagerError(f"读取 {self.profile_path} 失败: {e}") from e
        values = {}
        for line in lines:
            match = _EXPORT_RE.match(line.strip())
            if match:
                values[match.group(1)] = match.group(2)
        return values

    def _write(self, values: Dict[str, str]) -> None:
        """写入 env.sh。"""
        lines = ["# 由 jvms 生成，请在 shell 配置中 source 此文件"]
        lines += [f'export {name}="{value}"' for name, value in values.items()]
        try:
            self.profile_path.parent.mkdir(parents=True, exist_ok=True)
            self.profile_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as e:
            error_msg = f"写入 {self.profile_path} 失败: {e}"
            logger.error(error_msg)
            raise EnvManagerError(error_msg) from e

    def get_env_var(self, name: str) -> Optional[str]:
        return self._read().get(name)

    def set_env_var(self, name: str, value: str) -> None:
        values = self._read()
        values[name] = value
        self._write(values)
        os.environ[name] = value
        logger.info(f"设置环境变量 {name}={value}（写入 {self.profile_path}）")

    def add_to_path(self, entry: str) -> None:
        if not entry or not entry.strip():
            raise EnvManagerError("PATH 条目不能为空")

        values = self._read()
        current = values.get("PATH", "$PATH")
        entries = current.split(os.pathsep)
        normalized_entry = entry.strip().rstrip("/")
        if normalized_entry in (e.rstrip("/") for e in entries):
            logger.debug(f"PATH 已包含 {entry}")
            return
        values["PATH"] = os.pathsep.join([normalized_entry] + entries)
        self._write(values)
        logger.info(f"已添加 {entry} 到 PATH")


def create_env_manager(config_dir: Path) -> IEnvManager:
    """
    根据平台创建环境变量管理器。

    参数:
        config_dir: 配置目录

    返回:
        Windows 下为 EnvManager，其他平台为 ProfileEnvManager
    """
    if sys.platform == "win32":
        return EnvManager()
    return ProfileEnvManager(config_dir)
