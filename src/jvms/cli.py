"""
JVMS 命令行接口模块。
"""

import argparse
import logging
from typing import Optional

from jvms import __version__
from jvms.core.active_switch import SwitchError
from jvms.core.config_manager import DEFAULT_ORIGINAL_PATH, ConfigError, ConfigManager
from jvms.core.download_manager import DownloadManagerError
from jvms.core.env_manager import EnvManagerError, create_env_manager
from jvms.core.http_client import NetworkError, ParseError
from jvms.core.version_manager import VersionManager, VersionManagerError
from jvms.core.version_store import NotInstalledError, StoreError
from jvms.utils.logger import get_logger, setup_logger
from jvms.utils.permission_manager import needs_elevation

logger = get_logger()

RLS_DEFAULT_LIMIT = 10

CORE_ERRORS = (
    VersionManagerError,
    NetworkError,
    ParseError,
    DownloadManagerError,
    StoreError,
    SwitchError,
    EnvManagerError,
    ConfigError,
    OSError,
)


def create_parser() -> argparse.ArgumentParser:
    """
    创建并配置命令行参数解析器。

    返回:
        配置好的 ArgumentParser 实例
    """
    parser = argparse.ArgumentParser(
        prog="jvms",
        description="JVMS - JDK 版本管理器",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  jvms init                   初始化 JAVA_HOME 和 PATH
  jvms rls                    列出可下载的 JDK 版本
  jvms install 21.0.1         安装 JDK 21.0.1
  jvms switch 21.0.1          切换到 JDK 21.0.1
  jvms list                   列出已安装的版本
  jvms proxy --set http://127.0.0.1:7890
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="启用详细输出",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="命令",
        description="可用的 CLI 命令",
    )

    init_parser = subparsers.add_parser(
        "init",
        help="初始化配置文件和环境变量（执行前请先清理 JAVA_HOME 和 PATH 中的旧 JDK）",
    )
    init_parser.add_argument(
        "--java_home",
        default=None,
        help="JAVA_HOME 链接位置",
    )
    init_parser.add_argument(
        "--originalpath",
        default=None,
        help=f"JDK 下载索引文件地址（默认 {DEFAULT_ORIGINAL_PATH}）",
    )

    subparsers.add_parser(
        "list",
        aliases=["ls"],
        help="列出已安装的 JDK",
    )

    install_parser = subparsers.add_parser(
        "install",
        aliases=["i"],
        help="安装远程可用的 JDK",
    )
    install_parser.add_argument(
        "version",
        help="要安装的版本（使用 jvms rls 查看）",
    )

    switch_parser = subparsers.add_parser(
        "switch",
        aliases=["s"],
        help="切换到指定版本",
    )
    switch_parser.add_argument(
        "version",
        help="要切换到的版本（使用 jvms list 查看）",
    )

    remove_parser = subparsers.add_parser(
        "remove",
        aliases=["rm"],
        help="删除指定版本",
    )
    remove_parser.add_argument(
        "version",
        help="要删除的版本",
    )

    rls_parser = subparsers.add_parser(
        "rls",
        help="显示可下载的版本列表",
    )
    rls_parser.add_argument(
        "-a",
        "--all",
        action="store_true",
        help="显示全部版本",
    )

    proxy_parser = subparsers.add_parser(
        "proxy",
        help="设置下载使用的代理",
    )
    proxy_group = proxy_parser.add_mutually_exclusive_group()
    proxy_group.add_argument(
        "--show",
        action="store_true",
        help="显示当前代理",
    )
    proxy_group.add_argument(
        "--set",
        dest="set_proxy",
        metavar="URL",
        default=None,
        help="设置代理（空字符串表示清除）",
    )

    return parser


COMMAND_ALIASES = {
    "ls": "list",
    "i": "install",
    "s": "switch",
    "rm": "remove",
}


def _get_managers(config_manager: ConfigManager) -> VersionManager:
    """
    根据已加载的配置创建版本管理器。

    参数:
        config_manager: 已加载的配置管理器

    返回:
        VersionManager 实例
    """
    env_manager = create_env_manager(config_manager.config_dir)
    return VersionManager(config_manager, env_manager)


def _warn_if_not_admin() -> None:
    """在需要管理员权限的命令前给出提示。"""
    if needs_elevation():
        print("警告：当前未以管理员权限运行，设置系统环境变量可能会失败。")


def handle_init(args: argparse.Namespace, manager: VersionManager) -> int:
    """
    处理 init 命令：初始化 JAVA_HOME 和 PATH。

    参数:
        args: 解析后的命令行参数
        manager: 版本管理器

    返回:
        退出码
    """
    _warn_if_not_admin()
    manager.init_environment(args.java_home, args.originalpath)
    java_home = manager.config_manager.get_java_home()
    print(f"已设置 JAVA_HOME 环境变量为 {java_home}")
    print(f"已将 {java_home} 下的 bin 加入 PATH 环境变量")
    return 0


def handle_list(args: argparse.Namespace, manager: VersionManager) -> int:
    """
    处理 list 命令：列出已安装的版本，* 标记当前版本。

    参数:
        args: 解析后的命令行参数
        manager: 版本管理器

    返回:
        退出码
    """
    versions = manager.list_installed()
    print("已安装的 JDK（* 表示正在使用）:")
    for i, v in enumerate(versions, start=1):
        marker = "*" if v["active"] else " "
        print(f"  {marker} {i}) {v['version']}")
    if not versions:
        print("没有已安装的版本。")

    stale = manager.get_stale_label()
    if stale:
        print(f"\n注意：配置记录的当前版本 {stale} 与 {manager.switch.java_home} 的实际链接不一致。")
    elif versions and not manager.switch.is_linked():
        print("\n当前没有正在使用的 JDK，使用 \"jvms switch <版本>\" 切换。")
    return 0


def handle_install(args: argparse.Namespace, manager: VersionManager) -> int:
    """
    处理 install 命令：下载并安装指定版本。

    参数:
        args: 解析后的命令行参数
        manager: 版本管理器

    返回:
        退出码
    """
    version = args.version

    def progress(downloaded: int, total: int):
        percent = int(downloaded / total * 100) if total > 0 else 0
        bar_len = 40
        filled = int(bar_len * percent / 100)
        bar = "=" * filled + "-" * (bar_len - filled)
        print(f"\r[{bar}] {percent}% ({downloaded}/{total} 字节)", end="", flush=True)

    print(f"正在安装 JDK {version} ...")
    if not manager.install_version(version, progress):
        print(f"JDK {version} 已安装。")
        return 0
    print(f"\n安装完成。如需使用该版本，请执行\n\n  jvms switch {version}")
    return 0


def handle_switch(args: argparse.Namespace, manager: VersionManager) -> int:
    """
    处理 switch 命令：切换到指定版本。

    参数:
        args: 解析后的命令行参数
        manager: 版本管理器

    返回:
        退出码
    """
    _warn_if_not_admin()
    manager.switch_version(args.version)
    print(f"切换成功。\n当前使用 JDK {args.version}")
    print("注意：可能需要重启终端才能使更改生效。")
    return 0


def handle_remove(args: argparse.Namespace, manager: VersionManager) -> int:
    """
    处理 remove 命令：删除指定版本。

    参数:
        args: 解析后的命令行参数
        manager: 版本管理器

    返回:
        退出码
    """
    print(f"正在删除 JDK {args.version} ...")
    manager.remove_version(args.version)
    print("完成")
    return 0


def handle_rls(args: argparse.Namespace, manager: VersionManager) -> int:
    """
    处理 rls 命令：显示可下载的版本。

    参数:
        args: 解析后的命令行参数
        manager: 版本管理器

    返回:
        退出码
    """
    versions = manager.get_remote_versions()
    for i, v in enumerate(versions, start=1):
        print(f"    {i}) {v['version']}")
        if not args.all and i >= RLS_DEFAULT_LIMIT and len(versions) > RLS_DEFAULT_LIMIT:
            print('\n使用 "jvms rls -a" 显示全部版本')
            break
    if not versions:
        print("没有可下载的 JDK 版本。")

    print(f"\n完整列表请访问 {manager.config_manager.get_original_path()}")
    return 0


def handle_proxy(args: argparse.Namespace, manager: VersionManager) -> int:
    """
    处理 proxy 命令：显示或设置代理。

    参数:
        args: 解析后的命令行参数
        manager: 版本管理器

    返回:
        退出码
    """
    if args.set_proxy is not None:
        manager.set_proxy(args.set_proxy)
        print(f"代理已设置为: {manager.config_manager.get_proxy() or '无'}")
        return 0
    print(f"当前代理: {manager.config_manager.get_proxy()}")
    return 0


COMMAND_HANDLERS = {
    "init": handle_init,
    "list": handle_list,
    "install": handle_install,
    "switch": handle_switch,
    "remove": handle_remove,
    "rls": handle_rls,
    "proxy": handle_proxy,
}


def run_cli(args: argparse.Namespace, config_manager: Optional[ConfigManager] = None) -> int:
    """
    运行命令行接口。

    配置在命令开始前加载一次，命令成功后保存一次；失败时不保存。

    参数:
        args: 解析后的命令行参数
        config_manager: 配置管理器，默认使用应用目录下的配置

    返回:
        退出码（0 表示成功）
    """
    if args.verbose:
        setup_logger(level=logging.DEBUG, console_level=logging.DEBUG, force=True)

    if args.command is None:
        print("未指定命令。使用 --help 查看帮助信息。")
        return 1

    command = COMMAND_ALIASES.get(args.command, args.command)
    handler = COMMAND_HANDLERS.get(command)
    if handler is None:
        print(f"未知命令: {args.command}")
        return 1

    config_manager = config_manager or ConfigManager()
    try:
        config_manager.load_config()
        manager = _get_managers(config_manager)
        exit_code = handler(args, manager)
        if exit_code == 0:
            config_manager.save_config()
        return exit_code
    except NotInstalledError as e:
        logger.error(f"{command} 失败: {e}")
        print(f"\n{e}。使用 \"jvms list\" 查看已安装的版本。")
        return 1
    except CORE_ERRORS as e:
        logger.error(f"{command} 失败: {e}")
        print(f"\n错误: {e}")
        return 1
