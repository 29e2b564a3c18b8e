"""
下载管理模块。

提供 JDK 压缩包的下载、解压、运行时根目录定位和安装功能。
"""

import errno
import os
import shutil
import tarfile
import zipfile
from typing import Callable, Optional

from jvms.core.http_client import HttpClient
from jvms.core.remote_fetcher import ARCHIVE_EXTENSIONS
from jvms.utils.input_validator import InputValidationError, InputValidator
from jvms.utils.logger import get_logger

logger = get_logger()

BIN_DIR = "bin"
JAVAC_NAMES = ("javac", "javac.exe")
SCRATCH_SUFFIX = "_temp"


class DownloadManagerError(Exception):
    """下载管理错误异常。"""
    pass


class ExtractError(DownloadManagerError):
    """解压错误异常。"""
    pass


class LayoutError(DownloadManagerError):
    """压缩包中找不到 JDK 运行时根目录。"""
    pass


class MoveError(DownloadManagerError):
    """移动到存储目录失败。"""
    pass


def archive_extension(url: str) -> str:
    """
    从下载地址推导压缩包扩展名。

    参数:
        url: 下载地址

    返回:
        .zip / .tar.gz / .tgz，无法识别时为 .zip
    """
    path = url.split("?", 1)[0].lower()
    for ext in ARCHIVE_EXTENSIONS:
        if path.endswith(ext):
            return ext
    return ".zip"


def find_runtime_root(base_dir: str) -> Optional[str]:
    """
    在解压目录中定位 JDK 运行时根目录。

    按字典序深度优先遍历，第一个找到的 bin/javac(.exe) 所在的上级目录即为根目录。
    存在多个候选时结果取决于遍历顺序。

    参数:
        base_dir: 解压目录

    返回:
        运行时根目录路径，找不到返回 None
    """
    try:
        with os.scandir(base_dir) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.warning(f"遍历目录 {base_dir} 失败: {e}")
        return None

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            found = find_runtime_root(entry.path)
            if found is not None:
                return found
        elif entry.name in JAVAC_NAMES and os.path.basename(base_dir) == BIN_DIR:
            return os.path.dirname(base_dir)
    return None


def _extract_zip(archive_path: str, dest_dir: str) -> None:
    """解压 zip 包，拒绝路径遍历并恢复 Unix 权限位。"""
    with zipfile.ZipFile(archive_path, "r") as zf:
        for member in zf.infolist():
            try:
                member_path = InputValidator.safe_join_path(dest_dir, member.filename)
            except InputValidationError as e:
                raise ExtractError(f"压缩包包含非法路径: {member.filename}") from e

            if member.is_dir():
                os.makedirs(member_path, exist_ok=True)
                continue

            os.makedirs(os.path.dirname(member_path), exist_ok=True)
            with zf.open(member) as src, open(member_path, "wb") as dst:
                shutil.copyfileobj(src, dst)

            mode = (member.external_attr >> 16) & 0o777
            if mode and os.name != "nt":
                os.chmod(member_path, mode)


def _extract_tar(archive_path: str, dest_dir: str) -> None:
    """解压 tar / tar.gz 包，拒绝路径遍历和指向外部的链接。"""
    with tarfile.open(archive_path, "r:*") as tf:
        for member in tf.getmembers():
            try:
                InputValidator.safe_join_path(dest_dir, member.name)
                if member.issym() or member.islnk():
                    link_base = os.path.dirname(member.name) if member.issym() else ""
                    InputValidator.safe_join_path(dest_dir, link_base, member.linkname)
            except InputValidationError as e:
                raise ExtractError(f"压缩包包含非法路径: {member.name}") from e
        if hasattr(tarfile, "data_filter"):
            tf.extractall(dest_dir, filter="data")
        else:
            tf.extractall(dest_dir)


def extract_archive(archive_path: str, dest_dir: str) -> None:
    """
    完整解压压缩包到目标目录。

    参数:
        archive_path: 压缩包路径
        dest_dir: 目标目录

    抛出:
        ExtractError: 格式不支持、压缩包损坏或 I/O 错误
    """
    logger.info(f"正在解压 {archive_path} 到 {dest_dir}")
    try:
        os.makedirs(dest_dir, exist_ok=True)
        if zipfile.is_zipfile(archive_path):
            _extract_zip(archive_path, dest_dir)
        elif tarfile.is_tarfile(archive_path):
            _extract_tar(archive_path, dest_dir)
        else:
            raise ExtractError(f"不支持的压缩包格式: {archive_path}")
    except ExtractError:
        raise
    except (zipfile.BadZipFile, tarfile.TarError, OSError, EOFError) as e:
        logger.error(f"解压 {archive_path} 失败: {e}")
        raise ExtractError(f"解压 {archive_path} 失败: {e}") from e


class DownloadManager:
    """
    下载管理器类。

    负责把远程 JDK 压缩包安装为存储目录下的 <version> 目录：
    下载 -> 解压到 <version>_temp -> 定位运行时根目录 -> 移动到存储目录 -> 清理。
    """

    def __init__(self, http_client: HttpClient):
        """
        初始化下载管理器。

        参数:
            http_client: 网络获取器实例
        """
        self.http_client = http_client

    def install(
        self,
        version: str,
        url: str,
        download_dir: str,
        store_dir: str,
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> bool:
        """
        下载并安装指定版本。

        参数:
            version: 版本号（即存储目录名）
            url: 压缩包下载地址
            download_dir: 下载及临时解压目录
            store_dir: 版本存储根目录
            progress_callback: 下载进度回调函数

        返回:
            新安装返回 True，已安装返回 False（不做任何网络请求和文件修改）

        抛出:
            DownloadError, ExtractError, LayoutError, MoveError
        """
        try:
            target_dir = InputValidator.safe_join_path(store_dir, version)
        except InputValidationError as e:
            raise MoveError(f"非法版本号 {version!r}: {e}") from e

        if os.path.isdir(target_dir):
            logger.info(f"JDK {version} 已安装: {target_dir}")
            return False

        os.makedirs(download_dir, mode=0o777, exist_ok=True)
        os.makedirs(store_dir, mode=0o777, exist_ok=True)

        archive_path = os.path.join(download_dir, version + archive_extension(url))
        self.http_client.download(url, archive_path, progress_callback)

        scratch_dir = os.path.join(download_dir, version + SCRATCH_SUFFIX)
        self._remove_stale_scratch(scratch_dir)

        extract_archive(archive_path, scratch_dir)

        runtime_root = find_runtime_root(scratch_dir)
        if runtime_root is None:
            logger.error(f"在 {scratch_dir} 中找不到 {BIN_DIR}/javac")
            raise LayoutError(f"压缩包中找不到 JDK 目录（缺少 {BIN_DIR}/javac）: {url}")
        logger.debug(f"定位到运行时根目录: {runtime_root}")

        self._move_into_store(runtime_root, target_dir)
        self._cleanup(scratch_dir, archive_path)
        logger.info(f"成功安装 JDK {version} 到 {target_dir}")
        return True

    def _remove_stale_scratch(self, scratch_dir: str) -> None:
        """删除上次失败遗留的临时解压目录，失败时中止安装。"""
        if not os.path.lexists(scratch_dir):
            return
        logger.info(f"删除遗留的临时目录 {scratch_dir}")
        try:
            shutil.rmtree(scratch_dir)
        except OSError as e:
            logger.error(f"删除临时目录 {scratch_dir} 失败: {e}")
            raise ExtractError(f"无法删除遗留的临时目录 {scratch_dir}: {e}") from e

    def _move_into_store(self, runtime_root: str, target_dir: str) -> None:
        """
        把运行时根目录移动到存储目录。

        跨设备时回退为复制后删除。

        抛出:
            MoveError: 目标已存在或移动失败
        """
        if os.path.lexists(target_dir):
            raise MoveError(f"目标目录已存在: {target_dir}")

        try:
            os.rename(runtime_root, target_dir)
            return
        except OSError as e:
            if e.errno != errno.EXDEV:
                logger.error(f"移动 {runtime_root} 到 {target_dir} 失败: {e}")
                raise MoveError(f"移动 {runtime_root} 到 {target_dir} 失败: {e}") from e

        logger.info(f"跨设备移动，改为复制: {runtime_root} -> {target_dir}")
        try:
            shutil.copytree(runtime_root, target_dir, symlinks=True)
        except (OSError, shutil.Error) as e:
            logger.error(f"复制 {runtime_root} 到 {target_dir} 失败: {e}")
            shutil.rmtree(target_dir, ignore_errors=True)
            raise MoveError(f"复制 {runtime_root} 到 {target_dir} 失败: {e}") from e

    def _cleanup(self, scratch_dir: str, archive_path: str) -> None:
        """删除临时解压目录和下载的压缩包，失败只记录警告。"""
        if os.path.lexists(scratch_dir):
            try:
                shutil.rmtree(scratch_dir)
            except OSError as e:
                logger.warning(f"删除临时目录 {scratch_dir} 失败: {e}")
        try:
            os.remove(archive_path)
        except OSError as e:
            logger.warning(f"删除压缩包 {archive_path} 失败: {e}")
