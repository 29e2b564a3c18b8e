"""
远程版本获取模块。

从主 JSON 索引和厂商 API（Adoptium、Azul）获取 JDK 版本列表，
按来源顺序合并为一个版本目录。
"""

import platform
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urlparse

from jvms.core.http_client import HttpClient, NetworkError, ParseError
from jvms.core.interfaces import IRemoteFetcher, IVendorSource
from jvms.utils.logger import get_logger

logger = get_logger()

ADOPTIUM_API = "https://api.adoptium.net/v3"
AZUL_API = "https://api.azul.com/metadata/v1/zulu/packages/"

ARCHIVE_EXTENSIONS = (".tar.gz", ".tgz", ".zip")

_ADOPTIUM_OS_MAP: Dict[str, str] = {
    "Linux": "linux",
    "Darwin": "mac",
    "Windows": "windows",
}

_ADOPTIUM_ARCH_MAP: Dict[str, str] = {
    "x86_64": "x64",
    "AMD64": "x64",
    "x86": "x32",
    "i686": "x32",
    "i386": "x32",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "ARM64": "aarch64",
}

_AZUL_OS_MAP: Dict[str, str] = {
    "Linux": "linux",
    "Darwin": "macos",
    "Windows": "windows",
}

_AZUL_ARCH_MAP: Dict[str, str] = {
    "x64": "x64",
    "x32": "x86",
    "aarch64": "aarch64",
}


def make_entry(version: str, url: str) -> Dict[str, str]:
    """
    构建版本条目。

    参数:
        version: 版本标签
        url: 下载地址

    返回:
        {"version": ..., "url": ...} 字典
    """
    return {"version": version, "url": url}


def strip_archive_extension(file_name: str) -> str:
    """
    去掉压缩包扩展名。

    参数:
        file_name: 文件名

    返回:
        去掉 .zip / .tar.gz / .tgz 后的文件名
    """
    lower = file_name.lower()
    for ext in ARCHIVE_EXTENSIONS:
        if lower.endswith(ext):
            return file_name[:-len(ext)]
    return file_name


def version_label_from_url(url: str) -> str:
    """
    从压缩包 URL 推导可读的版本标签。

    参数:
        url: 压缩包地址

    返回:
        URL 最后一段去掉扩展名后的字符串
    """
    path = urlparse(url).path or url
    file_name = path.rsplit("/", 1)[-1]
    return strip_archive_extension(file_name)


def parse_url_listing(listing: str) -> List[Dict[str, str]]:
    """
    把按行分隔的压缩包 URL 列表转换为版本条目。

    参数:
        listing: 每行一个 URL 的文本

    返回:
        版本条目列表，顺序与输入一致，空行被跳过
    """
    entries = []
    for line in listing.splitlines():
        url = line.strip()
        if not url:
            continue
        entries.append(make_entry(version_label_from_url(url), url))
    return entries


def parse_index(data: Any, source: str = "") -> List[Dict[str, str]]:
    """
    校验并转换主 JSON 索引。

    参数:
        data: 已解析的 JSON 数据
        source: 索引来源（用于错误信息）

    返回:
        版本条目列表

    抛出:
        ParseError: 数据不是 {version, url} 对象数组
    """
    if not isinstance(data, list):
        raise ParseError(f"版本索引 {source} 必须是数组，实际为 {type(data).__name__}")

    entries = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ParseError(f"版本索引 {source} 第 {index} 项不是对象")
        version = item.get("version")
        url = item.get("url")
        if not isinstance(version, str) or not isinstance(url, str):
            raise ParseError(f"版本索引 {source} 第 {index} 项缺少字符串字段 version/url")
        entries.append(make_entry(version, url))
    return entries


def find_version(entries: List[Dict[str, str]], version: str) -> Optional[Dict[str, str]]:
    """
    按合并顺序查找版本，第一个匹配项胜出。

    参数:
        entries: 版本条目列表
        version: 版本标签

    返回:
        匹配的条目，未找到返回 None
    """
    return next((e for e in entries if e["version"] == version), None)


def _current_adoptium_platform() -> tuple[str, str]:
    """获取当前平台对应的 Adoptium 操作系统和架构标识。"""
    os_name = _ADOPTIUM_OS_MAP.get(platform.system(), "linux")
    arch = _ADOPTIUM_ARCH_MAP.get(platform.machine(), "x64")
    return os_name, arch


class AdoptiumSource(IVendorSource):
    """
    Eclipse Adoptium (Temurin) 版本源。

    先查询可用的特性版本，再为每个特性版本取当前平台最新 JDK 压缩包的
    下载地址，得到按行分隔的 URL 列表。
    """

    name = "adoptium"

    def __init__(
        self,
        http_client: HttpClient,
        os_name: Optional[str] = None,
        arch: Optional[str] = None,
        api_url: str = ADOPTIUM_API
    ):
        default_os, default_arch = _current_adoptium_platform()
        self.http_client = http_client
        self.os_name = os_name or default_os
        self.arch = arch or default_arch
        self.api_url = api_url.rstrip("/")

    def _asset_url(self, feature_version: int) -> str:
        query = urlencode({
            "os": self.os_name,
            "architecture": self.arch,
            "image_type": "jdk",
        })
        return f"{self.api_url}/assets/latest/{feature_version}/hotspot?{query}"

    def fetch_listing(self) -> str:
        """
        获取按行分隔的压缩包 URL 列表。

        返回:
            每行一个下载地址的文本，按特性版本降序排列
        """
        info = self.http_client.fetch_json(f"{self.api_url}/info/available_releases")
        if not isinstance(info, dict) or not isinstance(info.get("available_releases"), list):
            raise ParseError("Adoptium available_releases 响应格式无效")

        links = []
        for feature_version in sorted(info["available_releases"], reverse=True):
            try:
                assets = self.http_client.fetch_json(self._asset_url(feature_version))
            except NetworkError as e:
                # 部分旧特性版本没有当前平台的构建
                logger.debug(f"Adoptium 特性版本 {feature_version} 无可用构建: {e}")
                continue
            if not isinstance(assets, list):
                raise ParseError(f"Adoptium 特性版本 {feature_version} 的响应格式无效")
            for asset in assets:
                if not isinstance(asset, dict):
                    continue
                package = (asset.get("binary") or {}).get("package") or {}
                link = package.get("link")
                if link:
                    links.append(link)
        logger.debug(f"Adoptium 返回 {len(links)} 个压缩包")
        return "\n".join(links)

    def list_versions(self) -> List[Dict[str, str]]:
        return parse_url_listing(self.fetch_listing())


class AzulSource(IVendorSource):
    """
    Azul Zulu 版本源。

    元数据 API 直接返回可用的 {short_name, download_url} 记录。
    """

    name = "azul"

    def __init__(
        self,
        http_client: HttpClient,
        os_name: Optional[str] = None,
        arch: Optional[str] = None,
        api_url: str = AZUL_API
    ):
        self.http_client = http_client
        self.os_name = os_name or _AZUL_OS_MAP.get(platform.system(), "linux")
        adoptium_arch = _current_adoptium_platform()[1]
        self.arch = arch or _AZUL_ARCH_MAP.get(adoptium_arch, "x64")
        self.api_url = api_url

    def _packages_url(self) -> str:
        archive_type = "zip" if self.os_name == "windows" else "tar.gz"
        query = urlencode({
            "os": self.os_name,
            "arch": self.arch,
            "archive_type": archive_type,
            "java_package_type": "jdk",
            "javafx_bundled": "false",
            "latest": "true",
            "release_status": "ga",
            "availability_types": "CA",
            "page_size": 1000,
        })
        return f"{self.api_url}?{query}"

    def fetch_records(self) -> List[Dict[str, str]]:
        """
        获取 {short_name, download_url} 记录列表。

        返回:
            记录列表，short_name 为压缩包名去掉扩展名
        """
        packages = self.http_client.fetch_json(self._packages_url())
        if not isinstance(packages, list):
            raise ParseError("Azul 元数据响应格式无效")

        records = []
        for package in packages:
            if not isinstance(package, dict):
                continue
            url = package.get("download_url")
            name = package.get("name") or (version_label_from_url(url) if url else "")
            if not url or not name:
                continue
            records.append({
                "short_name": strip_archive_extension(name),
                "download_url": url,
            })
        logger.debug(f"Azul 返回 {len(records)} 个压缩包")
        return records

    def list_versions(self) -> List[Dict[str, str]]:
        return [make_entry(r["short_name"], r["download_url"]) for r in self.fetch_records()]


class RemoteFetcher(IRemoteFetcher):
    """
    远程版本目录聚合器类。

    按 主索引 -> 厂商源 的顺序合并版本条目，不去重；
    同名版本由调用方按"第一个匹配项"选择。每次调用都重新获取，不缓存。
    实现 IRemoteFetcher 抽象接口。
    """

    def __init__(
        self,
        http_client: HttpClient,
        index_url: str,
        vendor_sources: Optional[List[IVendorSource]] = None,
        strict_vendors: bool = False
    ):
        """
        初始化远程版本目录聚合器。

        参数:
            http_client: 网络获取器实例
            index_url: 主 JSON 索引地址
            vendor_sources: 厂商源列表，默认为 Adoptium、Azul
            strict_vendors: 为 True 时任一厂商源失败即中止整个获取
        """
        self.http_client = http_client
        self.index_url = index_url
        if vendor_sources is None:
            vendor_sources = [AdoptiumSource(http_client), AzulSource(http_client)]
        self.vendor_sources = vendor_sources
        self.strict_vendors = strict_vendors

    def fetch_index(self) -> List[Dict[str, str]]:
        """
        获取主 JSON 索引。

        返回:
            版本条目列表

        抛出:
            NetworkError: 网络请求失败
            ParseError: 索引格式无效
        """
        logger.info(f"获取版本索引: {self.index_url}")
        data = self.http_client.fetch_json(self.index_url)
        return parse_index(data, self.index_url)

    def fetch_catalog(self) -> List[Dict[str, str]]:
        """
        获取合并后的远程版本目录。

        返回:
            版本条目列表，顺序为 主索引、各厂商源 依次拼接

        抛出:
            NetworkError, ParseError: 主索引失败，或严格模式下厂商源失败
        """
        entries = self.fetch_index()
        logger.info(f"主索引返回 {len(entries)} 个版本")

        for source in self.vendor_sources:
            try:
                vendor_entries = source.list_versions()
            except (NetworkError, ParseError) as e:
                if self.strict_vendors:
                    logger.error(f"获取 {source.name} 版本失败: {e}")
                    raise
                logger.warning(f"获取 {source.name} 版本失败，已跳过: {e}")
                continue
            logger.info(f"{source.name} 返回 {len(vendor_entries)} 个版本")
            entries.extend(vendor_entries)

        return entries
