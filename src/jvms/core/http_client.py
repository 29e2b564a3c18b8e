"""
网络获取模块。

基于 requests 提供文本、JSON 获取和文件流式下载功能，支持全局代理。
"""

import json
import os
from typing import Any, Callable, Optional

import requests

from jvms.core.interfaces import IHttpClient
from jvms.utils.logger import get_logger

logger = get_logger()

CHUNK_SIZE = 8192
REQUEST_TIMEOUT = 30
DOWNLOAD_TIMEOUT = 300
USER_AGENT = "jvms-python"


class NetworkError(Exception):
    """网络错误异常（传输失败或非成功状态码）。"""
    pass


class ParseError(Exception):
    """响应内容解析错误异常。"""
    pass


class DownloadError(NetworkError):
    """下载错误异常。"""
    pass


class HttpClient(IHttpClient):
    """
    网络获取器类。

    所有请求共享同一个 requests.Session；设置的代理对之后的所有请求生效。
    不做自动重试。
    """

    def __init__(
        self,
        proxy: str = "",
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        """
        初始化网络获取器。

        参数:
            proxy: 代理 URL，空字符串表示不使用代理
            timeout: 普通请求超时时间（秒）
            session: 可选的 requests.Session 实例
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT
        self.proxy = ""
        if proxy:
            self.set_proxy(proxy)

    def set_proxy(self, proxy: str) -> None:
        """
        设置全局代理。

        参数:
            proxy: 代理 URL，空字符串表示清除代理
        """
        self.proxy = proxy or ""
        if self.proxy:
            self.session.proxies.update({"http": self.proxy, "https": self.proxy})
            logger.debug(f"已设置代理: {self.proxy}")
        else:
            self.session.proxies.pop("http", None)
            self.session.proxies.pop("https", None)

    def _get(self, url: str, **kwargs: Any) -> requests.Response:
        """
        发送 GET 请求并检查状态码。

        参数:
            url: 请求地址
            **kwargs: 传递给 Session.get 的参数

        返回:
            响应对象

        抛出:
            NetworkError: 传输失败或状态码非 2xx
        """
        kwargs.setdefault("timeout", self.timeout)
        if self.proxy:
            # 请求级代理优先于 HTTP(S)_PROXY 等环境变量
            kwargs.setdefault("proxies", {"http": self.proxy, "https": self.proxy})
        try:
            response = self.session.get(url, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            if e.response is not None:
                e.response.close()
            logger.error(f"请求 {url} 返回状态码 {status}")
            raise NetworkError(f"请求 {url} 失败: HTTP {status}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"请求 {url} 失败: {e}")
            raise NetworkError(f"请求 {url} 失败: {e}") from e
        return response

    def fetch_text(self, url: str) -> str:
        """
        获取文本内容。

        参数:
            url: 请求地址

        返回:
            响应文本
        """
        logger.debug(f"获取文本: {url}")
        return self._get(url).text

    def fetch_json(self, url: str) -> Any:
        """
        获取并解析 JSON 内容。

        参数:
            url: 请求地址

        返回:
            解析后的 JSON 数据

        抛出:
            NetworkError: 请求失败
            ParseError: 响应不是合法 JSON
        """
        text = self.fetch_text(url)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"解析 {url} 的 JSON 失败: {e}")
            raise ParseError(f"{url} 返回的内容不是合法 JSON: {e}") from e

    def download(
        self,
        url: str,
        dest_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> str:
        """
        流式下载文件到指定路径，不支持断点续传。

        下载失败时删除不完整的文件。

        参数:
            url: 下载地址
            dest_path: 目标文件路径
            progress_callback: 下载进度回调函数 (已下载字节数, 总字节数)

        返回:
            目标文件路径

        抛出:
            DownloadError: 传输失败、状态码非 2xx 或写入失败
        """
        logger.info(f"正在从 {url} 下载到 {dest_path}")
        try:
            response = self._get(url, stream=True, timeout=DOWNLOAD_TIMEOUT)
        except NetworkError as e:
            raise DownloadError(str(e)) from e

        total_size = int(response.headers.get("content-length", 0) or 0)
        downloaded = 0
        try:
            with response, open(dest_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        downloaded += len(chunk)
                        if progress_callback:
                            progress_callback(downloaded, total_size)
        except (requests.exceptions.RequestException, OSError) as e:
            logger.error(f"下载 {url} 失败: {e}")
            if os.path.exists(dest_path):
                try:
                    os.remove(dest_path)
                except OSError as cleanup_error:
                    logger.warning(f"删除不完整的下载文件失败: {cleanup_error}")
            raise DownloadError(f"下载 {url} 失败: {e}") from e

        logger.info(f"下载完成: {dest_path} ({downloaded} 字节)")
        return dest_path
