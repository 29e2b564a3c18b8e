"""
Shared test fixtures and configuration.
"""

import io
import json
import os
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# jvms configures its logger on import; keep that out of the real home directory.
SESSION_HOME = tempfile.mkdtemp(prefix="jvms-tests-")
os.environ["JVMS_HOME"] = SESSION_HOME

from jvms.core.http_client import DownloadError, NetworkError
from jvms.utils.logger import setup_logger


def pytest_unconfigure(config):
    shutil.rmtree(SESSION_HOME, ignore_errors=True)


class FakeHttpClient:
    """In-memory stand-in for HttpClient. Nothing touches the network."""

    def __init__(
        self,
        json_responses: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, bytes]] = None,
    ):
        self.json_responses = json_responses or {}
        self.files = files or {}
        self.requested: List[str] = []
        self.downloaded: List[str] = []
        self.proxy = ""

    def set_proxy(self, proxy: str) -> None:
        self.proxy = proxy

    def fetch_json(self, url: str) -> Any:
        self.requested.append(url)
        for prefix, response in self.json_responses.items():
            if url.startswith(prefix):
                if isinstance(response, Exception):
                    raise response
                return response
        raise NetworkError(f"no fake response for {url}")

    def fetch_text(self, url: str) -> str:
        return json.dumps(self.fetch_json(url))

    def download(
        self,
        url: str,
        dest_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> str:
        self.downloaded.append(url)
        if url not in self.files:
            raise DownloadError(f"no fake file for {url}")
        data = self.files[url]
        with open(dest_path, "wb") as f:
            f.write(data)
        if progress_callback:
            progress_callback(len(data), len(data))
        return dest_path


class FakeEnvManager:
    """Records environment changes instead of persisting them."""

    def __init__(self, fail_on: Optional[Exception] = None):
        self.values: Dict[str, str] = {}
        self.path_entries: List[str] = []
        self.fail_on = fail_on

    def get_env_var(self, name: str) -> Optional[str]:
        return self.values.get(name)

    def set_env_var(self, name: str, value: str) -> None:
        if self.fail_on is not None:
            raise self.fail_on
        self.values[name] = value

    def add_to_path(self, entry: str) -> None:
        if entry not in self.path_entries:
            self.path_entries.insert(0, entry)


def build_zip(members: Dict[str, bytes], executables: tuple = ()) -> bytes:
    """Build a zip archive in memory. Directory members end with '/'."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in members.items():
            info = zipfile.ZipInfo(name)
            mode = 0o755 if name in executables or name.endswith("/") else 0o644
            info.external_attr = mode << 16
            zf.writestr(info, data)
    return buffer.getvalue()


def build_tar_gz(members: Dict[str, bytes]) -> bytes:
    """Build a gzipped tarball in memory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def jdk_zip(root: str = "jdk-21.0.1+12") -> bytes:
    """A minimal JDK layout: <root>/bin/javac plus a release file."""
    return build_zip(
        {
            f"{root}/": b"",
            f"{root}/bin/": b"",
            f"{root}/bin/javac": b"#!/bin/sh\n",
            f"{root}/release": b'JAVA_VERSION="21.0.1"\n',
        },
        executables=(f"{root}/bin/javac",),
    )


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep JVMS_HOME and JAVA_HOME changes inside each test."""
    monkeypatch.setenv("JVMS_HOME", str(tmp_path / "app"))
    monkeypatch.setenv("JAVA_HOME", os.environ.get("JAVA_HOME", ""))
    monkeypatch.setenv("PATH", os.environ.get("PATH", ""))
    setup_logger(log_to_file=False, force=True)


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """Return a temporary application directory."""
    path = tmp_path / "app"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    """Return an empty version store root."""
    path = tmp_path / "store"
    path.mkdir()
    return path


@pytest.fixture
def fake_http() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def fake_env() -> FakeEnvManager:
    return FakeEnvManager()


def install_fake_version(store_dir: Path, version: str) -> Path:
    """Create <store>/<version>/bin/javac as if it were installed."""
    bin_dir = store_dir / version / "bin"
    bin_dir.mkdir(parents=True)
    (bin_dir / "javac").write_text("#!/bin/sh\n")
    return store_dir / version
