"""
Tests for the command-line interface.
"""

import json
import os

import pytest

from jvms import __version__
from jvms.cli import COMMAND_HANDLERS, create_parser, run_cli
from jvms.core.config_manager import ConfigManager
from jvms.core.http_client import NetworkError
from jvms.core.remote_fetcher import RemoteFetcher
from jvms.core.version_manager import VersionManager
from jvms.main import main

from conftest import FakeHttpClient, install_fake_version, jdk_zip

INDEX_URL = "https://example.com/jdkdlindex.json"
JDK_URL = "https://example.com/jdk-17.zip"


@pytest.fixture
def config_manager(app_dir, tmp_path):
    (app_dir / "config").mkdir(parents=True, exist_ok=True)
    (app_dir / "config" / "jvms.json").write_text(json.dumps({
        "java_home": str(tmp_path / "links" / "jdk"),
        "current_jdk_version": "",
        "original_path": INDEX_URL,
        "proxy": "",
    }), encoding="utf-8")
    return ConfigManager(app_dir)


@pytest.fixture
def http():
    index = [{"version": f"{n}", "url": f"https://example.com/jdk-{n}.zip"} for n in range(8, 23)]
    index.insert(0, {"version": "17", "url": JDK_URL})
    return FakeHttpClient({INDEX_URL: index}, files={JDK_URL: jdk_zip("jdk-17")})


@pytest.fixture
def fake_managers(monkeypatch, http, fake_env):
    """Route the CLI to a VersionManager backed by fakes."""

    def build(config_manager):
        fetcher = RemoteFetcher(http, config_manager.get_original_path(), vendor_sources=[])
        return VersionManager(config_manager, fake_env, http_client=http, remote_fetcher=fetcher)

    monkeypatch.setattr("jvms.cli._get_managers", build)
    return build


def run(argv, config_manager):
    return run_cli(create_parser().parse_args(argv), config_manager)


def saved_config(config_manager):
    return json.loads(config_manager.config_file.read_text(encoding="utf-8"))


class TestParser:
    def test_aliases(self):
        parser = create_parser()
        assert parser.parse_args(["ls"]).command == "ls"
        assert parser.parse_args(["i", "17"]).version == "17"
        assert parser.parse_args(["rm", "17"]).command == "rm"

    def test_every_command_has_a_handler(self):
        assert set(COMMAND_HANDLERS) == {
            "init", "list", "install", "switch", "remove", "rls", "proxy",
        }

    def test_version_flag(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_proxy_flags_are_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["proxy", "--show", "--set", "http://x:1"])

    def test_main_without_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "jvms" in capsys.readouterr().out


@pytest.mark.skipif(os.name == "nt", reason="uses POSIX symlinks")
@pytest.mark.usefixtures("fake_managers")
class TestCommands:
    def test_install_switch_list(self, config_manager, capsys, tmp_path):
        assert run(["install", "17"], config_manager) == 0
        assert run(["switch", "17"], config_manager) == 0
        assert run(["list"], config_manager) == 0

        out = capsys.readouterr().out
        assert "安装完成" in out
        assert "* 1) 17" in out
        assert saved_config(config_manager)["current_jdk_version"] == "17"
        assert os.path.islink(str(tmp_path / "links" / "jdk"))

    def test_install_twice_reports_installed(self, config_manager, capsys, http):
        install_fake_version(config_manager.app_dir / "store", "17")
        assert run(["i", "17"], config_manager) == 0
        assert "已安装" in capsys.readouterr().out
        assert http.requested == []

    def test_install_unknown_version(self, config_manager, capsys):
        assert run(["install", "99"], config_manager) == 1
        assert "错误" in capsys.readouterr().out

    def test_switch_missing_version_fails_without_saving(self, config_manager, capsys):
        before = config_manager.config_file.read_text(encoding="utf-8")
        assert run(["s", "11"], config_manager) == 1
        assert "jvms list" in capsys.readouterr().out
        assert config_manager.config_file.read_text(encoding="utf-8") == before

    def test_remove_active_version(self, config_manager, tmp_path):
        install_fake_version(config_manager.app_dir / "store", "17")
        assert run(["switch", "17"], config_manager) == 0
        assert run(["rm", "17"], config_manager) == 0

        assert not os.path.lexists(str(tmp_path / "links" / "jdk"))
        assert saved_config(config_manager)["current_jdk_version"] == ""

    def test_remove_missing_version(self, config_manager):
        assert run(["remove", "17"], config_manager) == 1

    def test_list_reports_stale_label(self, config_manager, capsys):
        install_fake_version(config_manager.app_dir / "store", "17")
        config_manager.load_config()
        config_manager.set_current_version_label("17")
        config_manager.save_config()

        assert run(["ls"], config_manager) == 0
        out = capsys.readouterr().out
        assert "  1) 17" in out
        assert "不一致" in out

    def test_list_hints_when_nothing_is_active(self, config_manager, capsys):
        install_fake_version(config_manager.app_dir / "store", "17")
        assert run(["list"], config_manager) == 0
        assert "jvms switch" in capsys.readouterr().out

        assert run(["switch", "17"], config_manager) == 0
        capsys.readouterr()
        assert run(["list"], config_manager) == 0
        assert "没有正在使用" not in capsys.readouterr().out

    def test_rls_is_limited_by_default(self, config_manager, capsys):
        assert run(["rls"], config_manager) == 0
        out = capsys.readouterr().out
        assert "10) " in out
        assert "11) " not in out
        assert "jvms rls -a" in out
        assert INDEX_URL in out

    def test_rls_all(self, config_manager, capsys):
        assert run(["rls", "-a"], config_manager) == 0
        assert "16) 22" in capsys.readouterr().out

    def test_rls_network_failure(self, config_manager, capsys, http):
        http.json_responses[INDEX_URL] = NetworkError("offline")
        assert run(["rls"], config_manager) == 1
        assert "offline" in capsys.readouterr().out

    def test_proxy_set_and_show(self, config_manager, capsys):
        assert run(["proxy", "--set", "http://127.0.0.1:7890"], config_manager) == 0
        assert saved_config(config_manager)["proxy"] == "http://127.0.0.1:7890"

        assert run(["proxy"], config_manager) == 0
        assert "http://127.0.0.1:7890" in capsys.readouterr().out

    def test_invalid_proxy(self, config_manager):
        assert run(["proxy", "--set", "nonsense"], config_manager) == 1
        assert saved_config(config_manager)["proxy"] == ""

    def test_init(self, config_manager, fake_env, tmp_path, capsys):
        java_home = str(tmp_path / "other" / "jdk")
        assert run(["init", "--java_home", java_home], config_manager) == 0

        assert fake_env.values["JAVA_HOME"] == java_home
        assert fake_env.path_entries == [os.path.join(java_home, "bin")]
        assert saved_config(config_manager)["java_home"] == java_home

    def test_corrupt_config(self, config_manager, capsys):
        config_manager.config_file.write_text("{oops", encoding="utf-8")
        assert run(["list"], config_manager) == 1
        assert config_manager.config_file.read_text(encoding="utf-8") == "{oops"
