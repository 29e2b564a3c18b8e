"""
Tests for the remote version catalog: primary index parsing, vendor
sources and merge order.
"""

import pytest

from jvms.core.http_client import NetworkError, ParseError
from jvms.core.remote_fetcher import (
    AdoptiumSource,
    AzulSource,
    RemoteFetcher,
    find_version,
    parse_index,
    parse_url_listing,
    version_label_from_url,
)

from conftest import FakeHttpClient

INDEX_URL = "https://example.com/jdkdlindex.json"
ADOPTIUM = "https://api.adoptium.net/v3"
AZUL = "https://api.azul.com/metadata/v1/zulu/packages/"


class StaticSource:
    """Vendor source returning a fixed list or raising."""

    def __init__(self, name, entries=None, error=None):
        self.name = name
        self.entries = entries or []
        self.error = error
        self.calls = 0

    def list_versions(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.entries)


# ── Labels and parsing ──────────────────────────────────────────────


class TestVersionLabel:
    @pytest.mark.parametrize(
        "url, label",
        [
            ("https://x/OpenJDK21U-jdk_x64_linux_hotspot_21.0.1_12.tar.gz",
             "OpenJDK21U-jdk_x64_linux_hotspot_21.0.1_12"),
            ("https://x/zulu17.44.53-ca-jdk17.0.8.1-win_x64.zip",
             "zulu17.44.53-ca-jdk17.0.8.1-win_x64"),
            ("https://x/a/b/jdk-11.tgz", "jdk-11"),
            ("https://x/a/b/jdk-11.ZIP", "jdk-11"),
            ("https://x/a/b/jdk-11.zip?token=1", "jdk-11"),
        ],
    )
    def test_label_is_basename_without_extension(self, url, label):
        assert version_label_from_url(url) == label

    def test_listing_keeps_order_and_skips_blank_lines(self):
        listing = "https://x/b.zip\n\n  https://x/a.tar.gz  \n"
        entries = parse_url_listing(listing)
        assert entries == [
            {"version": "b", "url": "https://x/b.zip"},
            {"version": "a", "url": "https://x/a.tar.gz"},
        ]


class TestParseIndex:
    def test_valid_index(self):
        data = [{"version": "1.8", "url": "https://x/8.zip", "extra": 1}]
        assert parse_index(data) == [{"version": "1.8", "url": "https://x/8.zip"}]

    def test_empty_index(self):
        assert parse_index([]) == []

    @pytest.mark.parametrize(
        "data",
        [
            {"version": "1.8"},
            ["1.8"],
            [{"version": "1.8"}],
            [{"version": 8, "url": "https://x/8.zip"}],
        ],
    )
    def test_malformed_index_raises(self, data):
        with pytest.raises(ParseError):
            parse_index(data, INDEX_URL)


class TestFindVersion:
    def test_first_match_wins(self):
        entries = [
            {"version": "17", "url": "https://primary/17.zip"},
            {"version": "17", "url": "https://vendor/17.zip"},
        ]
        assert find_version(entries, "17")["url"] == "https://primary/17.zip"

    def test_missing_version(self):
        assert find_version([], "17") is None


# ── Vendor sources ──────────────────────────────────────────────────


class TestAdoptiumSource:
    def test_listing_follows_release_order(self):
        http = FakeHttpClient({
            f"{ADOPTIUM}/info/available_releases": {"available_releases": [17, 21]},
            f"{ADOPTIUM}/assets/latest/21/": [
                {"binary": {"package": {"link": "https://a/OpenJDK21U-jdk.tar.gz"}}},
            ],
            f"{ADOPTIUM}/assets/latest/17/": [
                {"binary": {"package": {"link": "https://a/OpenJDK17U-jdk.tar.gz"}}},
                {"binary": {}},
            ],
        })
        source = AdoptiumSource(http, os_name="linux", arch="x64")

        assert source.fetch_listing() == (
            "https://a/OpenJDK21U-jdk.tar.gz\nhttps://a/OpenJDK17U-jdk.tar.gz"
        )
        assert [e["version"] for e in source.list_versions()] == [
            "OpenJDK21U-jdk", "OpenJDK17U-jdk",
        ]

    def test_asset_query_uses_platform(self):
        http = FakeHttpClient({
            f"{ADOPTIUM}/info/available_releases": {"available_releases": [21]},
            f"{ADOPTIUM}/assets/latest/21/": [],
        })
        AdoptiumSource(http, os_name="mac", arch="aarch64").fetch_listing()
        asset_url = http.requested[-1]
        assert "os=mac" in asset_url
        assert "architecture=aarch64" in asset_url
        assert "image_type=jdk" in asset_url

    def test_feature_without_build_is_skipped(self):
        http = FakeHttpClient({
            f"{ADOPTIUM}/info/available_releases": {"available_releases": [8, 21]},
            f"{ADOPTIUM}/assets/latest/21/": [
                {"binary": {"package": {"link": "https://a/21.zip"}}},
            ],
        })
        entries = AdoptiumSource(http, os_name="windows", arch="x64").list_versions()
        assert entries == [{"version": "21", "url": "https://a/21.zip"}]

    def test_bad_release_info_raises(self):
        http = FakeHttpClient({f"{ADOPTIUM}/info/available_releases": []})
        with pytest.raises(ParseError):
            AdoptiumSource(http, os_name="linux", arch="x64").list_versions()


class TestAzulSource:
    def test_records_from_metadata(self):
        http = FakeHttpClient({
            AZUL: [
                {
                    "name": "zulu21.30.15-ca-jdk21.0.1-linux_x64.tar.gz",
                    "download_url": "https://cdn.azul.com/zulu21.tar.gz",
                },
                {"download_url": "https://cdn.azul.com/zulu17.44-ca-jdk17-linux_x64.tar.gz"},
                {"name": "broken"},
            ],
        })
        source = AzulSource(http, os_name="linux", arch="x64")

        assert source.fetch_records() == [
            {
                "short_name": "zulu21.30.15-ca-jdk21.0.1-linux_x64",
                "download_url": "https://cdn.azul.com/zulu21.tar.gz",
            },
            {
                "short_name": "zulu17.44-ca-jdk17-linux_x64",
                "download_url": "https://cdn.azul.com/zulu17.44-ca-jdk17-linux_x64.tar.gz",
            },
        ]
        assert source.list_versions()[0] == {
            "version": "zulu21.30.15-ca-jdk21.0.1-linux_x64",
            "url": "https://cdn.azul.com/zulu21.tar.gz",
        }

    def test_windows_requests_zip(self):
        http = FakeHttpClient({AZUL: []})
        AzulSource(http, os_name="windows", arch="x64").fetch_records()
        assert "archive_type=zip" in http.requested[-1]

    def test_non_list_response_raises(self):
        http = FakeHttpClient({AZUL: {"error": "bad"}})
        with pytest.raises(ParseError):
            AzulSource(http, os_name="linux", arch="x64").fetch_records()


# ── Merge ───────────────────────────────────────────────────────────


class TestRemoteFetcher:
    def _fetcher(self, index, sources, strict=False):
        http = FakeHttpClient({INDEX_URL: index})
        return RemoteFetcher(http, INDEX_URL, vendor_sources=sources, strict_vendors=strict)

    def test_merge_order_and_length(self):
        index = [
            {"version": "1.8", "url": "https://p/8.zip"},
            {"version": "17", "url": "https://p/17.zip"},
        ]
        adoptium = StaticSource("adoptium", [{"version": "17", "url": "https://a/17.zip"}])
        azul = StaticSource("azul", [{"version": "zulu21", "url": "https://z/21.zip"}])

        catalog = self._fetcher(index, [adoptium, azul]).fetch_catalog()

        assert len(catalog) == 4
        assert [e["url"] for e in catalog] == [
            "https://p/8.zip", "https://p/17.zip", "https://a/17.zip", "https://z/21.zip",
        ]
        assert find_version(catalog, "17")["url"] == "https://p/17.zip"

    def test_empty_index_yields_vendor_entries_only(self):
        azul = StaticSource("azul", [{"version": "zulu21", "url": "https://z/21.zip"}])
        assert self._fetcher([], [azul]).fetch_catalog() == azul.entries

    def test_primary_index_failure_propagates(self):
        source = StaticSource("azul")
        http = FakeHttpClient({INDEX_URL: NetworkError("down")})
        fetcher = RemoteFetcher(http, INDEX_URL, vendor_sources=[source])
        with pytest.raises(NetworkError):
            fetcher.fetch_catalog()
        assert source.calls == 0

    def test_malformed_primary_index_propagates(self):
        with pytest.raises(ParseError):
            self._fetcher({"not": "a list"}, []).fetch_catalog()

    def test_vendor_failure_is_skipped_by_default(self, caplog):
        index = [{"version": "1.8", "url": "https://p/8.zip"}]
        broken = StaticSource("adoptium", error=NetworkError("timeout"))
        azul = StaticSource("azul", [{"version": "zulu21", "url": "https://z/21.zip"}])

        catalog = self._fetcher(index, [broken, azul]).fetch_catalog()

        assert [e["version"] for e in catalog] == ["1.8", "zulu21"]
        assert "adoptium" in caplog.text

    def test_vendor_failure_propagates_in_strict_mode(self):
        broken = StaticSource("azul", error=ParseError("bad json"))
        with pytest.raises(ParseError):
            self._fetcher([], [broken], strict=True).fetch_catalog()

    def test_each_call_refetches(self):
        fetcher = self._fetcher([], [])
        fetcher.fetch_catalog()
        fetcher.fetch_catalog()
        assert fetcher.http_client.requested == [INDEX_URL, INDEX_URL]

    def test_default_sources(self):
        fetcher = RemoteFetcher(FakeHttpClient(), INDEX_URL)
        assert [s.name for s in fetcher.vendor_sources] == ["adoptium", "azul"]
