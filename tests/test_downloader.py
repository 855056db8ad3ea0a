"""Tests for the download of dependency schemas from JSON schema repositories.

HTTP calls are served by requests_mock.
"""

import json

import pytest
import requests

from helm_values.models.chart import Chart, ChartDependency
from helm_values.models.downloaded_schema import DownloadedSchema
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.downloader import JsonSchemaDownloader

BASE_URI = "http://localhost:1980/apps"
A_URI = f"{BASE_URI}/a/0.1.0"


@pytest.fixture
def downloads_dir(tmp_path):
    return tmp_path / "downloads"


@pytest.fixture
def downloader(downloads_dir):
    mappings = {"@apps": JsonSchemaRepository(baseUri=BASE_URI, username="user", password="pass")}
    return JsonSchemaDownloader(mappings, downloads_dir)


def _chart(*dependencies: ChartDependency) -> Chart:
    return Chart(name="my-chart", version="0.1.0", dependencies=list(dependencies))


def _read(path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


class TestDownload:
    def test_download_values_and_global_values_schemas(self, downloader, downloads_dir, requests_mock):
        requests_mock.get(f"{A_URI}/values.schema.json", json={"title": "values of a"})
        requests_mock.get(f"{A_URI}/global-values.schema.json", json={"title": "global values of a"})

        downloader.download(_chart(ChartDependency(name="a", version="0.1.0", repository="@apps", alias="alias-a")))

        assert _read(downloads_dir / "alias-a" / "values.schema.json") == {"title": "values of a"}
        assert _read(downloads_dir / "alias-a" / "global-values.schema.json") == {"title": "global values of a"}
        assert requests_mock.last_request.headers["Authorization"].startswith("Basic ")

    def test_download_skips_unmapped_and_unversioned_dependencies(self, downloader, downloads_dir, requests_mock):
        downloader.download(_chart(
            ChartDependency(name="b", version="0.1.0", repository="https://charts.bitnami.com"),
            ChartDependency(name="c", repository="@apps"),
            ChartDependency(name="d", version="0.1.0", repository="file://../d"),
        ))

        assert list(downloads_dir.iterdir()) == []
        assert requests_mock.call_count == 0

    def test_download_wipes_downloads_dir(self, downloader, downloads_dir, requests_mock):
        stale = downloads_dir / "stale" / "values.schema.json"
        stale.parent.mkdir(parents=True)
        stale.write_text("{}")

        downloader.download(_chart())

        assert not stale.exists()
        assert downloads_dir.is_dir()


class TestDownloadReferences:
    def test_download_referenced_schemas(self, downloader, downloads_dir, requests_mock):
        requests_mock.get(f"{A_URI}/values.schema.json", json={
            "properties": {
                "x": {"$ref": "other.schema.json#/$defs/x"},
                "y": {"$ref": "../../b/0.2.0/values.schema.json"},
                "z": {"$ref": "#/$defs/z"},
            },
        })
        requests_mock.get(f"{A_URI}/global-values.schema.json", json={})
        requests_mock.get(f"{A_URI}/other.schema.json", json={"$defs": {"x": {"type": "string"}}})
        requests_mock.get(f"{BASE_URI}/b/0.2.0/values.schema.json", json={
            "properties": {"w": {"$ref": f"{BASE_URI}/c/0.3.0/values.schema.json#/properties/w"}},
        })
        requests_mock.get(f"{BASE_URI}/c/0.3.0/values.schema.json", json={"properties": {"w": {}}})

        downloader.download(_chart(ChartDependency(name="a", version="0.1.0", repository="@apps")))

        values = _read(downloads_dir / "a" / "values.schema.json")
        assert values["properties"]["x"]["$ref"] == "other.schema.json#/$defs/x"
        assert values["properties"]["y"]["$ref"] == "apps/b/0.2.0/values.schema.json"
        assert values["properties"]["z"]["$ref"] == "#/$defs/z"
        assert (downloads_dir / "a" / "other.schema.json").is_file()
        b_values = _read(downloads_dir / "a" / "apps" / "b" / "0.2.0" / "values.schema.json")
        assert b_values["properties"]["w"]["$ref"] == "../../c/0.3.0/values.schema.json#/properties/w"
        assert (downloads_dir / "a" / "apps" / "c" / "0.3.0" / "values.schema.json").is_file()

    def test_referenced_schema_is_downloaded_once(self, downloader, downloads_dir, requests_mock):
        requests_mock.get(f"{A_URI}/values.schema.json", json={
            "properties": {"x": {"$ref": "other.schema.json"}, "y": {"$ref": "other.schema.json#/$defs/y"}},
        })
        requests_mock.get(f"{A_URI}/global-values.schema.json", json={"$ref": "other.schema.json"})
        other = requests_mock.get(f"{A_URI}/other.schema.json", json={})

        downloader.download(_chart(ChartDependency(name="a", version="0.1.0", repository="@apps")))

        assert other.call_count == 1

    def test_invalid_ref_is_skipped(self, downloader, downloads_dir, requests_mock):
        requests_mock.get(f"{A_URI}/values.schema.json", json={"properties": {"x": {"$ref": "other schema.json"}}})
        requests_mock.get(f"{A_URI}/global-values.schema.json", json={})

        downloader.download(_chart(ChartDependency(name="a", version="0.1.0", repository="@apps")))

        assert _read(downloads_dir / "a" / "values.schema.json")["properties"]["x"]["$ref"] == "other schema.json"

    def test_simple_file_ref_with_fragment_stays_in_folder(self, downloader, downloads_dir, requests_mock):
        requests_mock.get(f"{A_URI}/values.schema.json", json={"properties": {"x": {"$ref": "other.json#/$defs/x"}}})
        requests_mock.get(f"{A_URI}/global-values.schema.json", json={})
        requests_mock.get(f"{A_URI}/other.json", json={"$defs": {"x": {}}})

        downloader.download(_chart(ChartDependency(name="a", version="0.1.0", repository="@apps")))

        assert (downloads_dir / "a" / "other.json").is_file()
        assert not (downloads_dir / "a" / "apps").exists()

    def test_full_uri_ref_is_normalized_inside_downloads_dir(self, downloader, downloads_dir, tmp_path, requests_mock):
        requests_mock.get(f"{A_URI}/values.schema.json", json={
            "properties": {"x": {"$ref": "http://localhost:1980/../../../../escaped.json"}},
        })
        requests_mock.get(f"{A_URI}/global-values.schema.json", json={})
        escaped = requests_mock.get("http://localhost:1980/escaped.json", json={"type": "object"})

        downloader.download(_chart(ChartDependency(name="a", version="0.1.0", repository="@apps")))

        assert escaped.call_count == 1
        assert not (tmp_path.parent / "escaped.json").exists()
        assert not (tmp_path / "escaped.json").exists()
        assert _read(downloads_dir / "a" / "escaped.json") == {"type": "object"}
        assert _read(downloads_dir / "a" / "values.schema.json")["properties"]["x"]["$ref"] == "escaped.json"

    def test_schema_outside_downloads_dir_is_rejected(self, downloader, downloads_dir):
        outside = DownloadedSchema(base_folder=downloads_dir / "a", path="../../escaped.json")

        with pytest.raises(ValueError, match="outside of downloads folder"):
            downloader._check_in_downloads_dir(outside)

        inside = DownloadedSchema(base_folder=downloads_dir / "a", path="/apps/b/../c/values.schema.json")
        assert downloader._check_in_downloads_dir(inside) is inside


class TestFallbackSchemas:
    def test_fallback_schema_on_http_error(self, downloader, downloads_dir, requests_mock):
        requests_mock.get(f"{A_URI}/values.schema.json", status_code=404, reason="Not Found")
        requests_mock.get(f"{A_URI}/global-values.schema.json", json={})

        downloader.download(_chart(ChartDependency(name="a", version="0.1.0", repository="@apps")))

        fallback = _read(downloads_dir / "a" / "values.schema.json")
        assert fallback["$id"] == f"{A_URI}/values.schema.json"
        assert fallback["title"] == "Fallback schema for @apps/a:0.1.0"
        assert fallback["additionalProperties"] is False
        assert "HTTP 404 - Not Found" in fallback["description"]

    def test_fallback_schema_on_connection_error(self, downloader, downloads_dir, requests_mock):
        requests_mock.get(f"{A_URI}/values.schema.json", exc=requests.exceptions.ConnectionError("refused"))
        requests_mock.get(f"{A_URI}/global-values.schema.json", json={})

        downloader.download(_chart(ChartDependency(name="a", version="0.1.0", repository="@apps")))

        fallback = _read(downloads_dir / "a" / "values.schema.json")
        assert "ConnectionError - refused" in fallback["description"]
        assert "ConnectionError - refused" in fallback["x-intellij-html-description"]
