"""Download of JSON schemas of chart dependencies from JSON schema repositories.

Schemas of a dependency are written in downloads/<alias-or-name>/ and every
schema reachable through a $ref is downloaded below the same folder, at the
path of its URI:

    downloads
     └── my-dep
          ├── values.schema.json
          ├── global-values.schema.json
          └── apps/other-chart/0.1.0/values.schema.json

Download failures never stop the pipeline: a fallback schema describing the
error is written instead of the missing schema.
"""

import logging
import os
import posixpath
import shutil
from pathlib import Path
from urllib.parse import urldefrag

import requests

from helm_values.constants import (
    ADDITIONAL_PROPERTIES,
    HTML_DESCRIPTION,
    ID,
    NEW_LINE,
    REF,
    SCHEMA,
    SCHEMA_VERSION,
)
from helm_values.models.chart import Chart, ChartDependency
from helm_values.models.downloaded_schema import DownloadedSchema
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat
from helm_values.services.schema_tree import (
    find_ref_parents,
    is_full_uri,
    is_internal_reference,
    is_simple_file,
    to_uri_from,
    uri_fragment,
    uri_path,
)

logger = logging.getLogger(__name__)


class JsonSchemaDownloader:
    def __init__(
        self,
        repository_mappings: dict[str, JsonSchemaRepository],
        downloads_dir: Path,
        json_format: JsonFormat = DEFAULT_FORMAT,
        session: requests.Session | None = None,
    ):
        self._repository_mappings = repository_mappings
        self._downloads_dir = downloads_dir
        self._json_format = json_format
        self._session = session or requests.Session()

    def download(self, chart: Chart) -> None:
        """Download schemas of all dependencies of chart stored in mapped repositories."""
        shutil.rmtree(self._downloads_dir, ignore_errors=True)
        self._downloads_dir.mkdir(parents=True, exist_ok=True)
        for dependency in chart.dependencies:
            repository = self._repository_mappings.get(dependency.repository)
            if dependency.version is None or repository is None:
                continue
            for file_name in (repository.values_schema_file, repository.global_values_schema_file):
                self._download_dependency_schema(dependency, repository, file_name)

    def _download_dependency_schema(self, dependency: ChartDependency, repository: JsonSchemaRepository,
                                    file_name: str) -> None:
        uri = f"{repository.base_uri}/{dependency.name}/{dependency.version}/{file_name}"
        downloaded = DownloadedSchema(base_folder=self._downloads_dir / dependency.alias_or_name(), path=file_name)
        self._download_schema(dependency.full_name(), uri, downloaded, repository)

    def _download_schema(self, schema_name: str, uri: str, downloaded: DownloadedSchema,
                         repository: JsonSchemaRepository | None) -> None:
        file = downloaded.file()
        if file.exists():
            return
        logger.info("Downloading %s from %s", downloaded, uri)
        content = self._fetch(schema_name, uri, repository)
        file.parent.mkdir(parents=True, exist_ok=True)
        file.write_text(content, encoding="utf-8")
        self._download_schema_references(uri, downloaded)

    def _fetch(self, schema_name: str, uri: str, repository: JsonSchemaRepository | None) -> str:
        auth = repository.basic_auth() if repository is not None else None
        try:
            response = self._session.get(uri, auth=auth)
        except requests.RequestException as e:
            logger.warning("Download of %s failed: %s", uri, e)
            return self._fallback_schema(schema_name, uri, f"{type(e).__name__} - {e}")
        if response.status_code != 200:
            logger.warning("Download of %s failed with HTTP code %s", uri, response.status_code)
            return self._fallback_schema(schema_name, uri, f"HTTP {response.status_code} - {response.reason}")
        return response.text

    def _download_schema_references(self, uri: str, downloaded: DownloadedSchema) -> None:
        schema = self._json_format.read_json_object(downloaded.file())
        rewritten = False
        for parent in find_ref_parents(schema):
            ref = parent[REF]
            if is_internal_reference(ref):
                continue
            try:
                ref_uri = to_uri_from(ref, uri)
                ref_downloaded = self._check_in_downloads_dir(self._downloaded_schema_for(ref, ref_uri, downloaded))
                self._download_schema(uri_path(ref_uri), urldefrag(ref_uri).url, ref_downloaded,
                                      self._repository_for(ref_uri))
                if is_full_uri(ref) or (not downloaded.is_reference and not is_simple_file(ref)):
                    parent[REF] = _relative_ref(downloaded, ref_downloaded, uri_fragment(ref_uri))
                    rewritten = True
            except ValueError as e:
                logger.warning('Failed to download schema for ref "%s": %s', ref, e)
        if rewritten:
            self._json_format.write_json(downloaded.file(), schema)

    @staticmethod
    def _downloaded_schema_for(ref: str, ref_uri: str, downloaded: DownloadedSchema) -> DownloadedSchema:
        """Location of a referenced schema in the downloads folder.

        Schemas referenced by file name only stay next to the referencing schema,
        other schemas are stored at the path of their URI.
        """
        if is_simple_file(ref):
            path = posixpath.join(posixpath.dirname(downloaded.path), posixpath.basename(uri_path(ref_uri)))
            return DownloadedSchema(base_folder=downloaded.base_folder, path=path,
                                    is_reference=downloaded.is_reference)
        return DownloadedSchema(base_folder=downloaded.base_folder, path=uri_path(ref_uri), is_reference=True)

    def _check_in_downloads_dir(self, downloaded: DownloadedSchema) -> DownloadedSchema:
        file = Path(os.path.normpath(downloaded.file()))
        if not file.is_relative_to(os.path.normpath(self._downloads_dir)):
            raise ValueError(f"{file} is outside of downloads folder {self._downloads_dir}")
        return downloaded

    def _repository_for(self, uri: str) -> JsonSchemaRepository | None:
        return next((r for r in self._repository_mappings.values() if uri.startswith(r.base_uri)), None)

    def _fallback_schema(self, schema_name: str, uri: str, error_message: str) -> str:
        error_label = f"An error occurred during download of {uri}:"
        html_label = f"An error occurred during download of <a href='{uri}'>JSON schema for {schema_name}</a>:"
        return self._json_format.dumps({
            SCHEMA: SCHEMA_VERSION,
            ID: uri,
            "type": "object",
            ADDITIONAL_PROPERTIES: False,
            "title": f"Fallback schema for {schema_name}",
            "description": f"{NEW_LINE} {error_label} '{error_message}'",
            HTML_DESCRIPTION: f"<br>{html_label}<br><code>{error_message}</code>",
        })


def _relative_ref(downloaded: DownloadedSchema, ref_downloaded: DownloadedSchema, fragment: str) -> str:
    """Path of ref_downloaded relative to the folder of downloaded, with fragment."""
    start = posixpath.dirname(downloaded.path.lstrip("/")) or "."
    path = posixpath.relpath(ref_downloaded.path.lstrip("/"), start)
    return f"{path}#{fragment}" if fragment else path
