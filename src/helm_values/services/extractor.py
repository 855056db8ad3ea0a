"""Extraction of chart dependency archives (charts/<name>-<version>.tgz).

Chart.yaml, values.yaml and values.schema.json of a dependency and of its
sub-charts are extracted in extract/<alias-or-name>/, sub-charts being stored
in a folder named after the sub-chart (the "charts/" folders of the archive
are dropped):

    extract
     └── my-dep
          ├── Chart.yaml
          ├── values.yaml
          ├── values.schema.json
          └── sub-chart
               ├── Chart.yaml
               └── values.yaml

A fallback schema describing the error is written for archive-sourced
dependencies whose schema could not be extracted.
"""

import logging
import shutil
import tarfile
import zlib
from pathlib import Path, PurePosixPath

from helm_values.constants import (
    ADDITIONAL_PROPERTIES,
    HELM_CHART_FILE,
    HELM_CHARTS_DIR,
    HELM_SCHEMA_FILE,
    HELM_VALUES_FILE,
    HTML_DESCRIPTION,
    ID,
    NEW_LINE,
    SCHEMA,
    SCHEMA_VERSION,
)
from helm_values.models.chart import Chart, ChartDependency
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat

logger = logging.getLogger(__name__)

_EXTRACTED_FILES = tuple(f"/{name}" for name in (HELM_CHART_FILE, HELM_VALUES_FILE, HELM_SCHEMA_FILE))


class JsonSchemaExtractor:
    def __init__(
        self,
        charts_dir: Path,
        repository_mappings: dict[str, JsonSchemaRepository],
        extracts_dir: Path,
        json_format: JsonFormat = DEFAULT_FORMAT,
    ):
        self._charts_dir = charts_dir
        self._repository_mappings = repository_mappings
        self._extracts_dir = extracts_dir
        self._json_format = json_format

    def extract(self, chart: Chart) -> None:
        """Extract archives of all dependencies of chart with a version."""
        shutil.rmtree(self._extracts_dir, ignore_errors=True)
        self._extracts_dir.mkdir(parents=True, exist_ok=True)
        for dependency in chart.dependencies:
            if dependency.version is not None:
                self._extract_dependency(dependency)

    def _is_archive_sourced(self, dependency: ChartDependency) -> bool:
        return not dependency.is_stored_locally() and dependency.repository not in self._repository_mappings

    def _extract_dependency(self, dependency: ChartDependency) -> None:
        archive_name = f"{dependency.name}-{dependency.version}.tgz"
        archive = self._charts_dir / archive_name
        target_dir = self._extracts_dir / dependency.alias_or_name()
        if not archive.is_file():
            logger.warning("%s:%s: archive not found - skipping dependency.", dependency.name, dependency.version)
            logger.warning("Please run `helm dependency update .` in chart folder to download chart dependencies.")
            if self._is_archive_sourced(dependency):
                self._write_fallback_schema(target_dir, dependency, archive_name, "Archive not found")
            return
        try:
            self._extract_archive(archive, dependency.name, target_dir)
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            logger.warning("%s:%s: archive invalid - skipping dependency.", dependency.name, dependency.version)
            shutil.rmtree(target_dir, ignore_errors=True)
            if self._is_archive_sourced(dependency):
                self._write_fallback_schema(target_dir, dependency, archive_name, f"{type(e).__name__} - {e}")
            return
        if self._is_archive_sourced(dependency):
            self._write_missing_schemas(target_dir, dependency, archive_name)

    def _extract_archive(self, archive: Path, chart_name: str, target_dir: Path) -> None:
        logger.info("Extracting %s in %s", archive.name, target_dir)
        with tarfile.open(archive, mode="r:gz") as tar:
            for member in tar:
                logger.debug("entry %s", member.name)
                if not member.isfile() or not member.name.endswith(_EXTRACTED_FILES):
                    continue
                relative_path = _relative_entry_path(member.name, chart_name)
                if relative_path is None:
                    continue
                target = target_dir / relative_path
                # first entry wins when several entries land on the same file
                if target.exists():
                    continue
                source = tar.extractfile(member)
                if source is None:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(source.read())

    def _write_missing_schemas(self, chart_dir: Path, dependency: ChartDependency, archive_name: str) -> None:
        """Write fallback schemas for the chart in chart_dir and its sub-charts when none was extracted."""
        if not (chart_dir / HELM_SCHEMA_FILE).exists():
            self._write_fallback_schema(chart_dir, dependency, archive_name, f"{HELM_SCHEMA_FILE} not found in archive")
        chart = self._json_format.load_chart_or_none(chart_dir / HELM_CHART_FILE)
        if chart is None:
            return
        for sub_dependency in chart.dependencies:
            if sub_dependency.version is not None:
                self._write_missing_schemas(chart_dir / sub_dependency.name, sub_dependency, archive_name)

    def _write_fallback_schema(self, chart_dir: Path, dependency: ChartDependency, archive_name: str,
                               error_message: str) -> None:
        name, version = dependency.name, dependency.version
        error_label = f"An error occurred during extraction from archive {HELM_CHARTS_DIR}/{archive_name}"
        self._json_format.write_json(chart_dir / HELM_SCHEMA_FILE, {
            SCHEMA: SCHEMA_VERSION,
            ID: f"{name}/{version}/{HELM_SCHEMA_FILE}",
            "title": f"Fallback schema for {name}:{version}",
            "description": f"{NEW_LINE} {error_label}: '{error_message}'",
            HTML_DESCRIPTION: f"<br>{error_label}:<br> <code>{error_message}</code>",
            "type": "object",
            ADDITIONAL_PROPERTIES: False,
        })


def _relative_entry_path(entry_name: str, chart_name: str) -> PurePosixPath | None:
    """Path of an archive entry below the extraction folder of the dependency.

    "my-dep/charts/sub/values.yaml" → "sub/values.yaml"
    """
    parts = PurePosixPath(entry_name.removeprefix(f"{chart_name}/")).parts
    if ".." in parts or not parts or parts[0] == "/":
        return None
    return PurePosixPath(*(part for part in parts if part != HELM_CHARTS_DIR))
