"""Aggregation of schemas downloaded from JSON schema repositories.

downloads/<alias>/values.schema.json is embedded at
$defs/downloads/<alias>/values.schema.json of the aggregated schema, every
downloaded schema it references being embedded next to it at the path of the
file in the downloads folder.
"""

import logging
import os
from pathlib import Path

from helm_values.constants import DEFS, DOWNLOADS, REF
from helm_values.models.chart import Chart, ChartDependency
from helm_values.models.ref_mapping import RefMapping
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.import_values import add_import_value_references
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat
from helm_values.services.schema_tree import (
    escape_pointer_segment,
    find_ref_parents,
    is_full_uri,
    is_internal_reference,
    object_node,
    prepare_embedded_schema,
    resolve_pointer,
    update_references_for,
)

logger = logging.getLogger(__name__)


class DownloadedSchemaAggregator:
    def __init__(
        self,
        repository_mappings: dict[str, JsonSchemaRepository],
        downloads_dir: Path,
        json_format: JsonFormat = DEFAULT_FORMAT,
    ):
        self._repository_mappings = repository_mappings
        self._downloads_dir = Path(os.path.normpath(downloads_dir))
        self._json_format = json_format

    def aggregate_for(self, chart: Chart, schema: dict) -> None:
        dependencies = [d for d in chart.dependencies if self._repository_for(d) is not None]
        update_references_for(schema, [self._ref_mapping_for(d) for d in dependencies])
        visiting: set[str] = set()
        for dependency in dependencies:
            repository = self._repository_for(dependency)
            dependency_dir = self._downloads_dir / dependency.alias_or_name()
            values_path = self._aggregate_downloaded_schema(
                schema, dependency_dir / repository.values_schema_file, visiting)
            self._aggregate_downloaded_schema(schema, dependency_dir / repository.global_values_schema_file, visiting)
            add_import_value_references(schema, dependency.import_values, values_path)

    def _repository_for(self, dependency: ChartDependency) -> JsonSchemaRepository | None:
        if dependency.version is None:
            return None
        return self._repository_mappings.get(dependency.repository)

    def _ref_mapping_for(self, dependency: ChartDependency) -> RefMapping:
        """Map published schemas of the dependency to their embedded copies."""
        repository = self._repository_for(dependency)
        return RefMapping(
            base_uri=f"{repository.base_uri}/{dependency.name}/{dependency.version}/",
            mapped_base_uri=f"#/{DEFS}/{DOWNLOADS}/{escape_pointer_segment(dependency.alias_or_name())}/",
        )

    def _aggregate_downloaded_schema(self, schema: dict, file: Path, visiting: set[str]) -> str:
        """Embed the downloaded schema file and return its JSON pointer in schema."""
        segments = file.relative_to(self._downloads_dir).parts
        schema_path = "/".join(["#", DEFS, DOWNLOADS, *(escape_pointer_segment(s) for s in segments)])
        if resolve_pointer(schema, schema_path.removeprefix("#")) or schema_path in visiting:
            return schema_path
        if not file.is_file():
            logger.warning("Downloaded schema %s not found, please download schemas of dependencies first.", file)
            return schema_path
        visiting.add(schema_path)
        downloaded_schema = self._json_format.read_json_object(file)
        for parent in find_ref_parents(downloaded_schema):
            ref = parent[REF]
            if is_internal_reference(ref):
                parent[REF] = RefMapping(base_uri="#", mapped_base_uri=schema_path).map(ref)
                continue
            ref_file, fragment = self._downloaded_file_for(ref, file)
            if ref_file is None:
                logger.warning('Failed to aggregate schema for ref "%s" of %s', ref, file)
                continue
            parent[REF] = self._aggregate_downloaded_schema(schema, ref_file, visiting) + fragment
        object_node(schema, DEFS, DOWNLOADS, *segments).update(prepare_embedded_schema(downloaded_schema))
        return schema_path

    def _downloaded_file_for(self, ref: str, file: Path) -> tuple[Path | None, str]:
        """Downloaded file targeted by a relative ref of file, with the fragment of the ref."""
        path, _, fragment = ref.partition("#")
        if not path or is_full_uri(ref):
            return None, fragment
        ref_file = Path(os.path.normpath(file.parent / path))
        if not ref_file.is_relative_to(self._downloads_dir):
            return None, fragment
        return ref_file, fragment
