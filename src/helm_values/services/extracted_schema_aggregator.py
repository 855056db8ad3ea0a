"""Aggregation of schemas extracted from dependency archives.

extract/<alias>/values.schema.json is embedded at
$defs/extracts/<alias>/values.schema.json of the aggregated schema, schemas of
sub-charts being embedded below it ($defs/extracts/<alias>/<sub-alias>/...).
"""

from pathlib import Path

from helm_values.constants import (
    DEFS,
    EXTRACTED_GLOBAL_VALUES_TITLE,
    EXTRACTS,
    GLOBAL,
    HELM_CHART_FILE,
    HELM_SCHEMA_FILE,
    NEW_LINE,
    PROPERTIES,
    REF,
)
from helm_values.models.chart import Chart, ChartDependency
from helm_values.models.ref_mapping import RefMapping
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.import_values import add_import_value_references
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat
from helm_values.services.schema_tree import (
    all_of,
    global_or_none,
    object_node,
    prepare_embedded_schema,
    update_references_for,
)

_EXTRACTS_PREFIX = f"#/{DEFS}/{EXTRACTS}"


class ExtractedSchemaAggregator:
    def __init__(
        self,
        repository_mappings: dict[str, JsonSchemaRepository],
        extracts_dir: Path,
        json_format: JsonFormat = DEFAULT_FORMAT,
    ):
        self._repository_mappings = repository_mappings
        self._extracts_dir = extracts_dir
        self._json_format = json_format

    def aggregate_for(self, chart: Chart, schema: dict) -> None:
        for dependency in chart.dependencies:
            if not self._should_be_aggregated(dependency):
                continue
            dependency_dir = self._extracts_dir / dependency.alias_or_name()
            self._aggregate_for(schema, dependency, dependency_dir, _EXTRACTS_PREFIX, schema)
            if (dependency_dir / HELM_SCHEMA_FILE).is_file():
                schema_path = f"{_EXTRACTS_PREFIX}/{dependency.alias_or_name()}/{HELM_SCHEMA_FILE}"
                add_import_value_references(schema, dependency.import_values, schema_path)

    def _should_be_aggregated(self, dependency: ChartDependency) -> bool:
        return (dependency.version is not None
                and not dependency.is_stored_locally()
                and dependency.repository not in self._repository_mappings)

    def _aggregate_for(self, node: dict, dependency: ChartDependency, dependency_dir: Path,
                       ref_prefix: str, schema: dict) -> None:
        dependency_ref_prefix = f"{ref_prefix}/{dependency.alias_or_name()}"
        dependency_node = object_node(node, PROPERTIES, dependency.alias_or_name())
        if (dependency_dir / HELM_SCHEMA_FILE).is_file():
            dependency_node[REF] = f"{dependency_ref_prefix}/{HELM_SCHEMA_FILE}"
            self._aggregate_extracted_schema(schema, dependency_dir, f"{dependency_ref_prefix}/{HELM_SCHEMA_FILE}")
        for sub_dependency in self._sub_dependencies(dependency_dir):
            self._aggregate_for(dependency_node, sub_dependency, dependency_dir / sub_dependency.name,
                                dependency_ref_prefix, schema)
        if global_or_none(dependency_node) is not None:
            dependency_chain = dependency_ref_prefix.removeprefix(f"{_EXTRACTS_PREFIX}/")
            all_of(object_node(dependency_node, PROPERTIES, GLOBAL)).append({
                "title": f"{EXTRACTED_GLOBAL_VALUES_TITLE} {dependency_chain} dependency",
                "description": NEW_LINE,
            })
        if REF in dependency_node and len(dependency_node) > 1:
            all_of(dependency_node).append({REF: dependency_node.pop(REF)})
        self._add_global_properties_for(node, dependency, dependency_dir, ref_prefix)

    def _add_global_properties_for(self, node: dict, dependency: ChartDependency, dependency_dir: Path,
                                   ref_prefix: str) -> None:
        """Reference global properties of the dependency and its sub-charts in global properties of node."""
        dependency_ref_prefix = f"{ref_prefix}/{dependency.alias_or_name()}"
        schema_file = dependency_dir / HELM_SCHEMA_FILE
        if schema_file.is_file() and global_or_none(self._json_format.read_json_object(schema_file)) is not None:
            all_of(object_node(node, PROPERTIES, GLOBAL)).append(
                {REF: f"{dependency_ref_prefix}/{HELM_SCHEMA_FILE}/{PROPERTIES}/{GLOBAL}"}
            )
        for sub_dependency in self._sub_dependencies(dependency_dir):
            self._add_global_properties_for(node, sub_dependency, dependency_dir / sub_dependency.name,
                                            dependency_ref_prefix)

    def _sub_dependencies(self, dependency_dir: Path) -> list[ChartDependency]:
        chart = self._json_format.load_chart_or_none(dependency_dir / HELM_CHART_FILE)
        if chart is None:
            return []
        return [d for d in chart.dependencies if d.version is not None]

    def _aggregate_extracted_schema(self, schema: dict, schema_dir: Path, schema_path: str) -> None:
        extracted_schema = self._json_format.read_json_object(schema_dir / HELM_SCHEMA_FILE)
        update_references_for(extracted_schema, [RefMapping(base_uri="#", mapped_base_uri=schema_path)])
        segments = schema_path.removeprefix("#/").split("/")
        object_node(schema, *segments).update(prepare_embedded_schema(extracted_schema))
