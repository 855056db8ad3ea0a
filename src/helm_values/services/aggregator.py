"""Aggregation of a self-contained JSON schema for the values of a chart.

The aggregated schema embeds in $defs the schemas of all dependencies of the
chart, whatever their source:

    $defs
     ├── downloads   # schemas downloaded from JSON schema repositories
     ├── extracts    # schemas extracted from dependency archives
     └── local       # schema of the chart and of dependencies stored locally

All $ref of the aggregated schema point inside the document itself.
"""

from pathlib import Path

import jsonpatch

from helm_values.constants import (
    ADDITIONAL_PROPERTIES,
    AGGREGATED_SCHEMA_FILE,
    GLOBAL,
    GLOBAL_VALUES_DESCRIPTION,
    GLOBAL_VALUES_TITLE,
    HTML_DESCRIPTION,
    ID,
    NEW_LINE,
    PROPERTIES,
    REF,
    UNEVALUATED_PROPERTIES,
)
from helm_values.models.chart import Chart, ChartDependency
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.downloaded_schema_aggregator import DownloadedSchemaAggregator
from helm_values.services.extracted_schema_aggregator import ExtractedSchemaAggregator
from helm_values.services.generator import JsonSchemaGenerator
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat, apply_patch
from helm_values.services.local_schema_aggregator import LocalSchemaAggregator
from helm_values.services.required_property_cleaner import RequiredPropertyCleaner
from helm_values.services.schema_locator import SchemaLocator
from helm_values.services.schema_tree import all_of, find_ref_parents, object_node, resolve_ref


class JsonSchemaAggregator:
    def __init__(
        self,
        repository_mappings: dict[str, JsonSchemaRepository],
        schema_locator: SchemaLocator,
        chart_dir: Path,
        downloads_dir: Path,
        extracts_dir: Path,
        json_format: JsonFormat = DEFAULT_FORMAT,
    ):
        self._repository_mappings = repository_mappings
        self._generator = JsonSchemaGenerator(repository_mappings)
        self._downloaded_schema_aggregator = DownloadedSchemaAggregator(repository_mappings, downloads_dir, json_format)
        self._extracted_schema_aggregator = ExtractedSchemaAggregator(repository_mappings, extracts_dir, json_format)
        self._local_schema_aggregator = LocalSchemaAggregator(chart_dir, schema_locator, json_format)
        self._required_property_cleaner = RequiredPropertyCleaner(extracts_dir, json_format)

    def aggregate(
        self,
        chart: Chart,
        values_json_patch: jsonpatch.JsonPatch | None = None,
        aggregated_values_json_patch: jsonpatch.JsonPatch | None = None,
    ) -> dict:
        schema = self._generator.generate_values_json_schema(chart, values_json_patch)
        schema[ID] = f"{chart.name}/{chart.version}/{AGGREGATED_SCHEMA_FILE}"
        schema["title"] = f"Configuration for chart {chart.name}:{chart.version}"
        self._downloaded_schema_aggregator.aggregate_for(chart, schema)
        self._extracted_schema_aggregator.aggregate_for(chart, schema)
        self._local_schema_aggregator.aggregate_for(chart, schema)
        remove_invalid_refs(schema)
        self._required_property_cleaner.discard_required_properties_for(chart, schema)
        self._add_global_properties_description_for(chart, schema)
        schema[UNEVALUATED_PROPERTIES] = False
        schema[ADDITIONAL_PROPERTIES] = False
        return apply_patch(schema, aggregated_values_json_patch)

    def _add_global_properties_description_for(self, chart: Chart, schema: dict) -> None:
        global_all_of = all_of(object_node(schema, PROPERTIES, GLOBAL))
        global_all_of[:] = [item for item in global_all_of if not _is_global_values_description(item)]
        dependency_labels = "".join(f"{NEW_LINE}- {d.full_name()}" for d in chart.dependencies)
        html_dependency_labels = "".join(self._html_label_for(d) for d in chart.dependencies)
        global_all_of.append({
            "title": f"{GLOBAL_VALUES_TITLE} {chart.name}:{chart.version}",
            "description": f"{NEW_LINE} {GLOBAL_VALUES_DESCRIPTION}: {dependency_labels}",
            HTML_DESCRIPTION: f"<br>{GLOBAL_VALUES_DESCRIPTION}: <ul>{html_dependency_labels}</ul>",
        })

    def _html_label_for(self, dependency: ChartDependency) -> str:
        repository = self._repository_mappings.get(dependency.repository)
        if repository is None:
            return f"<li>{dependency.full_name()}</li>"
        uri = f"{repository.base_uri}/{dependency.name}/{dependency.version}"
        return f"<li><a href='{uri}'>{dependency.full_name()}</a></li>"


def remove_invalid_refs(schema: dict) -> None:
    """Replace every $ref not resolvable inside schema by a comment."""
    for parent in find_ref_parents(schema):
        ref = parent[REF]
        if resolve_ref(schema, ref) is None:
            parent["_comment"] = f"removed invalid {REF} {ref}"
            del parent[REF]


def _is_global_values_description(item) -> bool:
    return isinstance(item, dict) and str(item.get("title", "")).startswith(GLOBAL_VALUES_TITLE)
