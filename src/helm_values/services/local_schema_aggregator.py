"""Aggregation of the schema of the chart and of the schemas of dependencies stored locally."""

import logging
from pathlib import Path

from helm_values.constants import DEFS, GLOBAL, HELM_SCHEMA_FILE, LOCAL, PROPERTIES, REF, VALUES_SCHEMA_FILE
from helm_values.models.chart import Chart, ChartDependency
from helm_values.models.ref_mapping import RefMapping
from helm_values.services.import_values import add_import_value_references
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat
from helm_values.services.schema_locator import SchemaLocator
from helm_values.services.schema_tree import (
    all_of,
    global_or_none,
    object_node,
    prepare_embedded_schema,
    update_references_for,
)

logger = logging.getLogger(__name__)


class LocalSchemaAggregator:
    def __init__(self, chart_dir: Path, schema_locator: SchemaLocator, json_format: JsonFormat = DEFAULT_FORMAT):
        self._chart_dir = chart_dir
        self._schema_locator = schema_locator
        self._json_format = json_format

    def aggregate_for(self, chart: Chart, schema: dict) -> None:
        self._aggregate_current_chart_schema(schema)
        self._aggregate_locally_stored_schemas(chart, schema)

    def _aggregate_current_chart_schema(self, schema: dict) -> None:
        schema_file = self._chart_dir / HELM_SCHEMA_FILE
        if not schema_file.is_file():
            return
        schema_path = f"#/{DEFS}/{LOCAL}/{HELM_SCHEMA_FILE}"
        all_of(schema).append({REF: schema_path})
        self._embed(schema, schema_file, schema_path)

    def _aggregate_locally_stored_schemas(self, chart: Chart, schema: dict) -> None:
        dependencies = [d for d in chart.dependencies if d.is_stored_locally()]
        schema_files = {d.name: self._schema_locator.aggregated_schema_for(d) for d in dependencies}
        # refs to the published schemas of sibling charts
        update_references_for(schema, [
            RefMapping(
                base_uri=f"../../{d.name}/{d.version}/{VALUES_SCHEMA_FILE}",
                mapped_base_uri=self._schema_path(d, schema_files[d.name]),
            )
            for d in dependencies if d.version is not None
        ])
        for dependency in dependencies:
            schema_file = schema_files[dependency.name]
            if not schema_file.is_file():
                logger.warning("Aggregated schema %s of %s not found, please aggregate schemas of %s first.",
                               schema_file, dependency.full_name(), dependency.name)
                continue
            schema_path = self._schema_path(dependency, schema_file)
            embedded_schema = self._embed(schema, schema_file, schema_path)
            object_node(schema, PROPERTIES, dependency.alias_or_name())[REF] = schema_path
            if global_or_none(embedded_schema) is not None:
                all_of(object_node(schema, PROPERTIES, GLOBAL)).append({REF: f"{schema_path}/{PROPERTIES}/{GLOBAL}"})
            add_import_value_references(schema, dependency.import_values, schema_path)

    @staticmethod
    def _schema_path(dependency: ChartDependency, schema_file: Path) -> str:
        return f"#/{DEFS}/{LOCAL}/{dependency.name}/{schema_file.name}"

    def _embed(self, schema: dict, schema_file: Path, schema_path: str) -> dict:
        local_schema = self._json_format.read_json_object(schema_file)
        update_references_for(local_schema, [RefMapping(base_uri="#", mapped_base_uri=schema_path)])
        prepare_embedded_schema(local_schema)
        object_node(schema, *schema_path.removeprefix("#/").split("/")).update(local_schema)
        return local_schema
