"""Generation of the JSON schemas published for a chart.

The values schema references the published schemas of the dependencies stored
in mapped JSON schema repositories; references are relative when the
dependency is published in the same repository (or on the same host) as the
chart.
"""

from urllib.parse import urlsplit

import jsonpatch

from helm_values.constants import (
    ADDITIONAL_PROPERTIES,
    GENERATOR_LABEL,
    GLOBAL,
    GLOBAL_VALUES_SCHEMA_FILE,
    ID,
    NEW_LINE,
    PROPERTIES,
    REF,
    SCHEMA,
    SCHEMA_VERSION,
    VALUES_SCHEMA_FILE,
)
from helm_values.models.chart import Chart, ChartDependency
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.json_format import apply_patch
from helm_values.services.schema_tree import all_of, object_node, split_not_blanks


class JsonSchemaGenerator:
    """Generate values and global values schemas of a chart.

    Without publication repository, references to dependencies are kept absolute
    and global values reference the global values schemas of the dependencies
    directly (used as skeleton of aggregated schemas).
    """

    def __init__(self, repository_mappings: dict[str, JsonSchemaRepository],
                 publication_repository: JsonSchemaRepository | None = None):
        self._repository_mappings = repository_mappings
        self._publication_repository = publication_repository

    def generate_values_json_schema(self, chart: Chart, json_patch: jsonpatch.JsonPatch | None = None) -> dict:
        schema = self._schema_for(chart, self._values_schema_file(), "Configuration for chart")
        global_node = object_node(schema, PROPERTIES, GLOBAL)
        if self._publication_repository is not None:
            global_node[REF] = self._publication_repository.global_values_schema_file
        else:
            global_refs = [{REF: ref} for ref in self._dependency_refs(chart, global_values=True)]
            if global_refs:
                all_of(global_node).extend(global_refs)
        global_node[ADDITIONAL_PROPERTIES] = False
        schema[ADDITIONAL_PROPERTIES] = False
        for dependency in chart.dependencies:
            repository = self._mapped_repository(dependency)
            if repository is not None:
                ref = self._to_relative_uri(self._schema_uri(dependency, repository, repository.values_schema_file))
                object_node(schema, PROPERTIES, dependency.alias_or_name())[REF] = ref
            if dependency.condition:
                self._add_condition_properties(schema, dependency)
        return apply_patch(schema, json_patch)

    def generate_global_values_json_schema(self, chart: Chart,
                                           json_patch: jsonpatch.JsonPatch | None = None) -> dict:
        schema = self._schema_for(chart, self._global_values_schema_file(),
                                  "Configuration of global values for chart")
        global_refs = [{REF: self._to_relative_uri(ref)} for ref in self._dependency_refs(chart, global_values=True)]
        if global_refs:
            all_of(schema).extend(global_refs)
        return apply_patch(schema, json_patch)

    def _schema_for(self, chart: Chart, file_name: str, title: str) -> dict:
        if self._publication_repository is not None:
            chart_uri = f"{self._publication_repository.base_uri}/{chart.name}/{chart.version}"
            schema_id, chart_label = f"{chart_uri}/{file_name}", chart_uri
        else:
            schema_id, chart_label = f"{chart.name}/{chart.version}/{file_name}", f"{chart.name}:{chart.version}"
        return {
            SCHEMA: SCHEMA_VERSION,
            ID: schema_id,
            "x-generated-by": GENERATOR_LABEL,
            "title": f"{title} {chart_label}",
            "description": NEW_LINE,
        }

    def _add_condition_properties(self, schema: dict, dependency: ChartDependency) -> None:
        """Document each property of the condition as a boolean enabling the dependency.

        "a.b.enabled,c.enabled" → properties.a.properties.b.properties.enabled
                                  and properties.c.properties.enabled
        """
        condition_schema = {
            "title": f"Enable {dependency.alias_or_name()} dependency ({dependency.full_name()})",
            "description": NEW_LINE,
            "type": "boolean",
        }
        for condition in split_not_blanks(dependency.condition, ","):
            node = schema
            for name in split_not_blanks(condition.strip(), "."):
                node = object_node(node, PROPERTIES, name)
            if REF in node:
                all_of(node).append(dict(condition_schema))
            else:
                node.update(condition_schema)

    def _dependency_refs(self, chart: Chart, global_values: bool) -> list[str]:
        refs = []
        for dependency in chart.dependencies:
            repository = self._mapped_repository(dependency)
            if repository is not None:
                file_name = repository.global_values_schema_file if global_values else repository.values_schema_file
                refs.append(self._schema_uri(dependency, repository, file_name))
        return refs

    def _mapped_repository(self, dependency: ChartDependency) -> JsonSchemaRepository | None:
        if dependency.version is None:
            return None
        return self._repository_mappings.get(dependency.repository)

    @staticmethod
    def _schema_uri(dependency: ChartDependency, repository: JsonSchemaRepository, file_name: str) -> str:
        return f"{repository.base_uri}/{dependency.name}/{dependency.version}/{file_name}"

    def _values_schema_file(self) -> str:
        if self._publication_repository is None:
            return VALUES_SCHEMA_FILE
        return self._publication_repository.values_schema_file

    def _global_values_schema_file(self) -> str:
        if self._publication_repository is None:
            return GLOBAL_VALUES_SCHEMA_FILE
        return self._publication_repository.global_values_schema_file

    def _to_relative_uri(self, uri: str) -> str:
        """Reference to uri from the folder of the published schemas of the chart."""
        if self._publication_repository is None:
            return uri
        target = urlsplit(uri)
        publication = urlsplit(self._publication_repository.base_uri)
        if target.hostname != publication.hostname:
            return uri
        if target.path.startswith(f"{publication.path}/"):
            return target.path.replace(publication.path, "../..", 1)
        return "../.." + "/.." * publication.path.count("/") + target.path
