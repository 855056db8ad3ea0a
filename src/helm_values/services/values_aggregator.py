"""Aggregation of default values of extracted chart dependencies.

The aggregated document mirrors the values.yaml of the chart: one entry per
dependency (alias or name), containing the default values of the dependency and
of its own sub-charts. Values set by a chart override the values of its
sub-charts and its global values are propagated to all its sub-charts, as Helm
does when rendering the chart.
"""

import copy
from pathlib import Path

from helm_values.constants import GLOBAL, HELM_CHART_FILE, HELM_VALUES_FILE
from helm_values.models.chart import Chart, ChartDependency
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat
from helm_values.services.schema_tree import object_node


class ExtractedValuesAggregator:
    def __init__(self, extracts_dir: Path, json_format: JsonFormat = DEFAULT_FORMAT):
        self._extracts_dir = extracts_dir
        self._json_format = json_format

    def aggregate(self, chart: Chart) -> dict:
        values: dict = {}
        for dependency in _embedded(chart.dependencies):
            self._aggregate_for(values, dependency, self._extracts_dir / dependency.alias_or_name())
        return values

    def _aggregate_for(self, node: dict, dependency: ChartDependency, dependency_dir: Path) -> None:
        dependency_node = object_node(node, dependency.alias_or_name())
        sub_dependencies = self._sub_dependencies(dependency_dir)
        for sub_dependency in sub_dependencies:
            self._aggregate_for(dependency_node, sub_dependency, dependency_dir / sub_dependency.name)
        dependency_values = self._json_format.read_yaml_object(dependency_dir / HELM_VALUES_FILE)
        if dependency_values is None:
            return
        global_values = dependency_values.get(GLOBAL)
        if isinstance(global_values, dict):
            for sub_dependency in sub_dependencies:
                self._propagate(dependency_node, sub_dependency, dependency_dir / sub_dependency.name, global_values)
        deep_merge(dependency_node, dependency_values)

    def _propagate(self, node: dict, dependency: ChartDependency, dependency_dir: Path, global_values: dict) -> None:
        dependency_node = object_node(node, dependency.alias_or_name())
        deep_merge(object_node(dependency_node, GLOBAL), global_values)
        for sub_dependency in self._sub_dependencies(dependency_dir):
            self._propagate(dependency_node, sub_dependency, dependency_dir / sub_dependency.name, global_values)

    def _sub_dependencies(self, dependency_dir: Path) -> list[ChartDependency]:
        chart = self._json_format.load_chart_or_none(dependency_dir / HELM_CHART_FILE)
        return _embedded(chart.dependencies) if chart is not None else []


def _embedded(dependencies: list[ChartDependency]) -> list[ChartDependency]:
    return [d for d in dependencies if d.version is not None]


def deep_merge(node: dict, other: dict) -> dict:
    """Merge other into node, values of other winning over values of node.

    Objects are merged key by key, any other value of other replaces the value of node.
    """
    for key, other_value in other.items():
        value = node.get(key)
        if isinstance(value, dict) and isinstance(other_value, dict):
            deep_merge(value, other_value)
        else:
            node[key] = copy.deepcopy(other_value)
    return node
