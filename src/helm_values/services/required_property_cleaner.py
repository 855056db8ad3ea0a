"""Relaxation of required properties already set in default values of dependencies.

A property required by the schema of a dependency must not be required in the
aggregated schema of a chart when the dependency provides a default value for it:
validation of an untouched values.yaml would fail otherwise.
"""

from pathlib import Path

from helm_values.constants import REQUIRED
from helm_values.models.chart import Chart
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat
from helm_values.services.schema_tree import (
    all_of_or_none,
    is_internal_reference,
    object_node_or_none,
    props_or_none,
    ref_or_none,
    required_or_none,
    resolve_ref,
)
from helm_values.services.values_aggregator import ExtractedValuesAggregator


class RequiredPropertyCleaner:
    def __init__(self, extracts_dir: Path, json_format: JsonFormat = DEFAULT_FORMAT):
        self._values_aggregator = ExtractedValuesAggregator(extracts_dir, json_format)

    def discard_required_properties_for(self, chart: Chart, schema: dict) -> None:
        values = self._values_aggregator.aggregate(chart)
        _discard_required_properties_set_in(schema, values, schema, set())


def _discard_required_properties_set_in(node: dict, values: dict, schema: dict, visited: set) -> None:
    for item in all_of_or_none(node) or []:
        if isinstance(item, dict):
            _discard_required_properties_set_in(item, values, schema, visited)
    ref = ref_or_none(node)
    if ref is not None:
        # a $ref is only followed once for a given values node (recursive schemas)
        key = (ref, id(values))
        if key in visited or not is_internal_reference(ref):
            return
        visited.add(key)
        target = resolve_ref(schema, ref)
        if isinstance(target, dict):
            _discard_required_properties_set_in(target, values, schema, visited)
        return
    required = required_or_none(node)
    if required is not None:
        node[REQUIRED] = [name for name in required if name not in values]
    properties = props_or_none(node)
    if properties is None:
        return
    for name, value in values.items():
        property_node = object_node_or_none(properties, name)
        if property_node is not None and isinstance(value, dict):
            _discard_required_properties_set_in(property_node, value, schema, visited)
