"""Location of aggregated schemas of dependencies stored locally (repository "file://...")."""

from abc import ABC, abstractmethod
from pathlib import Path

from helm_values.constants import AGGREGATED_SCHEMA_FILE, HELM_VALUES_DIR
from helm_values.models.chart import ChartDependency


class SchemaLocator(ABC):
    @abstractmethod
    def aggregated_schema_for(self, dependency: ChartDependency) -> Path:
        """Aggregated schema file of a dependency stored locally."""


class BuildSchemaLocator(SchemaLocator):
    """Aggregated schemas written in the build folder of each chart.

    chart_dir/<local path>/build/helm-values/aggregated-values.schema.json
    """

    def __init__(self, chart_dir: Path):
        self._chart_dir = chart_dir

    def aggregated_schema_for(self, dependency: ChartDependency) -> Path:
        return self._chart_dir / dependency.local_path() / "build" / HELM_VALUES_DIR / AGGREGATED_SCHEMA_FILE


class SiblingSchemaLocator(SchemaLocator):
    """Aggregated schemas written next to Chart.yaml of each chart."""

    def __init__(self, chart_dir: Path):
        self._chart_dir = chart_dir

    def aggregated_schema_for(self, dependency: ChartDependency) -> Path:
        return self._chart_dir / dependency.local_path() / AGGREGATED_SCHEMA_FILE
