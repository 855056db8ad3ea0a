"""Models for Chart.yaml manifests.

Only the fields needed to resolve dependency schemas are described here,
other fields of the manifest (description, appVersion, maintainers...) are
ignored by pydantic.

Example of Chart.yaml:
    apiVersion: v2
    name: my-chart
    version: 0.1.0
    dependencies:
      - name: my-dependency
        version: 1.2.0
        repository: "@apps"
        alias: dep
        condition: dep.enabled
        import-values:
          - data
          - child: exports.config
            parent: config
"""

from typing import Any

from pydantic import BaseModel, Field, model_validator

LOCAL_PATH_PREFIX = "file://"


class ChartDependencyImport(BaseModel):
    """One entry of `import-values`.

    A bare string `x` is a shortcut for `child: exports.x` / `parent: x`.
    """

    child: str
    parent: str

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"child": f"exports.{data}", "parent": data}
        return data


class ChartDependency(BaseModel):
    name: str
    version: str | None = None
    repository: str | None = None
    alias: str | None = None
    condition: str | None = None
    import_values: list[ChartDependencyImport] = Field(default_factory=list, alias="import-values")

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}

    def alias_or_name(self) -> str:
        return self.alias or self.name

    def is_stored_locally(self) -> bool:
        return self.repository is not None and self.repository.startswith(LOCAL_PATH_PREFIX)

    def local_path(self) -> str | None:
        if not self.is_stored_locally():
            return None
        return self.repository.removeprefix(LOCAL_PATH_PREFIX)

    def full_name(self) -> str:
        """Human readable coordinates: `repository/name:version`.

        Repository is omitted for dependencies stored locally.
        """
        version = f":{self.version}" if self.version else ""
        if self.is_stored_locally() or not self.repository:
            return f"{self.name}{version}"
        return f"{self.repository}/{self.name}{version}"


class Chart(BaseModel):
    api_version: str = Field(default="v2", alias="apiVersion")
    name: str
    version: str
    dependencies: list[ChartDependency] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}
