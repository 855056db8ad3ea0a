"""JSON schema repositories.

A JSON schema repository is structured with one folder per chart and one
sub-folder per version:

    repository
     └── my-chart
          └── 0.1.0
               ├── values.schema.json          # schema of values.yaml
               └── global-values.schema.json   # schema of global section in values.yaml

Repositories are referenced in Chart.yaml dependencies through a symbolic key
(e.g. "@apps") mapped to a JsonSchemaRepository in the configuration.
"""

from pydantic import BaseModel, Field, field_validator

from helm_values.constants import GLOBAL_VALUES_SCHEMA_FILE, VALUES_SCHEMA_FILE


class JsonSchemaRepository(BaseModel):
    """Location and credentials of a JSON schema repository.

    base_uri must include protocol and host, may include port and path,
    e.g. http://my.charts.repository:1080 or https://my.charts.repository/apps
    """

    base_uri: str = Field(alias="baseUri")
    username: str | None = None
    password: str | None = None
    values_schema_file: str = Field(default=VALUES_SCHEMA_FILE, alias="valuesSchemaFile")
    global_values_schema_file: str = Field(default=GLOBAL_VALUES_SCHEMA_FILE, alias="globalValuesSchemaFile")

    model_config = {"populate_by_name": True}

    @field_validator("base_uri")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def basic_auth(self) -> tuple[str, str] | None:
        if self.username is None:
            return None
        return self.username, self.password or ""
