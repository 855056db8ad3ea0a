"""Model of the YAML configuration passed through --config.

Example:
    repositoryMappings:
      "@apps":
        baseUri: https://charts.example.com/apps
        username: user
        password: secret
    publicationRepository: "@apps"
    publishedVersion: 0.2.0
"""

from pydantic import BaseModel, Field

from helm_values.models.repository import JsonSchemaRepository


class HelmValuesConfig(BaseModel):
    # keys are the repository keys used in Chart.yaml dependencies
    repository_mappings: dict[str, JsonSchemaRepository] = Field(default_factory=dict, alias="repositoryMappings")
    publication_repository: str | None = Field(default=None, alias="publicationRepository")
    published_version: str | None = Field(default=None, alias="publishedVersion")

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}
