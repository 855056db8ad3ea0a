from pathlib import Path

import yaml

from helm_values.models.config import HelmValuesConfig
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.exceptions import RepositoryMappingException


def load_config(path: Path | None) -> HelmValuesConfig:
    if path is None:
        return HelmValuesConfig()
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)  # YAML → Python dict
    return HelmValuesConfig.model_validate(raw or {})  # dict → Pydantic model


def publication_repository_for(config: HelmValuesConfig) -> JsonSchemaRepository | None:
    if config.publication_repository is None:
        return None
    repository = config.repository_mappings.get(config.publication_repository)
    if repository is None:
        raise RepositoryMappingException(config.publication_repository)
    return repository
