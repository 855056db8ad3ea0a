"""Publication of generated schemas to a JSON schema repository."""

import logging
from pathlib import Path

import requests

from helm_values.models.chart import Chart
from helm_values.models.repository import JsonSchemaRepository
from helm_values.services.exceptions import PublicationException

logger = logging.getLogger(__name__)


class JsonSchemaPublisher:
    def __init__(self, session: requests.Session | None = None):
        self._session = session or requests.Session()

    def publish(self, repository: JsonSchemaRepository, chart: Chart, schema_file: Path) -> None:
        """PUT schema_file to {baseUri}/{chart name}/{chart version}/{file name}."""
        uri = f"{repository.base_uri}/{chart.name}/{chart.version}/{schema_file.name}"
        logger.info("Publishing %s to %s", schema_file, uri)
        try:
            response = self._session.put(
                uri,
                data=schema_file.read_bytes(),
                headers={"Content-Type": "application/json"},
                auth=repository.basic_auth(),
            )
        except requests.RequestException as e:
            raise PublicationException(chart.name, chart.version, schema_file.name, 0) from e
        if response.status_code != 201:
            raise PublicationException(chart.name, chart.version, schema_file.name, response.status_code)
