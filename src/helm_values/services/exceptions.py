from pathlib import Path


class RepositoryMappingException(Exception):
    def __init__(self, repository_key: str):
        super().__init__(
            f"Publication repository {repository_key} not found in repository mappings. "
            f"Please add it to repositoryMappings of the configuration."
        )
        self.repository_key = repository_key


class PublicationException(Exception):
    """Publication of a schema file failed.

    http_code is 0 when the request could not be sent at all.
    """

    def __init__(self, chart_name: str, chart_version: str, file_name: str, http_code: int):
        super().__init__(
            f"Publication of {chart_name}/{chart_version}/{file_name} failed with HTTP code {http_code}."
        )
        self.chart_name = chart_name
        self.chart_version = chart_version
        self.file_name = file_name
        self.http_code = http_code


class ValuesValidationException(Exception):
    def __init__(self, values_file: Path, errors: list[str]):
        details = "\n".join(f"  - {error}" for error in errors)
        super().__init__(f"Validation of {values_file} failed:\n{details}")
        self.values_file = values_file
        self.errors = errors
