"""Validation of values files against an aggregated JSON schema."""

from pathlib import Path

import jsonschema

from helm_values.services.exceptions import ValuesValidationException
from helm_values.services.json_format import DEFAULT_FORMAT, JsonFormat


def validate_values(values: dict, schema: dict) -> list[str]:
    """Validate values against schema.

    Returns the list of errors (empty when values are valid).
    """
    validator = jsonschema.Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(values), key=lambda e: [str(p) for p in e.absolute_path])
    return [_format_error(e) for e in errors]


def validate_values_file(values_file: Path, schema_file: Path, json_format: JsonFormat = DEFAULT_FORMAT) -> None:
    values = json_format.read_yaml(values_file) or {}
    schema = json_format.read_json(schema_file)
    errors = validate_values(values, schema)
    if errors:
        raise ValuesValidationException(values_file, errors)


def _format_error(error: jsonschema.ValidationError) -> str:
    path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
    return f"{path}: {error.message}"
