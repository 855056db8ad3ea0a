"""Reading and writing of the JSON/YAML documents handled by helm-values.

A single JsonFormat is created for the process (DEFAULT_FORMAT) and handed to
each service constructor.
"""

import json
import logging
from pathlib import Path

import jsonpatch
import yaml
from pydantic import BaseModel, ValidationError

from helm_values.models.chart import Chart

logger = logging.getLogger(__name__)


class JsonFormat(BaseModel):
    indent: int = 2
    ensure_ascii: bool = False

    model_config = {"frozen": True}

    def dumps(self, document) -> str:
        return json.dumps(document, indent=self.indent, ensure_ascii=self.ensure_ascii)

    def write_json(self, path: Path, document) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=self.indent, ensure_ascii=self.ensure_ascii)

    def read_json(self, path: Path):
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def read_json_object(self, path: Path) -> dict:
        """JSON object stored in path, empty object when missing or unreadable."""
        try:
            document = self.read_json(path)
        except (OSError, ValueError):
            return {}
        return document if isinstance(document, dict) else {}

    def read_yaml(self, path: Path):
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)

    def read_yaml_object(self, path: Path) -> dict | None:
        """YAML mapping stored in path, None when missing, malformed or not a mapping."""
        if not path.is_file():
            return None
        try:
            document = self.read_yaml(path)
        except yaml.YAMLError as e:
            logger.warning("Ignoring invalid YAML file %s: %s", path, e)
            return None
        return document if isinstance(document, dict) else None

    def load_chart(self, path: Path) -> Chart:
        raw = self.read_yaml(path)  # YAML → dict
        return Chart.model_validate(raw)  # dict → Chart

    def load_chart_or_none(self, path: Path) -> Chart | None:
        """Chart stored in path, None when missing or malformed."""
        if not path.is_file():
            return None
        try:
            return self.load_chart(path)
        except (yaml.YAMLError, ValidationError) as e:
            logger.warning("Ignoring invalid chart %s: %s", path, e)
            return None

    def load_patch(self, path: Path | None) -> jsonpatch.JsonPatch | None:
        """RFC 6902 patch stored in a JSON or YAML file, None when there is no file."""
        if path is None or not path.is_file():
            return None
        if path.suffix in (".yaml", ".yml"):
            return jsonpatch.JsonPatch(self.read_yaml(path) or [])
        return jsonpatch.JsonPatch(self.read_json(path))


DEFAULT_FORMAT = JsonFormat()


def apply_patch(schema: dict, patch: jsonpatch.JsonPatch | None) -> dict:
    if patch is None:
        return schema
    return patch.apply(schema)
