"""Rewrite rules for $ref values of JSON schemas."""

from pydantic import BaseModel


class RefMapping(BaseModel):
    """Replace prefix `base_uri` of a $ref by `mapped_base_uri`.

    When the mapped prefix is a JSON pointer in the current document (contains "#")
    and base_uri is not, the fragment separator of the ref is
    dropped so that the fragment is appended to the pointer:

        RefMapping(base_uri="http://repo/chart/0.1.0", mapped_base_uri="#/$defs/chart")
        "http://repo/chart/0.1.0/values.schema.json#/properties/a"
        → "#/$defs/chart/values.schema.json/properties/a"
    """

    base_uri: str
    mapped_base_uri: str

    def matches(self, ref: str) -> bool:
        return ref.startswith(self.base_uri)

    def map(self, ref: str) -> str:
        if "#" in self.mapped_base_uri and "#" not in self.base_uri:
            ref = ref.replace("#", "", 1)
        return ref.replace(self.base_uri, self.mapped_base_uri, 1)
