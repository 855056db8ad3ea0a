"""Navigation and mutation helpers for JSON schemas loaded as plain dicts.

Every aggregation step works on the same mutable tree (dicts keep insertion
order), using object_node() to reach or create the node it fills.
"""

import posixpath
import re
from urllib.parse import unquote, urlsplit, urlunsplit

import jsonpointer

from helm_values.constants import (
    ADDITIONAL_PROPERTIES,
    ALL_OF,
    GLOBAL,
    ID,
    PROPERTIES,
    REF,
    REQUIRED,
    SCHEMA,
    UNEVALUATED_PROPERTIES,
)
from helm_values.models.ref_mapping import RefMapping

FULL_URI_REGEX = re.compile(r"https?://.*")
URI_FILENAME_REGEX = re.compile(r"[^/]+(#.*)?$")
_ILLEGAL_URI_CHARS = set(' "<>\\^`{|}')


def object_node(node: dict, *path: str) -> dict:
    """Return the object at path below node, creating missing objects on the way."""
    for name in path:
        child = node.get(name)
        if not isinstance(child, dict):
            child = {}
            node[name] = child
        node = child
    return node


def object_node_or_none(node: dict, name: str) -> dict | None:
    child = node.get(name)
    return child if isinstance(child, dict) else None


def props_or_none(node: dict) -> dict | None:
    return object_node_or_none(node, PROPERTIES)


def global_or_none(node: dict) -> dict | None:
    properties = props_or_none(node)
    return object_node_or_none(properties, GLOBAL) if properties is not None else None


def all_of(node: dict) -> list:
    items = node.get(ALL_OF)
    if not isinstance(items, list):
        items = []
        node[ALL_OF] = items
    return items


def all_of_or_none(node: dict) -> list | None:
    items = node.get(ALL_OF)
    return items if isinstance(items, list) else None


def required_or_none(node: dict) -> list | None:
    items = node.get(REQUIRED)
    return items if isinstance(items, list) else None


def ref_or_none(node: dict) -> str | None:
    ref = node.get(REF)
    return ref if isinstance(ref, str) else None


def find_ref_parents(node) -> list[dict]:
    """Collect every object of the tree holding a textual $ref.

    Collection is done before any rewrite so that callers can mutate the
    returned objects freely.
    """
    found = []
    _collect_ref_parents(node, found)
    return found


def _collect_ref_parents(node, found: list[dict]) -> None:
    if isinstance(node, dict):
        if isinstance(node.get(REF), str):
            found.append(node)
        for value in node.values():
            _collect_ref_parents(value, found)
    elif isinstance(node, list):
        for item in node:
            _collect_ref_parents(item, found)


def update_references_for(schema: dict, mappings: list[RefMapping]) -> None:
    """Rewrite every $ref of schema with the first matching mapping."""
    for parent in find_ref_parents(schema):
        ref = parent[REF]
        mapping = next((m for m in mappings if m.matches(ref)), None)
        if mapping is not None:
            parent[REF] = mapping.map(ref)


def is_internal_reference(ref: str) -> bool:
    return ref.startswith("#")


def is_full_uri(ref: str) -> bool:
    return FULL_URI_REGEX.fullmatch(ref) is not None


def is_simple_file(ref: str) -> bool:
    """True when ref targets a file of the same folder (fragment ignored)."""
    return "/" not in ref.partition("#")[0]


def to_uri_from(ref: str, uri: str) -> str:
    """Resolve ref against the URI of the schema containing it.

    Full URIs are only normalized, other refs replace the file name of uri.
    Raises ValueError when the resulting URI is not valid.
    """
    if is_full_uri(ref):
        return normalize_uri(check_uri(ref))
    return normalize_uri(check_uri(URI_FILENAME_REGEX.sub(lambda _: ref, uri, count=1)))


def check_uri(uri: str) -> str:
    illegal = sorted(_ILLEGAL_URI_CHARS.intersection(uri))
    if illegal:
        raise ValueError(f"Illegal character {illegal[0]!r} in URI: {uri}")
    return uri


def normalize_uri(uri: str) -> str:
    """Remove "." and ".." segments from the path of uri."""
    parts = urlsplit(uri)
    if not parts.path:
        return uri
    path = posixpath.normpath(parts.path)
    if parts.path.endswith("/") and not path.endswith("/"):
        path += "/"
    if not parts.path.startswith("/"):
        path = path.lstrip("/")
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def uri_path(uri: str) -> str:
    return urlsplit(uri).path


def uri_fragment(uri: str) -> str:
    return urlsplit(uri).fragment


def split_not_blanks(text: str, separator: str) -> list[str]:
    return [part for part in text.split(separator) if part.strip()]


def resolve_pointer(document: dict, pointer: str):
    """Node of document at JSON pointer, None when the pointer does not resolve."""
    try:
        return jsonpointer.resolve_pointer(document, pointer)
    except jsonpointer.JsonPointerException:
        return None


def resolve_ref(document: dict, ref: str):
    """Node of document targeted by an internal $ref, None when the ref does not resolve."""
    return resolve_pointer(document, unquote(ref.removeprefix("#")))


def remove_additional_and_unevaluated_properties(schema: dict) -> None:
    schema.pop(ADDITIONAL_PROPERTIES, None)
    schema.pop(UNEVALUATED_PROPERTIES, None)
    global_node = global_or_none(schema)
    if global_node is not None:
        global_node.pop(ADDITIONAL_PROPERTIES, None)
        global_node.pop(UNEVALUATED_PROPERTIES, None)


def prepare_embedded_schema(schema: dict) -> dict:
    """Turn a standalone schema into a sub-schema of an aggregated schema.

    $id and $schema are dropped: JSON pointers of the aggregated schema must
    resolve against the root of the aggregated schema.
    """
    schema.pop(ID, None)
    schema.pop(SCHEMA, None)
    remove_additional_and_unevaluated_properties(schema)
    return schema


def escape_pointer_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")
