from helm_values.constants import PROPERTIES, REF
from helm_values.models.chart import ChartDependencyImport
from helm_values.services.schema_tree import all_of, object_node, split_not_blanks


def add_import_value_references(schema: dict, import_values: list[ChartDependencyImport], schema_path: str) -> None:
    """Reference the imported sub-schemas of a dependency at their parent path.

    schema_path is the JSON pointer (with leading "#") of the dependency schema
    embedded in schema.
    """
    for import_value in import_values:
        import_path = schema_path + "".join(
            f"/{PROPERTIES}/{name}" for name in split_not_blanks(import_value.child, ".")
        )
        node = schema
        for name in split_not_blanks(import_value.parent, "."):
            node = object_node(node, PROPERTIES, name)
        if not node:
            node[REF] = import_path
        else:
            all_of(node).append({REF: import_path})
