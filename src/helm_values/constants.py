"""File names, JSON schema keywords and labels shared by all services."""

SCHEMA_VERSION = "https://json-schema.org/draft/2020-12/schema"
GENERATOR_LABEL = "helm-values 0.1.0"

# JSON string rendered as a blank line by IDEs displaying schema descriptions
NEW_LINE = "\n\\n"

HELM_CHART_FILE = "Chart.yaml"
HELM_CHARTS_DIR = "charts"
HELM_VALUES_FILE = "values.yaml"
HELM_SCHEMA_FILE = "values.schema.json"

VALUES_SCHEMA_FILE = "values.schema.json"
GLOBAL_VALUES_SCHEMA_FILE = "global-values.schema.json"
AGGREGATED_SCHEMA_FILE = "aggregated-values.schema.json"
PATCH_VALUES_SCHEMA_FILE = "values.schema.patch.json"
PATCH_GLOBAL_VALUES_SCHEMA_FILE = "global-values.schema.patch.json"
PATCH_AGGREGATED_SCHEMA_FILE = "aggregated-values.schema.patch.json"

HELM_VALUES_DIR = "helm-values"
CONFIG_FILE = "helm-values.yaml"
DOWNLOADS_DIR = "downloads"
EXTRACT_DIR = "extract"
GENERATION_DIR = "generated"

PROPERTIES = "properties"
GLOBAL = "global"
ALL_OF = "allOf"
REQUIRED = "required"
REF = "$ref"
ID = "$id"
SCHEMA = "$schema"
DEFS = "$defs"
ADDITIONAL_PROPERTIES = "additionalProperties"
UNEVALUATED_PROPERTIES = "unevaluatedProperties"
HTML_DESCRIPTION = "x-intellij-html-description"

# namespaces of embedded schemas in $defs of aggregated schemas
DOWNLOADS = "downloads"
EXTRACTS = "extracts"
LOCAL = "local"

GLOBAL_VALUES_TITLE = "Aggregated global values of chart"
GLOBAL_VALUES_DESCRIPTION = "Global values are shared with all dependencies of the chart"
EXTRACTED_GLOBAL_VALUES_TITLE = "Aggregated global values for"
