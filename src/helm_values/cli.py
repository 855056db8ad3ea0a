import logging
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from helm_values.constants import (
    AGGREGATED_SCHEMA_FILE,
    CONFIG_FILE,
    DOWNLOADS_DIR,
    EXTRACT_DIR,
    GENERATION_DIR,
    GLOBAL_VALUES_SCHEMA_FILE,
    HELM_CHART_FILE,
    HELM_CHARTS_DIR,
    HELM_VALUES_DIR,
    HELM_VALUES_FILE,
    PATCH_AGGREGATED_SCHEMA_FILE,
    PATCH_GLOBAL_VALUES_SCHEMA_FILE,
    PATCH_VALUES_SCHEMA_FILE,
    VALUES_SCHEMA_FILE,
)
from helm_values.models.chart import Chart
from helm_values.models.config import HelmValuesConfig
from helm_values.services.aggregator import JsonSchemaAggregator
from helm_values.services.config_loader import load_config, publication_repository_for
from helm_values.services.downloader import JsonSchemaDownloader
from helm_values.services.exceptions import ValuesValidationException
from helm_values.services.extractor import JsonSchemaExtractor
from helm_values.services.generator import JsonSchemaGenerator
from helm_values.services.json_format import DEFAULT_FORMAT
from helm_values.services.publisher import JsonSchemaPublisher
from helm_values.services.schema_locator import BuildSchemaLocator, SiblingSchemaLocator
from helm_values.services.validator import validate_values_file

_LOCATORS = {"build": BuildSchemaLocator, "sibling": SiblingSchemaLocator}


class AliasedGroup(click.Group):
    _aliases = {"d": "download", "x": "extract", "gen": "generate", "agg": "aggregate", "pub": "publish",
                "v": "validate"}

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, self._aliases.get(cmd_name, cmd_name))


@click.group(cls=AliasedGroup)
@click.option("--verbose", is_flag=True, default=False, help="Log debug messages")
def cli(verbose):
    """JSON schemas of Helm chart values."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _chart_options(command):
    command = click.option("--build-dir", "-b", default=None, type=click.Path(path_type=Path),
                           help="Build directory [default: <chart-dir>/build/helm-values]")(command)
    command = click.option("--config", "-c", default=None, type=click.Path(exists=True, path_type=Path),
                           help="Path to YAML configuration file [default: <chart-dir>/helm-values.yaml if present]",
                           )(command)
    command = click.option("--chart-dir", "-d", default=Path("."),
                           type=click.Path(exists=True, file_okay=False, path_type=Path),
                           help="Chart directory containing Chart.yaml")(command)
    return command


@cli.command()
@_chart_options
def download(chart_dir, config, build_dir):
    """Download JSON schemas of dependencies stored in JSON schema repositories."""
    try:
        helm_values_config = _load_config(config, chart_dir)
        chart = _load_chart(chart_dir)
        downloads_dir = _build_dir(chart_dir, build_dir) / DOWNLOADS_DIR
        _download(helm_values_config, chart, downloads_dir)
        click.echo(f"Schemas downloaded to {downloads_dir}")

    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))


@cli.command()
@_chart_options
def extract(chart_dir, config, build_dir):
    """Extract JSON schemas and default values from dependency archives."""
    try:
        helm_values_config = _load_config(config, chart_dir)
        chart = _load_chart(chart_dir)
        extracts_dir = _build_dir(chart_dir, build_dir) / EXTRACT_DIR
        _extract(helm_values_config, chart, chart_dir, extracts_dir)
        click.echo(f"Schemas extracted to {extracts_dir}")

    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))


@cli.command()
@_chart_options
@click.option("--values-patch", default=None, type=click.Path(exists=True, path_type=Path),
              help="JSON patch of the values schema [default: <chart-dir>/values.schema.patch.json]")
@click.option("--global-values-patch", default=None, type=click.Path(exists=True, path_type=Path),
              help="JSON patch of the global values schema [default: <chart-dir>/global-values.schema.patch.json]")
def generate(chart_dir, config, build_dir, values_patch, global_values_patch):
    """Generate the values and global values JSON schemas to publish for the chart."""
    try:
        helm_values_config = _load_config(config, chart_dir)
        chart = _published_chart(_load_chart(chart_dir), helm_values_config)
        generator = JsonSchemaGenerator(
            helm_values_config.repository_mappings,
            publication_repository_for(helm_values_config),
        )
        generation_dir = _build_dir(chart_dir, build_dir) / GENERATION_DIR

        values_schema = generator.generate_values_json_schema(
            chart, DEFAULT_FORMAT.load_patch(values_patch or chart_dir / PATCH_VALUES_SCHEMA_FILE))
        global_values_schema = generator.generate_global_values_json_schema(
            chart, DEFAULT_FORMAT.load_patch(global_values_patch or chart_dir / PATCH_GLOBAL_VALUES_SCHEMA_FILE))

        for file_name, schema in ((VALUES_SCHEMA_FILE, values_schema),
                                  (GLOBAL_VALUES_SCHEMA_FILE, global_values_schema)):
            out = generation_dir / file_name
            DEFAULT_FORMAT.write_json(out, schema)
            click.echo(f"Schema written to {out}")

    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))


@cli.command()
@_chart_options
@click.option("--out", "-o", default=None, type=click.Path(path_type=Path),
              help="Output JSON file path [default: <build-dir>/aggregated-values.schema.json]")
@click.option("--locator", type=click.Choice(sorted(_LOCATORS)), default="build", show_default=True,
              help="Location of aggregated schemas of dependencies stored locally")
@click.option("--offline", is_flag=True, default=False,
              help="Reuse downloaded and extracted schemas instead of refreshing them")
@click.option("--values-patch", default=None, type=click.Path(exists=True, path_type=Path),
              help="JSON patch of the values schema [default: <chart-dir>/values.schema.patch.json]")
@click.option("--aggregated-patch", default=None, type=click.Path(exists=True, path_type=Path),
              help="JSON patch of the aggregated schema [default: <chart-dir>/aggregated-values.schema.patch.json]")
def aggregate(chart_dir, config, build_dir, out, locator, offline, values_patch, aggregated_patch):
    """Aggregate a self-contained JSON schema of the chart values."""
    try:
        helm_values_config = _load_config(config, chart_dir)
        chart = _load_chart(chart_dir)
        build_dir = _build_dir(chart_dir, build_dir)
        downloads_dir = build_dir / DOWNLOADS_DIR
        extracts_dir = build_dir / EXTRACT_DIR

        if not offline:
            _download(helm_values_config, chart, downloads_dir)
            _extract(helm_values_config, chart, chart_dir, extracts_dir)

        aggregator = JsonSchemaAggregator(
            helm_values_config.repository_mappings,
            _LOCATORS[locator](chart_dir),
            chart_dir,
            downloads_dir,
            extracts_dir,
        )
        schema = aggregator.aggregate(
            chart,
            DEFAULT_FORMAT.load_patch(values_patch or chart_dir / PATCH_VALUES_SCHEMA_FILE),
            DEFAULT_FORMAT.load_patch(aggregated_patch or chart_dir / PATCH_AGGREGATED_SCHEMA_FILE),
        )

        out = out or build_dir / AGGREGATED_SCHEMA_FILE
        DEFAULT_FORMAT.write_json(out, schema)
        click.echo(f"Aggregated schema written to {out}")

    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))


@cli.command()
@_chart_options
def publish(chart_dir, config, build_dir):
    """Publish generated JSON schemas to the publication repository."""
    try:
        helm_values_config = _load_config(config, chart_dir)
        repository = publication_repository_for(helm_values_config)
        if repository is None:
            raise click.ClickException("No publicationRepository in configuration")
        chart = _published_chart(_load_chart(chart_dir), helm_values_config)
        generation_dir = _build_dir(chart_dir, build_dir) / GENERATION_DIR

        publisher = JsonSchemaPublisher()
        for file_name in (VALUES_SCHEMA_FILE, GLOBAL_VALUES_SCHEMA_FILE):
            schema_file = generation_dir / file_name
            if not schema_file.is_file():
                raise click.ClickException(f"{schema_file} not found, please generate schemas first")
            publisher.publish(repository, chart, schema_file)
            click.echo(f"Published {schema_file} to {repository.base_uri}/{chart.name}/{chart.version}")

    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))


@cli.command("validate")
@_chart_options
@click.option("--values", "values_file", default=None, type=click.Path(exists=True, path_type=Path),
              help="Values YAML file to validate [default: <chart-dir>/values.yaml]")
@click.option("--schema", "schema_file", default=None, type=click.Path(exists=True, path_type=Path),
              help="JSON schema [default: <build-dir>/aggregated-values.schema.json]")
def validate(chart_dir, config, build_dir, values_file, schema_file):
    """Validate a values file against the aggregated JSON schema of the chart."""
    values_file = values_file or chart_dir / HELM_VALUES_FILE
    schema_file = schema_file or _build_dir(chart_dir, build_dir) / AGGREGATED_SCHEMA_FILE
    if not values_file.is_file():
        raise click.ClickException(f"{values_file} not found")
    if not schema_file.is_file():
        raise click.ClickException(f"{schema_file} not found, please aggregate schemas first")
    try:
        validate_values_file(values_file, schema_file)
    except ValuesValidationException as e:
        click.echo(f"Validation FAILED: {values_file}", err=True)
        for error in e.errors:
            click.echo(f"  - {error}", err=True)
        raise click.ClickException("Values do not conform to JSON Schema")
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in {values_file}: {e}")
    except ValueError as e:
        raise click.ClickException(f"Invalid JSON in {schema_file}: {e}")

    click.echo(f"Values are valid: {values_file}")


def _build_dir(chart_dir: Path, build_dir: Path | None) -> Path:
    return build_dir or chart_dir / "build" / HELM_VALUES_DIR


def _download(config: HelmValuesConfig, chart: Chart, downloads_dir: Path) -> None:
    JsonSchemaDownloader(config.repository_mappings, downloads_dir).download(chart)


def _extract(config: HelmValuesConfig, chart: Chart, chart_dir: Path, extracts_dir: Path) -> None:
    JsonSchemaExtractor(chart_dir / HELM_CHARTS_DIR, config.repository_mappings, extracts_dir).extract(chart)


def _published_chart(chart: Chart, config: HelmValuesConfig) -> Chart:
    if config.published_version is None:
        return chart
    return chart.model_copy(update={"version": config.published_version})


def _load_config(config_path: Path | None, chart_dir: Path):
    if config_path is None and (chart_dir / CONFIG_FILE).is_file():
        config_path = chart_dir / CONFIG_FILE
    try:
        return load_config(config_path)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in config file {config_path}: {e}")
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise click.ClickException(f"Config validation error in {config_path}: {errors}")


def _load_chart(chart_dir: Path) -> Chart:
    chart_file = chart_dir / HELM_CHART_FILE
    if not chart_file.is_file():
        raise click.ClickException(f"{HELM_CHART_FILE} not found in {chart_dir}")
    try:
        return DEFAULT_FORMAT.load_chart(chart_file)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in chart file {chart_file}: {e}")
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise click.ClickException(f"Chart validation error in {chart_file}: {errors}")
