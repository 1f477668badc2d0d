# docfill/cli.py
import click, json, sys
from .config import get_settings
from .exporter import read_template, write_output
from .errors import ConfigError, StorageError
from .logging_config import setup_logging
from .pipeline import extract_placeholders, render_and_export, render_preview


def _values(values_path, pairs):
    data = {}
    if values_path:
        with open(values_path, "r", encoding="utf-8") as f:
            try:
                loaded = json.load(f)
            except ValueError as e:  # JSONDecodeError, or a file that is not UTF-8
                raise click.BadParameter(f"{values_path} is not valid JSON: {e}", param_hint="--values")
        if not isinstance(loaded, dict):
            raise click.BadParameter(
                f"{values_path} must hold a JSON object of NAME: VALUE pairs", param_hint="--values")
        data.update(loaded)
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected NAME=VALUE, got {pair!r}", param_hint="--set")
        name, value = pair.split("=", 1)
        data[name] = value
    return data


def _template(path):
    try:
        return read_template(path)
    except StorageError as e:
        raise click.ClickException(str(e))


def _fail(outcome):
    click.echo(f"Error: {outcome.error}", err=True)
    sys.exit(1)


@click.group()
def cli():
    try:
        setup_logging(get_settings())
    except ConfigError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.option('--template', required=True, type=click.Path(dir_okay=False))
@click.option('--json', 'as_json', is_flag=True, help="Print the names as a JSON list.")
def placeholders(template, as_json):
    outcome = extract_placeholders(_template(template))
    if not outcome.success:
        _fail(outcome)
    if as_json:
        click.echo(json.dumps(outcome.placeholders, ensure_ascii=False))
    else:
        for name in outcome.placeholders:
            click.echo(name)


@cli.command()
@click.option('--template', required=True, type=click.Path(dir_okay=False))
@click.option('--values', 'values_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--set', 'pairs', multiple=True, metavar="NAME=VALUE")
@click.option('--out', required=True)
def preview(template, values_path, pairs, out):
    outcome = render_preview(_template(template), _values(values_path, pairs))
    if not outcome.success:
        _fail(outcome)
    try:
        write_output(outcome.data, out)
    except StorageError as e:
        raise click.ClickException(str(e))
    click.echo(f"Wrote {out}")


@cli.command()
@click.option('--template', required=True, type=click.Path(dir_okay=False))
@click.option('--values', 'values_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--set', 'pairs', multiple=True, metavar="NAME=VALUE")
@click.option('--format', 'fmt', type=click.Choice(["docx", "pdf"]), default="docx", show_default=True)
@click.option('--out', required=True, help="Output file, or a directory to write contract.<format> into.")
def export(template, values_path, pairs, fmt, out):
    outcome = render_and_export(_template(template), _values(values_path, pairs), fmt, out)
    if not outcome.success:
        _fail(outcome)
    click.echo(f"Wrote {outcome.path}")


if __name__ == "__main__":
    cli()
