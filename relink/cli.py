# cli.py - Command line interface for relink
"""
relink CLI - Rewrite course links in imported HTML

COMMANDS:
    relink convert FILE [--resource-map MAP]       Scan, resolve and substitute in one go
    relink scan FILE --table TABLE                  Phase 1: placeholders + link table
    relink resolve FILE --table TABLE               Phase 2: final HTML from the table
    relink init                                     Write a relink.yaml template
    relink version                                  Show version information

EXAMPLES:
    # Everything is already migrated
    relink convert page.html --resource-map resource_map.json -o page.out.html

    # Destination ids are not known yet
    relink scan syllabus.html --table links.json --item-type syllabus --field body -o syllabus.tmp.html
    # ... migration runs ...
    relink resolve syllabus.tmp.html --table links.json -o syllabus.html
"""

import sys
from pathlib import Path
from typing import List, Optional

import click

from relink import __version__
from relink.config_utils import RelinkConfig, create_config_template, get_config
from relink.converter import HtmlConverter, replace_placeholders
from relink.descriptor import LinkDescriptor
from relink.errors import RelinkError
from relink.link_parser import LinkParser
from relink.link_resolver import LinkResolver
from relink.link_table import UnresolvedLinkTable
from relink.log_utils import fence, setup_logging


INPUT_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)
MAP_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


def _write_output(html: str, output: Optional[Path]) -> None:
    if output:
        output.write_text(html, encoding="utf-8")
        click.echo(f"[v] Wrote {output}", err=True)
    else:
        click.echo(html)


def _report_bad_links(bad_links: List[LinkDescriptor], strict: bool) -> None:
    if not bad_links:
        return
    click.echo(fence(f"{len(bad_links)} link(s) could not be resolved"), err=True)
    for link in bad_links:
        original = link.rel_path or link.migration_id or link.old_value
        click.echo(f"  [!] {link.link_type.value}: {original} -> {link.missing_url}", err=True)
    if strict:
        sys.exit(1)


# ============================================================================
# Click Group Setup
# ============================================================================

@click.group()
@click.option('--verbose', '-v', count=True, help='Increase log output (-vv for debug)')
@click.pass_context
def cli(ctx, verbose: int):
    """
    relink - Rewrite course links in imported HTML

    Replaces export-time references ($WIKI_REFERENCE$, $IMS-CC-FILEBASE$, ...)
    with links to the migrated course objects.
    """
    setup_logging(verbose)
    ctx.obj = get_config()


@cli.command()
@click.argument('input_file', type=INPUT_FILE)
@click.option('--resource-map', type=MAP_FILE, help='Resource map (JSON or YAML)')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path), help='Write HTML here instead of stdout')
@click.option('--unwrap', is_flag=True, help='Drop bare div/p wrappers around the fragment')
@click.option('--strict', is_flag=True, help='Exit 1 if any link could not be resolved')
@click.pass_obj
def convert(config: RelinkConfig, input_file: Path, resource_map: Optional[Path],
            output: Optional[Path], unwrap: bool, strict: bool):
    """
    Rewrite every link in FILE against a complete resource map

    Examples:
        relink convert page.html --resource-map resource_map.json
        relink convert page.html -o page.out.html --strict
    """
    try:
        converter = HtmlConverter(service=config.make_service(resource_map))
    except RelinkError as e:
        raise click.ClickException(str(e))

    html, bad_links = converter.convert_exported_html(
        input_file.read_text(encoding="utf-8"),
        remove_outer_nodes_if_one_child=unwrap or config.remove_outer_nodes,
    )
    _write_output(html, output)
    _report_bad_links(bad_links, strict)


@cli.command()
@click.argument('input_file', type=INPUT_FILE)
@click.option('--table', 'table_path', required=True, type=click.Path(dir_okay=False, path_type=Path),
              help='Link table JSON (created or appended to)')
@click.option('--resource-map', type=MAP_FILE, help='Resource map (JSON or YAML)')
@click.option('--item-type', default='type', show_default=True, help='Type of the object owning the HTML')
@click.option('--migration-id', default='lookup_id', show_default=True, help="Owning object's migration id")
@click.option('--field', default='field', show_default=True, help='Field the HTML belongs to')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path), help='Write HTML here instead of stdout')
@click.option('--unwrap', is_flag=True, help='Drop bare div/p wrappers around the fragment')
@click.pass_obj
def scan(config: RelinkConfig, input_file: Path, table_path: Path, resource_map: Optional[Path],
         item_type: str, migration_id: str, field: str, output: Optional[Path], unwrap: bool):
    """
    Phase 1: replace unresolved links in FILE with placeholders

    Unresolved links are appended to TABLE so several documents can share one.
    """
    try:
        service = config.make_service(resource_map)
    except RelinkError as e:
        raise click.ClickException(str(e))

    table = UnresolvedLinkTable.load(table_path)
    parser = LinkParser(service, table)
    html = parser.convert(
        input_file.read_text(encoding="utf-8"),
        item_type,
        migration_id,
        field,
        remove_outer_nodes_if_one_child=unwrap or config.remove_outer_nodes,
    )
    table.save(table_path)
    click.echo(f"[*] {len(table)} unresolved link(s) in {table_path}", err=True)
    _write_output(html, output)


@cli.command()
@click.argument('input_file', type=INPUT_FILE)
@click.option('--table', 'table_path', required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Link table JSON written by scan')
@click.option('--resource-map', type=MAP_FILE, help='Resource map (JSON or YAML)')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path), help='Write HTML here instead of stdout')
@click.option('--strict', is_flag=True, help='Exit 1 if any link could not be resolved')
@click.pass_obj
def resolve(config: RelinkConfig, input_file: Path, table_path: Path, resource_map: Optional[Path],
            output: Optional[Path], strict: bool):
    """
    Phase 2: substitute final links for the placeholders in FILE
    """
    try:
        resolver = LinkResolver(config.make_service(resource_map))
        table = UnresolvedLinkTable.load(table_path)
        resolver.resolve_links(table)
    except RelinkError as e:
        raise click.ClickException(str(e))

    html = replace_placeholders(input_file.read_text(encoding="utf-8"), table.links())
    _write_output(html, output)
    _report_bad_links(table.missing_links(), strict)


@cli.command()
@click.option('--force', is_flag=True, help='Overwrite an existing relink.yaml')
@click.pass_obj
def init(config: RelinkConfig, force: bool):
    """Write a commented relink.yaml into the working directory"""
    target = config.work_dir / "relink.yaml"
    if target.exists() and not force:
        raise click.ClickException(f"{target} already exists (use --force to overwrite)")
    target.write_text(create_config_template())
    click.echo(f"[v] Created {target}")


@cli.command()
def version():
    """Show version information"""
    click.echo(f"relink {__version__}")


if __name__ == '__main__':
    cli()
