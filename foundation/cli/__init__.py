# foundation/cli/__init__.py
import click
from flask.cli import AppGroup

from foundation.errors import ContentError
from foundation.models import ContentStatus
from foundation.services import content_store, publishing
from foundation.services.slug_canonicalizer import canonicalize_slugs

from .seed_content import seed_demo

content_cli = AppGroup("content", help="Content block maintenance.")
content_cli.add_command(seed_demo)


@content_cli.command("fix-slugs")
@click.option("--dry-run", is_flag=True, help="Show the plan without writing.")
def fix_slugs(dry_run):
    """Normalize every slug and move duplicates to suffixed slugs."""
    try:
        report = canonicalize_slugs(dry_run=dry_run)
    except ContentError as e:
        raise click.ClickException(f"fix-slugs aborted, nothing written: {e.message}")

    for a in report.actions:
        click.echo(f'{a.action:<14} {a.id}  "{a.from_slug}" -> "{a.to_slug}"')

    verb = "would change" if dry_run else "changed"
    click.secho(
        f"✅ {report.normalized_groups} slug group(s), {verb} {len(report.actions)} slug(s).",
        fg="bright_green",
        bold=True,
    )


@content_cli.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ContentStatus], case_sensitive=False),
    default=None,
)
def list_blocks(status):
    """Print blocks, newest edit first."""
    wanted = ContentStatus.parse(status) if status else None
    blocks = content_store.list_all(wanted)
    for b in blocks:
        click.echo(f"{b.status.value:<10} {b.slug:<40} {b.section:<20} {b.id}")
    click.echo(f"{len(blocks)} block(s)")


@content_cli.command("publish")
@click.argument("block_id")
def publish_cmd(block_id):
    """Publish a block by id."""
    try:
        block = publishing.publish(block_id)
    except ContentError as e:
        raise click.ClickException(e.message)
    click.secho(f"published {block.slug} ({block.id})", fg="green")


@content_cli.command("unpublish")
@click.argument("block_id")
def unpublish_cmd(block_id):
    """Move a block back to DRAFT."""
    try:
        block = publishing.unpublish(block_id)
    except ContentError as e:
        raise click.ClickException(e.message)
    click.secho(f"unpublished {block.slug} ({block.id})", fg="yellow")


__all__ = ["content_cli"]
