import json

import click
from faker import Faker
from flask import current_app
from flask.cli import with_appcontext

from foundation.extensions import db, safe_commit
from foundation.models import ContentBlock
from foundation.services import publishing

fake = Faker()

# (slug, section, kind)
DEMO_BLOCKS = [
    ("home.hero", "home", "text"),
    ("home.mission", "home", "rich"),
    ("about.story", "about", "rich"),
    ("about.board", "about", "json"),
    ("programs.intro", "programs", "text"),
    ("get-involved.volunteer", "get-involved", "text"),
    ("donate.cta", "donate", "text"),
    ("footer.contact", "footer", "json"),
]


def _rich_doc() -> str:
    """Minimal rich-text editor document (opaque to the store)."""
    paragraphs = [
        {"type": "paragraph", "content": [{"type": "text", "text": fake.paragraph()}]}
        for _ in range(fake.random_int(1, 3))
    ]
    return json.dumps({"type": "doc", "content": paragraphs})


def _fake_content(kind: str) -> str:
    if kind == "rich":
        return _rich_doc()
    if kind == "json":
        return json.dumps(
            {"title": fake.catch_phrase(), "email": fake.company_email(), "phone": fake.phone_number()}
        )
    return fake.sentence(nb_words=12)


@click.command("seed-demo")
@click.option("--count", default=len(DEMO_BLOCKS), show_default=True, help="How many demo blocks.")
@click.option("--clear", is_flag=True, help="Dev-only reset: hard-delete every content block first.")
@click.option("--publish", "publish_all", is_flag=True, help="Publish the seeded blocks.")
@with_appcontext
def seed_demo(count, clear, publish_all):
    """Seed demo content blocks."""
    if clear:
        # content is otherwise never deleted; the reset is for local databases only
        if current_app.config.get("ENV") == "production":
            raise click.ClickException("--clear is disabled in production")
        deleted = db.session.query(ContentBlock).delete()
        if not safe_commit():
            raise click.ClickException("could not clear content blocks")
        click.secho(f"🧹 Cleared {deleted} content blocks", fg="yellow")

    specs = list(DEMO_BLOCKS)
    while len(specs) < count:
        section = f"demo-{fake.word()}"
        specs.append((f"{section}.{fake.word()}-{len(specs)}", section, "text"))

    for slug, section, kind in specs[:count]:
        draft = publishing.ContentDraft(
            slug=slug,
            section=section,
            content=_fake_content(kind),
            publish_now=publish_all,
        )
        publishing.save(draft)

    click.secho(f"✅ Seeded {min(count, len(specs))} content blocks!", fg="bright_green", bold=True)
