"""
Slug canonicalization pass.

Repairs drift where several blocks normalize to the same slug (for example
``"Home.Hero "`` and ``"home.hero"`` saved before normalization was applied
on every write path):

1. group every block by ``normalize_slug(block.slug)``
2. per group pick a winner: newest ``published_at`` (null = epoch), then
   newest ``last_updated``, then newest ``created_at``
3. the winner takes the normalized key ("canonicalized")
4. every other member moves to ``<key>-<last6(id)>`` ("deduped")

Blocks whose slug is blank after normalization are left untouched and
logged; there is no key for them to converge on.

Suffix clashes (two ids sharing their last six characters, or a suffixed
slug that is already some other block's key) are resolved by growing the id
token two characters at a time, up to the full id.

All renames of a pass commit together or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from foundation.errors import ConflictError
from foundation.extensions import db, in_transaction
from foundation.helpers.slugs import dedup_candidates, normalize_slug
from foundation.models import ContentBlock

log = logging.getLogger(__name__)

CANONICALIZED = "canonicalized"
DEDUPED = "deduped"


@dataclass(frozen=True)
class SlugAction:
    action: str
    id: str
    from_slug: str
    to_slug: str

    def as_dict(self) -> Dict[str, str]:
        return {"action": self.action, "id": self.id, "from": self.from_slug, "to": self.to_slug}


@dataclass
class CanonicalizationReport:
    normalized_groups: int
    actions: List[SlugAction] = field(default_factory=list)
    dry_run: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "normalized_groups": self.normalized_groups,
            "actions": [a.as_dict() for a in self.actions],
            "dry_run": self.dry_run,
        }


def _recency(block: ContentBlock) -> Tuple[datetime, datetime, datetime]:
    return (
        block.published_at or datetime.min,
        block.last_updated or datetime.min,
        block.created_at or datetime.min,
    )


def pick_winner(members: Iterable[ContentBlock]) -> Tuple[ContentBlock, List[ContentBlock]]:
    ordered = sorted(members, key=_recency, reverse=True)
    return ordered[0], ordered[1:]


class SlugCanonicalizer:
    def __init__(self, session: Optional[Session] = None) -> None:
        self.session = session if session is not None else db.session

    def plan(self, rows: Iterable[ContentBlock]) -> CanonicalizationReport:
        """Compute the renames for ``rows`` without touching the database."""
        groups: Dict[str, List[ContentBlock]] = {}
        for row in rows:
            groups.setdefault(normalize_slug(row.slug), []).append(row)

        # blank slugs have no key to converge on; leave them for a manual fix
        blank = groups.pop("", [])
        if blank:
            log.warning(
                "fix-slugs skipping %d block(s) with a blank slug: %s",
                len(blank),
                ", ".join(sorted(b.id for b in blank)),
            )

        # every key ends up held by its group's winner
        taken: Set[str] = set(groups)
        actions: List[SlugAction] = []

        for key in sorted(groups):
            winner, dups = pick_winner(groups[key])

            # dups move first so the key is free before the winner claims it
            for dup in dups:
                target = self._dedup_target(key, dup, taken)
                taken.add(target)
                if dup.slug == target:
                    continue
                actions.append(SlugAction(DEDUPED, dup.id, dup.slug, target))

            if winner.slug != key:
                actions.append(SlugAction(CANONICALIZED, winner.id, winner.slug, key))

        return CanonicalizationReport(normalized_groups=len(groups), actions=actions, dry_run=True)

    @staticmethod
    def _dedup_target(key: str, dup: ContentBlock, taken: Set[str]) -> str:
        for candidate in dedup_candidates(key, dup.id):
            if candidate == dup.slug or candidate not in taken:
                return candidate
        raise ConflictError(
            f"No free dedup slug for id={dup.id} under {key!r}",
            id=dup.id,
            slug=key,
        )

    def run(self, dry_run: bool = False) -> CanonicalizationReport:
        rows = list(self.session.execute(select(ContentBlock).order_by(ContentBlock.id)).scalars())
        report = self.plan(rows)
        report.dry_run = dry_run

        if dry_run or not report.actions:
            log.info(
                "fix-slugs groups=%d actions=%d dry_run=%s",
                report.normalized_groups,
                len(report.actions),
                dry_run,
            )
            return report

        by_id = {row.id: row for row in rows}

        def _apply() -> None:
            for step in report.actions:
                self._rename(by_id[step.id], step)

        in_transaction("content:fix-slugs", _apply, session=self.session, groups=report.normalized_groups)
        log.info("fix-slugs groups=%d actions=%d committed", report.normalized_groups, len(report.actions))
        return report

    def _rename(self, block: ContentBlock, step: SlugAction) -> None:
        block.slug = step.to_slug
        self.session.flush()
        log.info('[fix-slugs] %s id=%s "%s" -> "%s"', step.action, step.id, step.from_slug, step.to_slug)


def canonicalize_slugs(dry_run: bool = False) -> CanonicalizationReport:
    return SlugCanonicalizer().run(dry_run=dry_run)
