# services/merge_service.py
"""
Atomic merge transactions for themes and subthemes.

Every merge group runs in its own transaction: each merged entity's links
are re-pointed onto the primary (only where the primary does not already
hold the same link), the leftover links are deleted and the merged row
itself is deleted. The primary's description is overwritten once at least
one row was folded in. Any error rolls the whole group back.
"""
import logging
from typing import List

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, sessionmaker

from database.models.thematic_models import (
    ArticleCode,
    ArticleSubtheme,
    Subtheme,
    Theme,
    ThemeSubtheme,
)
from services.schemas import MergeGroup

logger = logging.getLogger(__name__)


class MergeError(Exception):
    """A merge group cannot be applied (e.g. its primary does not exist)."""
    pass


# ------------------------------------------------------------
# LINK RE-POINTING
# ------------------------------------------------------------
def _repoint(db: Session, link_model, column: str, merged_id: int, primary_id: int, partner_columns: List[str]) -> int:
    """
    UPDATE link SET <column> = primary WHERE <column> = merged
      AND NOT EXISTS (same partner columns already linked to primary)
    """
    table = link_model.__table__
    dup = table.alias("dup")

    already_linked = select(dup.c[column]).where(dup.c[column] == primary_id).correlate(table)
    for partner in partner_columns:
        already_linked = already_linked.where(dup.c[partner] == table.c[partner])

    stmt = (
        update(table)
        .where(table.c[column] == merged_id)
        .where(~already_linked.exists())
        .values({column: primary_id})
    )
    return db.execute(stmt).rowcount


def _drop_links(db: Session, link_model, column: str, merged_id: int) -> int:
    table = link_model.__table__
    return db.execute(delete(table).where(table.c[column] == merged_id)).rowcount


def repoint_theme_links(db: Session, merged_id: int, primary_id: int) -> None:
    moved = _repoint(db, ThemeSubtheme, "theme_id", merged_id, primary_id, ["subtheme_id"])
    dropped = _drop_links(db, ThemeSubtheme, "theme_id", merged_id)
    logger.debug(f"theme {merged_id} -> {primary_id}: moved {moved} subtheme links, dropped {dropped} duplicates")


def repoint_subtheme_links(db: Session, merged_id: int, primary_id: int) -> None:
    moved_themes = _repoint(db, ThemeSubtheme, "subtheme_id", merged_id, primary_id, ["theme_id"])
    moved_articles = _repoint(db, ArticleSubtheme, "subtheme_id", merged_id, primary_id, ["article_id"])
    # Evidence rows follow the subtheme too; on a (paper, code) collision the primary's quote wins
    moved_codes = _repoint(db, ArticleCode, "subtheme_id", merged_id, primary_id, ["article_id", "code_id"])

    _drop_links(db, ThemeSubtheme, "subtheme_id", merged_id)
    _drop_links(db, ArticleSubtheme, "subtheme_id", merged_id)
    _drop_links(db, ArticleCode, "subtheme_id", merged_id)
    logger.debug(
        f"subtheme {merged_id} -> {primary_id}: moved {moved_themes} theme, "
        f"{moved_articles} article and {moved_codes} evidence links"
    )


# ------------------------------------------------------------
# GROUP TRANSACTION
# ------------------------------------------------------------
def _apply_group(db: Session, model, group: MergeGroup, repoint) -> int:
    primary_id = group.primary.id

    exists = db.scalar(select(model.id).where(model.id == primary_id))
    if exists is None:
        raise MergeError(f"Primary {model.__tablename__[:-1]} {primary_id} does not exist")

    merged = 0
    names = {ref.id: ref.name for ref in group.to_merge}
    for merged_id in group.merge_ids():
        present = db.scalar(select(model.id).where(model.id == merged_id))
        if present is None:
            # Already folded into another primary earlier in this pass
            logger.info(f"  ↪️ Skipping {model.__tablename__[:-1]} {merged_id}: no longer exists")
            continue

        repoint(db, merged_id, primary_id)
        deleted = db.execute(delete(model.__table__).where(model.__table__.c.id == merged_id)).rowcount
        merged += deleted
        logger.info(f"  ✅ Merged {model.__tablename__[:-1]} \"{names.get(merged_id)}\" (ID: {merged_id})")

    # The primary only takes the consolidated description when something was folded into it
    if merged and group.primary.description:
        db.execute(
            update(model.__table__)
            .where(model.__table__.c.id == primary_id)
            .values(description=group.primary.description)
        )

    return merged


def _merge(session_factory: sessionmaker, model, group: MergeGroup, repoint) -> int:
    with session_factory() as db:
        try:
            merged = _apply_group(db, model, group, repoint)
            db.commit()
            return merged
        except Exception:
            db.rollback()
            raise


def merge_themes(session_factory: sessionmaker, group: MergeGroup) -> int:
    """Fold group.to_merge into group.primary. Returns the number of themes deleted."""
    return _merge(session_factory, Theme, group, repoint_theme_links)


def merge_subthemes(session_factory: sessionmaker, group: MergeGroup) -> int:
    """Fold group.to_merge into group.primary. Returns the number of subthemes deleted."""
    return _merge(session_factory, Subtheme, group, repoint_subtheme_links)
