# services/persistence_service.py
import logging
from typing import Dict, List, Optional, Type

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from database.models.thematic_models import (
    ArticleCode,
    ArticleSubtheme,
    Code,
    ResearchResult,
    Subtheme,
    Theme,
    ThemeSubtheme,
)
from services.schemas import ExtractionRecord
from utils.sanitization import clean_optional, clean_text, preview

logger = logging.getLogger(__name__)

TABLE_MODELS = {
    "research_results": ResearchResult,
    "themes": Theme,
    "subthemes": Subtheme,
    "codes": Code,
    "theme_subthemes": ThemeSubtheme,
    "article_subthemes": ArticleSubtheme,
    "article_codes": ArticleCode,
}


def insert_ignore(db: Session, model, **values) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING against the model's unique/primary key.
    Returns True when a row was actually written.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise ValueError(f"Unsupported dialect: {dialect}")

    stmt = insert(model.__table__).values(**values).on_conflict_do_nothing()
    result = db.execute(stmt)
    return result.rowcount == 1


class ThematicRepository:
    """
    Idempotent writes for the extraction stage plus the small read helpers
    the consolidation engine needs.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    # ------------------------------------------------------------
    # READS
    # ------------------------------------------------------------
    def next_reference_number(self) -> int:
        with self.session_factory() as db:
            max_ref = db.scalar(select(func.max(ResearchResult.reference_number)))
        return (max_ref or 0) + 1

    def count(self, model) -> int:
        with self.session_factory() as db:
            return db.scalar(select(func.count()).select_from(model))

    def table_counts(self) -> Dict[str, int]:
        with self.session_factory() as db:
            return {
                table: db.scalar(select(func.count()).select_from(model))
                for table, model in TABLE_MODELS.items()
            }

    def load_entities(self, model: Type) -> List[Dict]:
        """All themes or subthemes as plain dicts, ordered by name."""
        with self.session_factory() as db:
            rows = db.execute(
                select(model.id, model.name, model.description).order_by(model.name)
            ).all()
        return [{"id": r.id, "name": r.name, "description": r.description} for r in rows]

    # ------------------------------------------------------------
    # WRITES
    # ------------------------------------------------------------
    @staticmethod
    def _find_or_create(db: Session, model, name: str, **fields) -> int:
        existing_id = db.scalar(select(model.id).where(model.name == name))
        if existing_id is not None:
            return existing_id

        obj = model(name=name, **fields)
        db.add(obj)
        db.flush()
        logger.info(f"Created new {model.__tablename__[:-1]}: {name} (ID: {obj.id})")
        return obj.id

    def insert_paper(self, record: ExtractionRecord) -> Optional[int]:
        """
        Persist one extraction in a single transaction.
        Returns the new paper id, or None when a paper with the same title
        already exists (nothing is written in that case).
        """
        title = clean_text(record.paper_title)

        with self.session_factory() as db:
            try:
                existing = db.scalar(select(ResearchResult.id).where(ResearchResult.paper_title == title))
                if existing is not None:
                    logger.info(f"Skipping insert, already exists: {preview(title)}")
                    return None

                paper = ResearchResult(
                    paper_title=title,
                    authors=clean_optional(record.authors),
                    year=clean_optional(record.year),
                    doi=clean_optional(record.doi),
                    abstract=record.abstract,
                    key_findings=record.key_findings,
                    methodology=record.methodology,
                    reference_number=record.reference_number,
                )
                db.add(paper)
                db.flush()
                paper_id = paper.id
                logger.info(f"Inserted paper with ID: {paper_id}, Reference: [{record.reference_number}]")

                for theme in record.themes:
                    theme_name = clean_text(theme.name)
                    if not theme_name:
                        logger.warning(f"Skipping unnamed theme in '{preview(title)}'")
                        continue
                    theme_id = self._find_or_create(db, Theme, theme_name, description=theme.description)

                    for subtheme in theme.subthemes:
                        subtheme_name = clean_text(subtheme.name)
                        if not subtheme_name:
                            logger.warning(f"Skipping unnamed subtheme under '{theme_name}'")
                            continue
                        subtheme_id = self._find_or_create(
                            db, Subtheme, subtheme_name, description=subtheme.description
                        )

                        if insert_ignore(db, ThemeSubtheme, theme_id=theme_id, subtheme_id=subtheme_id):
                            logger.debug(f"Linked theme {theme_id} to subtheme {subtheme_id}")
                        if insert_ignore(db, ArticleSubtheme, article_id=paper_id, subtheme_id=subtheme_id):
                            logger.debug(f"Linked article {paper_id} to subtheme {subtheme_id}")

                        for code in subtheme.codes:
                            code_name = clean_text(code.name)
                            if not code_name:
                                continue
                            code_id = self._find_or_create(db, Code, code_name)
                            insert_ignore(
                                db,
                                ArticleCode,
                                article_id=paper_id,
                                code_id=code_id,
                                subtheme_id=subtheme_id,
                                evidence_quote=code.quote,
                            )

                db.commit()
                return paper_id

            except Exception:
                db.rollback()
                raise
