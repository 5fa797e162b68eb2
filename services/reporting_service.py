# services/reporting_service.py
import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from database.models.thematic_models import (
    ArticleCode,
    ArticleSubtheme,
    Code,
    ResearchResult,
    Subtheme,
    Theme,
    ThemeSubtheme,
)
from services.persistence_service import ThematicRepository

logger = logging.getLogger(__name__)

PAPER_FIELDS = (
    "paper_title",
    "authors",
    "year",
    "doi",
    "abstract",
    "key_findings",
    "methodology",
    "reference_number",
)


class ReportingService:
    """Read-only views over the consolidated theme → subtheme → code → paper hierarchy."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.repository = ThematicRepository(session_factory)

    def summary(self) -> Dict[str, int]:
        counts = self.repository.table_counts()
        return {
            "totalPapers": counts["research_results"],
            "totalThemes": counts["themes"],
            "totalSubthemes": counts["subthemes"],
            "totalCodes": counts["codes"],
        }

    def thematic_analysis(self) -> Dict:
        with self.session_factory() as db:
            themes = db.execute(select(Theme.id, Theme.name, Theme.description).order_by(Theme.name)).all()

            subthemes_by_theme = defaultdict(list)
            for row in db.execute(
                select(ThemeSubtheme.theme_id, Subtheme.id, Subtheme.name, Subtheme.description)
                .join(Subtheme, Subtheme.id == ThemeSubtheme.subtheme_id)
                .order_by(Subtheme.name)
            ):
                subthemes_by_theme[row.theme_id].append(row)

            # subtheme_id -> code name -> distinct quotes (first-seen order)
            codes_by_subtheme: Dict[int, Dict[str, List[str]]] = defaultdict(dict)
            for row in db.execute(
                select(ArticleCode.subtheme_id, Code.name, ArticleCode.evidence_quote)
                .join(Code, Code.id == ArticleCode.code_id)
                .order_by(Code.name, ArticleCode.article_id)
            ):
                quotes = codes_by_subtheme[row.subtheme_id].setdefault(row.name, [])
                if row.evidence_quote is not None and row.evidence_quote not in quotes:
                    quotes.append(row.evidence_quote)

            references_by_subtheme = defaultdict(set)
            for row in db.execute(
                select(ArticleSubtheme.subtheme_id, ResearchResult.reference_number)
                .join(ResearchResult, ResearchResult.id == ArticleSubtheme.article_id)
            ):
                if row.reference_number is not None:
                    references_by_subtheme[row.subtheme_id].add(row.reference_number)

        result = []
        for theme in themes:
            result.append({
                "id": theme.id,
                "name": theme.name,
                "description": theme.description,
                "subthemes": [
                    {
                        "id": sub.id,
                        "name": sub.name,
                        "description": sub.description,
                        "codes": [
                            {"name": name, "quotes": quotes}
                            for name, quotes in sorted(codes_by_subtheme.get(sub.id, {}).items())
                        ],
                        "references": sorted(references_by_subtheme.get(sub.id, set())),
                    }
                    for sub in subthemes_by_theme.get(theme.id, [])
                ],
            })

        return {"summary": self.summary(), "themes": result}

    def paper_by_reference(self, reference_number: int) -> Optional[Dict]:
        with self.session_factory() as db:
            paper = db.scalar(
                select(ResearchResult).where(ResearchResult.reference_number == reference_number)
            )
            if paper is None:
                return None
            return {field: getattr(paper, field) for field in PAPER_FIELDS}

    def subtheme_coverage(self) -> Dict:
        """How many papers back each subtheme, and how that count is distributed."""
        with self.session_factory() as db:
            rows = db.execute(
                select(Subtheme.name, ResearchResult.reference_number)
                .join(ArticleSubtheme, ArticleSubtheme.subtheme_id == Subtheme.id)
                .join(ResearchResult, ResearchResult.id == ArticleSubtheme.article_id)
            ).all()

        refs = defaultdict(set)
        for row in rows:
            refs[row.name].add(row.reference_number)

        subthemes = sorted(
            (
                {"name": name, "paper_count": len(numbers), "references": sorted(n for n in numbers if n is not None)}
                for name, numbers in refs.items()
            ),
            key=lambda item: (-item["paper_count"], item["name"]),
        )
        distribution = Counter(item["paper_count"] for item in subthemes)
        return {
            "subthemes": subthemes,
            "distribution": {count: distribution[count] for count in sorted(distribution)},
        }

    def render_text_report(self, theme_limit: int = 10, article_limit: int = 5) -> str:
        counts = self.repository.table_counts()
        analysis = self.thematic_analysis()

        lines = [
            "=== DATABASE SUMMARY ===",
            f"Total Papers: {counts['research_results']}",
            f"Total Themes: {counts['themes']}",
            f"Total Sub-themes: {counts['subthemes']}",
            f"Total Codes: {counts['codes']}",
            f"Theme-Subtheme Links: {counts['theme_subthemes']}",
            f"Article-Subtheme Links: {counts['article_subthemes']}",
            f"Article-Code Links: {counts['article_codes']}",
            "",
            "=== THEMATIC ANALYSIS STRUCTURE ===",
        ]

        for theme in analysis["themes"][:theme_limit]:
            lines.append("")
            lines.append(f"Theme: {theme['name']}")
            lines.append(f"Description: {theme['description']}")
            if not theme["subthemes"]:
                lines.append("Sub-themes: None")
                continue
            lines.append("Sub-themes:")
            for sub in theme["subthemes"]:
                refs = ", ".join(f"[{r}]" for r in sub["references"])
                lines.append(f"  • {sub['name']} {refs}".rstrip())
                if sub["codes"]:
                    lines.append("    Codes:")
                    for code in sub["codes"][:10]:
                        lines.append(f"      - \"{code['name']}\"")
                else:
                    lines.append("    Codes: None found")

        lines.append("")
        lines.append("=== SAMPLE ARTICLES WITH THEMATIC ANALYSIS ===")
        for article in self._sample_articles(article_limit):
            lines.append("")
            lines.append(f"[{article['reference_number']}] {article['paper_title']}")
            lines.append(f"Authors: {article['authors']}")
            lines.append(f"Year: {article['year']}")
            if article["themes"]:
                lines.append(f"Themes: {', '.join(article['themes'])}")
            if article["subthemes"]:
                lines.append(f"Sub-themes: {', '.join(article['subthemes'])}")
            if article["codes"]:
                quoted = ", ".join('"' + c + '"' for c in article["codes"])
                lines.append(f"Codes: {quoted}")

        return "\n".join(lines)

    def _sample_articles(self, limit: int) -> List[Dict]:
        with self.session_factory() as db:
            papers = db.execute(
                select(ResearchResult.id, ResearchResult.paper_title, ResearchResult.authors,
                       ResearchResult.year, ResearchResult.reference_number)
                .order_by(ResearchResult.reference_number)
                .limit(limit)
            ).all()

            articles = []
            for paper in papers:
                subthemes = db.execute(
                    select(Subtheme.id, Subtheme.name)
                    .join(ArticleSubtheme, ArticleSubtheme.subtheme_id == Subtheme.id)
                    .where(ArticleSubtheme.article_id == paper.id)
                    .order_by(Subtheme.name)
                ).all()
                subtheme_ids = [s.id for s in subthemes]
                themes = db.scalars(
                    select(Theme.name)
                    .join(ThemeSubtheme, ThemeSubtheme.theme_id == Theme.id)
                    .where(ThemeSubtheme.subtheme_id.in_(subtheme_ids))
                    .distinct()
                    .order_by(Theme.name)
                ).all() if subtheme_ids else []
                codes = db.scalars(
                    select(Code.name)
                    .join(ArticleCode, ArticleCode.code_id == Code.id)
                    .where(ArticleCode.article_id == paper.id)
                    .distinct()
                    .order_by(Code.name)
                ).all()
                articles.append({
                    "paper_title": paper.paper_title,
                    "authors": paper.authors,
                    "year": paper.year,
                    "reference_number": paper.reference_number,
                    "themes": list(themes),
                    "subthemes": [s.name for s in subthemes],
                    "codes": list(codes),
                })
        return articles
