# database/models/thematic_models.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from database.db import Base


class ResearchResult(Base):
    """One analysed paper. Never merged."""
    __tablename__ = "research_results"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Natural key used for dedupe on re-extraction
    paper_title = Column(Text, unique=True, nullable=False)
    authors = Column(Text, nullable=True)
    year = Column(String(32), nullable=True)
    doi = Column(String(255), nullable=True)
    abstract = Column(Text, nullable=True)
    key_findings = Column(Text, nullable=True)
    methodology = Column(Text, nullable=True)

    # Sequential citation number shown in the dashboard: [1], [2], ...
    reference_number = Column(Integer, unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Theme(Base):
    __tablename__ = "themes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(Text, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Subtheme(Base):
    __tablename__ = "subthemes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(Text, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Code(Base):
    __tablename__ = "codes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(Text, unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ThemeSubtheme(Base):
    __tablename__ = "theme_subthemes"

    theme_id = Column(Integer, ForeignKey("themes.id", ondelete="CASCADE"), primary_key=True)
    subtheme_id = Column(Integer, ForeignKey("subthemes.id", ondelete="CASCADE"), primary_key=True)


class ArticleSubtheme(Base):
    __tablename__ = "article_subthemes"

    article_id = Column(Integer, ForeignKey("research_results.id", ondelete="CASCADE"), primary_key=True)
    subtheme_id = Column(Integer, ForeignKey("subthemes.id", ondelete="CASCADE"), primary_key=True)


class ArticleCode(Base):
    """A code attested in a paper under a specific subtheme, with its supporting quote."""
    __tablename__ = "article_codes"

    article_id = Column(Integer, ForeignKey("research_results.id", ondelete="CASCADE"), primary_key=True)
    code_id = Column(Integer, ForeignKey("codes.id", ondelete="CASCADE"), primary_key=True)
    subtheme_id = Column(Integer, ForeignKey("subthemes.id", ondelete="CASCADE"), primary_key=True)
    evidence_quote = Column(Text, nullable=True)
