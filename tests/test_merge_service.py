# tests/test_merge_service.py
from unittest.mock import patch

import pytest
from sqlalchemy import select

from database.models.thematic_models import (
    ArticleCode,
    ArticleSubtheme,
    Code,
    ResearchResult,
    Subtheme,
    Theme,
    ThemeSubtheme,
)
from services import merge_service
from services.merge_service import MergeError, merge_subthemes, merge_themes
from services.schemas import MergeGroup


def seed(session_factory, *rows):
    with session_factory() as db:
        for row in rows:
            db.add(row)
            db.flush()
        db.commit()


def theme_group(primary_id, merge_ids, description=None):
    return MergeGroup.from_tool_args("theme", {
        "primary_theme": {"id": primary_id, "name": f"theme {primary_id}", "description": description},
        "themes_to_merge": [{"id": i, "name": f"theme {i}"} for i in merge_ids],
        "justification": "same concept",
    })


def subtheme_group(primary_id, merge_ids, description=None):
    return MergeGroup.from_tool_args("subtheme", {
        "primary_subtheme": {"id": primary_id, "name": f"subtheme {primary_id}", "description": description},
        "subthemes_to_merge": [{"id": i, "name": f"subtheme {i}"} for i in merge_ids],
        "justification": "same concept",
    })


def links(session_factory, model, *columns):
    with session_factory() as db:
        return {tuple(row) for row in db.execute(select(*(getattr(model, c) for c in columns))).all()}


@pytest.fixture
def theme_scenario(session_factory):
    seed(
        session_factory,
        Theme(id=1, name="Software Development", description="old"),
        Theme(id=2, name="Software Engineering", description="se"),
        Subtheme(id=10, name="A"),
        Subtheme(id=11, name="B"),
        ThemeSubtheme(theme_id=1, subtheme_id=10),
        ThemeSubtheme(theme_id=2, subtheme_id=10),
        ThemeSubtheme(theme_id=2, subtheme_id=11),
    )


@pytest.fixture
def subtheme_scenario(session_factory):
    seed(
        session_factory,
        ResearchResult(id=1, paper_title="P1", reference_number=1),
        ResearchResult(id=2, paper_title="P2", reference_number=2),
        Theme(id=1, name="T1"),
        Theme(id=2, name="T2"),
        Subtheme(id=10, name="Code Quality", description="cq"),
        Subtheme(id=11, name="Quality of Code", description="qc"),
        Code(id=100, name="bugs"),
        Code(id=101, name="readability"),
        ThemeSubtheme(theme_id=1, subtheme_id=10),
        ThemeSubtheme(theme_id=1, subtheme_id=11),
        ThemeSubtheme(theme_id=2, subtheme_id=11),
        ArticleSubtheme(article_id=1, subtheme_id=10),
        ArticleSubtheme(article_id=1, subtheme_id=11),
        ArticleSubtheme(article_id=2, subtheme_id=11),
        ArticleCode(article_id=1, code_id=100, subtheme_id=10, evidence_quote="primary quote"),
        ArticleCode(article_id=1, code_id=100, subtheme_id=11, evidence_quote="merged quote"),
        ArticleCode(article_id=2, code_id=101, subtheme_id=11, evidence_quote="p2 quote"),
    )


def test_theme_merge_unions_edges_without_duplicates(session_factory, theme_scenario):
    merged = merge_themes(session_factory, theme_group(1, [2], description="Consolidated"))

    assert merged == 1
    assert links(session_factory, ThemeSubtheme, "theme_id", "subtheme_id") == {(1, 10), (1, 11)}
    with session_factory() as db:
        themes = db.execute(select(Theme.id, Theme.name, Theme.description)).all()
    assert [tuple(t) for t in themes] == [(1, "Software Development", "Consolidated")]


def test_theme_merge_without_description_keeps_existing(session_factory, theme_scenario):
    merge_themes(session_factory, theme_group(1, [2]))

    with session_factory() as db:
        assert db.scalar(select(Theme.description).where(Theme.id == 1)) == "old"


def test_merging_k_themes_reduces_count_by_k(session_factory):
    seed(session_factory, *(Theme(id=i, name=f"Theme {i}") for i in range(1, 5)))

    merged = merge_themes(session_factory, theme_group(1, [2, 3, 3, 1]))

    assert merged == 2
    with session_factory() as db:
        assert sorted(db.scalars(select(Theme.id)).all()) == [1, 4]


def test_missing_primary_raises_and_changes_nothing(session_factory, theme_scenario):
    with pytest.raises(MergeError):
        merge_themes(session_factory, theme_group(99, [2]))

    with session_factory() as db:
        assert sorted(db.scalars(select(Theme.id)).all()) == [1, 2]


def test_already_merged_ids_are_skipped(session_factory, theme_scenario):
    assert merge_themes(session_factory, theme_group(1, [2])) == 1
    assert merge_themes(session_factory, theme_group(1, [2])) == 0


def test_failure_mid_group_rolls_back_everything(session_factory, theme_scenario):
    with patch.object(merge_service, "repoint_theme_links", side_effect=RuntimeError("db gone")):
        with pytest.raises(RuntimeError):
            merge_service.merge_themes(session_factory, theme_group(1, [2], description="Consolidated"))

    with session_factory() as db:
        assert sorted(db.scalars(select(Theme.id)).all()) == [1, 2]
        assert db.scalar(select(Theme.description).where(Theme.id == 1)) == "old"
    assert links(session_factory, ThemeSubtheme, "theme_id", "subtheme_id") == {(1, 10), (2, 10), (2, 11)}


def test_subtheme_merge_repoints_theme_and_paper_links(session_factory, subtheme_scenario):
    merged = merge_subthemes(session_factory, subtheme_group(10, [11], description="Quality"))

    assert merged == 1
    assert links(session_factory, ThemeSubtheme, "theme_id", "subtheme_id") == {(1, 10), (2, 10)}
    assert links(session_factory, ArticleSubtheme, "article_id", "subtheme_id") == {(1, 10), (2, 10)}
    with session_factory() as db:
        assert db.scalars(select(Subtheme.id)).all() == [10]
        assert db.scalar(select(Subtheme.description)) == "Quality"


def test_subtheme_merge_keeps_evidence_quotes(session_factory, subtheme_scenario):
    merge_subthemes(session_factory, subtheme_group(10, [11]))

    evidence = links(session_factory, ArticleCode, "article_id", "code_id", "subtheme_id", "evidence_quote")
    # (1, 100) collided with the primary's own row; the primary's quote wins
    assert evidence == {(1, 100, 10, "primary quote"), (2, 101, 10, "p2 quote")}


def test_no_orphan_links_after_merges(session_factory, subtheme_scenario):
    merge_themes(session_factory, theme_group(1, [2]))
    merge_subthemes(session_factory, subtheme_group(10, [11]))

    with session_factory() as db:
        theme_ids = set(db.scalars(select(Theme.id)).all())
        subtheme_ids = set(db.scalars(select(Subtheme.id)).all())
        for theme_id, subtheme_id in db.execute(select(ThemeSubtheme.theme_id, ThemeSubtheme.subtheme_id)):
            assert theme_id in theme_ids
            assert subtheme_id in subtheme_ids
        for (subtheme_id,) in db.execute(select(ArticleSubtheme.subtheme_id)):
            assert subtheme_id in subtheme_ids
        for (subtheme_id,) in db.execute(select(ArticleCode.subtheme_id)):
            assert subtheme_id in subtheme_ids


def test_group_with_nothing_left_to_merge_keeps_description(session_factory, theme_scenario):
    assert merge_themes(session_factory, theme_group(1, [2], description="Consolidated")) == 1
    assert merge_themes(session_factory, theme_group(1, [2], description="Changed")) == 0

    with session_factory() as db:
        assert db.scalar(select(Theme.description).where(Theme.id == 1)) == "Consolidated"
