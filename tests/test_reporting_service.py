# tests/test_reporting_service.py
from services.reporting_service import ReportingService
from tests.fakes import make_record


def two_papers(repository):
    repository.insert_paper(make_record(title="Copilot in Class", reference_number=2, year="2022"))
    repository.insert_paper(make_record(title="Copilot at Work", reference_number=1, themes=[{
        "name": "T1",
        "description": "d",
        "subthemes": [
            {"name": "S1", "description": "d2", "codes": [
                {"name": "copilot", "quote": "q2"},
                {"name": "autocomplete", "quote": None},
            ]},
            {"name": "S0", "description": "", "codes": []},
        ],
    }, {"name": "Another Theme", "description": "", "subthemes": []}]))


def test_summary_counts(repository, session_factory):
    two_papers(repository)

    assert ReportingService(session_factory).summary() == {
        "totalPapers": 2,
        "totalThemes": 2,
        "totalSubthemes": 2,
        "totalCodes": 2,
    }


def test_thematic_tree_is_sorted_and_aggregated(repository, session_factory):
    two_papers(repository)

    analysis = ReportingService(session_factory).thematic_analysis()

    assert [t["name"] for t in analysis["themes"]] == ["Another Theme", "T1"]
    another, t1 = analysis["themes"]
    assert another["subthemes"] == []
    assert [s["name"] for s in t1["subthemes"]] == ["S0", "S1"]

    s0, s1 = t1["subthemes"]
    assert s0["codes"] == []
    assert s0["references"] == [1]
    assert s1["references"] == [1, 2]
    codes = {c["name"]: sorted(c["quotes"]) for c in s1["codes"]}
    assert codes == {"autocomplete": [], "copilot": ["q1", "q2"]}


def test_paper_by_reference(repository, session_factory):
    two_papers(repository)
    reporting = ReportingService(session_factory)

    paper = reporting.paper_by_reference(2)
    assert paper["paper_title"] == "Copilot in Class"
    assert paper["year"] == "2022"
    assert reporting.paper_by_reference(99) is None


def test_subtheme_coverage(repository, session_factory):
    two_papers(repository)

    coverage = ReportingService(session_factory).subtheme_coverage()

    assert coverage["subthemes"][0] == {"name": "S1", "paper_count": 2, "references": [1, 2]}
    assert coverage["distribution"] == {1: 1, 2: 1}


def test_text_report_mentions_counts_and_articles(repository, session_factory):
    two_papers(repository)

    report = ReportingService(session_factory).render_text_report()

    assert "Total Papers: 2" in report
    assert "Theme: T1" in report
    assert "  • S1 [1], [2]" in report
    assert "[1] Copilot at Work" in report
    assert 'Codes: "autocomplete", "copilot"' in report


def test_empty_store_reports_zero(session_factory):
    reporting = ReportingService(session_factory)

    assert reporting.thematic_analysis()["themes"] == []
    assert "Total Papers: 0" in reporting.render_text_report()
