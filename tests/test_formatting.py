import pytest

from cv_slayer.models import Improvement, Priority, SafeResult
from cv_slayer.ui.formatting import escape_markdown, format_report, score_band


@pytest.mark.parametrize("score, color", [(100, "green"), (80, "green"), (79, "orange"), (60, "orange"),
                                          (59, "red"), (0, "red")])
def test_score_band(score, color):
    assert score_band(score)[0] == color


def test_report_contains_every_section():
    result = SafeResult(
        score=72,
        file_name="cv.pdf",
        feedback=("Bold choice of font.", "Bolder choice of career."),
        improvements=(Improvement(priority=Priority.HIGH, title="Quantify", description="Add numbers",
                                  example="Cut costs 20%"),),
        strengths=("Clear layout",),
        weaknesses=("Typos",),
    )
    report = format_report(result)
    assert report.startswith("CV Slayer report: cv.pdf\n")
    assert "Score: 72/100" in report
    assert "Bolder choice of career." in report
    assert "1. [HIGH] Quantify" in report
    assert "Example: Cut costs 20%" in report
    assert "- Clear layout" in report and "- Typos" in report


def test_report_for_empty_result():
    report = format_report(SafeResult())
    assert "No feedback available" in report
    assert "Improvements" not in report and "Strengths" not in report


@pytest.mark.parametrize("raw, escaped", [
    ("Jane Doe", "Jane Doe"),
    ("![x](http://a.io/p.png)", r"\!\[x\]\(http\://a\.io/p\.png\)"),
    ("**bold** _it_ `code`", r"\*\*bold\*\* \_it\_ \`code\`"),
    (":red[alert]", r"\:red\[alert\]"),
    ("# heading", r"\# heading"),
])
def test_escape_markdown(raw, escaped):
    assert escape_markdown(raw) == escaped
