from __future__ import annotations
import re
from typing import List, Tuple

from ..models import SafeResult

_MARKDOWN_SPECIAL = re.compile(r"([\\`*_{}\[\]()<>#+\-.!|~$:])")


def escape_markdown(text: str) -> str:
    """Backslash-escape markdown syntax so untrusted text renders literally."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def score_band(score: int) -> Tuple[str, str]:
    """Color and one-line verdict for a 0–100 score."""
    if score >= 80:
        return "green", "Outstanding resume! You're ready to impress employers."
    if score >= 60:
        return "orange", "Good foundation with room for strategic improvements."
    return "red", "Let's transform your resume into a powerful tool."


def format_report(result: SafeResult) -> str:
    """Plain-text version of a result, offered as a download."""
    _, verdict = score_band(result.score)
    lines: List[str] = [
        f"CV Slayer report: {result.file_name}",
        f"Score: {result.score}/100 ({verdict})",
        "",
        "Roast",
        "-----",
    ]
    lines.extend(result.feedback or ["No feedback available for this analysis."])

    if result.improvements:
        lines += ["", "Improvements", "------------"]
        for i, imp in enumerate(result.improvements, 1):
            lines.append(f"{i}. [{imp.priority.value.upper()}] {imp.title}")
            if imp.description:
                lines.append(f"   {imp.description}")
            if imp.example:
                lines.append(f"   Example: {imp.example}")

    for title, items in (("Strengths", result.strengths), ("Weaknesses", result.weaknesses)):
        if items:
            lines += ["", title, "-" * len(title)]
            lines.extend(f"- {item}" for item in items)
    return "\n".join(lines) + "\n"
