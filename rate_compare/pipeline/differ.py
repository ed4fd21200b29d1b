"""
Per-section comparison: a line diff of the full text, or the numeric
key/value comparison when only numbers matter.

Sections without any change are left out of the results.
"""

import logging
from difflib import SequenceMatcher

from rate_compare.pipeline.numeric import compare_numeric
from rate_compare.state import DiffPart, ExtractedSection, NumericSectionDiff, SectionDiff

logger = logging.getLogger(__name__)


def _line_key(line: str) -> str:
    return " ".join(line.split())


def _part(lines: list[str], added: bool = False, removed: bool = False) -> DiffPart:
    return DiffPart(value="\n".join(lines), added=added, removed=removed)


def diff_lines(old_text: str, new_text: str) -> list[DiffPart]:
    """Line diff where each line is one token and spacing inside a line is ignored."""
    old_lines = old_text.splitlines()
    new_lines = new_text.splitlines()

    matcher = SequenceMatcher(
        None,
        [_line_key(line) for line in old_lines],
        [_line_key(line) for line in new_lines],
        autojunk=False,
    )

    parts: list[DiffPart] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            parts.append(_part(new_lines[j1:j2]))
            continue
        if tag in ("delete", "replace"):
            parts.append(_part(old_lines[i1:i2], removed=True))
        if tag in ("insert", "replace"):
            parts.append(_part(new_lines[j1:j2], added=True))
    return parts


def has_changes(parts: list[DiffPart]) -> bool:
    return any(p["added"] or p["removed"] for p in parts)


def compare_sections(
    old_sections: list[ExtractedSection],
    new_sections: list[ExtractedSection],
    titles: list[str],
    selection: dict[str, bool],
    only_numeric: bool = False,
) -> list[SectionDiff | NumericSectionDiff]:
    """Compare every selected title, in title order."""
    old_by_title = {s["title"]: s["text"] for s in old_sections}
    new_by_title = {s["title"]: s["text"] for s in new_sections}

    results: list[SectionDiff | NumericSectionDiff] = []
    for title in titles:
        if not selection.get(title, True):
            continue

        old_text = old_by_title.get(title, "").strip()
        new_text = new_by_title.get(title, "").strip()

        if only_numeric:
            numeric_changes = compare_numeric(old_text, new_text)
            if numeric_changes:
                results.append(NumericSectionDiff(title=title, numeric_changes=numeric_changes))
            continue

        parts = diff_lines(old_text, new_text)
        if has_changes(parts):
            results.append(SectionDiff(title=title, changes=parts))

    logger.info(
        "Compared %d titles (%s mode): %d with differences",
        sum(1 for t in titles if selection.get(t, True)),
        "numeric" if only_numeric else "text",
        len(results),
    )
    return results
