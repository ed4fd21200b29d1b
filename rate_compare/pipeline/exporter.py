"""
Export: turns comparison results into flat before/after rows and writes them
to an XLSX workbook with openpyxl.

Text diffs are paired: a removed part directly followed by an added part is
one "replace" row. Numeric changes are already paired per key.
"""

import logging
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

from rate_compare.errors import EmptyExportError, ExportError
from rate_compare.state import (
    DIFFERENCE_NUMERIC,
    DIFFERENCE_TEXTUAL,
    DiffPart,
    ExportRow,
    NumericSectionDiff,
    SectionDiff,
)

logger = logging.getLogger(__name__)

DEFAULT_REPORT_NAME = "Rate_Comparison_Report.xlsx"
SHEET_TITLE = "Differences"

_COLUMNS = [
    ("Section Title", "section_title"),
    ("Category", "category"),
    ("Old Value", "old_value"),
    ("New Value", "new_value"),
    ("Difference Type", "difference_type"),
]


def _text_row(title: str, old_value: str = "", new_value: str = "") -> ExportRow:
    return ExportRow(
        section_title=title,
        category=None,
        old_value=old_value.strip(),
        new_value=new_value.strip(),
        difference_type=DIFFERENCE_TEXTUAL,
    )


def pair_changes(title: str, parts: list[DiffPart]) -> list[ExportRow]:
    rows: list[ExportRow] = []
    i = 0
    while i < len(parts):
        current = parts[i]
        following = parts[i + 1] if i + 1 < len(parts) else None

        if current["removed"] and following is not None and following["added"]:
            rows.append(_text_row(title, current["value"], following["value"]))
            i += 2
            continue
        if current["removed"]:
            rows.append(_text_row(title, old_value=current["value"]))
        elif current["added"]:
            rows.append(_text_row(title, new_value=current["value"]))
        i += 1
    return rows


def build_export_rows(results: list[SectionDiff | NumericSectionDiff]) -> list[ExportRow]:
    """Rows in section order, then in-section order. Empty means nothing to export."""
    rows: list[ExportRow] = []
    for result in results:
        title = result["title"]
        if "numeric_changes" in result:
            for change in result["numeric_changes"]:
                rows.append(ExportRow(
                    section_title=title,
                    category=change["category"],
                    old_value=change["old_value"],
                    new_value=change["new_value"],
                    difference_type=DIFFERENCE_NUMERIC,
                ))
        else:
            rows.extend(pair_changes(title, result["changes"]))
    return rows


def write_workbook(rows: list[ExportRow], output_path: Path) -> Path:
    """Write rows to a single "Differences" sheet.

    Raises:
        EmptyExportError: rows is empty; callers are expected to check first.
        ExportError: the workbook could not be written.
    """
    if not rows:
        raise EmptyExportError("No differences to export", path=str(output_path))

    with_category = any(row["category"] is not None for row in rows)
    columns = [(header, key) for header, key in _COLUMNS if with_category or key != "category"]

    try:
        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_TITLE

        ws.append([header for header, _ in columns])
        for cell in ws[1]:
            cell.font = Font(bold=True)
        ws.freeze_panes = "A2"

        for row in rows:
            ws.append([row[key] if row[key] is not None else "" for _, key in columns])

        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
    except Exception as exc:
        raise ExportError("Failed to write workbook", path=str(output_path), error=str(exc)) from exc

    logger.info("Exported %d rows -> %s", len(rows), output_path)
    return output_path
