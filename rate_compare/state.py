"""
Shared TypedDicts for the comparison pipeline.
"""

from typing import Any, TypedDict

MODE_TOC = "TOC"
MODE_PAGES = "PAGES"

DIFFERENCE_NUMERIC = "Numeric"
DIFFERENCE_TEXTUAL = "Textual"


class OutlineNode(TypedDict):
    title: str
    destination: Any          # opaque, only the document can resolve it
    children: list["OutlineNode"]


class Section(TypedDict):
    title: str
    start_page: int           # 1-indexed
    level: int                # nesting depth in the outline
    has_valid_page: bool      # False when the page was estimated


class ExtractedSection(TypedDict):
    title: str
    text: str


class DocumentResult(TypedDict):
    name: str
    sections: list[ExtractedSection]
    mode: str                 # MODE_TOC or MODE_PAGES


class DiffPart(TypedDict):
    value: str
    added: bool
    removed: bool


class NumericChange(TypedDict):
    category: str
    old_value: str
    new_value: str


class SectionDiff(TypedDict):
    title: str
    changes: list[DiffPart]


class NumericSectionDiff(TypedDict):
    title: str
    numeric_changes: list[NumericChange]


class ExportRow(TypedDict):
    section_title: str
    category: str | None
    old_value: str
    new_value: str
    difference_type: str
