"""
ComparisonSession: the single owner of one comparison's state.

Loaded documents, the aligned title set, per-title selection, the numeric
flag and the last results all live here. Changing either document's sections
rebuilds the title set and selection from scratch and clears results.
"""

import logging
from pathlib import Path

from rate_compare.errors import InvalidInputError
from rate_compare.pipeline.aligner import align_sections
from rate_compare.pipeline.differ import compare_sections
from rate_compare.pipeline.exporter import build_export_rows, write_workbook
from rate_compare.pipeline.loader import validate_input
from rate_compare.pipeline.sectioner import extract_pair
from rate_compare.state import MODE_PAGES, DocumentResult, ExportRow, NumericSectionDiff, SectionDiff

logger = logging.getLogger(__name__)

OLD = "old"
NEW = "new"

FALLBACK_NOTICE = "One or both PDFs lacked a table of contents. Comparison is based on page numbers."
EMPTY_EXPORT_NOTICE = "No differences to export."


def _empty_result() -> DocumentResult:
    return DocumentResult(name="", sections=[], mode="")


class ComparisonSession:

    def __init__(self, only_numeric: bool = False) -> None:
        self.only_numeric = only_numeric
        self.files: dict[str, Path | None] = {OLD: None, NEW: None}
        self.documents: dict[str, DocumentResult] = {OLD: _empty_result(), NEW: _empty_result()}
        self.titles: list[str] = []
        self.selection: dict[str, bool] = {}
        self.results: list[SectionDiff | NumericSectionDiff] = []
        self.notice = ""

    @property
    def fallback_notice(self) -> str:
        modes = {self.documents[OLD]["mode"], self.documents[NEW]["mode"]}
        return FALLBACK_NOTICE if MODE_PAGES in modes else ""

    def select_file(self, side: str, path: str | Path) -> Path:
        """Accept one input file. A rejected file clears only its own side."""
        if side not in self.files:
            raise ValueError(f"Unknown side {side!r}")
        try:
            accepted = validate_input(path)
        except InvalidInputError:
            self.files[side] = None
            raise
        self.files[side] = accepted
        return accepted

    async def load(self) -> None:
        """Extract both selected files; nothing changes unless both succeed."""
        if self.files[OLD] is None or self.files[NEW] is None:
            raise InvalidInputError("Both an old and a new PDF are required")

        old_result, new_result = await extract_pair(self.files[OLD], self.files[NEW])
        self.results = []
        self.documents[OLD] = old_result
        self.documents[NEW] = new_result
        self._realign()

    def set_sections(self, side: str, result: DocumentResult) -> None:
        if side not in self.documents:
            raise ValueError(f"Unknown side {side!r}")
        self.documents[side] = result
        self.results = []
        self._realign()

    def _realign(self) -> None:
        self.titles, self.selection = align_sections(
            self.documents[OLD]["sections"], self.documents[NEW]["sections"],
        )
        if self.fallback_notice:
            logger.info(self.fallback_notice)

    def toggle(self, title: str) -> bool:
        return self.set_selected(title, not self.selection.get(title, True))

    def set_selected(self, title: str, selected: bool) -> bool:
        if title not in self.selection:
            raise KeyError(title)
        self.selection[title] = selected
        return selected

    def compare(self) -> list[SectionDiff | NumericSectionDiff]:
        self.notice = ""
        self.results = compare_sections(
            self.documents[OLD]["sections"],
            self.documents[NEW]["sections"],
            self.titles,
            self.selection,
            only_numeric=self.only_numeric,
        )
        return self.results

    def export_rows(self) -> list[ExportRow]:
        return build_export_rows(self.results)

    def export(self, output_path: str | Path) -> Path | None:
        """Write the workbook, or return None and set the notice when there is nothing to write."""
        rows = self.export_rows()
        if not rows:
            self.notice = EMPTY_EXPORT_NOTICE
            logger.info(EMPTY_EXPORT_NOTICE)
            return None
        return write_workbook(rows, Path(output_path))
