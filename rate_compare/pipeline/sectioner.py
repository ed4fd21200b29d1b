"""
Splits a document into titled sections and materializes their text.

Sections come from the outline when it is usable (TOC mode), otherwise one
section per physical page (PAGES mode). Both documents of a comparison are
extracted concurrently and joined before anything downstream runs.
"""

import asyncio
import logging
from pathlib import Path

from rate_compare.errors import DocumentDecodeError
from rate_compare.pipeline.loader import DocumentHandle, open_document, validate_input
from rate_compare.pipeline.outline import resolve_outline
from rate_compare.state import MODE_PAGES, MODE_TOC, DocumentResult, ExtractedSection, Section

logger = logging.getLogger(__name__)


def page_sections(page_count: int) -> list[Section]:
    """One section per page, titled "Page N"."""
    return [
        Section(title=f"Page {n}", start_page=n, level=0, has_valid_page=True)
        for n in range(1, page_count + 1)
    ]


def section_page_ranges(sections: list[Section], page_count: int) -> list[tuple[int, int]]:
    """Inclusive (start, end) page range per section.

    A section ends where the next one starts. Pages before the first section
    belong to the first section, so the ranges cover 1..page_count once.
    """
    ranges = []
    for i, section in enumerate(sections):
        start = 1 if i == 0 else section["start_page"]
        if i + 1 < len(sections):
            end = sections[i + 1]["start_page"] - 1
        else:
            end = page_count
        ranges.append((start, end))
    return ranges


async def extract_section_texts(
    doc: DocumentHandle,
    sections: list[Section],
) -> list[ExtractedSection]:
    extracted: list[ExtractedSection] = []
    for section, (start, end) in zip(sections, section_page_ranges(sections, doc.page_count)):
        parts = []
        for page_number in range(start, end + 1):
            if page_number < 1 or page_number > doc.page_count:
                continue
            parts.append(await doc.page_text(page_number))
        extracted.append(ExtractedSection(title=section["title"], text=" ".join(parts)))
    return extracted


async def discover_sections(doc: DocumentHandle) -> tuple[list[Section], str]:
    """Sections from the outline, or per page when the outline gives nothing."""
    sections = await resolve_outline(doc, doc.outline(), doc.page_count)
    if sections:
        return sections, MODE_TOC

    logger.warning(
        "No outline sections could be extracted from %s. Falling back to page-by-page splitting.",
        doc.name,
    )
    return page_sections(doc.page_count), MODE_PAGES


async def extract_document(doc: DocumentHandle) -> DocumentResult:
    sections, mode = await discover_sections(doc)
    extracted = await extract_section_texts(doc, sections)

    for s in extracted:
        logger.debug("  Section %r %d chars", s["title"], len(s["text"]))
    logger.info("Extracted %d sections from %s (%s mode)", len(extracted), doc.name, mode)
    return DocumentResult(name=doc.name, sections=extracted, mode=mode)


async def _extract_path(path: Path) -> DocumentResult:
    doc = await asyncio.to_thread(open_document, path)
    with doc:
        try:
            return await extract_document(doc)
        except DocumentDecodeError:
            raise
        except Exception as exc:
            raise DocumentDecodeError(str(path), error=str(exc)) from exc


async def extract_pair(old_path: str | Path, new_path: str | Path) -> tuple[DocumentResult, DocumentResult]:
    """Extract both documents concurrently.

    Both inputs are validated before either task starts. A failing document
    never cancels the other one; the first failure is raised after the join.
    """
    old_path = validate_input(old_path)
    new_path = validate_input(new_path)

    results = await asyncio.gather(
        _extract_path(old_path),
        _extract_path(new_path),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    old_result, new_result = results
    return old_result, new_result
