"""
pipeline/outline.py — turn a document outline into ordered sections.

Each outline node resolves to one of three outcomes: a real page, an
estimate (no destination at all) or a failed lookup. Estimated and failed
nodes both get a placeholder page that is replaced once every node is known,
spreading them evenly over the document instead of piling them on page 1.
"""

import logging
import math
from dataclasses import dataclass

from rate_compare.pipeline.loader import DocumentHandle
from rate_compare.state import OutlineNode, Section

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolved:
    page: int                 # 1-indexed


@dataclass(frozen=True)
class Estimated:
    pass


@dataclass(frozen=True)
class Failed:
    reason: str


PageResolution = Resolved | Estimated | Failed


async def _resolve_page(doc: DocumentHandle, node: OutlineNode) -> PageResolution:
    destination = node.get("destination")
    if destination is None:
        return Estimated()
    try:
        index = await doc.resolve_destination(destination)
    except Exception as exc:
        return Failed(str(exc) or type(exc).__name__)
    if not isinstance(index, int) or index < 0:
        return Failed(f"invalid page index {index!r}")
    return Resolved(index + 1)


async def _collect(
    doc: DocumentHandle,
    nodes: list[OutlineNode],
    level: int,
    sections: list[Section],
) -> None:
    """Depth-first walk; children follow their parent."""
    for node in nodes:
        title = (node.get("title") or "").strip()
        if title:
            resolution = await _resolve_page(doc, node)
            if isinstance(resolution, Failed):
                logger.warning("Could not resolve destination for %r: %s", title, resolution.reason)

            if isinstance(resolution, Resolved):
                sections.append(Section(
                    title=title, start_page=resolution.page, level=level, has_valid_page=True,
                ))
            else:
                # Placeholder only, replaced in _place_sections.
                sections.append(Section(
                    title=title, start_page=len(sections) + 1, level=level, has_valid_page=False,
                ))

        children = node.get("children") or []
        if children:
            await _collect(doc, children, level + 1, sections)


def _dedupe(sections: list[Section]) -> list[Section]:
    """Drop repeated titles, first occurrence wins."""
    seen: set[str] = set()
    unique = []
    for section in sections:
        if section["title"] in seen:
            continue
        seen.add(section["title"])
        unique.append(section)
    return unique


def _place_sections(sections: list[Section], page_count: int) -> list[Section]:
    """Assign pages to unresolved sections and order everything by start page."""
    order = {id(s): i for i, s in enumerate(sections)}
    valid = [s for s in sections if s["has_valid_page"]]
    invalid = [s for s in sections if not s["has_valid_page"]]

    if valid:
        valid.sort(key=lambda s: s["start_page"])
        step = math.ceil(page_count / (len(invalid) + 1))
        for rank, section in enumerate(invalid, start=1):
            section["start_page"] = step * rank
        placed = sorted(valid + invalid, key=lambda s: (s["start_page"], order[id(s)]))
    else:
        step = math.ceil(page_count / len(sections))
        for index, section in enumerate(sections):
            section["start_page"] = step * index + 1
        placed = list(sections)

    for section in placed:
        section["start_page"] = min(section["start_page"], page_count)
    return placed


async def resolve_outline(
    doc: DocumentHandle,
    nodes: list[OutlineNode] | None,
    page_count: int,
) -> list[Section]:
    """Resolve outline nodes into deduplicated, page-ordered sections.

    An empty result means the outline is not usable and the caller should
    fall back to one section per page. That is not an error.
    """
    if not nodes:
        return []

    raw: list[Section] = []
    await _collect(doc, nodes, 0, raw)
    if not raw:
        return []

    sections = _dedupe(raw)
    estimated = sum(1 for s in sections if not s["has_valid_page"])
    if estimated:
        logger.info("%d of %d outline sections have estimated pages", estimated, len(sections))

    sections = _place_sections(sections, page_count)
    logger.info("Resolved %d sections from outline", len(sections))
    return sections
