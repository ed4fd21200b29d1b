"""
PDF loading: pdfplumber for page text, its pdfminer document for the outline.

The rest of the pipeline only sees the DocumentHandle protocol, so tests can
swap in an in-memory document.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol

import pdfplumber
from pdfminer.pdfdocument import PDFDestinationNotFound
from pdfminer.pdftypes import PDFObjRef, resolve1
from pdfminer.psparser import PSLiteral
from pdfminer.utils import decode_text

from rate_compare.errors import DocumentDecodeError, InvalidInputError
from rate_compare.state import OutlineNode

logger = logging.getLogger(__name__)

PDF_SUFFIX = ".pdf"


class DocumentHandle(Protocol):
    name: str
    page_count: int

    def outline(self) -> list[OutlineNode] | None: ...

    async def resolve_destination(self, ref: Any) -> int: ...

    async def page_text(self, page_number: int) -> str: ...


def validate_input(path: str | Path) -> Path:
    """Reject absent or non-PDF inputs before any extraction work."""
    path = Path(path)
    if not path.exists():
        raise InvalidInputError("PDF not found", path=str(path))
    if not path.is_file():
        raise InvalidInputError("Not a file", path=str(path))
    if path.suffix.lower() != PDF_SUFFIX:
        raise InvalidInputError("Please select a valid PDF file", path=str(path))
    return path


def _literal_name(value: Any) -> Any:
    if isinstance(value, PSLiteral):
        return value.name
    return value


def _goto_target(action: Any) -> Any:
    """Destination carried by a GoTo action, or None."""
    action = resolve1(action)
    if not isinstance(action, dict):
        return None
    if _literal_name(action.get("S")) != "GoTo":
        return None
    return action.get("D")


def _name_keys(ref: Any) -> list[Any]:
    """Keys to try for a named destination.

    Name trees (/Names /Dests) are keyed by the raw string bytes, the legacy
    catalog /Dests dictionary by decoded names.
    """
    name = _literal_name(ref)
    if isinstance(name, bytes):
        return [name, name.decode("latin-1")]
    if isinstance(name, str):
        return [name.encode("latin-1", "replace"), name]
    return []


def _outline_title(entry: dict) -> str:
    title = resolve1(entry.get("Title"))
    if isinstance(title, bytes):
        return decode_text(title)
    if isinstance(title, str):
        return title
    return ""


class PdfDocument:
    """DocumentHandle over a pdfplumber PDF. Owned by one extraction task."""

    def __init__(self, pdf: pdfplumber.PDF, name: str) -> None:
        self._pdf = pdf
        self.name = name
        self.page_count = len(pdf.pages)
        self._page_ids = {page.page_obj.pageid: i for i, page in enumerate(pdf.pages)}
        self._text_cache: dict[int, str] = {}

    def __enter__(self) -> "PdfDocument":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._pdf.close()

    def _walk_outline(self, first: Any, into: list[OutlineNode], seen: set[int]) -> None:
        """Append the sibling chain starting at first, children included.

        Entries without /Dest or /A are kept with destination None.
        """
        ref = first
        while ref is not None:
            if isinstance(ref, PDFObjRef):
                if ref.objid in seen:
                    logger.warning("Outline of %s loops back to object %d", self.name, ref.objid)
                    return
                seen.add(ref.objid)

            entry = resolve1(ref)
            if not isinstance(entry, dict):
                return

            dest = entry.get("Dest")
            if dest is None and entry.get("A") is not None:
                dest = _goto_target(entry["A"])

            node = OutlineNode(title=_outline_title(entry), destination=dest, children=[])
            into.append(node)
            if entry.get("First") is not None:
                self._walk_outline(entry["First"], node["children"], seen)
            ref = entry.get("Next")

    def outline(self) -> list[OutlineNode] | None:
        root = resolve1(self._pdf.doc.catalog.get("Outlines"))
        if not isinstance(root, dict) or root.get("First") is None:
            return None

        nodes: list[OutlineNode] = []
        try:
            self._walk_outline(root["First"], nodes, set())
        except Exception as exc:
            # Keep whatever was read before the broken entry.
            logger.warning("Outline of %s is damaged: %s", self.name, exc)

        logger.debug("Outline of %s has %d top-level entries", self.name, len(nodes))
        return nodes

    def _lookup_named(self, ref: Any) -> Any:
        for key in _name_keys(ref):
            try:
                dest = resolve1(self._pdf.doc.get_dest(key))
            except (KeyError, TypeError, PDFDestinationNotFound):
                continue
            if isinstance(dest, dict):
                dest = resolve1(dest.get("D"))
            return dest
        raise LookupError(f"Named destination {ref!r} not found")

    def _resolve_sync(self, ref: Any) -> int:
        dest = resolve1(ref)

        # Named destination first, then an explicit [page /XYZ ...] array.
        if isinstance(dest, (str, bytes, PSLiteral)):
            dest = self._lookup_named(dest)
        if isinstance(dest, dict):
            dest = resolve1(dest.get("D"))

        if not isinstance(dest, (list, tuple)) or not dest:
            raise LookupError(f"Unresolvable destination {ref!r}")

        target = dest[0]
        if isinstance(target, PDFObjRef):
            if target.objid in self._page_ids:
                return self._page_ids[target.objid]
            raise LookupError(f"Destination page object {target.objid} not in document")
        if isinstance(target, int) and 0 <= target < self.page_count:
            # Some writers store a bare page index for remote-style destinations.
            return target
        raise LookupError(f"Unsupported destination target {target!r}")

    async def resolve_destination(self, ref: Any) -> int:
        return await asyncio.to_thread(self._resolve_sync, ref)

    def _page_text_sync(self, page_number: int) -> str:
        return self._pdf.pages[page_number - 1].extract_text() or ""

    async def page_text(self, page_number: int) -> str:
        if page_number not in self._text_cache:
            self._text_cache[page_number] = await asyncio.to_thread(
                self._page_text_sync, page_number,
            )
        return self._text_cache[page_number]


def open_document(path: str | Path) -> PdfDocument:
    """Open a PDF for extraction. Any decode failure names the offending file."""
    path = Path(path)
    try:
        pdf = pdfplumber.open(path)
    except Exception as exc:
        raise DocumentDecodeError(str(path), error=str(exc)) from exc

    try:
        document = PdfDocument(pdf, path.name)
    except Exception as exc:
        pdf.close()
        raise DocumentDecodeError(str(path), error=str(exc)) from exc

    if document.page_count < 1:
        document.close()
        raise DocumentDecodeError(str(path), error="document has no pages")

    logger.info("Opened %s: %d pages", path.name, document.page_count)
    return document
