"""
Pytest fixtures for the comparison pipeline tests.

FakeDocument stands in for a decoded PDF: pages are plain strings, outline
destinations are looked up in a dict and unknown ones fail the way a broken
PDF destination does.
"""

from collections import Counter
from typing import Any

import pytest

from rate_compare.state import ExtractedSection, OutlineNode


class FakeDocument:
    """In-memory DocumentHandle."""

    def __init__(
        self,
        pages: list[str],
        outline: list[OutlineNode] | None = None,
        destinations: dict[Any, int] | None = None,
        name: str = "fake.pdf",
    ) -> None:
        self.name = name
        self.pages = pages
        self.page_count = len(pages)
        self._outline = outline
        self.destinations = destinations or {}
        self.fetches: Counter = Counter()
        self.resolve_calls = 0
        self.closed = False

    def __enter__(self) -> "FakeDocument":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.closed = True

    def outline(self) -> list[OutlineNode] | None:
        return self._outline

    async def resolve_destination(self, ref: Any) -> int:
        self.resolve_calls += 1
        if ref not in self.destinations:
            raise LookupError(f"no destination {ref!r}")
        return self.destinations[ref]

    async def page_text(self, page_number: int) -> str:
        self.fetches[page_number] += 1
        return self.pages[page_number - 1]


def node(title: str, dest: Any = None, children: list[OutlineNode] | None = None) -> OutlineNode:
    return OutlineNode(title=title, destination=dest, children=children or [])


def section(title: str, text: str) -> ExtractedSection:
    return ExtractedSection(title=title, text=text)


@pytest.fixture
def make_document():
    """Factory for FakeDocument instances."""
    return FakeDocument


@pytest.fixture
def make_node():
    """Factory for OutlineNode dicts."""
    return node


@pytest.fixture
def make_section():
    """Factory for ExtractedSection dicts."""
    return section


# =============================================================================
# Real PDF fixtures
# =============================================================================

def _stream(content: str) -> str:
    return f"<< /Length {len(content)} >>\nstream\n{content}\nendstream"


def build_pdf(objects: list[str]) -> bytes:
    """Serialize numbered objects (1..n) with a valid xref table. Object 1 is the catalog."""
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")

    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_at}\n%%EOF\n"
    ).encode("ascii")
    return bytes(out)


@pytest.fixture
def make_pdf(tmp_path):
    """Write a two-page PDF and return its path.

    Fixed objects: 1 catalog, 2 pages, 3 and 4 the pages, 5 and 6 their
    content, 7 the font. extra_objects are numbered from 8 and
    catalog_extra is appended to the catalog dictionary.
    """

    def _make(name="doc.pdf", catalog_extra="", extra_objects=(), texts=("rate = 10", "fee = 5")):
        objects = [
            f"<< /Type /Catalog /Pages 2 0 R {catalog_extra} >>",
            "<< /Type /Pages /Kids [3 0 R 4 0 R] /Count 2 /MediaBox [0 0 612 792] >>",
            "<< /Type /Page /Parent 2 0 R /Contents 5 0 R /Resources << /Font << /F1 7 0 R >> >> >>",
            "<< /Type /Page /Parent 2 0 R /Contents 6 0 R /Resources << /Font << /F1 7 0 R >> >> >>",
            _stream(f"BT /F1 12 Tf 72 720 Td ({texts[0]}) Tj ET"),
            _stream(f"BT /F1 12 Tf 72 720 Td ({texts[1]}) Tj ET"),
            "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
            *extra_objects,
        ]
        path = tmp_path / name
        path.write_bytes(build_pdf(objects))
        return path

    return _make
