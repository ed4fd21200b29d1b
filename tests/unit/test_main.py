"""
test_main.py - command line tests

main() is driven through sys.argv with extract_pair replaced, except for the
last class, which runs the whole pipeline over two small PDFs.
"""

import json
import logging
import sys
from pathlib import Path

import pytest
from openpyxl import load_workbook

from rate_compare import session as session_module
from rate_compare.errors import DocumentDecodeError
from rate_compare.main import main, run_pipeline
from rate_compare.session import EMPTY_EXPORT_NOTICE, FALLBACK_NOTICE
from rate_compare.state import MODE_TOC, DocumentResult


@pytest.fixture
def inputs(tmp_path: Path):
    """Existing old/new PDF paths; their content is never parsed."""
    old = tmp_path / "old.pdf"
    new = tmp_path / "new.pdf"
    old.write_bytes(b"%PDF")
    new.write_bytes(b"%PDF")
    return old, new


@pytest.fixture
def fake_pair(monkeypatch, make_section):
    """Install an extract_pair returning the given section texts."""

    def _install(old_sections, new_sections):
        async def _pair(old_path, new_path):
            return (
                DocumentResult(name=old_path.name, mode=MODE_TOC,
                               sections=[make_section(t, x) for t, x in old_sections]),
                DocumentResult(name=new_path.name, mode=MODE_TOC,
                               sections=[make_section(t, x) for t, x in new_sections]),
            )

        monkeypatch.setattr(session_module, "extract_pair", _pair)

    return _install


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["rate-compare", *map(str, args)])
    return main()


CHANGED = (
    [("Rates", "rate = 10"), ("Terms", "net 30")],
    [("Rates", "rate = 12"), ("Terms", "net 30"), ("Fees", "fee = 5")],
)


# =============================================================================
# run_pipeline
# =============================================================================

class TestRunPipeline:
    """run_pipeline."""

    def test_deselect_known_title(self, inputs, fake_pair):
        """A deselected title is left out of the results."""
        fake_pair(*CHANGED)

        session = run_pipeline(*inputs, deselect=["Fees"])

        assert session.selection["Fees"] is False
        assert [r["title"] for r in session.results] == ["Rates"]

    def test_deselect_unknown_title_warns(self, inputs, fake_pair, caplog):
        """An unknown title is logged and ignored."""
        fake_pair(*CHANGED)

        with caplog.at_level(logging.WARNING, logger="rate_compare.main"):
            session = run_pipeline(*inputs, deselect=["Surcharges"])

        assert "Unknown section 'Surcharges'" in caplog.text
        assert all(session.selection.values())
        assert [r["title"] for r in session.results] == ["Fees", "Rates"]


# =============================================================================
# main
# =============================================================================

class TestMain:
    """main() exit codes and outputs."""

    def test_writes_report(self, monkeypatch, inputs, fake_pair, tmp_path: Path):
        """Differences are exported and the exit code is 0."""
        fake_pair(*CHANGED)
        output = tmp_path / "out" / "report.xlsx"

        assert _run(monkeypatch, *inputs, "--output", output) == 0

        rows = list(load_workbook(output).active.iter_rows(values_only=True))
        assert rows[0][0] == "Section Title"
        assert {r[0] for r in rows[1:]} == {"Fees", "Rates"}

    def test_unknown_deselect_still_exports(self, monkeypatch, inputs, fake_pair, tmp_path: Path, caplog):
        """--deselect of a missing title warns but the run succeeds."""
        fake_pair(*CHANGED)
        output = tmp_path / "report.xlsx"

        with caplog.at_level(logging.WARNING):
            code = _run(monkeypatch, *inputs, "-o", output, "--deselect", "Nope")

        assert code == 0
        assert "Unknown section 'Nope'" in caplog.text
        assert output.exists()

    def test_list_sections(self, monkeypatch, inputs, fake_pair, tmp_path: Path, capsys):
        """--list-sections prints the aligned titles and writes nothing."""
        fake_pair(*CHANGED)
        output = tmp_path / "report.xlsx"

        assert _run(monkeypatch, *inputs, "-o", output, "--list-sections") == 0

        assert capsys.readouterr().out.splitlines() == ["Fees", "Rates", "Terms"]
        assert not output.exists()

    def test_results_json(self, monkeypatch, inputs, fake_pair, tmp_path: Path):
        """--results-json dumps the numeric results next to the report."""
        fake_pair(*CHANGED)
        dump = tmp_path / "dump" / "results.json"

        code = _run(monkeypatch, *inputs, "-o", tmp_path / "report.xlsx",
                    "--numeric", "--results-json", dump)

        assert code == 0
        assert json.loads(dump.read_text(encoding="utf-8")) == [
            {"title": "Fees", "numeric_changes": [{"category": "fee", "old_value": "0", "new_value": "5"}]},
            {"title": "Rates", "numeric_changes": [{"category": "rate", "old_value": "10", "new_value": "12"}]},
        ]

    def test_no_differences(self, monkeypatch, inputs, fake_pair, tmp_path: Path, capsys):
        """Identical documents print the notice, exit 0 and write no file."""
        same = [("Rates", "rate = 10")]
        fake_pair(same, same)
        output = tmp_path / "report.xlsx"

        assert _run(monkeypatch, *inputs, "-o", output) == 0

        assert EMPTY_EXPORT_NOTICE in capsys.readouterr().out.splitlines()
        assert not output.exists()

    def test_missing_input(self, monkeypatch, inputs, tmp_path: Path, caplog):
        """A missing PDF exits 1 with the structured error logged."""
        with caplog.at_level(logging.ERROR):
            code = _run(monkeypatch, inputs[0], tmp_path / "absent.pdf", "-o", tmp_path / "r.xlsx")

        assert code == 1
        logged = json.loads(caplog.records[-1].getMessage())
        assert logged["code"] == "InvalidInputError"
        assert logged["path"].endswith("absent.pdf")

    def test_decode_failure(self, monkeypatch, inputs, tmp_path: Path, caplog):
        """A document that cannot be parsed exits 1 naming the file."""

        async def failing_pair(old_path, new_path):
            raise DocumentDecodeError(str(new_path), error="corrupt xref")

        monkeypatch.setattr(session_module, "extract_pair", failing_pair)

        with caplog.at_level(logging.ERROR):
            code = _run(monkeypatch, *inputs, "-o", tmp_path / "report.xlsx")

        assert code == 1
        logged = json.loads(caplog.records[-1].getMessage())
        assert logged["code"] == "DocumentDecodeError"
        assert "new.pdf" in logged["message"]
        assert logged["error"] == "corrupt xref"
        assert not (tmp_path / "report.xlsx").exists()


# =============================================================================
# End to end
# =============================================================================

class TestMainOverPdfs:
    """main() over real PDFs without outlines."""

    def test_numeric_page_comparison(self, monkeypatch, make_pdf, tmp_path: Path, capsys):
        """Pages become sections, the notice is printed and the rate change exported."""
        old = make_pdf("old.pdf", texts=("rate = 10", "fee = 5"))
        new = make_pdf("new.pdf", texts=("rate = 12", "fee = 5"))
        output = tmp_path / "report.xlsx"

        assert _run(monkeypatch, old, new, "--numeric", "-o", output) == 0

        assert FALLBACK_NOTICE in capsys.readouterr().out
        rows = [list(r) for r in load_workbook(output).active.iter_rows(values_only=True)]
        assert rows == [
            ["Section Title", "Category", "Old Value", "New Value", "Difference Type"],
            ["Page 1", "rate", "10", "12", "Numeric"],
        ]
