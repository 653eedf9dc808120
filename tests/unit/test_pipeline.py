"""CLI smoke tests that need no model or backend."""

import sys

import pytest

from resumefit import pipeline


@pytest.mark.unit
def test_chunk_command_prints_sections(tmp_path, monkeypatch, capsys):
    doc = tmp_path / "job.txt"
    doc.write_text("Requirements\n5+ years of Python.\nResponsibilities\nBuild services.", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["resumefit", "chunk", str(doc), "--type", "job"])

    pipeline.main()

    out = capsys.readouterr().out
    assert "requirements" in out
    assert "responsibilities" in out
    assert out.rstrip().endswith("2 chunks")


@pytest.mark.unit
def test_no_command_prints_help(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["resumefit"])

    with pytest.raises(SystemExit) as excinfo:
        pipeline.main()

    assert excinfo.value.code == 0
    assert "analyze" in capsys.readouterr().out
