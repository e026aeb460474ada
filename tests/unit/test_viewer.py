"""Unit tests for sudolog.core.viewer."""

from __future__ import annotations

from pathlib import Path

from sudolog.core.viewer import install_viewer, viewer_html


def test_packaged_viewer_decodes_blob_layout() -> None:
    html = viewer_html().decode("utf-8")
    assert "AES-GCM" in html
    assert "PBKDF2" in html
    assert "audit-log.json" in html


def test_install_writes_assets(tmp_path: Path) -> None:
    repo = tmp_path / "work"
    assert install_viewer(repo) == ["index.html", ".nojekyll"]
    assert (repo / "index.html").read_bytes() == viewer_html()
    assert (repo / ".nojekyll").read_bytes() == b""


def test_install_restores_modified_viewer(tmp_path: Path) -> None:
    install_viewer(tmp_path)
    (tmp_path / "index.html").write_text("defaced")
    install_viewer(tmp_path)
    assert (tmp_path / "index.html").read_bytes() == viewer_html()
