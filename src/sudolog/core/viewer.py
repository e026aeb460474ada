"""Static browser viewer installed beside the log in the working copy."""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path

from sudolog.core.constants import NOJEKYLL_FILENAME, VIEWER_FILENAME

logger = logging.getLogger(__name__)


def viewer_html() -> bytes:
    """Return the packaged ``index.html``."""
    return resources.files("sudolog").joinpath("viewer", VIEWER_FILENAME).read_bytes()


def install_viewer(repo_path: Path) -> list[str]:
    """
    Copy the viewer into *repo_path* and ensure an empty ``.nojekyll`` exists.

    ``.nojekyll`` stops GitHub Pages from running Jekyll over the directory,
    so the page is served as-is.

    Returns:
        Paths relative to *repo_path* to stage alongside the log.
    """
    repo_path.mkdir(parents=True, exist_ok=True)

    html = viewer_html()
    dest = repo_path / VIEWER_FILENAME
    if not dest.exists() or dest.read_bytes() != html:
        dest.write_bytes(html)
        logger.info("Viewer written to %s", dest)

    marker = repo_path / NOJEKYLL_FILENAME
    if not marker.exists():
        marker.write_bytes(b"")

    return [VIEWER_FILENAME, NOJEKYLL_FILENAME]
