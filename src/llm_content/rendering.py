"""Renderer adapter for pre-rendered HTML exports."""

import logging
from pathlib import Path

from .errors import RenderFailure
from .models.content import ContentItem

logger = logging.getLogger(__name__)


class SnapshotRenderer:
    """
    Serves HTML that the CMS rendered ahead of time.

    Looks for "<id>.<langcode>.<view_mode>.html" and falls back to
    "<id>.<langcode>.html" in the snapshot directory. Lets the CLI
    convert content without a live CMS.

    Example:
        renderer = SnapshotRenderer(Path("./rendered"))
        html = renderer.render(item, "full")
    """

    def __init__(self, directory: Path, encoding: str = "utf-8"):
        self._directory = Path(directory)
        self._encoding = encoding

    def _candidates(self, item: ContentItem, view_mode: str) -> list[Path]:
        return [
            self._directory / f"{item.id}.{item.langcode}.{view_mode}.html",
            self._directory / f"{item.id}.{item.langcode}.html",
        ]

    def render(self, item: ContentItem, view_mode: str) -> str:
        for path in self._candidates(item, view_mode):
            if path.is_file():
                logger.debug(f"Rendering item {item.id} from {path}")
                return path.read_text(encoding=self._encoding, errors="replace")
        raise RenderFailure(item.id, f"no rendered HTML in {self._directory}")

