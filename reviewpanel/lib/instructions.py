"""
Reviewer instruction store.

Each reviewer's instructions live in <reviewers_dir>/<reviewer_id>.md.
A missing document is a configuration defect, never a reason to quietly
shrink the panel: load_instructions raises InstructionNotFound.
"""

import logging
import threading
from pathlib import Path

from reviewpanel.lib.errors import InstructionNotFound
from reviewpanel.lib.prompts import strip_html_comments

logger = logging.getLogger(__name__)


class InstructionStore:
    """Loads and caches reviewer instruction documents."""

    def __init__(self, reviewers_dir: Path):
        self.reviewers_dir = reviewers_dir
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def path_for(self, reviewer_id: str) -> Path:
        return self.reviewers_dir / f"{reviewer_id}.md"

    def load_instructions(self, reviewer_id: str) -> str:
        """Return instruction text for a reviewer.

        Raises:
            InstructionNotFound: If the document doesn't exist
        """
        with self._lock:
            if reviewer_id in self._cache:
                return self._cache[reviewer_id]

        path = self.path_for(reviewer_id)
        if not path.is_file():
            raise InstructionNotFound(reviewer_id, path)

        logger.debug(f"Loading reviewer instructions: {reviewer_id}")
        text = strip_html_comments(path.read_text())
        with self._lock:
            self._cache[reviewer_id] = text
        return text

    def load_panel(self, panel: list[str]) -> dict[str, str]:
        """Load instructions for a whole panel before anything is dispatched.

        Raises:
            InstructionNotFound: On the first reviewer without a document
        """
        return {rid: self.load_instructions(rid) for rid in panel}
