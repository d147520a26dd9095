"""Shared fixtures and fakes for reviewpanel tests."""

import threading

import pytest

from reviewpanel.lib.errors import ProviderError


def make_review(
    status="acceptable",
    score=80,
    issues=None,
    strengths=None,
    priorities=None,
) -> dict:
    """Build a reviewer response in the wire shape."""
    return {
        "status": status,
        "score": score,
        "issues": issues or [],
        "strengths": strengths or [],
        "improvement_priorities": priorities or [],
    }


class FakeGenerator:
    """Text-generation fake keyed by instruction text.

    Tests write each reviewer's instruction document as just its id, so the
    instructions passed in identify the reviewer. A value that is an
    exception instance is raised instead of returned.
    """

    def __init__(self, responses=None, default=None):
        self.responses = responses or {}
        self.default = default
        self.calls = []
        self._lock = threading.Lock()

    def generate_structured(self, prompt, instructions):
        reviewer = instructions.strip()
        with self._lock:
            self.calls.append((reviewer, prompt))
        response = self.responses.get(reviewer, self.default)
        if response is None:
            raise ProviderError(f"no response configured for {reviewer}")
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def called_reviewers(self):
        return sorted(r for r, _ in self.calls)


class FakePanelSelector:
    """Semantic selection delegate that counts calls."""

    def __init__(self, panel=None, error=None):
        self.panel = panel or []
        self.error = error
        self.calls = []

    def select_panel(self, description):
        self.calls.append(description)
        if self.error is not None:
            raise self.error
        return list(self.panel)


@pytest.fixture
def write_instructions(tmp_path):
    """Write instruction documents (content = reviewer id) into tmp_path/reviewers."""
    reviewers_dir = tmp_path / "reviewers"

    def _write(*reviewer_ids):
        reviewers_dir.mkdir(exist_ok=True)
        for rid in reviewer_ids:
            (reviewers_dir / f"{rid}.md").write_text(f"<!-- {rid} instructions -->\n{rid}\n")
        return reviewers_dir

    return _write
