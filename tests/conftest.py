from __future__ import annotations

from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from taglint.vocabulary import VocabularyCache
from tests.file_helpers import FakeFiles


@pytest.fixture
def vocabulary_cache() -> VocabularyCache:
    return VocabularyCache()


@pytest.fixture
def fake_files():
    def _make(files: dict[str, str] | None = None) -> FakeFiles:
        return FakeFiles(files or {})

    return _make
