"""
Pytest configuration and shared fixtures
"""
import threading
import pytest
import sys
from pathlib import Path
from typing import Dict, List

# Add src to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from review_sentiment.models.base import SentimentModel


SAMPLE_TSV = "id\ttext\n1\tGreat product!\n2\t   \n3\tTerrible.\n"


class FakeSentimentModel(SentimentModel):
    """In-memory model: returns canned ranked outputs keyed by text."""

    def __init__(self, outputs: Dict[str, List[Dict]] = None, default=None,
                 load_error: Exception = None, predict_error: Exception = None,
                 load_gate: threading.Event = None):
        self.outputs = outputs or {}
        self.default = default if default is not None else [
            {"label": "POSITIVE", "score": 0.9},
            {"label": "NEGATIVE", "score": 0.1},
        ]
        self.load_error = load_error
        self.predict_error = predict_error
        self.load_gate = load_gate
        self.load_calls = 0
        self.unload_calls = 0
        self.predict_calls = []
        self._loaded = False

    @property
    def name(self) -> str:
        return "fake"

    @property
    def version(self) -> str:
        return "0.0.1"

    @property
    def max_tokens(self) -> int:
        return 512

    def load(self) -> None:
        self.load_calls += 1
        if self.load_gate is not None:
            self.load_gate.wait(timeout=5)
        if self.load_error is not None:
            raise self.load_error
        self._loaded = True

    def predict(self, text: str) -> List[Dict]:
        self.predict_calls.append(text)
        if self.predict_error is not None:
            raise self.predict_error
        return self.outputs.get(text, self.default)

    def unload(self) -> None:
        self.unload_calls += 1
        self._loaded = False

    def is_loaded(self) -> bool:
        return self._loaded


@pytest.fixture
def sample_tsv():
    """Provide the three-row review TSV (one blank text)"""
    return SAMPLE_TSV


@pytest.fixture
def sample_tsv_file(tmp_path, sample_tsv):
    """Write the sample TSV to a temporary file and return its path"""
    path = tmp_path / "reviews_test.tsv"
    path.write_text(sample_tsv, encoding="utf-8")
    return path


@pytest.fixture
def fake_model():
    """Provide a loadable in-memory sentiment model"""
    return FakeSentimentModel()


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (slower)"
    )


def pytest_collection_modifyitems(config, items):
    """
    Auto-apply markers based on test file location.

    Convention:
      - tests/unit/**         => @pytest.mark.unit
      - tests/integration/**  => @pytest.mark.integration
    """
    root = Path(str(config.rootpath)).resolve()

    unit_dir = (root / "tests" / "unit").resolve()
    integration_dir = (root / "tests" / "integration").resolve()

    for item in items:
        p = Path(str(item.fspath)).resolve()

        if unit_dir in p.parents:
            item.add_marker(pytest.mark.unit)

        if integration_dir in p.parents:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def make_model():
    """Provide the FakeSentimentModel class for tests that need custom behaviour"""
    return FakeSentimentModel
