"""
Base classes for sentiment classification models.

Provides the abstract provider interface and the normalized result dataclass.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class ClassificationResult:
    """Top-ranked prediction for one review."""

    label: str  # upper-cased model label, e.g. "POSITIVE"
    score: float  # Confidence score (0-1)

    def to_dict(self) -> dict:
        return {"label": self.label, "score": self.score}


class SentimentModel(ABC):
    """Abstract base class for sentiment classification providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Model name identifier (e.g., 'distilbert-sst2')."""
        pass

    @property
    @abstractmethod
    def version(self) -> str:
        """Model version for reproducibility."""
        pass

    @property
    @abstractmethod
    def max_tokens(self) -> int:
        """Maximum input tokens supported by the model."""
        pass

    @abstractmethod
    def load(self) -> None:
        """Load model weights into memory."""
        pass

    @abstractmethod
    def predict(self, text: str) -> List[Dict]:
        """
        Classify a single text.

        :param text: Review text to analyze
        :return: List of {'label': str, 'score': float}, ranked best first
        """
        pass

    @abstractmethod
    def unload(self) -> None:
        """Release model from memory."""
        pass

    def is_loaded(self) -> bool:
        """Check if model is currently loaded."""
        return False
