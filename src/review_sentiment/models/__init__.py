"""
Model abstractions for sentiment inference.

This module provides:
- SentimentModel ABC: Base class for sentiment providers
- ClassificationResult: Dataclass for a normalized prediction
- DistilBertSentimentModel: SST-2 DistilBERT implementation
- SentimentClassifier: Session-scoped adapter with timed initialization
"""

from review_sentiment.models.base import SentimentModel, ClassificationResult
from review_sentiment.models.distilbert import DistilBertSentimentModel
from review_sentiment.models.classifier import SentimentClassifier, InitOutcome, InitStatus

__all__ = [
    "SentimentModel",
    "ClassificationResult",
    "DistilBertSentimentModel",
    "SentimentClassifier",
    "InitOutcome",
    "InitStatus",
]
