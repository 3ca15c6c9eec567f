"""
Decision rules: raw model output -> result -> sentiment bucket, plus the
readiness predicate and session-state derivation.

Everything here is pure; state lives in the SessionFlags record owned by
the session and is re-derived on every read.
"""

from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any, Mapping

from review_sentiment.errors import MalformedOutput
from review_sentiment.models.base import ClassificationResult

CONFIDENCE_THRESHOLD = 0.5


class Bucket(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ComponentState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    DEGRADED = "degraded"  # exactly one component failed
    UNAVAILABLE = "unavailable"  # both failed


@dataclass(frozen=True)
class SessionFlags:
    """Snapshot of the inputs every derived state is computed from."""

    corpus_state: ComponentState = ComponentState.IDLE
    classifier_state: ComponentState = ComponentState.IDLE
    corpus_size: int = 0
    busy: bool = False

    @property
    def corpus_loaded(self) -> bool:
        return self.corpus_state is ComponentState.READY

    @property
    def classifier_loaded(self) -> bool:
        return self.classifier_state is ComponentState.READY


def normalize(raw_output: Any) -> ClassificationResult:
    """
    Reduce ranked model output to its first entry.

    The provider ranks entries best first, so later entries and ties are
    ignored rather than re-sorted.

    :param raw_output: [{'label': str, 'score': number}, ...]
    :return: ClassificationResult with an upper-cased label
    :raises MalformedOutput: not a non-empty list, or first entry lacks label/score
    """
    if not isinstance(raw_output, (list, tuple)) or len(raw_output) == 0:
        raise MalformedOutput("Unexpected inference output format.")

    top = raw_output[0]
    if not isinstance(top, Mapping):
        raise MalformedOutput("Inference output missing label/score.")

    label = top.get("label")
    score = top.get("score")
    if not isinstance(label, str):
        raise MalformedOutput("Inference output missing label.")
    if isinstance(score, bool) or not isinstance(score, Real):
        raise MalformedOutput("Inference output missing score.")

    return ClassificationResult(label=label.upper(), score=float(score))


def bucketize(result: ClassificationResult) -> Bucket:
    """Map a result to a bucket; a score of exactly 0.5 stays neutral."""
    label = result.label.upper()
    if label == "POSITIVE" and result.score > CONFIDENCE_THRESHOLD:
        return Bucket.POSITIVE
    if label == "NEGATIVE" and result.score > CONFIDENCE_THRESHOLD:
        return Bucket.NEGATIVE
    return Bucket.NEUTRAL


def compute_readiness(corpus_loaded: bool, classifier_loaded: bool, corpus_size: int) -> bool:
    return corpus_loaded and classifier_loaded and corpus_size > 0


def derive_session_state(flags: SessionFlags) -> SessionState:
    """
    Derive the overall session state from the two component sub-machines.

    :param flags: Current SessionFlags snapshot
    :return: INITIALIZING until both settled, then READY, DEGRADED or UNAVAILABLE
    """
    unsettled = (ComponentState.IDLE, ComponentState.PENDING)
    if flags.corpus_state in unsettled or flags.classifier_state in unsettled:
        return SessionState.INITIALIZING

    if compute_readiness(flags.corpus_loaded, flags.classifier_loaded, flags.corpus_size):
        return SessionState.READY

    corpus_failed = flags.corpus_state is ComponentState.FAILED
    classifier_failed = flags.classifier_state is ComponentState.FAILED
    if corpus_failed and classifier_failed:
        return SessionState.UNAVAILABLE
    return SessionState.DEGRADED
