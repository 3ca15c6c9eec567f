"""
Exception taxonomy for corpus loading, classifier lifecycle and inference.

None of these are fatal: the session converts every one of them into a
user-visible message and a telemetry record.
"""


class ReviewSentimentError(Exception):
    """Base class for all package errors."""


class CorpusError(ReviewSentimentError):
    """Corpus load failed; a fresh load attempt may succeed."""


class SourceUnavailable(CorpusError):
    """Tabular source could not be fetched or returned a non-success status."""


class ParseError(CorpusError):
    """Tabular parse reported a fatal condition."""


class EmptyCorpus(CorpusError):
    """Parse succeeded but no row carried a non-empty text value."""


class LoadSuperseded(CorpusError):
    """A newer load started before this one settled; its result was discarded."""


class ClassifierError(ReviewSentimentError):
    """Classifier lifecycle or inference failure."""


class ClassifierLoadError(ClassifierError):
    """Model provider raised while loading."""


class InitializationTimeout(ClassifierError):
    """Model load did not settle within the configured timeout."""


class NotReady(ClassifierError):
    """classify() called before a successful initialize()."""


class InferenceError(ClassifierError):
    """Model call raised, timed out, or produced unusable output."""


class MalformedOutput(InferenceError):
    """Raw model output is not a ranked list of label/score pairs."""
