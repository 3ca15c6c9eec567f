"""
Review sentiment session: startup, reloads and the analyze action.

Loads the review corpus and the classifier concurrently, then serves one
analyze action at a time. Every failure is converted here into a presenter
message plus a telemetry record; nothing propagates out of the public
coroutines.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from review_sentiment.collection.corpus import CorpusLoader
from review_sentiment.derived.decision import (
    Bucket,
    ComponentState,
    SessionFlags,
    SessionState,
    bucketize,
    compute_readiness,
    derive_session_state,
)
from review_sentiment.errors import LoadSuperseded
from review_sentiment.models.base import ClassificationResult
from review_sentiment.models.classifier import InitOutcome, SentimentClassifier
from review_sentiment.telemetry import (
    PREVIEW_CHARS,
    TelemetryRecord,
    TelemetrySink,
    emit_safely,
)


class Presenter(ABC):
    """UI collaborator notified of status changes and results."""

    @abstractmethod
    def show_status(self, state: SessionState, message: str) -> None:
        pass

    @abstractmethod
    def show_error(self, message: str) -> None:
        pass

    @abstractmethod
    def clear_error(self) -> None:
        pass

    @abstractmethod
    def show_review(self, text: str) -> None:
        pass

    @abstractmethod
    def show_result(self, bucket: Bucket, label: str, score: Optional[float]) -> None:
        pass


class NullPresenter(Presenter):
    def show_status(self, state: SessionState, message: str) -> None:
        pass

    def show_error(self, message: str) -> None:
        pass

    def clear_error(self) -> None:
        pass

    def show_review(self, text: str) -> None:
        pass

    def show_result(self, bucket: Bucket, label: str, score: Optional[float]) -> None:
        pass


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of one analyze action (successful, failed or blocked)."""

    review: Optional[str] = None
    result: Optional[ClassificationResult] = None
    bucket: Optional[Bucket] = None
    error: Optional[Exception] = None
    blocked: bool = False

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None


class ReviewSentimentSession:
    """
    Coordinates the corpus loader, the classifier and the presenter.

    Component states and the busy flag are the only mutable session state;
    readiness and the overall SessionState are derived from them on read.
    """

    def __init__(
        self,
        loader: CorpusLoader,
        classifier: SentimentClassifier,
        telemetry: Optional[TelemetrySink] = None,
        presenter: Optional[Presenter] = None,
        rng: Optional[random.Random] = None,
        preview_chars: int = PREVIEW_CHARS,
        logger: Optional[logging.Logger] = None
    ):
        """
        :param loader: Corpus loader (owns the review corpus)
        :param classifier: Classifier adapter (owns the model)
        :param telemetry: Optional best-effort telemetry sink
        :param presenter: UI collaborator (defaults to NullPresenter)
        :param rng: Random source for review sampling
        :param preview_chars: Max review characters copied into telemetry
        :param logger: Optional logger instance
        """
        self.loader = loader
        self.classifier = classifier
        self.telemetry = telemetry
        self.presenter = presenter or NullPresenter()
        self.rng = rng or random.Random()
        self.preview_chars = preview_chars
        self.logger = logger or logging.getLogger(__name__)

        self._corpus_state = ComponentState.IDLE
        self._classifier_state = ComponentState.IDLE
        self._busy = False

    @property
    def flags(self) -> SessionFlags:
        return SessionFlags(
            corpus_state=self._corpus_state,
            classifier_state=self._classifier_state,
            corpus_size=self.loader.size,
            busy=self._busy,
        )

    @property
    def state(self) -> SessionState:
        return derive_session_state(self.flags)

    @property
    def ready(self) -> bool:
        flags = self.flags
        return compute_readiness(flags.corpus_loaded, flags.classifier_loaded, flags.corpus_size)

    @property
    def busy(self) -> bool:
        return self._busy

    def _log(self, event: str, message: str, **extra) -> None:
        record = TelemetryRecord.build(
            event, message, preview_chars=self.preview_chars, url=self.loader.source, **extra
        )
        emit_safely(self.telemetry, record, self.logger)

    def _present(self, action: str, *args) -> None:
        try:
            getattr(self.presenter, action)(*args)
        except Exception as e:
            self.logger.warning(f"Presenter {action} failed: {e}")

    def _status(self, message: str) -> None:
        self._present("show_status", self.state, message)

    def _error(self, message: str) -> None:
        self.logger.error(message)
        self._present("show_error", message)

    # ===========================
    # Startup
    # ===========================
    async def start(self) -> SessionState:
        """
        Load corpus and classifier concurrently and report the settled state.

        :return: READY, DEGRADED or UNAVAILABLE
        """
        self._status("Initializing...")
        self._log("app_start", "App initialized")

        await asyncio.gather(self.load_corpus(), self.initialize_classifier())

        return self.report_status()

    def report_status(self) -> SessionState:
        """Push a summary status for the current state to the presenter."""
        state = self.state
        corpus_ok = self._corpus_state is ComponentState.READY
        model_ok = self._classifier_state is ComponentState.READY

        if state is SessionState.READY:
            message = "Ready. Analyze a random review."
        elif state is SessionState.INITIALIZING:
            message = "Initializing..."
        elif not corpus_ok and not model_ok:
            message = "Not ready: model and reviews failed to load."
        elif not model_ok:
            message = "Not ready: model failed to load."
        else:
            message = "Not ready: reviews failed to load."

        self._status(message)
        return state

    # ===========================
    # Corpus sub-machine
    # ===========================
    async def load_corpus(self) -> ComponentState:
        """Load (or reload) the corpus; the previous corpus is replaced or cleared."""
        self._corpus_state = ComponentState.PENDING
        self._status(f"Loading reviews from {self.loader.source}...")
        self._log("corpus_load_start", f"Fetching {self.loader.source}")

        try:
            corpus = await self.loader.load()
        except LoadSuperseded:
            self.logger.debug("Corpus load superseded by a newer load; state left to it")
            return self._corpus_state
        except Exception as e:
            self._corpus_state = ComponentState.FAILED
            self._error(
                f'Could not load or parse {self.loader.source}. Make sure it exists and '
                f'contains a "{self.loader.column}" column. Details: {e}'
            )
            self._log("corpus_load_fail", "Corpus load/parse failed",
                      error=str(e), error_type=type(e).__name__)
            return self._corpus_state

        self._corpus_state = ComponentState.READY
        self._status(f"Reviews ready: {len(corpus)} reviews loaded.")
        self._log("corpus_load_success", f"Loaded {len(corpus)} reviews", count=len(corpus))
        return self._corpus_state

    async def reload_corpus(self) -> SessionState:
        await self.load_corpus()
        return self.report_status()

    # ===========================
    # Classifier sub-machine
    # ===========================
    async def initialize_classifier(self) -> ComponentState:
        self._classifier_state = ComponentState.PENDING
        self._status("Loading sentiment model... (first run may take a while)")
        self._log("model_load_start", f"Initializing {self.classifier.model_name}")

        outcome = await self.classifier.initialize()
        return self._settle_classifier(outcome)

    async def reload_classifier(self) -> SessionState:
        self._classifier_state = ComponentState.PENDING
        self._log("model_load_start", f"Reloading {self.classifier.model_name}")

        outcome = await self.classifier.reload()
        self._settle_classifier(outcome)
        return self.report_status()

    def _settle_classifier(self, outcome: InitOutcome) -> ComponentState:
        if outcome.ok:
            self._classifier_state = ComponentState.READY
            self._status("Sentiment model ready.")
            self._log("model_load_success", "Model loaded and ready")
        else:
            self._classifier_state = ComponentState.FAILED
            self._error(f"Could not load the sentiment model. Details: {outcome.error}")
            self._log("model_load_fail", "Model load failed",
                      error=str(outcome.error), error_type=type(outcome.error).__name__)
        return self._classifier_state

    # ===========================
    # Analyze action
    # ===========================
    async def analyze_random_review(self) -> Optional[AnalysisOutcome]:
        """
        Classify one randomly sampled review.

        A trigger while a previous analysis is in flight is a no-op.

        :return: AnalysisOutcome, or None when ignored because busy
        """
        if self._busy:
            self.logger.debug("Analyze ignored: previous analysis still running")
            return None

        self._present("clear_error")
        self._log("analyze_click", "Analyze requested")

        if self._corpus_state is not ComponentState.READY or self.loader.size == 0:
            self._error("No reviews loaded yet. Please ensure the review file is available and try again.")
            self._log("analyze_blocked", "No reviews loaded")
            return AnalysisOutcome(blocked=True)

        if self._classifier_state is not ComponentState.READY:
            self._error("Model is not ready yet. Please wait for it to finish loading, then try again.")
            self._log("analyze_blocked", "Model not ready")
            return AnalysisOutcome(blocked=True)

        self._busy = True
        review = None
        try:
            review = self.loader.corpus.sample(self.rng)
            self.presenter.show_review(review)
            self._log("inference_start", "Running sentiment inference", review=review)

            result = await self.classifier.classify(review)
            bucket = bucketize(result)
            self.presenter.show_result(bucket, result.label, result.score)
        except Exception as e:
            self._error(f"Analysis failed. Please try again. Details: {e}")
            self._present("show_result", Bucket.NEUTRAL, "NEUTRAL", None)
            self._log("inference_fail", "Inference failed", review=review,
                      error=str(e), error_type=type(e).__name__)
            return AnalysisOutcome(review=review, error=e)
        else:
            self._log(
                "inference_success",
                "Inference complete",
                review=review,
                sentiment=result.label,
                confidence=result.score,
                bucket=bucket.value,
            )
            return AnalysisOutcome(review=review, result=result, bucket=bucket)
        finally:
            self._busy = False
