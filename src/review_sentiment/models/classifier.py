"""
Classifier adapter: owns one SentimentModel for the whole session.

The model is loaded once by initialize(), bounded by a timeout, and then
shared read-only by every classify() call.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from review_sentiment.derived.decision import normalize
from review_sentiment.errors import (
    ClassifierError,
    ClassifierLoadError,
    InferenceError,
    InitializationTimeout,
    NotReady,
)
from review_sentiment.models.base import ClassificationResult, SentimentModel


class InitStatus(str, Enum):
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class InitOutcome:
    status: InitStatus
    error: Optional[ClassifierError] = None

    @property
    def ok(self) -> bool:
        return self.status is InitStatus.READY


class SentimentClassifier:
    """
    Request/response wrapper around a SentimentModel.

    Example:
        >>> classifier = SentimentClassifier(DistilBertSentimentModel(), init_timeout=300)
        >>> outcome = await classifier.initialize()
        >>> await classifier.classify("Terrible.")
        ClassificationResult(label='NEGATIVE', score=0.9997)
    """

    def __init__(
        self,
        model: SentimentModel,
        init_timeout: float = 300.0,
        inference_timeout: Optional[float] = 60.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        :param model: Model provider (loaded lazily by initialize())
        :param init_timeout: Seconds allowed for model load before the attempt fails
        :param inference_timeout: Seconds allowed per predict call (None disables)
        :param logger: Optional logger instance
        """
        if init_timeout is None or init_timeout <= 0:
            raise ValueError("init_timeout must be a positive number of seconds")

        self._model = model
        self.init_timeout = init_timeout
        self.inference_timeout = inference_timeout
        self.logger = logger or logging.getLogger(__name__)

        self._loaded = False
        self._last_error: Optional[ClassifierError] = None
        self._init_task: Optional[asyncio.Future] = None
        self._pending_load: Optional[asyncio.Future] = None

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def last_error(self) -> Optional[ClassifierError]:
        return self._last_error

    @property
    def model_name(self) -> str:
        return self._model.name

    async def initialize(self) -> InitOutcome:
        """
        Load the model once. Overlapping calls share the in-flight attempt.

        :return: InitOutcome READY, or FAILED with the recorded error
        """
        if self._loaded:
            return InitOutcome(InitStatus.READY)

        if self._init_task is None or self._init_task.done():
            self._init_task = asyncio.ensure_future(self._initialize())
        return await asyncio.shield(self._init_task)

    def _load_in_progress(self, loop: asyncio.AbstractEventLoop) -> bool:
        pending = self._pending_load
        return pending is not None and not pending.done() and pending.get_loop() is loop

    async def _initialize(self) -> InitOutcome:
        self._loaded = False

        loop = asyncio.get_running_loop()
        if self._load_in_progress(loop):
            # a load that outlived its timeout is still running on the model
            self.logger.info(f"Waiting for earlier {self._model.name} load still in progress")
        else:
            self.logger.info(f"Initializing {self._model.name} (timeout {self.init_timeout}s)")
            self._pending_load = loop.run_in_executor(None, self._model.load)
            self._pending_load.add_done_callback(_consume_result)

        try:
            await asyncio.wait_for(
                asyncio.shield(self._pending_load),
                timeout=self.init_timeout
            )
        except asyncio.TimeoutError:
            error = InitializationTimeout(
                f"Model did not load within {self.init_timeout}s"
            )
        except Exception as e:
            error = ClassifierLoadError(f"Model load failed: {e}")
            error.__cause__ = e
        else:
            self._loaded = True
            self._last_error = None
            self.logger.info(f"{self._model.name} ready")
            return InitOutcome(InitStatus.READY)

        self._loaded = False
        self._last_error = error
        self.logger.error(f"{self._model.name} failed to initialize: {error}")
        return InitOutcome(InitStatus.FAILED, error)

    async def reload(self) -> InitOutcome:
        """Release the current model and run a fresh initialization."""
        if self._init_task is not None and not self._init_task.done():
            await asyncio.shield(self._init_task)

        self._loaded = False
        self._init_task = None
        if self._load_in_progress(asyncio.get_running_loop()):
            self.logger.info(f"Earlier {self._model.name} load still running; skipping unload")
        else:
            try:
                await asyncio.to_thread(self._model.unload)
            except Exception as e:
                self.logger.warning(f"Error unloading {self._model.name}: {e}")

        return await self.initialize()

    async def classify(self, text: str) -> ClassificationResult:
        """
        Classify one review.

        :param text: Non-empty review text
        :return: Normalized top-ranked ClassificationResult
        :raises NotReady: initialize() has not succeeded
        :raises InferenceError: model call raised or timed out
        :raises MalformedOutput: model output could not be normalized
        """
        if not self._loaded:
            raise NotReady("Model is not ready yet")
        if not isinstance(text, str) or not text.strip():
            raise ValueError("text must be a non-empty string")

        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(self._model.predict, text),
                timeout=self.inference_timeout
            )
        except asyncio.TimeoutError as e:
            raise InferenceError(
                f"Inference timed out after {self.inference_timeout}s"
            ) from e
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e

        return normalize(raw)


def _consume_result(future: asyncio.Future) -> None:
    # outcome of a timed-out load is never awaited
    if not future.cancelled():
        future.exception()
