"""Unit tests for the SentimentClassifier adapter."""

import asyncio
import threading

import pytest

from review_sentiment.errors import (
    ClassifierLoadError,
    InferenceError,
    InitializationTimeout,
    MalformedOutput,
    NotReady,
)
from review_sentiment.models.base import ClassificationResult
from review_sentiment.models.classifier import InitStatus, SentimentClassifier


class TestInitialize:
    """Tests for initialize()."""

    def test_initialize_success(self, fake_model):
        classifier = SentimentClassifier(fake_model, init_timeout=5)

        outcome = asyncio.run(classifier.initialize())

        assert outcome.status is InitStatus.READY
        assert outcome.ok is True
        assert outcome.error is None
        assert classifier.loaded is True
        assert fake_model.load_calls == 1

    def test_initialize_twice_loads_once(self, fake_model):
        classifier = SentimentClassifier(fake_model, init_timeout=5)

        async def run():
            await classifier.initialize()
            return await classifier.initialize()

        outcome = asyncio.run(run())

        assert outcome.ok is True
        assert fake_model.load_calls == 1

    def test_overlapping_initialize_shares_attempt(self, make_model):
        gate = threading.Event()
        model = make_model(load_gate=gate)
        classifier = SentimentClassifier(model, init_timeout=5)

        async def run():
            first = asyncio.ensure_future(classifier.initialize())
            second = asyncio.ensure_future(classifier.initialize())
            await asyncio.sleep(0.05)
            gate.set()
            return await asyncio.gather(first, second)

        outcomes = asyncio.run(run())

        assert all(o.ok for o in outcomes)
        assert model.load_calls == 1

    def test_initialize_provider_failure(self, make_model):
        model = make_model(load_error=OSError("no network"))
        classifier = SentimentClassifier(model, init_timeout=5)

        outcome = asyncio.run(classifier.initialize())

        assert outcome.status is InitStatus.FAILED
        assert isinstance(outcome.error, ClassifierLoadError)
        assert "no network" in str(outcome.error)
        assert classifier.loaded is False
        assert classifier.last_error is outcome.error

    def test_initialize_timeout(self, make_model):
        gate = threading.Event()
        model = make_model(load_gate=gate)
        classifier = SentimentClassifier(model, init_timeout=0.05)

        async def run():
            try:
                return await classifier.initialize()
            finally:
                gate.set()

        outcome = asyncio.run(run())

        assert outcome.status is InitStatus.FAILED
        assert isinstance(outcome.error, InitializationTimeout)
        assert classifier.loaded is False

    def test_reinitialize_after_timeout_waits_for_running_load(self, make_model):
        gate = threading.Event()
        model = make_model(load_gate=gate)
        classifier = SentimentClassifier(model, init_timeout=0.2)

        async def run():
            try:
                first = await classifier.initialize()
                asyncio.get_running_loop().call_later(0.02, gate.set)
                second = await classifier.initialize()
            finally:
                gate.set()
            return first, second

        first, second = asyncio.run(run())

        assert isinstance(first.error, InitializationTimeout)
        assert second.ok is True
        assert classifier.loaded is True
        assert model.load_calls == 1

    def test_reload_after_timeout_does_not_unload_running_load(self, make_model):
        gate = threading.Event()
        model = make_model(load_gate=gate)
        classifier = SentimentClassifier(model, init_timeout=0.2)

        async def run():
            try:
                await classifier.initialize()
                asyncio.get_running_loop().call_later(0.02, gate.set)
                return await classifier.reload()
            finally:
                gate.set()

        outcome = asyncio.run(run())

        assert outcome.ok is True
        assert model.unload_calls == 0
        assert model.load_calls == 1

    def test_reinitialize_after_failure(self, make_model):
        model = make_model(load_error=OSError("flaky"))
        classifier = SentimentClassifier(model, init_timeout=5)

        async def run():
            first = await classifier.initialize()
            model.load_error = None
            second = await classifier.initialize()
            return first, second

        first, second = asyncio.run(run())

        assert first.ok is False
        assert second.ok is True
        assert classifier.loaded is True
        assert classifier.last_error is None
        assert model.load_calls == 2

    def test_invalid_timeout_rejected(self, fake_model):
        with pytest.raises(ValueError):
            SentimentClassifier(fake_model, init_timeout=0)


class TestReload:
    """Tests for reload()."""

    def test_reload_unloads_and_loads_again(self, fake_model):
        classifier = SentimentClassifier(fake_model, init_timeout=5)

        async def run():
            await classifier.initialize()
            return await classifier.reload()

        outcome = asyncio.run(run())

        assert outcome.ok is True
        assert fake_model.unload_calls == 1
        assert fake_model.load_calls == 2

    def test_failed_reload_leaves_not_loaded(self, fake_model):
        classifier = SentimentClassifier(fake_model, init_timeout=5)

        async def run():
            await classifier.initialize()
            fake_model.load_error = RuntimeError("corrupt weights")
            return await classifier.reload()

        outcome = asyncio.run(run())

        assert outcome.ok is False
        assert classifier.loaded is False


class TestClassify:
    """Tests for classify()."""

    def _ready(self, model, **kwargs):
        classifier = SentimentClassifier(model, init_timeout=5, **kwargs)
        asyncio.run(classifier.initialize())
        return classifier

    def test_classify_before_initialize(self, fake_model):
        classifier = SentimentClassifier(fake_model, init_timeout=5)

        with pytest.raises(NotReady):
            asyncio.run(classifier.classify("Great product!"))
        assert fake_model.predict_calls == []

    def test_classify_after_failed_initialize(self, make_model):
        model = make_model(load_error=OSError("no network"))
        classifier = SentimentClassifier(model, init_timeout=5)
        asyncio.run(classifier.initialize())

        with pytest.raises(NotReady):
            asyncio.run(classifier.classify("Great product!"))

    def test_classify_returns_top_entry(self, make_model):
        model = make_model(outputs={
            "Terrible.": [
                {"label": "NEGATIVE", "score": 0.93},
                {"label": "POSITIVE", "score": 0.07},
            ],
        })
        classifier = self._ready(model)

        result = asyncio.run(classifier.classify("Terrible."))

        assert result == ClassificationResult(label="NEGATIVE", score=0.93)
        assert model.predict_calls == ["Terrible."]

    def test_classify_empty_text(self, fake_model):
        classifier = self._ready(fake_model)

        with pytest.raises(ValueError):
            asyncio.run(classifier.classify("   "))

    def test_provider_error_becomes_inference_error(self, make_model):
        model = make_model(predict_error=RuntimeError("tensor shape"))
        classifier = self._ready(model)

        with pytest.raises(InferenceError, match="tensor shape"):
            asyncio.run(classifier.classify("Great product!"))
        assert classifier.loaded is True

    def test_malformed_output(self, make_model):
        model = make_model(default=[])
        classifier = self._ready(model)

        with pytest.raises(MalformedOutput):
            asyncio.run(classifier.classify("Great product!"))

    def test_inference_timeout(self, make_model):
        gate = threading.Event()
        model = make_model()
        model.predict = lambda text: gate.wait(timeout=5) and []
        classifier = self._ready(model, inference_timeout=0.05)

        async def run():
            try:
                await classifier.classify("Great product!")
            finally:
                gate.set()

        with pytest.raises(InferenceError, match="timed out"):
            asyncio.run(run())

    def test_model_name(self, fake_model):
        assert SentimentClassifier(fake_model).model_name == "fake"
