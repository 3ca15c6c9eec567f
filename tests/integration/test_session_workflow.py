"""
Integration test: TSV file -> corpus -> classifier -> bucket -> telemetry.

Runs the full session against a local review file with an in-memory model.
"""
import asyncio
import random

from review_sentiment.collection.corpus import CorpusLoader
from review_sentiment.derived.decision import Bucket, SessionState
from review_sentiment.models.classifier import SentimentClassifier
from review_sentiment.session import ReviewSentimentSession
from review_sentiment.telemetry import TelemetryRecord, TelemetrySink


class ListTelemetry(TelemetrySink):
    def __init__(self):
        self.records = []

    def emit(self, record: TelemetryRecord) -> None:
        self.records.append(record)


def test_end_to_end_every_review(tmp_path, make_model):
    path = tmp_path / "reviews_test.tsv"
    path.write_text(
        "id\ttext\n"
        "1\tGreat product!\n"
        "2\t   \n"
        "\n"
        "3\tTerrible.\n"
        "4\tIt arrived.\n",
        encoding="utf-8",
    )
    model = make_model(outputs={
        "Great product!": [{"label": "POSITIVE", "score": 0.99}, {"label": "NEGATIVE", "score": 0.01}],
        "Terrible.": [{"label": "NEGATIVE", "score": 0.93}, {"label": "POSITIVE", "score": 0.07}],
        "It arrived.": [{"label": "POSITIVE", "score": 0.5}, {"label": "NEGATIVE", "score": 0.5}],
    })
    telemetry = ListTelemetry()
    session = ReviewSentimentSession(
        loader=CorpusLoader(str(path)),
        classifier=SentimentClassifier(model, init_timeout=5),
        telemetry=telemetry,
        rng=random.Random(42),
    )

    async def run():
        state = await session.start()
        outcomes = [await session.analyze_random_review() for _ in range(30)]
        return state, outcomes

    state, outcomes = asyncio.run(run())

    assert state is SessionState.READY
    assert list(session.loader.corpus) == ["Great product!", "Terrible.", "It arrived."]

    expected = {
        "Great product!": Bucket.POSITIVE,
        "Terrible.": Bucket.NEGATIVE,
        "It arrived.": Bucket.NEUTRAL,
    }
    for outcome in outcomes:
        assert outcome.ok
        assert outcome.bucket is expected[outcome.review]

    successes = [r for r in telemetry.records if r.event == "inference_success"]
    assert len(successes) == 30
