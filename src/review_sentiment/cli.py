import asyncio
import logging
import random
from pathlib import Path
from typing import Optional

from review_sentiment.collection.corpus import CorpusLoader
from review_sentiment.config_loader import AppConfig
from review_sentiment.derived.decision import Bucket, SessionState
from review_sentiment.models.classifier import SentimentClassifier
from review_sentiment.models.distilbert import DistilBertSentimentModel
from review_sentiment.session import Presenter, ReviewSentimentSession
from review_sentiment.telemetry import BeaconTelemetry, LoggingTelemetry, TelemetrySink
from review_sentiment.utils.logger import LoggerFactory

TELEMETRY_LOG_FORMAT = '%(asctime)s %(levelname)s %(message)s'


class ConsolePresenter(Presenter):
    """
    Prints session status and results to stdout.

    Each analysis is one line: ``[bucket] LABEL (xx.x% confidence) review``.
    """

    def __init__(self):
        self._review = ""

    def show_status(self, state: SessionState, message: str) -> None:
        print(f"[{state.value}] {message}")

    def show_error(self, message: str) -> None:
        print(f"Error: {message}")

    def clear_error(self) -> None:
        pass

    def show_review(self, text: str) -> None:
        self._review = text

    def show_result(self, bucket: Bucket, label: str, score: Optional[float]) -> None:
        percent = f"{score * 100:.1f}%" if score is not None else "n/a"
        print(f"[{bucket.value}] {label} ({percent} confidence) {self._review}")
        self._review = ""


def build_session(
    config: AppConfig,
    source: Optional[str] = None,
    telemetry_enabled: bool = True,
    seed: Optional[int] = None,
    presenter: Optional[Presenter] = None,
    factory: Optional[LoggerFactory] = None
) -> ReviewSentimentSession:
    """Wire loader, classifier, telemetry and presenter from config."""
    factory = factory or LoggerFactory(log_dir=Path("data/logs/session"))
    corpus_cfg = config.corpus
    classifier_cfg = config.classifier
    telemetry_cfg = config.telemetry

    loader = CorpusLoader(
        source=source or corpus_cfg.get('source', 'reviews_test.tsv'),
        column=corpus_cfg.get('column', 'text'),
        timeout=corpus_cfg.get('fetch_timeout', 30),
        logger=factory.get_logger('session.corpus'),
    )

    model_logger = factory.get_logger('session.model')
    model = DistilBertSentimentModel(
        model_id=classifier_cfg.get('model_id'),
        device=classifier_cfg.get('device'),
        logger=model_logger,
    )
    classifier = SentimentClassifier(
        model,
        init_timeout=classifier_cfg.get('init_timeout', 300),
        inference_timeout=classifier_cfg.get('inference_timeout', 60),
        logger=model_logger,
    )

    telemetry_logger = factory.get_logger('session.telemetry', log_format=TELEMETRY_LOG_FORMAT)
    telemetry: Optional[TelemetrySink] = None
    if telemetry_enabled:
        endpoint = telemetry_cfg.get('endpoint')
        if endpoint:
            telemetry = BeaconTelemetry(
                endpoint,
                timeout=telemetry_cfg.get('timeout', 5),
                logger=telemetry_logger,
            )
        else:
            telemetry = LoggingTelemetry(logger=telemetry_logger)

    return ReviewSentimentSession(
        loader=loader,
        classifier=classifier,
        telemetry=telemetry,
        presenter=presenter or ConsolePresenter(),
        rng=random.Random(seed),
        preview_chars=telemetry_cfg.get('preview_chars', 240),
        logger=factory.get_logger('session.app'),
    )


async def run(session: ReviewSentimentSession, runs: int) -> int:
    state = await session.start()
    if state is not SessionState.READY:
        return 1

    for _ in range(runs):
        await session.analyze_random_review()
    return 0


def main(argv=None) -> int:
    """Main entry point: start a session and analyze random reviews."""
    import argparse

    parser = argparse.ArgumentParser(description="Classify random product reviews by sentiment")
    parser.add_argument(
        '--source',
        type=str,
        help='TSV source (URL or path); overrides corpus.source in config'
    )
    parser.add_argument(
        '--config',
        type=str,
        default='configs/app.yaml',
        help='Path to app.yaml (default: configs/app.yaml)'
    )
    parser.add_argument(
        '--runs',
        type=int,
        default=1,
        help='Number of random reviews to analyze (default: 1)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for review sampling'
    )
    parser.add_argument(
        '--no-telemetry',
        action='store_true',
        help='Do not emit telemetry records'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Also write logs to the console'
    )

    args = parser.parse_args(argv)

    if args.runs < 1:
        print("Error: --runs must be at least 1")
        return 2

    factory = LoggerFactory(
        log_dir=Path("data/logs/session"),
        level=logging.DEBUG if args.verbose else logging.INFO,
        console_output=args.verbose,
    )
    session = build_session(
        AppConfig(config_path=args.config),
        source=args.source,
        telemetry_enabled=not args.no_telemetry,
        seed=args.seed,
        factory=factory,
    )

    try:
        return asyncio.run(run(session, args.runs))
    finally:
        if session.telemetry is not None:
            session.telemetry.close()
        factory.close()


if __name__ == "__main__":
    raise SystemExit(main())
