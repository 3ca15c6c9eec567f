"""
Review corpus loading from tab-separated sources.

Fetches a TSV resource over HTTP(S) or from disk, parses it with polars and
extracts one designated text column into an immutable, ordered Corpus.
"""

import asyncio
import io
import logging
import random
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple
from urllib.parse import urlparse
from urllib.request import url2pathname

import polars as pl
import requests

from review_sentiment.errors import EmptyCorpus, LoadSuperseded, ParseError, SourceUnavailable

DEFAULT_TEXT_COLUMN = "text"


class Corpus(Sequence):
    """
    Ordered, immutable sequence of non-empty review texts.

    Constructing an empty Corpus raises EmptyCorpus; a failed load is
    represented by the loader holding no corpus at all.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[str]):
        items = tuple(items)
        if not items:
            raise EmptyCorpus("Corpus must contain at least one review")
        self._items: Tuple[str, ...] = items

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other) -> bool:
        if isinstance(other, Corpus):
            return self._items == other._items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"Corpus(size={len(self._items)})"

    def sample(self, rng: Optional[random.Random] = None) -> str:
        """Pick one review uniformly at random."""
        rng = rng or random
        return self._items[rng.randrange(len(self._items))]


def extract_texts(values: Iterable[Any]) -> List[str]:
    """
    Keep only string values, trimmed, dropping anything empty after trimming.

    :param values: Raw column values in row order (may contain None or non-str)
    :return: Surviving texts in the same order
    """
    texts = []
    for value in values:
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value:
            texts.append(value)
    return texts


def parse_tsv(raw: str, column: str = DEFAULT_TEXT_COLUMN) -> Corpus:
    """
    Parse tab-separated text with a header row into a Corpus.

    Blank lines are skipped and every field is read as text. Fields are not
    quoted, so review text may contain stray quote characters.

    :param raw: Full TSV document
    :param column: Header name of the designated text column
    :return: Corpus of the column's non-empty values in row order
    :raises ParseError: polars could not parse the document, or the column is absent
    :raises EmptyCorpus: no row holds a non-empty value in the column
    """
    # Strip a UTF-8 BOM left over when the source was decoded without utf-8-sig
    raw = raw.lstrip("\ufeff")
    lines = [line for line in raw.splitlines() if line.strip()]
    if not lines:
        raise ParseError("Source is empty: no header row found")

    try:
        df = pl.read_csv(
            io.BytesIO("\n".join(lines).encode("utf-8")),
            separator="\t",
            has_header=True,
            infer_schema=False,
            quote_char=None,
            truncate_ragged_lines=True,
        )
    except pl.exceptions.PolarsError as e:
        raise ParseError(f"Could not parse TSV: {e}") from e

    names = {name.strip(): name for name in df.columns}
    if column not in names:
        raise ParseError(
            f'Column "{column}" not found (columns: {", ".join(names) or "none"})'
        )

    texts = extract_texts(df.get_column(names[column]).to_list())
    if not texts:
        raise EmptyCorpus(f'No valid review texts found in the "{column}" column')

    return Corpus(texts)


class CorpusLoader:
    """
    Owns the current review Corpus and replaces it on each load.

    A successful load swaps the corpus in wholesale; a failed load clears it,
    so callers never see a stale corpus next to a failed attempt.
    """

    def __init__(
        self,
        source: str,
        column: str = DEFAULT_TEXT_COLUMN,
        timeout: float | Tuple[float, float] = (10, 30),
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize corpus loader.

        :param source: http(s) URL, file:// URI or filesystem path of the TSV
        :param column: Header name of the text column
        :param timeout: requests timeout (connect, read) for HTTP sources
        :param session: Optional requests session (one is created if omitted)
        :param logger: Optional logger instance
        """
        self.source = source
        self.column = column
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

        self._corpus: Optional[Corpus] = None
        self._attempt = 0

    @property
    def corpus(self) -> Optional[Corpus]:
        return self._corpus

    @property
    def loaded(self) -> bool:
        return self._corpus is not None

    @property
    def size(self) -> int:
        return len(self._corpus) if self._corpus is not None else 0

    def fetch(self, source: Optional[str] = None) -> str:
        """
        Fetch the raw TSV document.

        :param source: Override for the configured source
        :return: Decoded document text
        :raises SourceUnavailable: network error, non-success status or unreadable file
        :raises ParseError: document is not valid UTF-8
        """
        source = source or self.source
        parsed = urlparse(source)

        if parsed.scheme in ("http", "https"):
            try:
                response = self.session.get(
                    source,
                    headers={"Cache-Control": "no-store"},
                    timeout=self.timeout
                )
                response.raise_for_status()
            except requests.RequestException as e:
                raise SourceUnavailable(f"Failed to fetch {source}: {e}") from e
            return _decode(response.content, source)

        if parsed.scheme == "file":
            path = Path(url2pathname(parsed.path))
        else:
            path = Path(source)

        try:
            data = path.read_bytes()
        except OSError as e:
            raise SourceUnavailable(f"Failed to read {path}: {e}") from e
        return _decode(data, str(path))

    def _fetch_and_parse(self, source: str) -> Corpus:
        raw = self.fetch(source)
        return parse_tsv(raw, self.column)

    async def load(self, source: Optional[str] = None) -> Corpus:
        """
        Load the corpus, replacing the current one on success.

        Fetch and parse run in a worker thread. If another load starts before
        this one settles, only the most recent attempt updates the owned corpus;
        the older attempt raises LoadSuperseded whatever its own result was.

        :param source: Override for the configured source
        :return: The freshly loaded Corpus
        :raises CorpusError: SourceUnavailable, ParseError or EmptyCorpus
        :raises LoadSuperseded: a newer load() started before this one settled
        """
        source = source or self.source
        self._attempt += 1
        attempt = self._attempt

        self.logger.info(f"Loading reviews from {source}")
        try:
            corpus = await asyncio.to_thread(self._fetch_and_parse, source)
        except Exception as e:
            if attempt != self._attempt:
                raise LoadSuperseded(f"Load #{attempt} of {source} was superseded") from e
            self._corpus = None
            raise

        if attempt != self._attempt:
            self.logger.debug(f"Discarding superseded load #{attempt} of {source}")
            raise LoadSuperseded(f"Load #{attempt} of {source} was superseded")

        self._corpus = corpus
        self.logger.info(f"Loaded {len(corpus)} reviews from {source}")
        return corpus


def _decode(data: bytes, origin: str) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"{origin} is not valid UTF-8: {e}") from e
