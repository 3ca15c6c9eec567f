"""
DistilBERT sentiment model implementation.

Uses distilbert-base-uncased fine-tuned on SST-2 for binary review sentiment.
Runs on CUDA when available with CPU fallback.
"""

import logging
from typing import Dict, List, Optional

from review_sentiment.models.base import SentimentModel


class DistilBertSentimentModel(SentimentModel):
    """
    SST-2 DistilBERT sentiment model.

    Features:
    - Explicit loading: weights are fetched once by load() and reused
    - CUDA support: Auto-detects GPU, falls back to CPU
    - Ranked output: every label is returned, highest score first

    Example:
        >>> model = DistilBertSentimentModel()
        >>> model.load()
        >>> model.predict("Great product!")
        [{'label': 'POSITIVE', 'score': 0.9998}, {'label': 'NEGATIVE', 'score': 0.0002}]
    """

    MODEL_ID = "distilbert/distilbert-base-uncased-finetuned-sst-2-english"
    MODEL_VERSION = "1.0.0"
    MAX_TOKENS = 512

    def __init__(
        self,
        model_id: Optional[str] = None,
        device: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize DistilBERT model.

        :param model_id: Hugging Face model id (defaults to MODEL_ID)
        :param device: Device to run on ('cuda', 'cpu', or None for auto-detect)
        :param logger: Optional logger instance
        """
        self._model_id = model_id or self.MODEL_ID
        self._device = device
        self._logger = logger or logging.getLogger(__name__)

        # Set in load()
        self._tokenizer = None
        self._model = None
        self._pipeline = None
        self._loaded = False

    @property
    def name(self) -> str:
        return "distilbert-sst2"

    @property
    def version(self) -> str:
        return self.MODEL_VERSION

    @property
    def max_tokens(self) -> int:
        return self.MAX_TOKENS

    @property
    def model_id(self) -> str:
        return self._model_id

    def is_loaded(self) -> bool:
        return self._loaded

    def _detect_device(self) -> str:
        """Auto-detect best available device."""
        try:
            import torch
            if torch.cuda.is_available():
                device_name = torch.cuda.get_device_name(0)
                self._logger.info(f"CUDA available: {device_name}")
                return "cuda"
        except ImportError:
            pass

        self._logger.info("Using CPU for inference")
        return "cpu"

    def load(self) -> None:
        """Load tokenizer, weights and the text-classification pipeline."""
        if self._loaded:
            return

        try:
            from transformers import (
                AutoTokenizer,
                AutoModelForSequenceClassification,
                pipeline
            )
            import torch
        except ImportError as e:
            raise ImportError(
                "transformers and torch are required for DistilBERT. "
                "Install with: pip install 'review-sentiment[model]'"
            ) from e

        device = self._device or self._detect_device()

        self._logger.info(f"Loading sentiment model from {self._model_id}...")

        self._tokenizer = AutoTokenizer.from_pretrained(self._model_id)
        self._model = AutoModelForSequenceClassification.from_pretrained(self._model_id)

        if device == "cuda":
            try:
                torch.cuda.empty_cache()
                self._model = self._model.cuda()
            except (torch.cuda.OutOfMemoryError, RuntimeError) as e:
                self._logger.warning(f"CUDA OOM: {e}. Falling back to CPU.")
                device = "cpu"
                self._model = self._model.cpu()
                torch.cuda.empty_cache()

        device_idx = 0 if device == "cuda" else -1

        # top_k=None returns every class score, sorted descending
        self._pipeline = pipeline(
            "text-classification",
            model=self._model,
            tokenizer=self._tokenizer,
            device=device_idx,
            truncation=True,
            max_length=self.MAX_TOKENS,
            top_k=None
        )

        self._loaded = True
        self._logger.info(f"Sentiment model loaded on {device}")

    def predict(self, text: str) -> List[Dict]:
        """
        Run sentiment prediction on one text.

        :param text: Review text
        :return: [{'label': ..., 'score': ...}, ...] ranked best first
        """
        if not self._loaded:
            raise RuntimeError("Model not loaded; call load() first")

        output = self._pipeline(text)
        # A single string input may come back wrapped in an outer list
        if output and isinstance(output[0], list):
            output = output[0]

        return sorted(
            ({"label": o["label"], "score": float(o["score"])} for o in output),
            key=lambda o: o["score"],
            reverse=True
        )

    def unload(self) -> None:
        """Release model from memory."""
        if not self._loaded:
            return

        self._pipeline = None
        self._model = None
        self._tokenizer = None
        self._loaded = False

        try:
            import torch
            if torch.cuda.is_available():
                torch.cuda.empty_cache()
        except ImportError:
            pass

        self._logger.info("Sentiment model unloaded")
