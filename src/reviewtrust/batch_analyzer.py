from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from pydantic import BaseModel, ConfigDict

from .models import SignalOutput
from .text_analyzer import TextAnalyzer

logger = logging.getLogger(__name__)

COORDINATED_LANGUAGE = "coordinatedLanguage"
WORD_PATTERN = re.compile(r"[a-z0-9']+")


class SharedPhrase(BaseModel):
    model_config = ConfigDict(frozen=True)

    phrase: str
    count: int


class BatchTextResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    individual: list[dict[str, SignalOutput]]
    batch: dict[str, SignalOutput | None]
    shared_phrases: list[SharedPhrase] = []


def shingles(text: str, size: int = 4) -> set[str]:
    words = WORD_PATTERN.findall(text.lower())
    return {" ".join(words[i:i + size]) for i in range(len(words) - size + 1)}


def find_shared_phrases(texts: Sequence[str], *, size: int = 4, min_texts: int = 3) -> list[SharedPhrase]:
    """Shingles that occur in at least min_texts different texts, most shared first."""
    counts: Counter[str] = Counter()
    for text in texts:
        counts.update(shingles(text or "", size))
    shared = [SharedPhrase(phrase=phrase, count=count) for phrase, count in counts.items() if count >= min_texts]
    return sorted(shared, key=lambda item: item.count, reverse=True)


class BatchTextAnalyzer:
    """Per-text analysis plus coordination signals across a set of reviews."""

    def __init__(
        self,
        *,
        text_analyzer: TextAnalyzer | None = None,
        min_batch_size: int = 3,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._single = text_analyzer or TextAnalyzer()
        self._min_batch_size = min_batch_size
        self._executor = executor

    def analyze_batch(self, texts: Sequence[str]) -> BatchTextResult:
        if self._executor is not None:
            individual = list(self._executor.map(self._single.analyze, texts))
        else:
            individual = [self._single.analyze(text) for text in texts]
        batch, shared = self.cross_signals(texts)
        return BatchTextResult(individual=individual, batch=batch, shared_phrases=shared)

    def cross_signals(self, texts: Sequence[str]) -> tuple[dict[str, SignalOutput | None], list[SharedPhrase]]:
        if len(texts) < self._min_batch_size:
            # coordination cannot be told apart from chance on so few samples
            return {COORDINATED_LANGUAGE: None}, []

        shared = find_shared_phrases(texts, min_texts=self._min_batch_size)
        score = max(0.0, 1.0 - len(shared) * 0.15)
        detail = None
        if len(shared) > 3:
            detail = f"Found {len(shared)} phrases repeated across multiple reviews"
        logger.debug("Batch of %d texts shares %d phrases", len(texts), len(shared))
        return {COORDINATED_LANGUAGE: SignalOutput(score=score, detail=detail)}, shared
