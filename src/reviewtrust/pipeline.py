from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

from .account_analyzer import TIMING_CLUSTER, AccountAnalyzer
from .batch_analyzer import COORDINATED_LANGUAGE, BatchTextAnalyzer, SharedPhrase
from .config import get_settings
from .models import ReviewerProfile, SignalOutput, TrustResult
from .rating_distribution import RATING_DISTRIBUTION, analyze_rating_distribution
from .scorer import ISSUE_THRESHOLD, TrustScorer, signal_score
from .text_analyzer import TextAnalyzer

logger = logging.getLogger(__name__)


class ReviewInput(BaseModel):
    """One review as handed over by an extractor: assembled text plus author data."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = ""
    profile: ReviewerProfile | None = None


class ReviewScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    signals: dict[str, dict[str, SignalOutput | None]]
    result: TrustResult


class PageAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: TrustResult
    reviews: list[ReviewScore]
    batch_signals: dict[str, SignalOutput | None]
    shared_phrases: list[SharedPhrase] = []


def aggregate_signals(signal_sets: Iterable[Mapping[str, SignalOutput | None]]) -> dict[str, SignalOutput]:
    """
    Average each signal across items, skipping unknown values.

    The detail counts how many items scored below the issue threshold.
    """
    totals: dict[str, float] = defaultdict(float)
    counts: dict[str, int] = defaultdict(int)
    flagged: dict[str, int] = defaultdict(int)
    for signals in signal_sets:
        for name, value in signals.items():
            score = signal_score(value)
            if score is None:
                continue
            totals[name] += score
            counts[name] += 1
            if score < ISSUE_THRESHOLD:
                flagged[name] += 1

    aggregated = {}
    for name, total in totals.items():
        detail = None
        if flagged[name]:
            detail = f"{flagged[name]} of {counts[name]} reviews flagged"
        aggregated[name] = SignalOutput(score=min(1.0, total / counts[name]), detail=detail)
    return aggregated


@dataclass
class ReviewPipeline:
    """Fans reviews through every detector and scores each review and the page."""

    text_analyzer: TextAnalyzer = field(default_factory=lambda: TextAnalyzer(min_length=get_settings().min_text_length))
    account_analyzer: AccountAnalyzer = field(default_factory=AccountAnalyzer)
    scorer: TrustScorer = field(default_factory=TrustScorer)
    max_workers: int = field(default_factory=lambda: get_settings().batch_max_workers)

    def __post_init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers)
        self._batch_analyzer = BatchTextAnalyzer(text_analyzer=self.text_analyzer, executor=self._executor)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def analyze_text(self, text: str, profile: ReviewerProfile | None = None) -> ReviewScore:
        """Score one standalone review; batch-only signals stay unknown."""
        signals: dict[str, dict[str, SignalOutput | None]] = {"text": self.text_analyzer.analyze(text)}
        if profile is not None:
            signals["account"] = self.account_analyzer.analyze(profile)
        return ReviewScore(index=0, signals=signals, result=self.scorer.compute_score(signals))

    def analyze_page(
        self,
        reviews: Sequence[ReviewInput],
        histogram: Mapping[int, float] | None = None,
    ) -> PageAnalysis:
        texts = [review.text for review in reviews]
        # reviews without author data carry no account signals at all
        profiled = [i for i, review in enumerate(reviews) if review.profile is not None]

        text_batch = self._batch_analyzer.analyze_batch(texts)
        account_individual, account_batch = self.account_analyzer.analyze_batch(
            [reviews[i].profile for i in profiled]
        )
        account_by_review = dict(zip(profiled, account_individual))
        rating_distribution = analyze_rating_distribution(histogram)
        timing_cluster = account_batch[TIMING_CLUSTER]

        bundles = []
        for i in range(len(reviews)):
            bundle = {"text": text_batch.individual[i]}
            if i in account_by_review:
                bundle["account"] = account_by_review[i]
            bundle["behavioral"] = {
                TIMING_CLUSTER: timing_cluster,
                RATING_DISTRIBUTION: rating_distribution,
            }
            bundles.append(bundle)
        # Executor.map yields in submission order, so index i stays review i
        results = list(self._executor.map(self.scorer.compute_score, bundles))
        review_scores = [
            ReviewScore(index=i, signals=bundle, result=result)
            for i, (bundle, result) in enumerate(zip(bundles, results))
        ]

        overall = self.scorer.compute_score(
            {
                "text": aggregate_signals(text_batch.individual),
                "behavioral": {
                    TIMING_CLUSTER: timing_cluster,
                    COORDINATED_LANGUAGE: text_batch.batch.get(COORDINATED_LANGUAGE),
                    RATING_DISTRIBUTION: rating_distribution,
                },
                "account": aggregate_signals(account_individual),
            }
        )
        logger.info(
            "Scored page with %d reviews: level=%s score=%s signals=%d",
            len(reviews),
            overall.level.value,
            None if overall.score is None else round(overall.score, 3),
            overall.signal_count,
        )
        return PageAnalysis(
            overall=overall,
            reviews=review_scores,
            batch_signals={
                **text_batch.batch,
                **account_batch,
                RATING_DISTRIBUTION: rating_distribution,
            },
            shared_phrases=text_batch.shared_phrases,
        )
