"""
Signal combination engine.

Every signal is a value in [0, 1] (0 reads as inauthentic, 1 as authentic) or
unknown. Signals are averaged within their category by reliability weight,
categories are averaged by category weight, and the result is bucketed into a
trust level. No single signal can condemn content on its own, and too little
evidence yields INSUFFICIENT_DATA instead of a guess.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .config import get_settings
from .models import (
    CategoryScore,
    Issue,
    Severity,
    SignalBundle,
    SignalOutput,
    TrustLevel,
    TrustResult,
)

logger = logging.getLogger(__name__)

ISSUE_THRESHOLD = 0.4
HIGH_SEVERITY_THRESHOLD = 0.2
NEUTRAL_SCORE = 0.5

DEFAULT_WEIGHTS: dict[str, dict[str, float]] = {
    "text": {
        "aiDetection": 0.25,
        "repetitionPattern": 0.20,
        "sentimentConsistency": 0.15,
        "vocabularyDistribution": 0.15,
        "templateMatching": 0.25,
    },
    "account": {
        "accountAge": 0.30,
        "postingFrequency": 0.25,
        "reviewDiversity": 0.20,
        "profileCompleteness": 0.15,
        "networkConnections": 0.10,
    },
    "behavioral": {
        "timingCluster": 0.35,
        "coordinatedLanguage": 0.35,
        "ratingDistribution": 0.30,
    },
    "media": {
        "reverseImageMatch": 0.40,
        "exifAnalysis": 0.25,
        "aiArtifacts": 0.35,
    },
}

DEFAULT_CATEGORY_WEIGHTS: dict[str, float] = {
    "text": 0.30,
    "account": 0.25,
    "behavioral": 0.30,
    "media": 0.15,
}

# checked in order; VERY_LOW_TRUST is the fallback
DEFAULT_THRESHOLDS: dict[TrustLevel, float] = {
    TrustLevel.HIGH_TRUST: 0.75,
    TrustLevel.MODERATE_TRUST: 0.50,
    TrustLevel.LOW_TRUST: 0.30,
}

INSUFFICIENT_MESSAGE = "Not enough data to assess authenticity"
LIMITED_DATA_PREFIX = "Limited data suggests"


def _frozen(mapping: Mapping) -> MappingProxyType:
    return MappingProxyType(dict(mapping))


def _defaults(name: str) -> Any:
    return field(default_factory=lambda: getattr(get_settings(), name))


@dataclass(frozen=True)
class ScorerConfig:
    """Immutable scorer tuning. Build a new one to score differently."""

    weights: Mapping[str, Mapping[str, float]] = field(default_factory=lambda: DEFAULT_WEIGHTS)
    category_weights: Mapping[str, float] = field(default_factory=lambda: DEFAULT_CATEGORY_WEIGHTS)
    thresholds: Mapping[TrustLevel, float] = field(default_factory=lambda: DEFAULT_THRESHOLDS)
    min_signals_required: int = _defaults("min_signals_required")
    confidence_decay: float = _defaults("confidence_decay")
    full_coverage_signals: int = _defaults("full_coverage_signals")

    def __post_init__(self) -> None:
        if self.min_signals_required < 1:
            raise ValueError("min_signals_required must be at least 1")
        if self.full_coverage_signals <= 0:
            raise ValueError("full_coverage_signals must be positive")
        if not 0.0 <= self.confidence_decay <= 1.0:
            raise ValueError("confidence_decay must lie in [0, 1]")
        for category, weight in self.category_weights.items():
            if weight < 0:
                raise ValueError(f"Category weight for {category} must not be negative")
        if sum(self.category_weights.values()) <= 0:
            raise ValueError("Category weights must sum to a positive value")
        object.__setattr__(
            self,
            "weights",
            _frozen({category: _frozen(table) for category, table in self.weights.items()}),
        )
        object.__setattr__(self, "category_weights", _frozen(self.category_weights))
        object.__setattr__(
            self,
            "thresholds",
            _frozen(
                sorted(
                    ((TrustLevel(level), threshold) for level, threshold in self.thresholds.items()),
                    key=lambda item: item[1],
                    reverse=True,
                )
            ),
        )


def signal_score(value: SignalOutput | Mapping[str, Any] | float | None) -> float | None:
    if value is None:
        return None
    if isinstance(value, SignalOutput):
        return value.score
    if isinstance(value, Mapping):
        score = value.get("score")
        return None if score is None else float(score)
    return float(value)


def signal_detail(value: SignalOutput | Mapping[str, Any] | float | None) -> str | None:
    if isinstance(value, SignalOutput):
        return value.detail
    if isinstance(value, Mapping):
        return value.get("detail")
    return None


def build_issue(category: str, signal: str, value: SignalOutput | Mapping[str, Any] | float | None) -> Issue | None:
    """Project one signal to an Issue when it scores below the concern threshold."""
    score = signal_score(value)
    if score is None or score >= ISSUE_THRESHOLD:
        return None
    return Issue(
        category=category,
        signal=signal,
        score=score,
        detail=signal_detail(value),
        severity=Severity.HIGH if score < HIGH_SEVERITY_THRESHOLD else Severity.MEDIUM,
    )


def score_category(
    category: str,
    signals: Mapping[str, Any],
    weights: Mapping[str, float],
) -> tuple[CategoryScore, list[Issue]]:
    """
    Weighted average over the known, weighted signals of one category.

    Signals without a weight entry are ignored outright. When nothing
    contributes weight the average falls back to neutral and the category
    reports zero signals.
    """
    total = 0.0
    weight_sum = 0.0
    count = 0
    issues: list[Issue] = []
    for name, value in signals.items():
        weight = weights.get(name)
        score = signal_score(value)
        if weight is None or score is None:
            continue
        total += score * weight
        weight_sum += weight
        count += 1
        issue = build_issue(category, name, value)
        if issue is not None:
            issues.append(issue)

    if weight_sum <= 0:
        return CategoryScore(score=NEUTRAL_SCORE, signal_count=0, weight_sum=0.0), []
    return CategoryScore(score=total / weight_sum, signal_count=count, weight_sum=weight_sum), issues


def _concerns(count: int, adjective: str = "") -> str:
    noun = "concern" if count == 1 else "concerns"
    return f"{count} {adjective}{noun}"


class TrustScorer:
    def __init__(self, config: ScorerConfig | None = None) -> None:
        self.config = config or ScorerConfig()

    def compute_score(self, signals: SignalBundle | Mapping[str, Mapping[str, Any]]) -> TrustResult:
        config = self.config
        details: dict[str, CategoryScore] = {}
        issues: list[Issue] = []
        total_signals = 0

        for category, group in (signals or {}).items():
            weights = config.weights.get(category)
            # a category without a positive category weight cannot move the final score
            if weights is None or config.category_weights.get(category, 0.0) <= 0 or not group:
                continue
            result, category_issues = score_category(category, group, weights)
            if result.signal_count > 0:
                details[category] = result
                total_signals += result.signal_count
                issues.extend(category_issues)

        if total_signals < config.min_signals_required:
            logger.debug("Insufficient data: %d signals (need %d)", total_signals, config.min_signals_required)
            return TrustResult(
                score=None,
                level=TrustLevel.INSUFFICIENT_DATA,
                confidence=0.0,
                message=INSUFFICIENT_MESSAGE,
                details=details,
                issues=(),
                signal_count=total_signals,
            )

        final_score = self._combine_categories(details)
        confidence = min(1.0, total_signals / config.full_coverage_signals) * config.confidence_decay
        level = self.trust_level(final_score)
        return TrustResult(
            score=final_score,
            level=level,
            confidence=confidence,
            message=self.compose_message(level, len(issues), confidence),
            details=details,
            issues=tuple(issues),
            signal_count=total_signals,
        )

    def _combine_categories(self, details: Mapping[str, CategoryScore]) -> float:
        total = 0.0
        weight_sum = 0.0
        for category, result in details.items():
            weight = self.config.category_weights.get(category, 0.0)
            total += result.score * weight
            weight_sum += weight
        if weight_sum <= 0:
            return NEUTRAL_SCORE
        return min(1.0, max(0.0, total / weight_sum))

    def trust_level(self, score: float) -> TrustLevel:
        for level, threshold in self.config.thresholds.items():
            if score >= threshold:
                return level
        return TrustLevel.VERY_LOW_TRUST

    @staticmethod
    def compose_message(level: TrustLevel, issue_count: int, confidence: float) -> str:
        messages = {
            TrustLevel.HIGH_TRUST: "This content appears authentic based on available signals.",
            TrustLevel.MODERATE_TRUST: f"Mixed signals detected. {_concerns(issue_count, 'potential ')} found.",
            TrustLevel.LOW_TRUST: (
                "Multiple markers suggest this content may not be authentic. "
                f"{_concerns(issue_count)} flagged."
            ),
            TrustLevel.VERY_LOW_TRUST: (
                "Strong indicators of inauthentic content detected. "
                f"{_concerns(issue_count, 'significant ')} found."
            ),
        }
        base = messages.get(level, "Unable to assess.")
        if confidence < 0.5:
            return f"{LIMITED_DATA_PREFIX}: {base}"
        return base
