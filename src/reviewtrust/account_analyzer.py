"""
Reviewer and account credibility heuristics.

Works only with metadata already extracted from the page; missing fields are
unknown and yield no signal rather than a penalty.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .models import ReviewerProfile, SignalOutput

logger = logging.getLogger(__name__)

ACCOUNT_AGE = "accountAge"
POSTING_FREQUENCY = "postingFrequency"
REVIEW_DIVERSITY = "reviewDiversity"
PROFILE_COMPLETENESS = "profileCompleteness"
NETWORK_CONNECTIONS = "networkConnections"
TIMING_CLUSTER = "timingCluster"
ACCOUNT_AGE_CLUSTER = "accountAgeCluster"

PROFILE_FIELDS = ("display_name", "avatar_url", "bio", "location", "helpful_votes", "total_reviews")


@dataclass(frozen=True)
class AccountThresholds:
    burst_threshold: int = 5
    reviews_per_day_max: float = 3
    same_rating_threshold: float = 0.9
    min_category_diversity: float = 0.1
    min_reviews_for_category_check: int = 10
    cluster_window: timedelta = timedelta(hours=24)
    min_cluster_size: int = 3
    min_dated_profiles: int = 5
    creation_window: timedelta = timedelta(days=7)
    min_creation_cluster: int = 5


def _days_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / 86400


def _format_rating(value: float) -> str:
    return f"{value:g}"


class AccountAnalyzer:
    def __init__(self, thresholds: AccountThresholds | None = None, *, now: datetime | None = None) -> None:
        self.thresholds = thresholds or AccountThresholds()
        self._now = now

    def _current_time(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    def analyze(self, profile: ReviewerProfile) -> dict[str, SignalOutput | None]:
        return {
            ACCOUNT_AGE: self.score_account_age(profile),
            POSTING_FREQUENCY: self.score_posting_frequency(profile),
            REVIEW_DIVERSITY: self.score_review_diversity(profile),
            PROFILE_COMPLETENESS: self.score_profile_completeness(profile),
            NETWORK_CONNECTIONS: self.score_network(profile),
        }

    def analyze_batch(self, profiles: Sequence[ReviewerProfile]) -> tuple[list[dict[str, SignalOutput | None]], dict[str, SignalOutput | None]]:
        """Per-profile signals in input order, plus coordination signals across the set."""
        individual = [self.analyze(profile) for profile in profiles]
        batch = {
            TIMING_CLUSTER: self.detect_timing_clusters(profiles),
            ACCOUNT_AGE_CLUSTER: self.detect_account_age_cluster(profiles),
        }
        return individual, batch

    def score_account_age(self, profile: ReviewerProfile) -> SignalOutput | None:
        reference = profile.account_created or profile.first_review_date
        if reference is None:
            return None
        age_days = _days_between(self._current_time(), reference)
        if age_days < 7:
            return SignalOutput(score=0.1, detail="Account created within the last week")
        if age_days < 30:
            return SignalOutput(score=0.3, detail="Account less than 30 days old")
        if age_days < 90:
            return SignalOutput(score=0.6)
        return SignalOutput(score=0.9)

    def score_posting_frequency(self, profile: ReviewerProfile) -> SignalOutput | None:
        if len(profile.review_dates) < 2:
            return None
        per_day = Counter(date.date() for date in profile.review_dates)
        max_in_one_day = max(per_day.values())
        avg_per_day = len(profile.review_dates) / len(per_day)

        if max_in_one_day > self.thresholds.burst_threshold:
            return SignalOutput(score=0.15, detail=f"{max_in_one_day} reviews posted on a single day")
        if avg_per_day > self.thresholds.reviews_per_day_max:
            return SignalOutput(score=0.3, detail="Unusually high review frequency")
        return SignalOutput(score=0.8)

    def score_review_diversity(self, profile: ReviewerProfile) -> SignalOutput | None:
        ratings = profile.ratings
        if len(ratings) < 3:
            return None
        rating_counts = Counter(ratings)
        dominant_rating, dominant_count = rating_counts.most_common(1)[0]
        dominant_share = dominant_count / len(ratings)

        if dominant_share >= self.thresholds.same_rating_threshold:
            return SignalOutput(
                score=0.2,
                detail=f"{round(dominant_share * 100)}% of reviews are {_format_rating(dominant_rating)}-star",
            )

        categories = profile.review_categories
        if categories:
            category_diversity = len(set(categories)) / len(categories)
            if (
                category_diversity < self.thresholds.min_category_diversity
                and len(categories) > self.thresholds.min_reviews_for_category_check
            ):
                return SignalOutput(score=0.35, detail="Reviews concentrated in a single product category")

        spread = len(rating_counts)
        diversity = min(1.0, (spread / 5) * 0.5 + (1 - dominant_share) * 0.5)
        return SignalOutput(score=max(0.4, diversity))

    def score_profile_completeness(self, profile: ReviewerProfile) -> SignalOutput:
        present = sum(1 for name in PROFILE_FIELDS if getattr(profile, name) is not None)
        completeness = present / len(PROFILE_FIELDS)
        if completeness < 0.3:
            return SignalOutput(score=0.3, detail="Minimal profile information")
        return SignalOutput(score=max(0.5, completeness))

    def score_network(self, profile: ReviewerProfile) -> SignalOutput | None:
        """Helpful-vote ratio; real reviewers accumulate votes over time."""
        if profile.helpful_votes is None or not profile.total_reviews:
            return None
        helpful_ratio = profile.helpful_votes / profile.total_reviews
        if helpful_ratio < 0.1 and profile.total_reviews > 20:
            return SignalOutput(score=0.4, detail="Very low helpful vote ratio despite many reviews")
        if helpful_ratio > 1:
            return SignalOutput(score=0.9)
        return None

    def detect_timing_clusters(self, profiles: Sequence[ReviewerProfile]) -> SignalOutput | None:
        """Many reviewers posting within a day of each other suggests a campaign."""
        review_dates = sorted(profile.review_date for profile in profiles if profile.review_date is not None)
        if len(review_dates) < self.thresholds.min_dated_profiles:
            return None

        clusters: list[list[datetime]] = []
        current = [review_dates[0]]
        for previous, date in zip(review_dates, review_dates[1:]):
            if date - previous < self.thresholds.cluster_window:
                current.append(date)
            else:
                if len(current) >= self.thresholds.min_cluster_size:
                    clusters.append(current)
                current = [date]
        if len(current) >= self.thresholds.min_cluster_size:
            clusters.append(current)

        if not clusters:
            return SignalOutput(score=0.8)

        largest = max(len(cluster) for cluster in clusters)
        cluster_ratio = largest / len(review_dates)
        if cluster_ratio > 0.5:
            return SignalOutput(
                score=0.15,
                detail=f"{largest} of {len(review_dates)} reviews posted within 24 hours of each other",
            )
        detail = "Review timing shows clustering patterns" if cluster_ratio > 0.3 else None
        return SignalOutput(score=max(0.3, 1 - cluster_ratio), detail=detail)

    def detect_account_age_cluster(self, profiles: Sequence[ReviewerProfile]) -> SignalOutput | None:
        creation_dates = sorted(profile.account_created for profile in profiles if profile.account_created is not None)
        if len(creation_dates) < 3:
            return None
        span = creation_dates[-1] - creation_dates[0]
        if span < self.thresholds.creation_window and len(creation_dates) >= self.thresholds.min_creation_cluster:
            return SignalOutput(
                score=0.1,
                detail=f"{len(creation_dates)} reviewer accounts created within the same week",
            )
        return SignalOutput(score=0.7)
