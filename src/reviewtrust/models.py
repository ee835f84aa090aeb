from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

logger = logging.getLogger(__name__)


class SignalOutput(BaseModel):
    """One heuristic measurement. A None score means it could not be computed."""

    model_config = ConfigDict(frozen=True)

    score: float | None = Field(default=None, ge=0.0, le=1.0)
    detail: str | None = None

    @property
    def known(self) -> bool:
        return self.score is not None


SignalGroup = dict[str, SignalOutput | float | None]
SignalBundle = dict[str, SignalGroup]


class TrustLevel(str, Enum):
    HIGH_TRUST = "HIGH_TRUST"
    MODERATE_TRUST = "MODERATE_TRUST"
    LOW_TRUST = "LOW_TRUST"
    VERY_LOW_TRUST = "VERY_LOW_TRUST"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


LEVEL_COLORS = {
    TrustLevel.HIGH_TRUST: "#22c55e",
    TrustLevel.MODERATE_TRUST: "#eab308",
    TrustLevel.LOW_TRUST: "#f97316",
    TrustLevel.VERY_LOW_TRUST: "#ef4444",
    TrustLevel.INSUFFICIENT_DATA: "#6b7280",
}

LEVEL_ICONS = {
    TrustLevel.HIGH_TRUST: "✓",
    TrustLevel.MODERATE_TRUST: "⚠",
    TrustLevel.LOW_TRUST: "⚠",
    TrustLevel.VERY_LOW_TRUST: "✕",
    TrustLevel.INSUFFICIENT_DATA: "?",
}

LEVEL_LABELS = {
    TrustLevel.HIGH_TRUST: "Likely Authentic",
    TrustLevel.MODERATE_TRUST: "Mixed Signals",
    TrustLevel.LOW_TRUST: "Questionable",
    TrustLevel.VERY_LOW_TRUST: "Likely Inauthentic",
    TrustLevel.INSUFFICIENT_DATA: "Insufficient Data",
}


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    signal: str
    score: float = Field(..., ge=0.0, le=1.0)
    detail: str | None = None
    severity: Severity


class CategoryScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float
    signal_count: int = 0
    weight_sum: float = 0.0


class TrustResult(BaseModel):
    """Immutable scoring verdict. Produce a new one with model_copy(update=...)."""

    model_config = ConfigDict(frozen=True)

    score: float | None = Field(default=None, ge=0.0, le=1.0)
    level: TrustLevel
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    message: str
    details: Mapping[str, CategoryScore] = Field(default_factory=dict, validate_default=True)
    issues: tuple[Issue, ...] = ()
    signal_count: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("details", mode="after")
    @classmethod
    def _read_only_details(cls, value: Mapping[str, CategoryScore]) -> Mapping[str, CategoryScore]:
        return MappingProxyType(dict(value))

    @field_serializer("details")
    def _serialize_details(self, value: Mapping[str, CategoryScore]) -> dict[str, CategoryScore]:
        return dict(value)

    @property
    def color(self) -> str:
        return LEVEL_COLORS.get(self.level, LEVEL_COLORS[TrustLevel.INSUFFICIENT_DATA])

    @property
    def icon(self) -> str:
        return LEVEL_ICONS.get(self.level, "?")

    @property
    def label(self) -> str:
        return LEVEL_LABELS.get(self.level, "Unknown")

    def as_dict(self) -> dict[str, Any]:
        """Plain-data projection for storage and messaging."""
        return self.model_dump(
            mode="json",
            include={"score", "level", "confidence", "message", "issues", "signal_count", "timestamp"},
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)):
        # epoch milliseconds, as scraped timestamps usually are
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return _as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


class ReviewerProfile(BaseModel):
    """
    Author metadata. Every field is optional; absence means unknown.
    Unparseable dates are dropped rather than rejected.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    display_name: str | None = Field(default=None, alias="displayName")
    avatar_url: str | None = Field(default=None, alias="avatarUrl")
    bio: str | None = None
    location: str | None = None
    account_created: datetime | None = Field(default=None, alias="accountCreated")
    first_review_date: datetime | None = Field(default=None, alias="firstReviewDate")
    total_reviews: int | None = Field(default=None, alias="totalReviews")
    helpful_votes: int | None = Field(default=None, alias="helpfulVotes")
    ratings: tuple[float, ...] = ()
    review_dates: tuple[datetime, ...] = Field(default=(), alias="reviewDates")
    review_categories: tuple[str, ...] = Field(default=(), alias="reviewCategories")
    review_date: datetime | None = Field(default=None, alias="reviewDate")
    verified_purchase: bool = Field(default=False, alias="verifiedPurchase")

    @field_validator("account_created", "first_review_date", "review_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> datetime | None:
        parsed = _parse_datetime(value)
        if parsed is None and value not in (None, ""):
            logger.debug("Ignoring unparseable profile date %r", value)
        return parsed

    @field_validator("review_dates", mode="before")
    @classmethod
    def _lenient_dates(cls, value: Any) -> tuple[datetime, ...]:
        if not value:
            return ()
        parsed = tuple(dt for dt in (_parse_datetime(item) for item in value) if dt is not None)
        if len(parsed) != len(value):
            logger.debug("Dropped %d unparseable review dates", len(value) - len(parsed))
        return parsed

    @field_validator("ratings", mode="before")
    @classmethod
    def _known_ratings(cls, value: Any) -> tuple[float, ...]:
        if not value:
            return ()
        ratings = []
        for item in value:
            try:
                ratings.append(float(item))
            except (TypeError, ValueError):
                logger.debug("Ignoring unparseable rating %r", item)
        return tuple(ratings)

    @field_validator("display_name", "avatar_url", "bio", "location", mode="before")
    @classmethod
    def _blank_is_unknown(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("total_reviews", "helpful_votes", mode="before")
    @classmethod
    def _lenient_count(cls, value: Any) -> int | None:
        if value is None or value == "":
            return None
        try:
            count = int(value)
        except (TypeError, ValueError):
            logger.debug("Ignoring unparseable profile count %r", value)
            return None
        return count if count >= 0 else None
