from __future__ import annotations

from collections.abc import Mapping

from .models import SignalOutput

RATING_DISTRIBUTION = "ratingDistribution"


def analyze_rating_distribution(histogram: Mapping[int, float] | None) -> SignalOutput | None:
    """
    Check a product's star histogram ({stars: percent}) for campaign shapes.

    Organic products tend toward a J-curve: many 5-star, some 1-star, fewer in
    the middle. Returns None when fewer than three buckets are known.
    """
    if not histogram or len(histogram) < 3:
        return None

    buckets = {int(stars): float(pct) for stars, pct in histogram.items()}
    five_star = buckets.get(5, 0.0)
    one_star = buckets.get(1, 0.0)
    middle = buckets.get(2, 0.0) + buckets.get(3, 0.0) + buckets.get(4, 0.0)

    if five_star > 90 and middle < 5:
        return SignalOutput(
            score=0.2,
            detail=f"{five_star:g}% five-star reviews with almost no middle ratings",
        )
    if five_star > 80 and one_star < 2:
        return SignalOutput(score=0.4, detail="Unusually concentrated positive ratings")
    # fake positives competing with real negatives
    if five_star > 50 and one_star > 25 and middle < 15:
        return SignalOutput(
            score=0.35,
            detail="Polarized ratings with few middle reviews, possible fake positive campaign",
        )
    return SignalOutput(score=0.8)
