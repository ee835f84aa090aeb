import random
from dataclasses import FrozenInstanceError

import pytest
from pydantic import ValidationError

from reviewtrust.models import CategoryScore, Severity, SignalOutput, TrustLevel
from reviewtrust.scorer import (
    DEFAULT_WEIGHTS,
    ScorerConfig,
    TrustScorer,
    build_issue,
    score_category,
)

TEXT_SIGNALS = list(DEFAULT_WEIGHTS["text"])


@pytest.fixture
def scorer():
    return TrustScorer()


def low_text_bundle():
    return {
        "text": {
            "aiDetection": SignalOutput(score=0.1, detail="Found 3 AI-associated phrases, 0 hype words"),
            "templateMatching": SignalOutput(score=0.1),
            "repetitionPattern": SignalOutput(score=0.2),
        }
    }


def test_single_category_low_scores(scorer):
    result = scorer.compute_score(low_text_bundle())
    assert result.score == pytest.approx(0.09 / 0.7)
    assert result.details["text"].score == pytest.approx(result.score)
    assert result.level is TrustLevel.VERY_LOW_TRUST
    assert result.signal_count == 3
    assert result.confidence == pytest.approx(0.3 * 0.85)
    assert result.message == (
        "Limited data suggests: Strong indicators of inauthentic content detected. "
        "3 significant concerns found."
    )


def test_issues_follow_category_then_signal_order(scorer):
    issues = scorer.compute_score(low_text_bundle()).issues
    assert [(issue.signal, issue.severity) for issue in issues] == [
        ("aiDetection", Severity.HIGH),
        ("templateMatching", Severity.HIGH),
        ("repetitionPattern", Severity.MEDIUM),
    ]
    assert issues[0].detail == "Found 3 AI-associated phrases, 0 hype words"
    assert all(issue.category == "text" for issue in issues)


def test_empty_bundle_is_insufficient(scorer):
    result = scorer.compute_score({})
    assert result.level is TrustLevel.INSUFFICIENT_DATA
    assert result.score is None
    assert result.confidence == 0.0
    assert result.issues == ()
    assert result.message == "Not enough data to assess authenticity"


def test_strong_text_signals(scorer):
    result = scorer.compute_score({"text": {name: SignalOutput(score=0.9) for name in TEXT_SIGNALS}})
    assert result.score == pytest.approx(0.9)
    assert result.level is TrustLevel.HIGH_TRUST
    assert result.confidence == pytest.approx(0.425)
    assert result.issues == ()
    assert result.message.startswith("Limited data suggests: ")


def test_too_few_signals_hide_issues(scorer):
    result = scorer.compute_score({"text": {"aiDetection": 0.0, "templateMatching": 0.0}})
    assert result.level is TrustLevel.INSUFFICIENT_DATA
    assert result.signal_count == 2
    assert result.issues == ()


def test_unknown_and_unweighted_signals_are_ignored(scorer):
    bundle = low_text_bundle()
    bundle["text"]["vocabularyDistribution"] = None
    bundle["text"]["madeUpSignal"] = SignalOutput(score=0.0)
    bundle["social"] = {"followers": 0.0}
    result = scorer.compute_score(bundle)
    assert result.score == pytest.approx(0.09 / 0.7)
    assert result.signal_count == 3
    assert set(result.details) == {"text"}


def test_category_with_only_unknowns_is_left_out(scorer):
    bundle = low_text_bundle()
    bundle["media"] = {"reverseImageMatch": None, "exifAnalysis": None}
    result = scorer.compute_score(bundle)
    assert "media" not in result.details
    assert result.score == pytest.approx(0.09 / 0.7)


def test_categories_are_weighted(scorer):
    bundle = {
        "text": {name: 0.9 for name in TEXT_SIGNALS},
        "account": {"accountAge": 0.1, "postingFrequency": 0.1},
    }
    result = scorer.compute_score(bundle)
    assert result.score == pytest.approx((0.9 * 0.30 + 0.1 * 0.25) / 0.55)
    assert result.level is TrustLevel.MODERATE_TRUST
    assert result.signal_count == 7
    assert result.confidence == pytest.approx(0.7 * 0.85)
    assert result.message == "Mixed signals detected. 2 potential concerns found."


def test_plain_mapping_signals_accepted(scorer):
    bundle = {"text": {name: {"score": 0.1, "detail": "bad"} for name in TEXT_SIGNALS[:3]}}
    result = scorer.compute_score(bundle)
    assert result.score == pytest.approx(0.1)
    assert result.issues[0].detail == "bad"


def test_scoring_is_deterministic(scorer):
    first = scorer.compute_score(low_text_bundle())
    second = scorer.compute_score(low_text_bundle())
    assert (first.score, first.level, first.confidence, first.issues) == (
        second.score,
        second.level,
        second.confidence,
        second.issues,
    )


def test_random_bundles_stay_in_bounds(scorer):
    rng = random.Random(7)
    for _ in range(200):
        bundle = {
            category: {name: rng.choice([None, rng.random()]) for name in table}
            for category, table in DEFAULT_WEIGHTS.items()
        }
        result = scorer.compute_score(bundle)
        assert 0.0 <= result.confidence <= 1.0
        if result.score is not None:
            assert 0.0 <= result.score <= 1.0


def test_raising_a_signal_never_lowers_the_score(scorer):
    rng = random.Random(11)
    for _ in range(100):
        bundle = {"text": {name: rng.random() for name in TEXT_SIGNALS}, "account": {"accountAge": rng.random()}}
        before = scorer.compute_score(bundle).score
        name = rng.choice(TEXT_SIGNALS)
        bundle["text"][name] = min(1.0, bundle["text"][name] + 0.2)
        assert scorer.compute_score(bundle).score >= before - 1e-12


@pytest.mark.parametrize(
    "score, level",
    [
        (0.75, TrustLevel.HIGH_TRUST),
        (0.7499, TrustLevel.MODERATE_TRUST),
        (0.5, TrustLevel.MODERATE_TRUST),
        (0.3, TrustLevel.LOW_TRUST),
        (0.2999, TrustLevel.VERY_LOW_TRUST),
        (0.0, TrustLevel.VERY_LOW_TRUST),
    ],
)
def test_trust_level_thresholds(scorer, score, level):
    assert scorer.trust_level(score) is level


def test_messages():
    assert TrustScorer.compose_message(TrustLevel.MODERATE_TRUST, 1, 0.9) == (
        "Mixed signals detected. 1 potential concern found."
    )
    assert TrustScorer.compose_message(TrustLevel.LOW_TRUST, 2, 0.6) == (
        "Multiple markers suggest this content may not be authentic. 2 concerns flagged."
    )
    assert TrustScorer.compose_message(TrustLevel.HIGH_TRUST, 0, 0.49).startswith("Limited data suggests: ")


@pytest.mark.parametrize(
    "score, severity",
    [(0.0, Severity.HIGH), (0.19, Severity.HIGH), (0.2, Severity.MEDIUM), (0.39, Severity.MEDIUM)],
)
def test_build_issue_severity(score, severity):
    issue = build_issue("text", "aiDetection", SignalOutput(score=score, detail="x"))
    assert issue.severity is severity
    assert issue.score == score


@pytest.mark.parametrize("value", [None, SignalOutput(), SignalOutput(score=0.4), 0.9])
def test_build_issue_skips_healthy_and_unknown(value):
    assert build_issue("text", "aiDetection", value) is None


def test_score_category_neutral_fallback():
    result, issues = score_category("media", {"exifAnalysis": None}, DEFAULT_WEIGHTS["media"])
    assert result == CategoryScore(score=0.5, signal_count=0, weight_sum=0.0)
    assert issues == []


def test_custom_config_coexists_with_default():
    lenient = TrustScorer(
        ScorerConfig(
            min_signals_required=1,
            thresholds={"HIGH_TRUST": 0.95, "MODERATE_TRUST": 0.5, "LOW_TRUST": 0.3},
        )
    )
    bundle = {"text": {"aiDetection": 0.9}}
    assert lenient.compute_score(bundle).level is TrustLevel.MODERATE_TRUST
    assert TrustScorer().compute_score(bundle).level is TrustLevel.INSUFFICIENT_DATA


def test_category_without_category_weight_is_ignored():
    config = ScorerConfig(
        weights={**DEFAULT_WEIGHTS, "social": {"followers": 0.5, "mentions": 0.5}},
        min_signals_required=1,
    )
    scorer = TrustScorer(config)
    alone = scorer.compute_score({"social": {"followers": 0.1, "mentions": 0.1}})
    assert alone.level is TrustLevel.INSUFFICIENT_DATA
    assert alone.score is None
    assert alone.signal_count == 0

    mixed = scorer.compute_score({**low_text_bundle(), "social": {"followers": 0.9}})
    assert set(mixed.details) == {"text"}
    assert mixed.signal_count == 3
    assert mixed.score == pytest.approx(0.09 / 0.7)


def test_full_coverage_constant_is_configurable():
    scorer = TrustScorer(ScorerConfig(full_coverage_signals=5, confidence_decay=1.0))
    result = scorer.compute_score({"text": {name: 0.9 for name in TEXT_SIGNALS}})
    assert result.confidence == pytest.approx(1.0)
    assert result.message == "This content appears authentic based on available signals."


@pytest.mark.parametrize(
    "kwargs",
    [
        {"full_coverage_signals": 0},
        {"min_signals_required": 0},
        {"confidence_decay": 1.5},
        {"category_weights": {"text": -1}},
        {"category_weights": {"text": 0.0, "account": 0.0}},
    ],
)
def test_invalid_config_rejected(kwargs):
    with pytest.raises(ValueError):
        ScorerConfig(**kwargs)


def test_config_is_immutable():
    config = ScorerConfig()
    with pytest.raises(FrozenInstanceError):
        config.min_signals_required = 1
    with pytest.raises(TypeError):
        config.weights["text"]["aiDetection"] = 1.0
    assert DEFAULT_WEIGHTS["text"]["aiDetection"] == 0.25


def test_result_is_immutable_and_serializable(scorer):
    result = scorer.compute_score(low_text_bundle())
    with pytest.raises(ValidationError):
        result.score = 1.0
    with pytest.raises(TypeError):
        result.details["account"] = CategoryScore(score=1.0, signal_count=5, weight_sum=1.0)
    assert result.model_dump()["details"]["text"]["signal_count"] == 3
    payload = result.as_dict()
    assert payload["level"] == "VERY_LOW_TRUST"
    assert payload["issues"][0]["severity"] == "high"
    assert set(payload) == {"score", "level", "confidence", "message", "issues", "signal_count", "timestamp"}
    assert result.color == "#ef4444"
    assert result.icon == "✕"
    assert result.label == "Likely Inauthentic"
