"""
Local text authenticity heuristics.

Each detector scans one normalized text and returns a SignalOutput in [0, 1]
where 1 reads as authentic. Detectors are pure functions over the text and a
Lexicons value; TextAnalyzer bundles them under their signal names.
"""

from __future__ import annotations

import logging
import re
from collections import Counter

import numpy as np

from .lexicons import Lexicons, default_lexicons
from .models import SignalOutput

logger = logging.getLogger(__name__)

AI_DETECTION = "aiDetection"
REPETITION_PATTERN = "repetitionPattern"
SENTIMENT_CONSISTENCY = "sentimentConsistency"
VOCABULARY_DISTRIBUTION = "vocabularyDistribution"
TEMPLATE_MATCHING = "templateMatching"

TEXT_SIGNALS = (
    AI_DETECTION,
    REPETITION_PATTERN,
    SENTIMENT_CONSISTENCY,
    VOCABULARY_DISTRIBUTION,
    TEMPLATE_MATCHING,
)

SENTENCE_SPLIT = re.compile(r"[.!?]+")
NON_ALPHA = re.compile(r"[^a-z]")
DENSITY_WINDOW = 500


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _per_window(count: int, text: str) -> float:
    return count / (len(text) / DENSITY_WINDOW)


def extract_ngrams(text: str, n: int) -> list[str]:
    words = text.split()
    return [" ".join(words[i:i + n]) for i in range(len(words) - n + 1)]


def detect_ai_phrases(text: str, lexicons: Lexicons) -> SignalOutput:
    """Phrase-frequency check for generic AI phrasing and stacked superlatives."""
    if not text:
        return SignalOutput()
    phrase_count = 0
    found_phrases = []
    for phrase in lexicons.ai_tell_phrases:
        matches = len(re.findall(re.escape(phrase), text, re.IGNORECASE))
        if matches:
            phrase_count += matches
            found_phrases.append(phrase)

    hype_count = 0
    for word in lexicons.hype_words:
        hype_count += len(re.findall(rf"\b{re.escape(word)}\b", text, re.IGNORECASE))

    density = _per_window(phrase_count, text)
    hype_density = _per_window(hype_count, text)

    score = 1.0
    if phrase_count > 0:
        score -= min(0.5, density * 0.25)
    # more than 3 superlatives per 500 chars
    if hype_density > 3:
        score -= min(0.4, (hype_density - 2) * 0.1)

    detail = None
    if found_phrases or hype_count > 3:
        detail = f"Found {phrase_count} AI-associated phrases, {hype_count} hype words"
    return SignalOutput(score=_clamp(score), detail=detail)


def match_templates(text: str, lexicons: Lexicons) -> SignalOutput:
    if not text:
        return SignalOutput()
    lowered = text.lower()
    matched = [template for template in lexicons.review_templates if template in lowered]
    score = max(0.0, 1.0 - len(matched) * 0.3)
    detail = None
    if matched:
        detail = f"Matched {_plural(len(matched), 'common fake review template phrase')}"
    return SignalOutput(score=_clamp(score), detail=detail)


def analyze_repetition(text: str, lexicons: Lexicons) -> SignalOutput:
    """Repeated phrasing and formulaic, self-contained sentence structure."""
    sentences = [s.strip() for s in SENTENCE_SPLIT.split(text) if len(s.strip()) > 10]
    if len(sentences) < 2:
        return SignalOutput(score=0.5)

    trigrams = extract_ngrams(text, 3)
    repeated_trigrams = sum(1 for count in Counter(trigrams).values() if count > 2)
    repetition_rate = repeated_trigrams / max(1, len(trigrams))

    starts = [" ".join(sentence.split()[:3]) for sentence in sentences]
    start_diversity = len(set(starts)) / len(starts)

    formulaic_penalty = 0.0
    sentence_lengths = np.array([len(sentence.split()) for sentence in sentences], dtype=float)
    if float(np.var(sentence_lengths)) < 8 and len(sentences) >= 3:
        formulaic_penalty = 0.3

    connective_count = sum(
        1 for word in text.split() if NON_ALPHA.sub("", word.lower()) in lexicons.connectives
    )
    # a run of statements with no narrative glue
    if connective_count == 0 and len(sentences) >= 4:
        formulaic_penalty += 0.2

    score = 1.0
    score -= (1 - start_diversity) * 0.3
    score -= min(0.3, repetition_rate * 50 * 0.3)
    score -= formulaic_penalty
    score = _clamp(score)

    detail = None
    if score < 0.5:
        detail = (
            f"Formulaic structure detected: {repeated_trigrams} repeated phrases, "
            "low sentence variation"
        )
    return SignalOutput(score=score, detail=detail)


def analyze_sentiment(text: str, lexicons: Lexicons) -> SignalOutput:
    """
    Uniform praise without hedging or concrete details reads as fabricated.

    Expects normalized text; title-cased review headings must not read as
    specific details.
    """
    words = text.split()
    if not words:
        return SignalOutput()
    lowered = text.lower()

    positive = negative = hedges = 0
    for word in words:
        clean = NON_ALPHA.sub("", word.lower())
        if clean in lexicons.positive_words:
            positive += 1
        if clean in lexicons.negative_words:
            negative += 1
        if clean in lexicons.hedging_words:
            hedges += 1
    hedges += sum(lowered.count(phrase) for phrase in lexicons.hedging_phrases)

    positive_density = positive / len(words)
    specificity = sum(1 for pattern in lexicons.specificity_patterns if pattern.search(text))

    if positive_density > 0.06 and hedges == 0 and negative == 0 and specificity == 0:
        return SignalOutput(score=0.15, detail="Uniformly positive with no nuance or specific details")
    if positive_density > 0.08 and specificity == 0:
        return SignalOutput(score=0.30, detail="Very high praise density without concrete details")
    if positive_density > 0.06 and hedges == 0 and negative == 0:
        return SignalOutput(score=0.45, detail="Positive without hedging but contains specific details")
    if hedges > 0 or (positive > 0 and negative > 0):
        return SignalOutput(score=0.85)
    return SignalOutput(score=0.60)


def analyze_vocabulary(text: str, lexicons: Lexicons) -> SignalOutput:
    words = [w for w in (NON_ALPHA.sub("", token) for token in text.lower().split()) if len(w) > 2]
    if len(words) < 20:
        return SignalOutput(score=0.5)

    type_token_ratio = len(set(words)) / len(words)
    vague_density = sum(1 for word in words if word in lexicons.vague_words) / len(words)

    if type_token_ratio > 0.85 and len(words) > 100:
        score = 0.5
    elif type_token_ratio < 0.3:
        score = 0.35
    else:
        score = 0.7 + type_token_ratio * 0.2

    if vague_density > 0.20:
        score -= 0.35
    elif vague_density > 0.15:
        score -= 0.2

    word_lengths = np.array([len(word) for word in words], dtype=float)
    if float(np.var(word_lengths)) < 3:
        score *= 0.8

    score = _clamp(score)
    detail = None
    if score < 0.4:
        detail = f"Vocabulary lacks specificity ({round(vague_density * 100)}% generic words)"
    return SignalOutput(score=score, detail=detail)


def normalize_text(text: str | None) -> str:
    return (text or "").strip().lower()


class TextAnalyzer:
    """Run every lexical detector over one review text."""

    def __init__(self, *, lexicons: Lexicons | None = None, min_length: int = 20) -> None:
        self._lexicons = lexicons or default_lexicons()
        self._min_length = min_length

    @property
    def lexicons(self) -> Lexicons:
        return self._lexicons

    def analyze(self, text: str | None) -> dict[str, SignalOutput]:
        normalized = normalize_text(text)
        if len(normalized) < self._min_length:
            logger.debug("Text too short for analysis (%d chars)", len(normalized))
            return {name: SignalOutput() for name in TEXT_SIGNALS}

        lexicons = self._lexicons
        return {
            AI_DETECTION: detect_ai_phrases(normalized, lexicons),
            REPETITION_PATTERN: analyze_repetition(normalized, lexicons),
            SENTIMENT_CONSISTENCY: analyze_sentiment(normalized, lexicons),
            VOCABULARY_DISTRIBUTION: analyze_vocabulary(normalized, lexicons),
            TEMPLATE_MATCHING: match_templates(normalized, lexicons),
        }
