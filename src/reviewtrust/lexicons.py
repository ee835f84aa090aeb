"""
Rule-list loader for the text detectors.

Phrase and word lists live as JSON files under the data directory so they can
be tuned without touching detector logic.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from .config import get_settings

logger = logging.getLogger(__name__)

LEXICON_FILES = (
    "ai_tell_phrases.json",
    "hype_words.json",
    "review_templates.json",
    "sentiment.json",
    "vocabulary.json",
)


@dataclass(frozen=True)
class Lexicons:
    ai_tell_phrases: tuple[str, ...]
    hype_words: tuple[str, ...]
    review_templates: tuple[str, ...]
    positive_words: frozenset[str]
    negative_words: frozenset[str]
    hedging_words: frozenset[str]
    hedging_phrases: tuple[str, ...]
    specificity_patterns: tuple[re.Pattern, ...]
    vague_words: frozenset[str]
    connectives: frozenset[str]


def load_json(path: Path) -> Any:
    """Load a JSON file with UTF-8 encoding."""
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _dedup_list(values: Iterable[str]) -> list[str]:
    seen = set()
    output: list[str] = []
    for val in values:
        key = val.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        output.append(key)
    return output


def compile_patterns(values: Iterable[str]) -> list[re.Pattern]:
    """Compile regex patterns case-insensitively, skipping invalid entries."""
    compiled: list[re.Pattern] = []
    for item in values:
        try:
            compiled.append(re.compile(item, re.I | re.U))
        except re.error as exc:
            logger.warning("Skip invalid pattern %s: %s", item, exc)
    return compiled


def load_lexicons(data_dir: str | os.PathLike[str] | None = None) -> Lexicons:
    """
    Load every rule list from data_dir (defaults to the configured data dir).

    Missing files raise FileNotFoundError: the detectors have no built-in
    fallback lists.
    """
    data_path = Path(data_dir) if data_dir is not None else get_settings().data_dir
    for fname in LEXICON_FILES:
        if not (data_path / fname).exists():
            raise FileNotFoundError(f"Lexicon file {fname} not found in {data_path}")

    sentiment = load_json(data_path / "sentiment.json")
    vocabulary = load_json(data_path / "vocabulary.json")
    hedging = _dedup_list(sentiment.get("hedging", []))

    lexicons = Lexicons(
        ai_tell_phrases=tuple(_dedup_list(load_json(data_path / "ai_tell_phrases.json"))),
        hype_words=tuple(_dedup_list(load_json(data_path / "hype_words.json"))),
        review_templates=tuple(_dedup_list(load_json(data_path / "review_templates.json"))),
        positive_words=frozenset(_dedup_list(sentiment.get("positive", []))),
        negative_words=frozenset(_dedup_list(sentiment.get("negative", []))),
        hedging_words=frozenset(word for word in hedging if " " not in word),
        hedging_phrases=tuple(word for word in hedging if " " in word),
        specificity_patterns=tuple(compile_patterns(sentiment.get("specificity_patterns", []))),
        vague_words=frozenset(_dedup_list(vocabulary.get("vague_words", []))),
        connectives=frozenset(_dedup_list(vocabulary.get("connectives", []))),
    )
    logger.info(
        "Loaded lexicons from %s (ai phrases:%d hype:%d templates:%d specificity patterns:%d)",
        data_path,
        len(lexicons.ai_tell_phrases),
        len(lexicons.hype_words),
        len(lexicons.review_templates),
        len(lexicons.specificity_patterns),
    )
    return lexicons


@lru_cache(1)
def default_lexicons() -> Lexicons:
    return load_lexicons()
