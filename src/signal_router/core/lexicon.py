"""Ticker dictionaries used by the extractor.

A Lexicon is loaded once at startup and passed explicitly to
``extract_tickers``; it is never mutated afterwards.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Iterable, Optional

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
DEFAULT_TICKERS_PATH = os.path.join(DATA_DIR, "tickers.json")
DEFAULT_AMBIGUOUS_PATH = os.path.join(DATA_DIR, "ambiguous_tickers.json")

# Words that indicate the message is talking about markets.
DEFAULT_CONTEXT_BOOSTERS = frozenset(
    {
        "BUY", "SELL", "LONG", "SHORT", "CALL", "PUT", "OPTION", "STRIKE", "EXPIRY",
        "CHART", "CANDLE", "BREAKOUT", "RESISTANCE", "SUPPORT", "TREND", "VOLUME",
        "EARNINGS", "REPORT", "DIVIDEND", "SPLIT", "IPO", "SEC", "FILING",
        "BULL", "BEAR", "MOON", "DUMP", "PUMP", "TANK", "RIP", "DIP", "ATH", "ATL",
        "PRICE", "COST", "PROFIT", "LOSS", "GAIN", "TRADE", "SWING", "SCALP", "HOLD", "HODL",
        "POS", "POSITION", "ENTRY", "EXIT", "STOP", "LIMIT", "MARKET",
    }
)


@dataclass(frozen=True)
class Lexicon:
    """Immutable ticker, ambiguous-word and context-booster sets."""

    tickers: frozenset[str]
    ambiguous: frozenset[str]
    context_boosters: frozenset[str] = DEFAULT_CONTEXT_BOOSTERS

    @classmethod
    def from_words(
        cls,
        tickers: Iterable[str],
        ambiguous: Iterable[str] = (),
        context_boosters: Optional[Iterable[str]] = None,
    ) -> "Lexicon":
        """Build a lexicon from plain word lists, normalizing case."""

        boosters = DEFAULT_CONTEXT_BOOSTERS if context_boosters is None else context_boosters
        return cls(
            tickers=frozenset(word.upper() for word in tickers),
            ambiguous=frozenset(word.upper() for word in ambiguous),
            context_boosters=frozenset(word.upper() for word in boosters),
        )


def _load_word_list(path: str) -> list[str]:
    with open(path, "r", encoding="utf-8") as handle:
        words = json.load(handle)
    if not isinstance(words, list):
        raise ValueError(f"Word list must be a JSON array: {path}")
    return [str(word) for word in words]


def load_lexicon(
    tickers_path: str = DEFAULT_TICKERS_PATH,
    ambiguous_path: str = DEFAULT_AMBIGUOUS_PATH,
    context_path: Optional[str] = None,
) -> Lexicon:
    """Load the lexicon from JSON word lists.

    The context-booster list is optional; the built-in set is used when no
    path is given.
    """

    boosters = _load_word_list(context_path) if context_path else None
    return Lexicon.from_words(
        tickers=_load_word_list(tickers_path),
        ambiguous=_load_word_list(ambiguous_path),
        context_boosters=boosters,
    )
