"""Ticker extraction with ambiguity-aware disambiguation (core domain)."""

from __future__ import annotations

import re
from typing import List, Optional

from signal_router.core.lexicon import Lexicon

CASH_TAG = "$"
TOKEN_SPLIT = re.compile(r"[\s,.;!?()\"\[\]{}]+", re.ASCII)
# ASCII word boundaries, so "$TSLA涨了" still ends the symbol at "A".
TICKER_PATTERN = re.compile(r"\$?([A-Z]{1,5})\b", re.ASCII)


def has_financial_context(normalized_text: str, lexicon: Lexicon) -> bool:
    """Return True when any token of the message is a context booster."""

    return any(token in lexicon.context_boosters for token in TOKEN_SPLIT.split(normalized_text))


def extract_tickers(text: Optional[str], lexicon: Lexicon) -> List[str]:
    """Return the tickers mentioned in ``text``, in order of first appearance.

    Acceptance rules, per candidate symbol found by the scan:
    - Unknown symbols are dropped.
    - A cash-tag (``$TSLA``) is always accepted.
    - Safe symbols are accepted, but single letters need financial context.
    - Ambiguous symbols (tickers that are also common words) need financial
      context.

    Context is a single flag for the whole message.
    """

    if not text:
        return []

    content = text.upper()
    has_context = has_financial_context(content, lexicon)
    found: dict[str, None] = {}

    for match in TICKER_PATTERN.finditer(content):
        symbol = match.group(1)
        if symbol not in lexicon.tickers:
            continue

        if match.group(0).startswith(CASH_TAG):
            found.setdefault(symbol)
            continue

        if symbol not in lexicon.ambiguous:
            if len(symbol) == 1 and not has_context:
                continue
            found.setdefault(symbol)
            continue

        if has_context:
            found.setdefault(symbol)

    return list(found)
