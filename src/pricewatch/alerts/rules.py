# src/pricewatch/alerts/rules.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

RULE_KEYS = ("below", "above")


@dataclass(slots=True)
class PriceLevelRule:
    """
    Per-symbol price levels. Either side may be unset.
      - below → fire when price <= below
      - above → fire when price >= above
    """
    below: Optional[float] = None
    above: Optional[float] = None

    def to_dict(self) -> dict[str, float]:
        out: dict[str, float] = {}
        if self.below is not None:
            out["below"] = self.below
        if self.above is not None:
            out["above"] = self.above
        return out


def _parse_number(raw: str) -> Optional[float]:
    try:
        v = float(raw)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def parse_price_levels(text: str) -> dict[str, PriceLevelRule]:
    """
    Parse "AAPL:below=170,above=200;TSLA:below=180" into {symbol: PriceLevelRule}.

    Never raises: blank entries, entries without a rule clause, unknown keys and
    unparsable / non-finite numbers are skipped. A symbol listed again later
    overrides only the keys the later entry sets.
    """
    out: dict[str, PriceLevelRule] = {}
    if not text or not text.strip():
        return out

    for chunk in text.split(";"):
        part = chunk.strip()
        if not part:
            continue

        pieces = part.split(":")
        symbol = pieces[0].strip().upper()
        rules_raw = pieces[1] if len(pieces) > 1 else ""
        if not symbol or not rules_raw.strip():
            continue

        rule = out.get(symbol) or PriceLevelRule()
        for kv in rules_raw.split(","):
            k, sep, v = kv.partition("=")
            if not sep:
                continue
            k = k.strip()
            if k not in RULE_KEYS:
                continue
            num = _parse_number(v.strip())
            if num is None:
                continue
            setattr(rule, k, num)

        out[symbol] = rule

    return out


def normalize_symbols(raw) -> list[str]:
    """Trim/uppercase, drop blanks, non-strings and repeats (first occurrence wins)."""
    out: list[str] = []
    seen: set[str] = set()
    for s in raw:
        if not isinstance(s, str):
            continue
        sym = s.strip().upper()
        if sym and sym not in seen:
            seen.add(sym)
            out.append(sym)
    return out
