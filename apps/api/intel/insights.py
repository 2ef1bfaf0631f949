from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple


def _safe_float(x: Any) -> Optional[float]:
    try:
        if x is None:
            return None
        if isinstance(x, (int, float)):
            return float(x)
        # Decimal and numeric strings
        return float(str(x))
    except (TypeError, ValueError):
        return None


def _leader(companies: Sequence[Mapping[str, Any]], field: str) -> Mapping[str, Any]:
    """Company with the largest ``field``; missing values rank last, ties go to name then id."""

    def key(c: Mapping[str, Any]) -> Tuple[int, float, str, str]:
        v = _safe_float(c.get(field))
        return (0 if v is not None else 1, -(v or 0.0), str(c.get("name") or ""), str(c.get("id") or ""))

    return min(companies, key=key)


def _sentiment_label(avg: float) -> str:
    if avg > 0.6:
        return "positive"
    if avg > 0.4:
        return "neutral"
    return "negative"


def generate_comparison_insights(companies: Sequence[Mapping[str, Any]]) -> List[str]:
    """Three one-line takeaways over compared companies.

    Expects rows with ``name``, ``market_cap``, ``growth_rate`` and
    ``avg_sentiment``. The result does not depend on row order.
    """
    if not companies:
        raise ValueError("at least one company is required")

    by_cap = _leader(companies, "market_cap")
    cap = _safe_float(by_cap.get("market_cap")) or 0.0

    by_growth = _leader(companies, "growth_rate")
    growth = _safe_float(by_growth.get("growth_rate"))
    growth_text = f"{growth:.1f}%" if growth is not None else "N/A"

    avg_sentiment = sum((_safe_float(c.get("avg_sentiment")) or 0.0) for c in companies) / len(companies)

    return [
        f"{by_cap.get('name')} leads in market capitalization with ${cap / 1_000_000_000:.1f}B",
        f"{by_growth.get('name')} shows highest growth rate at {growth_text}",
        f"Overall market sentiment is {_sentiment_label(avg_sentiment)}",
    ]
