"""
Zakat on investment holdings.

Rules (Saudi practice):
- rate is 2.5% of zakatable value
- nisab is the value of 85 g of gold
- real estate is held for trade, always zakatable
- Saudi-listed stocks held a full year are exempt (the company pays);
  other stocks are zakatable at market value
- crypto is zakatable
- gold below the nisab value is exempt
- the nisab test looks at liquid assets (crypto + gold)
"""

import datetime as dt
from typing import Any, Dict, Iterable, List, Optional

from guroosh.services.investments import current_price
from guroosh.services.mappers import utcnow
from guroosh.settings import settings

ZAKAT_RATE = 0.025
GOLD_NISAB_GRAMS = 85
CURRENCY = "SAR"

SAUDI_MARKERS = ("tadawul", "saudi", ".sr", "tasi")

BREAKDOWN_KEYS = {
    "Real Estate": "realEstate",
    "Stock": "stocks",
    "Crypto": "crypto",
    "Gold": "gold",
    "Other": "other",
}


def gold_price_per_gram(override: Optional[float] = None) -> float:
    return override or settings.gold_price_per_gram


def nisab_value(price_per_gram: float) -> float:
    return GOLD_NISAB_GRAMS * price_per_gram


def zakat_due(amount: float) -> float:
    """2.5% of a zakatable amount; nothing on zero or less."""
    if amount <= 0:
        return 0.0
    return amount * ZAKAT_RATE


def is_saudi_stock(name: str) -> bool:
    name = (name or "").lower()
    return any(marker in name for marker in SAUDI_MARKERS)


def _holding_value(inv: Dict[str, Any], now: dt.datetime) -> float:
    amount = inv.get("amountOwned")
    return current_price(inv, now) * float(amount if amount is not None else 1)


def _assess(inv: Dict[str, Any], nisab: float, now: dt.datetime) -> Dict[str, Any]:
    value = _holding_value(inv, now)
    category = inv.get("category")
    zakatable = value
    item: Dict[str, Any] = {"name": inv.get("name"), "value": value}

    if category == "Real Estate":
        reason = "Trading property (Urud al-Tijarah)"
    elif category == "Stock":
        if is_saudi_stock(inv.get("name", "")):
            purchased = inv.get("purchaseDate")
            held_days = (now - purchased).days if purchased else 365
            if held_days >= 365:
                zakatable = 0.0
                reason = "Saudi stock - Investor (held >= 1 year, company pays Zakat)"
            else:
                reason = "Saudi stock - Speculator (held < 1 year)"
        else:
            reason = "International stock"
    elif category == "Crypto":
        reason = "Cryptocurrency"
    elif category == "Gold":
        weight = inv.get("amountOwned") or 0
        item["weight"] = weight
        if value < nisab:
            zakatable = 0.0
            reason = f"Below Nisab threshold ({weight}g < {GOLD_NISAB_GRAMS}g)"
        else:
            reason = f"Above Nisab threshold ({weight}g >= {GOLD_NISAB_GRAMS}g)"
    else:
        reason = "Other asset"

    item.update({"zakatable": zakatable, "zakat": zakat_due(zakatable), "reason": reason})
    return item


def calculate_zakat(
    investments: Iterable[Dict[str, Any]],
    price_per_gram: Optional[float] = None,
    now: Optional[dt.datetime] = None,
) -> Dict[str, Any]:
    """Full per-category breakdown for a portfolio."""
    now = now or utcnow()
    price = gold_price_per_gram(price_per_gram)
    nisab = nisab_value(price)

    breakdown = {key: {"total": 0.0, "zakatable": 0.0, "zakat": 0.0, "items": []} for key in BREAKDOWN_KEYS.values()}
    for inv in investments:
        key = BREAKDOWN_KEYS.get(inv.get("category"), "other")
        item = _assess(inv, nisab, now)
        bucket = breakdown[key]
        bucket["total"] += item["value"]
        bucket["zakatable"] += item["zakatable"]
        bucket["zakat"] += item["zakat"]
        bucket["items"].append(item)

    liquid = breakdown["crypto"]["total"] + breakdown["gold"]["total"]
    meets = liquid >= nisab
    share = liquid / nisab * 100 if nisab else 0

    return {
        "goldNisabValue": nisab,
        "goldNisabGrams": GOLD_NISAB_GRAMS,
        "currentGoldPricePerGram": price,
        "zakatRate": ZAKAT_RATE,
        "meetsNisab": meets,
        "nisabStatus": f"{'Meets' if meets else 'Below'} Nisab ({share:.1f}% of threshold)",
        "totalAssets": sum(b["total"] for b in breakdown.values()),
        "totalLiquidAssets": liquid,
        "totalZakatable": sum(b["zakatable"] for b in breakdown.values()),
        "totalZakat": sum(b["zakat"] for b in breakdown.values()),
        "categoryBreakdown": breakdown,
        "timestamp": now,
    }


def estimate_zakat(
    investments: Iterable[Dict[str, Any]],
    categories: List[str],
    price_per_gram: Optional[float] = None,
    now: Optional[dt.datetime] = None,
) -> Dict[str, Any]:
    """
    Quick estimate: 2.5% of the value of the selected categories, no
    exemptions applied. meetsNisab is reported separately.
    """
    now = now or utcnow()
    selected = set(categories)
    per_category: Dict[str, float] = {c: 0.0 for c in selected}
    for inv in investments:
        if inv.get("category") in selected:
            per_category[inv["category"]] += _holding_value(inv, now)

    total = sum(per_category.values())
    nisab = nisab_value(gold_price_per_gram(price_per_gram))
    return {
        "categories": sorted(selected),
        "byCategory": per_category,
        "selectedTotal": total,
        "zakatRate": ZAKAT_RATE,
        "zakatDue": zakat_due(total),
        "nisabValue": nisab,
        "meetsNisab": total >= nisab and total > 0,
    }


def gold_price_info() -> Dict[str, Any]:
    price = gold_price_per_gram()
    return {
        "pricePerGram": price,
        "nisabValue": nisab_value(price),
        "nisabGrams": GOLD_NISAB_GRAMS,
        "currency": CURRENCY,
    }
