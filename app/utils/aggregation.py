from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Dict, Iterable, List
from ..models.rating import CRITERIA_FIELDS

CRITERIA_LABELS = [
    "Relevance of the topic to the module objectives",
    "Content and quality of the lecturer",
    "Use of visual aids and other means of instruction",
    "Style of lecturer",
    "Overall assessment of lecturer",
]

AVERAGE_KEYS = ["criteria_1", "criteria_2", "criteria_3", "criteria_4", "criteria_5"]


def calculate_module_averages(ratings: Iterable) -> Dict[str, float]:
    """
    Per-criterion means and the overall mean (mean of the five criterion means)
    for one module's ratings. Every value is 0 when there are no ratings.

    Accepts anything exposing the ``criteria_N_score`` attributes, in any order.
    """
    ratings = list(ratings)
    averages = {key: 0 for key in AVERAGE_KEYS}
    averages["overall"] = 0

    if not ratings:
        return averages

    # Means are taken exactly and converted to float once, so a true x.x5
    # keeps its shortest repr and rounds half-up correctly.
    count = len(ratings)
    totals = [sum(getattr(rating, field) for rating in ratings) for field in CRITERIA_FIELDS]
    for key, total in zip(AVERAGE_KEYS, totals):
        averages[key] = float(Fraction(total, count))

    averages["overall"] = float(Fraction(sum(totals), count * len(AVERAGE_KEYS)))
    return averages


def _newest_first(rating):
    return (rating.created_at is not None, rating.created_at, rating.id or 0)


def build_module_report(module, ratings: Iterable) -> dict:
    """
    Aggregate a module's ratings into a report. Ratings are listed newest first,
    ties on ``created_at`` broken by id; ordering happens after aggregation and
    does not touch the caller's list.
    """
    ratings = list(ratings)
    ordered = sorted(ratings, key=_newest_first, reverse=True)

    return {
        "module": module,
        "ratings": ordered,
        "averages": calculate_module_averages(ratings),
        "total_ratings": len(ratings),
    }


def round_half_up(value: float, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _format(value: float, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_summary(value: float) -> str:
    """On-screen summary value, e.g. ``3.6``"""
    return _format(value, 1)


def format_export(value: float) -> str:
    """CSV export value, e.g. ``3.60``"""
    return _format(value, 2)


def summary_averages(averages: Dict[str, float]) -> Dict[str, float]:
    return {key: round_half_up(value, 1) for key, value in averages.items()}


def criteria_breakdown(averages: Dict[str, float]) -> List[dict]:
    return [
        {"label": label, "average": averages[key], "display": format_summary(averages[key])}
        for key, label in zip(AVERAGE_KEYS, CRITERIA_LABELS)
    ]
