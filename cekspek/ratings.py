from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

STARS = (1, 2, 3, 4, 5)


def _value(review: Any, key: str):
    if isinstance(review, Mapping):
        return review[key]
    return getattr(review, key)


def average(reviews: Iterable[Any]) -> float:
    """Mean rating, 0 for no reviews."""
    ratings = [_value(r, "rating") for r in reviews]
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


def distribution(reviews: Iterable[Any]) -> Dict[int, int]:
    counts = {star: 0 for star in STARS}
    for review in reviews:
        counts[_value(review, "rating")] += 1
    return counts


def averages_by_phone(reviews: Iterable[Any]) -> Dict[int, float]:
    """Average per phone_id; phones without reviews are absent."""
    grouped: Dict[int, List[Any]] = {}
    for review in reviews:
        grouped.setdefault(_value(review, "phone_id"), []).append(review)
    return {phone_id: average(items) for phone_id, items in grouped.items()}


@dataclass
class RatingSummary:
    total: int = 0
    average: float = 0.0
    distribution: Dict[int, int] = field(default_factory=lambda: {star: 0 for star in STARS})


def summarize(reviews: Iterable[Any]) -> RatingSummary:
    reviews = list(reviews)
    return RatingSummary(total=len(reviews), average=average(reviews), distribution=distribution(reviews))
