# scoring.py
# Deterministic proposal scoring. A proposal's score is a weighted sum of
# four sub-scores, each in [0, 1]:
#   price: cheapest bid in the sibling set over this bid's price
#   delivery: 1.0 at or below the fastest sibling, decaying as fastest / days
#   warranty: step function on months (24+, 12+, 6+, any)
#   completeness: the extraction step's own 0-1 estimate
# Missing values score 0 on their axis; nothing here raises.

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol, Sequence

from .models import ScoreBreakdown

WEIGHTS = {
    "price": 0.5,
    "delivery": 0.2,
    "warranty": 0.2,
    "completeness": 0.1,
}

# baseline when no sibling states a delivery time
DEFAULT_FASTEST_DELIVERY_DAYS = 30

WARRANTY_STEPS = ((24, 1.0), (12, 0.8), (6, 0.5))
WARRANTY_ANY = 0.2


class ScorableProposal(Protocol):
    total_price: Optional[float]
    delivery_days: Optional[int]
    warranty_months: Optional[int]
    completeness_score: Optional[float]


@dataclass(frozen=True)
class RfpCriteria:
    # Accepted but not weighted into the score yet; see over_budget.
    budget: Optional[float] = None
    delivery_deadline: Optional[date] = None


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def price_score(proposal: ScorableProposal, siblings: Sequence[ScorableProposal]) -> float:
    prices = [p.total_price for p in siblings if p.total_price is not None]
    min_price = min(prices) if prices else 0
    if proposal.total_price and min_price > 0:
        return _clamp(min_price / proposal.total_price)
    return 0.0


def delivery_score(proposal: ScorableProposal, siblings: Sequence[ScorableProposal]) -> float:
    days = [p.delivery_days for p in siblings if p.delivery_days is not None]
    fastest = min(days) if days else DEFAULT_FASTEST_DELIVERY_DAYS
    if not proposal.delivery_days:
        return 0.0
    if proposal.delivery_days <= fastest:
        return 1.0
    return _clamp(fastest / proposal.delivery_days)


def warranty_score(months: Optional[float]) -> float:
    if not months or months <= 0:
        return 0.0
    for threshold, value in WARRANTY_STEPS:
        if months >= threshold:
            return value
    return WARRANTY_ANY


def completeness_score(proposal: ScorableProposal) -> float:
    return _clamp(proposal.completeness_score or 0.0)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_breakdown(
    proposal: ScorableProposal,
    criteria: RfpCriteria,
    siblings: Sequence[ScorableProposal],
) -> ScoreBreakdown:
    parts = {
        "price": price_score(proposal, siblings),
        "delivery": delivery_score(proposal, siblings),
        "warranty": warranty_score(proposal.warranty_months),
        "completeness": completeness_score(proposal),
    }
    weighted = sum(parts[k] * WEIGHTS[k] for k in WEIGHTS)
    total = min(max(round_half_up(weighted * 100), 0), 100)

    over_budget = None
    if criteria.budget is not None and proposal.total_price is not None:
        over_budget = proposal.total_price > criteria.budget

    return ScoreBreakdown(**parts, total=total, over_budget=over_budget)


def score(
    proposal: ScorableProposal,
    criteria: RfpCriteria,
    siblings: Sequence[ScorableProposal],
) -> int:
    """0-100 quality score of ``proposal`` relative to ``siblings``.

    ``siblings`` is every proposal for the same RFP, ``proposal`` included.
    """
    return score_breakdown(proposal, criteria, siblings).total
