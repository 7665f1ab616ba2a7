# comparison.py
# Scores an RFP's proposals and merges in the model's recommendation

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .ai_helpers import TextGenerator, call_generator, render_prompt
from .errors import MalformedGenerationOutput, PreconditionFailed
from .jsonclean import parse_json_object
from .log import preview
from .models import (
    RFP,
    ComparisonReport,
    ProposalWithVendor,
    Recommendation,
    RFPStatus,
    RFPUpdate,
    ScoredProposal,
)
from .prompts import COMPARISON_PROMPT
from .repository import Repository
from .scoring import RfpCriteria, score_breakdown

logger = logging.getLogger(__name__)

MIN_PROPOSALS = 2


def fallback_recommendation() -> Recommendation:
    return Recommendation(
        recommended_vendor_id=None,
        reasoning="Could not parse AI recommendation",
        pros_cons={},
        available=False,
    )


def score_proposals(rfp: RFP, proposals: List[ProposalWithVendor]) -> List[ScoredProposal]:
    criteria = RfpCriteria(budget=rfp.budget, delivery_deadline=rfp.delivery_deadline)
    scored = []
    for p in proposals:
        breakdown = score_breakdown(p, criteria, proposals)
        scored.append(
            ScoredProposal(
                **p.model_dump(),
                calculated_score=breakdown.total,
                score_breakdown=breakdown,
            )
        )
    return scored


def build_comparison_prompt(rfp: RFP, proposals: List[ScoredProposal]) -> str:
    rfp_summary = {
        "title": rfp.title,
        "description": rfp.description,
        "budget": rfp.budget,
        "currency": rfp.currency,
        "deadline": rfp.delivery_deadline.isoformat() if rfp.delivery_deadline else None,
        "requirements": rfp.structured_data.model_dump(by_alias=True),
    }
    proposals_summary = [
        {
            "id": p.id,
            "vendor_id": p.vendor_id,
            "vendor": p.vendor.name if p.vendor else None,
            "price": p.total_price,
            "currency": p.currency,
            "delivery": p.delivery_days,
            "warranty": p.warranty_months,
            "score": p.calculated_score,
            "notes": p.parsed_data.model_dump(by_alias=True),
        }
        for p in proposals
    ]
    return render_prompt(
        COMPARISON_PROMPT,
        {"rfpData": rfp_summary, "proposalsData": proposals_summary},
    )


def parse_recommendation(raw: str) -> Recommendation:
    try:
        data: Dict[str, Any] = parse_json_object(raw)
    except MalformedGenerationOutput as e:
        logger.warning("Falling back to neutral recommendation: %s; raw output: %s", e, preview(raw))
        return fallback_recommendation()
    # availability is ours to report, not the model's
    data.pop("available", None)
    return Recommendation.model_validate(data)


class ComparisonService:
    """Scores every proposal for an RFP and asks the model for a recommendation."""

    def __init__(self, repository: Repository, generator: TextGenerator, timeout: Optional[float] = None):
        self.repository = repository
        self.generator = generator
        self.timeout = timeout

    async def compare(self, rfp_id: int) -> ComparisonReport:
        rfp = await asyncio.to_thread(self.repository.get_rfp, rfp_id)
        proposals = await asyncio.to_thread(self.repository.list_proposals, rfp_id)
        if len(proposals) < MIN_PROPOSALS:
            raise PreconditionFailed(
                f"Need at least {MIN_PROPOSALS} proposals to compare", proposals=proposals
            )

        scored = score_proposals(rfp, proposals)
        prompt = build_comparison_prompt(rfp, scored)
        raw = await call_generator(self.generator, prompt, self.timeout)
        recommendation = parse_recommendation(raw)

        if rfp.status == RFPStatus.SENT:
            await asyncio.to_thread(
                self.repository.update_rfp, rfp_id, RFPUpdate(status=RFPStatus.EVALUATION)
            )

        return ComparisonReport(rfp_id=rfp_id, proposals=scored, recommendation=recommendation)
