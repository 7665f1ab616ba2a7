# repository.py
# Typed persistence for RFPs, vendors and proposals

import logging
from typing import Dict, List, Optional

import pydantic

from .errors import Conflict, NotFound, ValidationError
from .models import (
    RFP,
    Proposal,
    ProposalCreate,
    ProposalWithVendor,
    RFPCreate,
    RFPDetail,
    RFPSummary,
    RFPUpdate,
    Vendor,
    VendorCreate,
)
from .storage import JsonStore

logger = logging.getLogger(__name__)


class Repository:
    """Typed access to RFPs, vendors and proposals on top of a JsonStore."""

    def __init__(self, store: JsonStore):
        self.store = store

    # --- RFPs ---

    def create_rfp(self, body: RFPCreate) -> RFP:
        draft = RFP(id=0, **body.model_dump())
        row = self.store.create("rfps", draft.to_row())
        logger.info("Created RFP %s (%s)", row["id"], body.title)
        return RFP.from_row(row)

    def get_rfp(self, rfp_id: int) -> RFP:
        row = self.store.get("rfps", rfp_id)
        if row is None:
            raise NotFound(f"RFP {rfp_id} not found")
        return RFP.from_row(row)

    def list_rfps(self) -> List[RFPSummary]:
        counts: Dict[int, int] = {}
        for p in self.store.list("proposals"):
            counts[p["rfp_id"]] = counts.get(p["rfp_id"], 0) + 1
        rows = self.store.list("rfps", order_by="created_at", descending=True)
        return [
            RFPSummary(**RFP.from_row(r).model_dump(), proposal_count=counts.get(r["id"], 0))
            for r in rows
        ]

    def update_rfp(self, rfp_id: int, body: RFPUpdate) -> RFP:
        current = self.get_rfp(rfp_id)
        changes = body.model_dump(exclude_unset=True)
        try:
            merged = RFP.model_validate({**current.model_dump(), **changes})
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid RFP update: {e.errors()[0]['msg']}") from e
        row = self.store.update("rfps", rfp_id, merged.to_row())
        return RFP.from_row(row)

    def get_rfp_detail(self, rfp_id: int) -> RFPDetail:
        rfp = self.get_rfp(rfp_id)
        return RFPDetail(**rfp.model_dump(), proposals=self.list_proposals(rfp_id))

    # --- Vendors ---

    def create_vendor(self, body: VendorCreate) -> Vendor:
        if self.find_vendor_by_email(body.email) is not None:
            raise Conflict("Vendor with this email already exists")
        draft = Vendor(id=0, **body.model_dump())
        row = self.store.create("vendors", draft.model_dump(mode="json"))
        logger.info("Created vendor %s <%s>", row["id"], body.email)
        return Vendor.model_validate(row)

    def get_vendor(self, vendor_id: int) -> Vendor:
        row = self.store.get("vendors", vendor_id)
        if row is None:
            raise NotFound(f"Vendor {vendor_id} not found")
        return Vendor.model_validate(row)

    def find_vendor_by_email(self, email: str) -> Optional[Vendor]:
        email = email.lower()
        rows = self.store.list("vendors", where=lambda v: v["email"].lower() == email)
        return Vendor.model_validate(rows[0]) if rows else None

    def list_vendors(self, ids: Optional[List[int]] = None) -> List[Vendor]:
        where = None if ids is None else (lambda v: v["id"] in ids)
        return [Vendor.model_validate(r) for r in self.store.list("vendors", where=where, order_by="name")]

    # --- Proposals ---

    def create_proposal(self, body: ProposalCreate) -> Proposal:
        self.get_rfp(body.rfp_id)
        self.get_vendor(body.vendor_id)
        draft = Proposal(id=0, **body.model_dump())
        row = self.store.create("proposals", draft.to_row())
        logger.info("Created proposal %s for RFP %s from vendor %s", row["id"], body.rfp_id, body.vendor_id)
        return Proposal.from_row(row)

    def list_proposals(self, rfp_id: int) -> List[ProposalWithVendor]:
        vendors = {v.id: v for v in self.list_vendors()}
        rows = self.store.list("proposals", where=lambda p: p["rfp_id"] == rfp_id, order_by="id")
        return [
            ProposalWithVendor(**Proposal.from_row(r).model_dump(), vendor=vendors.get(r["vendor_id"]))
            for r in rows
        ]
