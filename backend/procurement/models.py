# models.py
# Pydantic records + the JSON-text codec used at the storage boundary

import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Blob = TypeVar("Blob", bound=BaseModel)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_currency(value: Optional[str]) -> str:
    code = (value or "USD").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"currency must be a 3-letter code, got {value!r}")
    return code


def encode_blob(model: BaseModel) -> str:
    return model.model_dump_json(by_alias=True)


def decode_blob(text: Optional[str], cls: Type[Blob]) -> Blob:
    if not text:
        return cls()
    return cls.model_validate(json.loads(text))


class RFPStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    EVALUATION = "EVALUATION"
    AWARDED = "AWARDED"


class Item(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    quantity: Optional[float] = None
    specs: Optional[Any] = None


class StructuredRequirements(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    summary: Optional[str] = None
    budget: Optional[float] = None
    currency: Optional[str] = None
    delivery_requirements: Optional[str] = None
    items: List[Item] = Field(default_factory=list)
    payment_terms: Optional[str] = None
    warranty_requirements: Optional[str] = None


class ParsedProposal(BaseModel):
    """Fields extracted from a vendor's free-form reply."""

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    total_price: Optional[float] = None
    currency: Optional[str] = None
    delivery_days: Optional[int] = None
    warranty_months: Optional[int] = None
    payment_terms: Optional[str] = None
    completeness_score: Optional[float] = None
    risks: List[str] = Field(default_factory=list)
    caveats: Optional[str] = None


# --- RFP ---

class RFPCreateRequest(BaseModel):
    text: str = Field(min_length=1)


class RFPCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    budget: Optional[float] = None
    currency: str = "USD"
    delivery_deadline: Optional[date] = None
    structured_data: StructuredRequirements = Field(default_factory=StructuredRequirements)

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v):
        return normalize_currency(v)


class RFPUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    budget: Optional[float] = None
    currency: Optional[str] = None
    delivery_deadline: Optional[date] = None
    status: Optional[RFPStatus] = None
    structured_data: Optional[StructuredRequirements] = None

    @field_validator("title", "description", "currency", "status", mode="before")
    @classmethod
    def _not_null(cls, v, info):
        # omit a field to leave it unchanged; these columns cannot be cleared
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return normalize_currency(v) if info.field_name == "currency" else v


class RFP(BaseModel):
    id: int
    title: str
    description: str
    budget: Optional[float] = None
    currency: str = "USD"
    delivery_deadline: Optional[date] = None
    status: RFPStatus = RFPStatus.DRAFT
    structured_data: StructuredRequirements = Field(default_factory=StructuredRequirements)
    created_at: datetime = Field(default_factory=_now)

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(mode="json", exclude={"structured_data"})
        row["structured_data"] = encode_blob(self.structured_data)
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RFP":
        data = dict(row)
        data["structured_data"] = decode_blob(data.get("structured_data"), StructuredRequirements)
        return cls.model_validate(data)


class RFPSummary(RFP):
    proposal_count: int = 0


# --- Vendor ---

class VendorCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    contact_info: Optional[str] = None
    notes: Optional[str] = None


class Vendor(BaseModel):
    id: int
    name: str
    email: EmailStr
    contact_info: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


# --- Proposal ---

SNAPSHOT_FIELDS = (
    "total_price",
    "currency",
    "delivery_days",
    "warranty_months",
    "payment_terms",
    "completeness_score",
)


class ProposalParseRequest(BaseModel):
    rfp_id: int
    vendor_text: str = Field(min_length=1)


class ProposalCreate(BaseModel):
    rfp_id: int
    vendor_id: int
    raw_text: str = Field(min_length=1)
    parsed_data: ParsedProposal = Field(default_factory=ParsedProposal)
    total_price: Optional[float] = None
    currency: Optional[str] = None
    delivery_days: Optional[int] = None
    warranty_months: Optional[int] = None
    payment_terms: Optional[str] = None
    completeness_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _snapshot_parsed(self):
        # scalars the caller left out are copied from the reviewed blob
        for name in SNAPSHOT_FIELDS:
            if name not in self.model_fields_set:
                setattr(self, name, getattr(self.parsed_data, name))
        self.currency = normalize_currency(self.currency)
        if self.completeness_score is not None:
            self.completeness_score = min(max(self.completeness_score, 0.0), 1.0)
        return self


class Proposal(BaseModel):
    id: int
    rfp_id: int
    vendor_id: int
    raw_text: str
    parsed_data: ParsedProposal = Field(default_factory=ParsedProposal)
    total_price: Optional[float] = None
    currency: str = "USD"
    delivery_days: Optional[int] = None
    warranty_months: Optional[int] = None
    payment_terms: Optional[str] = None
    completeness_score: Optional[float] = None
    created_at: datetime = Field(default_factory=_now)

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(mode="json", exclude={"parsed_data"})
        row["parsed_data"] = encode_blob(self.parsed_data)
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Proposal":
        data = dict(row)
        data["parsed_data"] = decode_blob(data.get("parsed_data"), ParsedProposal)
        return cls.model_validate(data)


class ProposalWithVendor(Proposal):
    vendor: Optional[Vendor] = None


class RFPDetail(RFP):
    proposals: List[ProposalWithVendor] = Field(default_factory=list)


# --- Comparison ---

class ScoreBreakdown(BaseModel):
    price: float
    delivery: float
    warranty: float
    completeness: float
    total: int
    over_budget: Optional[bool] = None


class ScoredProposal(ProposalWithVendor):
    calculated_score: int
    score_breakdown: ScoreBreakdown


class Recommendation(BaseModel):
    """Qualitative verdict from the model; accepted as loosely as it arrives."""

    model_config = ConfigDict(extra="allow")

    recommended_vendor_id: Optional[Union[int, str]] = None
    reasoning: str = ""
    pros_cons: Any = Field(default_factory=dict)
    available: bool = True

    @field_validator("recommended_vendor_id", mode="before")
    @classmethod
    def _vendor_id(cls, v):
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v if isinstance(v, (int, str)) and not isinstance(v, bool) else None

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else json.dumps(v, default=str)


class ComparisonReport(BaseModel):
    rfp_id: int
    proposals: List[ScoredProposal]
    recommendation: Recommendation


# --- Email ---

class SendRequest(BaseModel):
    vendor_ids: List[int] = Field(min_length=1)


class ProposalInbound(BaseModel):
    from_email: EmailStr
    subject: Optional[str] = None
    body: str = Field(min_length=1)
