# ai_helpers.py
# Text-generation client + field extraction on top of it

import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional, Protocol

import openai
import pydantic
from openai import AsyncOpenAI

from .errors import GenerationFailure, MalformedGenerationOutput
from .jsonclean import parse_json_object
from .log import preview
from .models import RFP, ParsedProposal, StructuredRequirements
from .prompts import PROPOSAL_PARSING_PROMPT, RFP_GENERATION_PROMPT

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_CURRENCY_SYMBOLS = {"$": "USD", "€": "EUR", "£": "GBP", "¥": "JPY", "₹": "INR"}
STANDARD_WARRANTY_MONTHS = 12


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str:
        ...


class OpenAIGenerator:
    """TextGenerator backed by the OpenAI chat completions API."""

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationFailure("OpenAI key not set")
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise GenerationFailure(f"AI generation failed: {e}") from e
        return resp.choices[0].message.content or ""


async def call_generator(generator: TextGenerator, prompt: str, timeout: Optional[float] = None) -> str:
    try:
        return await asyncio.wait_for(generator.generate(prompt), timeout)
    except asyncio.TimeoutError as e:
        logger.error("Generation timed out after %ss", timeout)
        raise GenerationFailure(f"AI generation timed out after {timeout}s") from e
    except GenerationFailure as e:
        logger.error("Generation failed: %s", e)
        raise
    except Exception as e:
        logger.error("Generation failed: %r", e)
        raise GenerationFailure(f"AI generation failed: {e}") from e


def render_prompt(template: str, variables: Dict[str, Any]) -> str:
    def _sub(m):
        name = m.group(1)
        if name not in variables:
            return m.group(0)
        value = variables[name]
        return value if isinstance(value, str) else json.dumps(value, default=str)

    return _PLACEHOLDER.sub(_sub, template)


# --- deterministic clean-up of extracted proposal fields ---

def _numbers(text: str):
    return [float(n) for n in _NUMBER.findall(text.replace(",", ""))]


def normalize_price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        found = _numbers(value)
        return max(found) if found else None
    if isinstance(value, (list, tuple)):
        found = [p for p in (normalize_price(v) for v in value) if p is not None]
        return max(found) if found else None
    if isinstance(value, dict):
        for key in ("max", "upper", "high", "to"):
            if key in value:
                return normalize_price(value[key])
        found = [p for p in (normalize_price(v) for v in value.values()) if p is not None]
        return sum(found) / len(found) if found else None
    return None


def normalize_warranty(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return max(int(round(value)), 0)
    if isinstance(value, str):
        text = value.lower()
        found = _numbers(text)
        if not found:
            return STANDARD_WARRANTY_MONTHS if "standard" in text else None
        if "year" in text:
            return int(round(found[0] * 12))
        return int(round(found[0]))
    return None


def normalize_delivery(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return max(int(round(value)), 0)
    if isinstance(value, str):
        text = value.lower()
        found = _numbers(text)
        if not found:
            return None
        days = max(found)
        if "week" in text:
            days *= 7
        elif "month" in text:
            days *= 30
        return int(round(days))
    return None


def normalize_currency_code(value: Any, default: str = "USD") -> str:
    if isinstance(value, str):
        code = value.strip()
        if code in _CURRENCY_SYMBOLS:
            return _CURRENCY_SYMBOLS[code]
        if len(code) == 3 and code.isalpha():
            return code.upper()
    return default


def normalize_proposal_fields(data: Dict[str, Any], default_currency: str = "USD") -> Dict[str, Any]:
    """Coerce the loosely-typed model output into ParsedProposal's shape.

    Unknown keys are kept untouched.
    """
    out = dict(data)
    out["totalPrice"] = normalize_price(data.get("totalPrice"))
    out["currency"] = normalize_currency_code(data.get("currency"), default_currency)
    out["deliveryDays"] = normalize_delivery(data.get("deliveryDays"))
    out["warrantyMonths"] = normalize_warranty(data.get("warrantyMonths"))

    score = data.get("completenessScore")
    try:
        out["completenessScore"] = None if score is None else min(max(float(score), 0.0), 1.0)
    except (TypeError, ValueError):
        out["completenessScore"] = None

    risks = data.get("risks") or []
    out["risks"] = [str(r) for r in risks] if isinstance(risks, list) else [str(risks)]
    for key in ("paymentTerms", "caveats"):
        if data.get(key) is not None and not isinstance(data[key], str):
            out[key] = json.dumps(data[key])
    return out


class FieldExtractor:
    """Turns free-form text into structured records via the text generator."""

    def __init__(self, generator: TextGenerator, timeout: Optional[float] = None):
        self.generator = generator
        self.timeout = timeout

    async def extract(self, template: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        prompt = render_prompt(template, variables)
        raw = await call_generator(self.generator, prompt, self.timeout)
        try:
            return parse_json_object(raw)
        except MalformedGenerationOutput:
            logger.error("AI JSON parse error, raw output: %s", preview(raw))
            raise

    async def structure_rfp(self, text: str) -> StructuredRequirements:
        data = await self.extract(RFP_GENERATION_PROMPT, {"userInput": text})
        if isinstance(data.get("currency"), str):
            data["currency"] = normalize_currency_code(data["currency"])
        return _validate(StructuredRequirements, data)

    async def parse_proposal(self, rfp: RFP, vendor_text: str) -> ParsedProposal:
        structured = rfp.structured_data.model_dump(exclude_defaults=True)
        context = {
            "description": rfp.description,
            "structuredDetails": structured or None,
        }
        data = await self.extract(
            PROPOSAL_PARSING_PROMPT,
            {"rfpContext": context, "vendorText": vendor_text},
        )
        return _validate(ParsedProposal, normalize_proposal_fields(data, rfp.currency))


def _validate(cls, data: Dict[str, Any]):
    try:
        return cls.model_validate(data)
    except pydantic.ValidationError as e:
        logger.error("AI output does not match %s: %s", cls.__name__, e)
        raise MalformedGenerationOutput(
            f"AI response does not match the expected {cls.__name__} shape",
            raw=json.dumps(data, default=str),
        ) from e
