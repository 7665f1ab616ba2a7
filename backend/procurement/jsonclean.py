# jsonclean.py
# Cleaning of model output before JSON parsing. Models asked for JSON often
# wrap it in a markdown code fence, with or without a language tag, and pad
# it with whitespace; both helpers accept those shapes.

import json
import re
from typing import Any

from .errors import MalformedGenerationOutput

_OPEN_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_CLOSE_FENCE = re.compile(r"\n?[ \t]*```$")


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    cleaned = _OPEN_FENCE.sub("", cleaned, count=1)
    cleaned = _CLOSE_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_json_response(text: str) -> Any:
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedGenerationOutput(f"Failed to parse AI response as JSON: {e.msg}", raw=text) from e


def parse_json_object(text: str) -> dict:
    data = parse_json_response(text)
    if not isinstance(data, dict):
        raise MalformedGenerationOutput(
            f"Expected a JSON object from the model, got {type(data).__name__}", raw=text
        )
    return data
