# app/utils/json_parser.py
"""
Helpers for parsing JSON returned by the AI extractor.
Gemini sometimes wraps its JSON in markdown code fences.
"""

import json
import re
from typing import Optional, Any

_FENCE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


def safe_parse_json(raw: str) -> Optional[Any]:
    """Parse a JSON string (fences allowed) safely. Returns None on error."""
    if not raw:
        return None
    try:
        return json.loads(strip_code_fences(raw))
    except (json.JSONDecodeError, TypeError):
        return None
