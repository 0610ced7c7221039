# app/services/extraction_service.py
"""
AI extraction: turns OCR text from a parking ticket into visitor name, plate
and start/end date-times, using the Gemini generateContent REST endpoint.

Returns exactly one of:
  ExtractionSuccess(visitor_name, car_plate, start_time, end_time, confidence)
  ExtractionFailure(reason, matched_fragment)
Any response that fits neither shape becomes ExtractionFailure("invalid response format").
Network / HTTP failures raise TransportError.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, date
from typing import Optional, Union

import httpx

from app.config import settings
from app.exceptions import TransportError
from app.utils.clock import local_now
from app.utils.json_parser import safe_parse_json
from app.utils.logger import get_logger

logger = get_logger(__name__)

CONFIDENCE_LABELS = ("high", "medium", "low")
INVALID_FORMAT = "invalid response format"

_DATETIME_FORMATS = ("%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S")

PROMPT_TEMPLATE = """
You are a parking time extractor. Analyze the following OCR text from a visitor parking ticket and extract the parking session.

Today's date is {today}. Use it only if the ticket shows no date.

OCR Text:
\"\"\"
{text}
\"\"\"

Return ONLY a JSON object with this exact structure:
{{
  "success": true,
  "visitorName": "extracted name",
  "carPlate": "extracted plate number",
  "startDateTime": "YYYY-MM-DDTHH:MM" (24-hour, local time),
  "endDateTime": "YYYY-MM-DDTHH:MM" (24-hour, local time),
  "confidence": "high" | "medium" | "low"
}}

If the session ends after midnight, endDateTime must carry the next day's date.

If you cannot find clear start and end times, return:
{{
  "success": false,
  "error": "Could not identify clear start and end times",
  "extractedText": "any time-related text you found"
}}
"""


@dataclass(frozen=True)
class ExtractionSuccess:
    visitor_name: str
    car_plate: str
    start_time: datetime
    end_time: datetime
    confidence: str = "medium"


@dataclass(frozen=True)
class ExtractionFailure:
    reason: str
    matched_fragment: Optional[str] = None


ExtractionResult = Union[ExtractionSuccess, ExtractionFailure]


def _parse_datetime(value) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    value = value.strip().replace("Z", "")
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def interpret_response(data) -> ExtractionResult:
    """Map the extractor's decoded JSON onto the two allowed result shapes."""
    if not isinstance(data, dict) or not isinstance(data.get("success"), bool):
        return ExtractionFailure(INVALID_FORMAT)

    if not data["success"]:
        fragment = data.get("extractedText")
        return ExtractionFailure(
            reason=data.get("error") or "Unknown parsing error",
            matched_fragment=fragment if isinstance(fragment, str) and fragment else None,
        )

    start = _parse_datetime(data.get("startDateTime"))
    end = _parse_datetime(data.get("endDateTime"))
    if start is None or end is None:
        return ExtractionFailure(INVALID_FORMAT)

    # Same-date end before start means the ticket crossed midnight
    if end < start and end.date() == start.date():
        end += timedelta(days=1)

    confidence = str(data.get("confidence") or "medium").lower()
    if confidence not in CONFIDENCE_LABELS:
        confidence = "medium"

    return ExtractionSuccess(
        visitor_name=str(data.get("visitorName") or "").strip() or "Unknown",
        car_plate=str(data.get("carPlate") or "").strip().upper() or "UNKNOWN",
        start_time=start,
        end_time=end,
        confidence=confidence,
    )


class GeminiExtractor:
    def __init__(self, api_key: str = None, model: str = None, base_url: str = None,
                 timeout: float = None, client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.base_url = base_url or settings.GEMINI_API_BASE
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.GEMINI_TIMEOUT_SECONDS)

    async def extract(self, raw_text: str, today: Optional[date] = None) -> ExtractionResult:
        today = today or local_now().date()
        prompt = PROMPT_TEMPLATE.format(text=raw_text, today=today.isoformat())
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.1, "responseMimeType": "application/json"},
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"

        logger.info(f"[AI] Sending {len(raw_text)} chars of OCR text to {self.model}")
        try:
            response = await self._client.post(url, json=payload,
                                               headers={"x-goog-api-key": self.api_key})
        except httpx.HTTPError as e:
            logger.error(f"[AI] Gemini request failed: {e}")
            raise TransportError(f"Gemini unreachable: {e}") from e

        if response.status_code != 200:
            logger.error(f"[AI] Gemini returned HTTP {response.status_code}: {response.text[:300]}")
            raise TransportError(f"Gemini returned HTTP {response.status_code}")

        try:
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning(f"[AI] Unexpected Gemini envelope: {response.text[:300]}")
            return ExtractionFailure(INVALID_FORMAT)

        logger.debug(f"[AI] Gemini response: {text}")
        data = safe_parse_json(text)
        if data is None:
            return ExtractionFailure("Failed to parse AI response")

        result = interpret_response(data)
        if isinstance(result, ExtractionFailure):
            logger.info(f"[AI] Extraction failed: {result.reason}")
        else:
            logger.info(f"[AI] Extracted plate={result.car_plate} {result.start_time} → {result.end_time} "
                        f"({result.confidence})")
        return result

    async def aclose(self):
        await self._client.aclose()
