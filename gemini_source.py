"""
gemini_source.py
----------------
Generative-model prediction source (Gemini REST ``generateContent``).

Returns an :class:`ExternalPrediction` or ``None`` when no credential is
configured or the call/response fails; callers keep predicting locally.
"""
import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import requests

from draw_records import Record, is_two_digit

logger = logging.getLogger(__name__)

MODEL_NAME = "gemini-2.5-flash"
API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
HISTORY_LIMIT = 30

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "top_picks": {
            "type": "ARRAY",
            "description": "The 10 most likely 2D numbers (e.g. '45', '09'). Exactly 10 items.",
            "items": {"type": "STRING"},
        },
        "strongest_head": {"type": "STRING", "description": "Most likely head digit (0-9)."},
        "strongest_tail": {"type": "STRING", "description": "Most likely tail digit (0-9)."},
        "analysis_summary": {"type": "STRING", "description": "Brief reasoning behind the picks."},
    },
    "required": ["top_picks", "strongest_head", "strongest_tail", "analysis_summary"],
}


@dataclass(frozen=True)
class ExternalPrediction:
    top_picks: List[str]
    strongest_head: str
    strongest_tail: str
    analysis_summary: str


def format_history(history: Sequence[Record], limit: int = HISTORY_LIMIT) -> str:
    return "\n".join(f"{r.date.isoformat()} ({r.day_of_week[:3]}): AM={r.am}, PM={r.pm}"
                     for r in list(history)[:limit])


def build_prompt(history: Sequence[Record], limit: int = HISTORY_LIMIT) -> str:
    return (
        "Based on the following recent history of twice-daily 2D results, predict the next "
        "set of numbers. Analyze trends, power/nakhat relationships, digit frequency and any "
        "other patterns.\n\n"
        f"Recent History:\n{format_history(history, limit)}\n\n"
        "Provide your top 10 most likely numbers, the single strongest head digit, the single "
        "strongest tail digit, and a brief analysis summary."
    )


def parse_response(payload: dict) -> ExternalPrediction:
    text = payload["candidates"][0]["content"]["parts"][0]["text"]
    data = json.loads(text.strip())
    picks = [str(p).strip().zfill(2) for p in data.get("top_picks") or []]
    picks = [p for p in picks if is_two_digit(p)]
    if not picks:
        raise ValueError("response has no usable top_picks")
    return ExternalPrediction(
        top_picks=list(dict.fromkeys(picks))[:10],
        strongest_head=str(data.get("strongest_head", "-"))[:1] or "-",
        strongest_tail=str(data.get("strongest_tail", "-"))[:1] or "-",
        analysis_summary=str(data.get("analysis_summary", "")),
    )


class GeminiSource:
    """Callable ``source(history) -> ExternalPrediction | None``."""

    def __init__(self, api_key: Optional[str], model: str = MODEL_NAME,
                 timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.api_key = api_key or ""
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def __call__(self, history: Sequence[Record]) -> Optional[ExternalPrediction]:
        if not self.available:
            logger.warning("Gemini API key not configured; external source disabled")
            return None
        body = {
            "contents": [{"parts": [{"text": build_prompt(history)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        try:
            r = self.session.post(API_URL.format(model=self.model),
                                  params={"key": self.api_key}, json=body, timeout=self.timeout)
            r.raise_for_status()
            return parse_response(r.json())
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("Gemini prediction failed: %s", e)
            return None
