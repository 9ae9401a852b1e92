from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Any, Protocol

import requests

from .config import Settings
from .errors import UpstreamError

logger = logging.getLogger(__name__)

NEUTRAL_LABEL = "NEUTRAL"
EMPTY_NOTES_TEXT = "No notes"


@dataclass(frozen=True)
class SentimentResult:
    label: str
    score: float


class SentimentClassifier(Protocol):
    def classify(self, text: str) -> SentimentResult:
        ...


def normalize_response(payload: Any, neutral_threshold: float = 0.6) -> SentimentResult:
    """Reduce an inference response to one upper-cased label and its score.

    Accepts ``[{label, score}, ...]`` or ``[[{label, score}, ...]]``; the first
    entry wins. Scores under ``neutral_threshold`` become NEUTRAL.
    """
    items = payload
    if isinstance(items, list) and items and isinstance(items[0], list):
        items = items[0]
    top = items[0] if isinstance(items, list) and items else None
    if not isinstance(top, dict) or not top.get("label"):
        raise UpstreamError("Unexpected sentiment response format")

    score = top.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
        raise UpstreamError("Unexpected sentiment response format")

    label = str(top["label"]).upper()
    if score < neutral_threshold:
        label = NEUTRAL_LABEL
    return SentimentResult(label=label, score=float(score))


class HuggingFaceClassifier:
    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout_sec: float = 10.0,
        neutral_threshold: float = 0.6,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.timeout_sec = timeout_sec
        self.neutral_threshold = neutral_threshold
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> HuggingFaceClassifier | None:
        if not settings.sentiment_api_key:
            return None
        return cls(
            api_url=settings.sentiment_url,
            api_key=settings.sentiment_api_key,
            timeout_sec=settings.sentiment_timeout_sec,
            neutral_threshold=settings.neutral_threshold,
        )

    def classify(self, text: str) -> SentimentResult:
        body = {"inputs": text or EMPTY_NOTES_TEXT, "options": {"wait_for_model": True}}
        try:
            response = self.session.post(
                self.api_url,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            logger.warning("sentiment request failed: %s", exc)
            raise UpstreamError(f"sentiment request failed: {exc}") from exc

        if not response.ok:
            logger.warning("sentiment endpoint returned %s: %s", response.status_code, response.text[:200])
            raise UpstreamError(f"sentiment endpoint returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("sentiment endpoint returned invalid JSON") from exc
        return normalize_response(payload, self.neutral_threshold)
