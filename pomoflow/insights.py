"""Completed-run history and sentiment annotation.

A run is every completed row sharing a ``session_group_id``; it is only listed
once at least ``target_cycles`` focus blocks finished, so a run stopped early
never shows up. Ungrouped rows from older clients count as one-row runs when
they are completed focus phases. The minimum row id of a group stands in for
the whole run and is exposed as ``timer_<id>``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any

from .clock import Clock, RealClock
from .db import CompletedRun, PomoflowDB
from .errors import NotFoundError, UpstreamError, ValidationError
from .sentiment import SentimentClassifier
from .templates import as_number

logger = logging.getLogger(__name__)

EXTERNAL_ID_PREFIX = "timer_"
MAX_COMPLETED_RUNS = 300
DEFAULT_RUN_TITLE = "Focus Session"


@dataclass(frozen=True)
class CompletedSessionView:
    id: str
    title: str
    date: datetime | None
    duration: float
    focus_blocks: int
    target_cycles: int
    sentiment: dict[str, Any] | None
    analyzed_at: datetime | None


@dataclass(frozen=True)
class AnalysisResult:
    id: str
    analyzed_at: datetime
    label: str | None
    score: float | None


def format_external_id(row_id: int) -> str:
    return f"{EXTERNAL_ID_PREFIX}{row_id}"


def parse_external_id(raw: Any) -> int:
    """Map ``"timer_42"``, ``"42"`` or ``42`` to the row id 42."""
    if raw is None or raw == "":
        raise ValidationError("id is required")
    if isinstance(raw, bool):
        raise ValidationError("Invalid id format")

    if isinstance(raw, (int, float)):
        if not float(raw).is_integer() or raw < 1:
            raise ValidationError("Invalid id format")
        return int(raw)

    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith(EXTERNAL_ID_PREFIX):
            text = text[len(EXTERNAL_ID_PREFIX):]
        if text.isascii() and text.isdigit() and int(text) >= 1:
            return int(text)

    raise ValidationError("Invalid id format")


class InsightsService:
    def __init__(
        self,
        db: PomoflowDB,
        classifier: SentimentClassifier | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.db = db
        self.classifier = classifier
        self.clock = clock or RealClock()

    def list_completed_runs(self, user_id: str) -> list[CompletedRun]:
        return self.db.list_completed_runs(user_id, limit=MAX_COMPLETED_RUNS)

    def list_completed_sessions(self, user_id: str) -> list[CompletedSessionView]:
        names: dict[int, str | None] = {}
        views: list[CompletedSessionView] = []
        for run in self.list_completed_runs(user_id):
            title = DEFAULT_RUN_TITLE
            if run.template_id:
                if run.template_id not in names:
                    names[run.template_id] = self.db.template_name(run.template_id, user_id)
                title = names[run.template_id] or DEFAULT_RUN_TITLE

            sentiment = None
            if run.sentiment_label:
                sentiment = {"label": str(run.sentiment_label), "score": run.sentiment_score}

            views.append(
                CompletedSessionView(
                    id=format_external_id(run.representative_id),
                    title=title,
                    date=run.representative_date,
                    duration=run.total_focus_minutes or 0,
                    focus_blocks=run.focus_block_count,
                    target_cycles=run.target_cycles,
                    sentiment=sentiment,
                    analyzed_at=run.analyzed_at,
                )
            )
        return views

    def resolve_representative_id(self, user_id: str, group_id: str | None) -> int | None:
        return self.db.representative_id(user_id, group_id)

    def analyze(self, user_id: str, payload: dict[str, Any]) -> AnalysisResult:
        raw_id = payload.get("id")
        if raw_id is None or raw_id == "":
            raw_id = payload.get("sessionId")
        phase_id = parse_external_id(raw_id)

        row = self.db.get_phase(phase_id, user_id)
        if row is None:
            raise NotFoundError("Timer session not found")

        notes = payload.get("notes")
        if isinstance(notes, str):
            self.db.update_notes(phase_id, user_id, notes)
        else:
            notes = row.notes or ""

        label = payload.get("sentiment_label")
        score_raw = payload.get("sentiment_score")
        if label is not None or score_raw is not None:
            score = self._client_score(score_raw)
            label = str(label) if label is not None else None
        else:
            if self.classifier is None:
                raise UpstreamError("AI service not configured")
            result = self.classifier.classify(notes)
            label, score = result.label, result.score

        timestamp = self.clock.now()
        self.db.update_sentiment(phase_id, user_id, timestamp, label, score)
        logger.info("user %s stored sentiment %s for phase %s", user_id, label, phase_id)

        rep_id = self.resolve_representative_id(user_id, row.session_group_id) or phase_id
        return AnalysisResult(
            id=format_external_id(rep_id),
            analyzed_at=timestamp,
            label=label,
            score=score,
        )

    def stats(self, user_id: str) -> dict[str, int]:
        return self.db.sentiment_counts(user_id)

    @staticmethod
    def _client_score(raw: Any) -> float | None:
        if raw is None:
            return None
        score = as_number(raw)
        if score is None:
            raise ValidationError("sentiment_score must be numeric")
        if not 0 <= score <= 1:
            raise ValidationError("sentiment_score must be between 0 and 1")
        return score
