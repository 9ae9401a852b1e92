from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
import os
from pathlib import Path
from typing import Any, Mapping

DEFAULT_SENTIMENT_URL = (
    "https://api-inference.huggingface.co/models/"
    "distilbert/distilbert-base-uncased-finetuned-sst-2-english"
)
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def default_db_path() -> Path:
    return Path(__file__).resolve().parent / "data" / "pomoflow.sqlite"


def _as_float(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number <= 0:
        return default
    return number


def parse_token_map(raw: str) -> dict[str, str]:
    tokens: dict[str, str] = {}
    for piece in raw.split(","):
        if ":" not in piece:
            continue
        token, user_id = piece.split(":", 1)
        token = token.strip()
        user_id = user_id.strip()
        if token and user_id:
            tokens[token] = user_id
    return tokens


@dataclass(frozen=True)
class Settings:
    db_path: Path = field(default_factory=default_db_path)
    journal_mode: str = "MEMORY"
    sentiment_url: str = DEFAULT_SENTIMENT_URL
    sentiment_api_key: str | None = None
    sentiment_timeout_sec: float = 10.0
    neutral_threshold: float = 0.6
    auth_url: str | None = None
    auth_api_key: str | None = None
    static_tokens: dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        def _text(name: str) -> str | None:
            value = env.get(name, "").strip()
            return value or None

        db_raw = _text("POMOFLOW_DB_PATH")
        return cls(
            db_path=Path(db_raw) if db_raw else default_db_path(),
            journal_mode=(_text("POMOFLOW_JOURNAL_MODE") or "MEMORY").upper(),
            sentiment_url=_text("POMOFLOW_SENTIMENT_URL") or DEFAULT_SENTIMENT_URL,
            sentiment_api_key=_text("POMOFLOW_SENTIMENT_API_KEY") or _text("HUGGING_FACE_API_KEY"),
            sentiment_timeout_sec=_as_float(env.get("POMOFLOW_SENTIMENT_TIMEOUT"), 10.0),
            neutral_threshold=_as_float(env.get("POMOFLOW_SENTIMENT_THRESHOLD"), 0.6),
            auth_url=_text("POMOFLOW_AUTH_URL"),
            auth_api_key=_text("POMOFLOW_AUTH_API_KEY"),
            static_tokens=parse_token_map(env.get("POMOFLOW_STATIC_TOKENS", "")),
            log_level=(_text("POMOFLOW_LOG_LEVEL") or "INFO").upper(),
        )


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    logger = logging.getLogger("pomoflow")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
