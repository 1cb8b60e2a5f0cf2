"""Logging setup plus structured helpers that emit one JSON payload per line."""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from searchsynth.config import settings

LOG_DIR = Path(settings.log_dir)
LOG_FILE = LOG_DIR / "searchsynth.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "httpcore",
    "sse_starlette.sse",
    "openai._base_client",
    "supabase",
    "postgrest",
)


def _level(name: str, default: int) -> int:
    return getattr(logging, (name or "").upper(), default)


def configure_logging() -> logging.Logger:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=_level(settings.app_log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(LOG_FILE), logging.StreamHandler()],
    )
    noisy_level = _level(settings.noisy_log_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
    return logging.getLogger("searchsynth")


logger = configure_logging()


def _emit(kind: str, payload: dict[str, Any], level: int = logging.INFO) -> None:
    record = {"timestamp": datetime.now(timezone.utc).isoformat(), **payload}
    logger.log(level, f"{kind}: {json.dumps(record, default=str)}")


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log one text-generation call with its token usage."""
    _emit(
        "LLM_CALL",
        {
            "model": model,
            "caller": caller,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
            "duration_ms": duration_ms,
            "status": status,
            "error": error,
        },
        logging.INFO if status == "success" else logging.WARNING,
    )


def log_search_step(
    conversation_id: str | None,
    step: str,
    status: str,
    data: Optional[dict[str, Any]] = None,
) -> None:
    _emit(
        "SEARCH_STEP",
        {"conversation_id": conversation_id, "step": step, "status": status, "data": data},
    )


def log_db_operation(
    operation: str,
    table: str,
    status: str,
    details: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    _emit(
        "DB_OPERATION",
        {"operation": operation, "table": table, "status": status, "details": details, "error": error},
        logging.ERROR if status == "error" else logging.INFO,
    )


def log_event(event_type: str, message: str, **kwargs: Any) -> None:
    """Log a named pipeline event; extra keyword arguments become payload fields."""
    _emit("EVENT", {"event_type": event_type, "message": message, **kwargs})
