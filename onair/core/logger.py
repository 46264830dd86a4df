"""
➡️ But : Brancher tous les logs (nos modules, uvicorn, SQLAlchemy) sur Loguru.

- Console lisible par défaut ; JSON via LOG_JSON=1
- Les modules loguent avec `logging.getLogger(__name__)` ; un InterceptHandler
  redirige ces enregistrements vers Loguru

setup_logging() est appelé une seule fois par create_app().
"""

import json
import logging
import sys
from typing import Any, Dict

from loguru import logger

from onair.core.config import settings

_configured = False


# -----------------------------
# Formats
# -----------------------------
def _fmt_pretty(record) -> str:
    safe_name = record["name"].replace("<", "[").replace(">", "]")
    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        f"<cyan>{safe_name}</cyan>:<cyan>{{line}}</cyan> - "
        "<level>{message}</level>\n{exception}"
    )


def _fmt_json(record) -> str:
    payload: Dict[str, Any] = {
        "time": record["time"].strftime("%Y-%m-%dT%H:%M:%S.%f%z"),
        "level": record["level"].name,
        "logger": record["name"],
        "line": record["line"],
        "message": record["message"],
    }
    for k, v in record["extra"].items():
        payload.setdefault(k, v)
    record["extra"]["_json"] = json.dumps(payload, ensure_ascii=False, default=str)
    return "{extra[_json]}\n"


# -----------------------------
# stdlib -> Loguru
# -----------------------------
class InterceptHandler(logging.Handler):
    """Route les enregistrements `logging` standard vers Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # remonte la pile jusqu'à l'appelant réel (hors module logging)
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    global _configured
    if _configured:
        return

    level = (level or settings.LOG_LEVEL).upper()
    json_logs = settings.LOG_JSON if json_logs is None else json_logs

    logger.remove()
    logger.add(
        sys.stdout,
        level=level,
        format=_fmt_json if json_logs else _fmt_pretty,
        backtrace=settings.ENV == "dev",
        diagnose=False,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "sqlalchemy.engine"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
