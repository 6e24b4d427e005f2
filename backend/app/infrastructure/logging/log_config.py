"""Per-category logging levels for the RAG backend.

SQL echo and outbound HTTP chatter are noisy next to the ingestion
pipeline's step logs; each category gets its own level from Settings so
one can be turned up without drowning the others.

Usage:
    from app.infrastructure.logging.log_config import setup_logging
    setup_logging()   # once, from the FastAPI lifespan
"""

import logging
import sys

from app.config import Settings, get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"

# Settings field → logger names it governs
_CATEGORY_MAP: dict[str, tuple[str, ...]] = {
    "log_level_sql": ("sqlalchemy.engine", "sqlalchemy.pool"),
    "log_level_http": ("httpx", "httpcore"),
    "log_level_uvicorn": ("uvicorn", "uvicorn.access", "uvicorn.error"),
    "log_level_pipeline": (
        "ResourceProcessingService",
        "ResourceSweepService",
        "app.application.services.resource_processing_service",
        "app.application.services.resource_sweep_service",
        "app.application.services.text_chunker",
        "app.infrastructure.extractors",
        "app.infrastructure.storage",
    ),
    "log_level_embedding": (
        "app.application.services.embedding_service",
        "app.infrastructure.openrouter",
    ),
    "log_level_retrieval": (
        "RetrievalService",
        "app.application.services.retrieval_service",
        "app.infrastructure.database.repositories.chunk_repository",
    ),
}


def setup_logging(settings: Settings | None = None) -> dict[str, int]:
    """Apply the root level and every category level; returns logger → level.

    Safe to call more than once: the fallback stderr handler is only added
    when the root logger has none (uvicorn normally installs its own).
    """
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)

    applied: dict[str, int] = {}
    for field, logger_names in _CATEGORY_MAP.items():
        level = _parse_level(getattr(settings, field))
        for name in logger_names:
            logging.getLogger(name).setLevel(level)
            applied[name] = level

    logging.getLogger(__name__).debug(
        "Logging configured — root=%s %s",
        settings.log_level,
        " ".join(f"{field.removeprefix('log_level_')}={getattr(settings, field)}" for field in _CATEGORY_MAP),
    )
    return applied


def _parse_level(raw: str) -> int:
    """Level name → logging constant; unknown names fall back to INFO."""
    numeric = logging.getLevelName(raw.strip().upper())
    return numeric if isinstance(numeric, int) else logging.INFO
