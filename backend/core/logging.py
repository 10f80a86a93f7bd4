"""Configuration des logs structurés (structlog).

Objectif du module
------------------
- Produire des événements horodatés, filtrés au niveau `LOG_LEVEL`.
- Fusionner le contexte de requête (`request_id`) porté par les contextvars.
- Rendre les événements en console (développement) ou en JSON (`LOG_JSON`).
- Aligner le niveau des loggers stdlib (uvicorn, sqlalchemy, alembic) sur le même seuil.
"""

import logging
import sys

import structlog


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {name}")
    return level


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog et le logging standard.

    Args:
        level: Nom du niveau minimal (`DEBUG`, `INFO`, ...).
        json_logs: Rend chaque événement sur une ligne JSON au lieu du rendu console.
    """
    threshold = _level(level)
    renderer = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        # Reconfigurable à chaque create_app (tests)
        cache_logger_on_first_use=False,
    )
    logging.basicConfig(format="%(levelname)s %(name)s %(message)s", stream=sys.stdout)
    for name in ("uvicorn", "sqlalchemy", "alembic"):
        logging.getLogger(name).setLevel(threshold)
