from __future__ import annotations
import logging

from core.settings import Settings

_CONFIGURED = False


def configure_logging(settings: Settings) -> None:
    """Apply the configured level/format once per process (Streamlit reruns the script)."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    logging.basicConfig(
        level=getattr(logging, settings.logging.level.upper(), logging.INFO),
        format=settings.logging.format,
    )
    # SQL echo is far too chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _CONFIGURED = True
