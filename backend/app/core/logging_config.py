# backend/app/core/logging_config.py
"""
Configuración centralizada del logging de la aplicación.

Todos los módulos obtienen su logger con logging.getLogger(__name__);
aquí solo se configura el logger raíz con el nivel y formato de settings.
"""

import logging

from app.core.config import settings


def setup_logging(level: str = None, fmt: str = None) -> None:
    """Configura el logger raíz a partir de la configuración de la aplicación."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=fmt or settings.LOG_FORMAT,
    )
    # httpx registra cada petición en INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
