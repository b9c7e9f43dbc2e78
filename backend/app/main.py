# backend/app/main.py
"""
Punto de entrada principal de la aplicación FastAPI.

Configura la aplicación, registra los routers de la API y define los
eventos del ciclo de vida: logging y tablas al arrancar, cierre de la
conexión a Redis al apagar.
"""

import logging

import uvicorn
from fastapi import Depends, FastAPI
from app.api import deps
from app.core.config import Settings, settings
from app.core.logging_config import setup_logging
from app.api.v1.api_router import api_router_v1
from app.crud import cart_crud
from app.db.database import create_tables

logger = logging.getLogger(__name__)

# ========================================
# CONFIGURACIÓN DE LA APLICACIÓN FASTAPI
# ========================================

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    version=settings.PROJECT_VERSION,
    description="API de la tienda: catálogo, carrito, envíos y contacto"
)

app.include_router(api_router_v1, prefix=settings.API_V1_STR)

# ========================================
# ENDPOINTS RAÍZ Y VERIFICACIÓN DE ESTADO
# ========================================

@app.get("/", tags=["Root"])
async def read_root(app_settings: Settings = Depends(deps.get_settings)):
    """
    Endpoint raíz para verificación básica del estado de la API.

    Example:
        GET /
        Response: {"message": "Bienvenido a Tienda API v0.1.0", "environment": "development"}
    """
    return {
        "message": f"Bienvenido a {app_settings.PROJECT_NAME} v{app_settings.PROJECT_VERSION}",
        "environment": app_settings.APP_ENVIRONMENT,
    }

# ========================================
# EVENTOS DEL CICLO DE VIDA DE LA APLICACIÓN
# ========================================

@app.on_event("startup")
async def startup_event():
    """Configura el logging y, si se pide, crea las tablas."""
    setup_logging()
    logger.info(f"✅ {settings.PROJECT_NAME} iniciada en entorno {settings.APP_ENVIRONMENT}")
    if settings.DB_CREATE_TABLES:
        await create_tables()
        logger.info("✅ Tablas de la base de datos verificadas")
    if not settings.FUNCTIONS_BASE_URL:
        logger.info("ℹ️ FUNCTIONS_BASE_URL no configurada, los avisos por correo no se enviarán")


@app.on_event("shutdown")
async def shutdown_event():
    """Cierra la conexión compartida con Redis."""
    await cart_crud.close_redis_client()


def dev():
    """Servidor de desarrollo con recarga automática."""
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    dev()
