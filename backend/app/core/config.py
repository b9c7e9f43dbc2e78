# backend/app/core/config.py
"""
Configuración de la tienda.

Todos los valores se leen del entorno o del archivo .env; los que no son
sensibles tienen un valor por defecto utilizable en desarrollo.
"""

from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    """
    Parámetros de la aplicación agrupados por área.
    """
    # Proyecto
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Tienda API"
    PROJECT_VERSION: str = "0.1.0"
    APP_ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # PostgreSQL (catálogo, reglas de envío, contacto)
    POSTGRES_SERVER: str = "postgres"
    POSTGRES_USER: str = "user"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_DB: str = "tienda_db"
    POSTGRES_PORT: str = "5432"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_CREATE_TABLES: bool = False

    @property
    def DATABASE_URL(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Redis (carritos)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    CART_KEY_PREFIX: str = "cart:"
    CART_TTL_SECONDS: int = 60 * 60 * 24 * 30

    # Precios del carrito: los precios de producto ya incluyen impuestos
    TAX_RATE: float = 0.16
    MIN_FREE_SHIPPING: float = 500.0
    SHIPPING_COST: float = 50.0

    # Reconciliación de stock (segundos)
    STOCK_REVALIDATION_INTERVAL: float = 30.0
    STOCK_CACHE_TTL: float = 30.0
    STOCK_VALIDATION_DEBOUNCE: float = 1.0
    STOCK_LOCK_WAIT_ATTEMPTS: int = 10
    STOCK_LOCK_POLL_INTERVAL: float = 0.5
    # Revalidación en segundo plano tras modificar el carrito
    STOCK_BACKGROUND_VALIDATION: bool = True
    # Validadores por carrito en memoria; se descartan los menos usados
    CART_VALIDATORS_MAX: int = 10000

    # Funciones alojadas (correo transaccional)
    FUNCTIONS_BASE_URL: Optional[str] = None
    FUNCTIONS_TIMEOUT: float = 10.0
    CONTACT_EMAIL_FUNCTION: str = "sendContactEmail"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
