# backend/app/db/database.py

"""
Conexión asíncrona a PostgreSQL para la tienda.

Define el motor, la fábrica de sesiones y la clase base de los modelos
(productos, variantes, reglas de envío y mensajes de contacto). La
dependencia de sesión para los endpoints está en app/api/deps.py.
"""

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from app.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    pool_pre_ping=True,
)

# Los objetos siguen siendo legibles después del commit
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def create_tables() -> None:
    """
    Crea las tablas que falten. Pensado para entornos de desarrollo;
    se activa con DB_CREATE_TABLES.
    """
    # Registrar los modelos en Base.metadata
    from app.db.models import contact_model, product_model, shipping_rule_model  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
