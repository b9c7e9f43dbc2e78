# backend/app/api/deps.py
"""
Dependencias inyectables de la API.

Los endpoints reciben la sesión de base de datos y los servicios a través
de estas funciones, de modo que los tests pueden reemplazarlas con
app.dependency_overrides sin tocar Redis ni PostgreSQL.
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.database import AsyncSessionLocal
from app.core.config import Settings, settings
from app.services.cart_service import CartService
from app.services.contact_service import ContactService
from app.services.stock_service import stock_service

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Abre una sesión por petición y la cierra al terminar."""
    async with AsyncSessionLocal() as session:
        yield session

def get_settings() -> Settings:
    return settings

def get_cart_service() -> CartService:
    """
    Servicio de carrito. Comparte el servicio de stock global para que su
    caché de validaciones sobreviva entre peticiones.
    """
    return CartService(settings, stock_service)

def get_contact_service() -> ContactService:
    return ContactService(settings)
