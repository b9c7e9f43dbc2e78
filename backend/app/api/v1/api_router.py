# backend/app/api/v1/api_router.py
"""
Este archivo contiene el router principal para la API versión 1.

Se encarga de registrar y configurar todos los routers de la versión 1 de la API.
"""

from fastapi import APIRouter

# Importación de routers especializados por dominio de negocio
from app.api.v1.endpoints import (
    products,
    cart,
    shipping,
    contact
)

# ========================================
# CONFIGURACIÓN DEL ROUTER PRINCIPAL V1
# ========================================

api_router_v1 = APIRouter()

# ========================================
# REGISTRO DE ROUTERS POR DOMINIO DE NEGOCIO
# ========================================

# ROUTER DE PRODUCTOS
# Catálogo de solo lectura y consulta de stock
api_router_v1.include_router(
    products.router,
    prefix="/products",
    tags=["Products"]
)

# ROUTER DEL CARRITO
# Operaciones del carrito y reconciliación de stock
api_router_v1.include_router(
    cart.router,
    prefix="/cart",
    tags=["Cart"]
)

# ROUTER DE ENVÍOS
# Reglas de envío, resolución por CP y cotización
api_router_v1.include_router(
    shipping.router,
    prefix="/shipping",
    tags=["Shipping"]
)

# ROUTER DE CONTACTO
api_router_v1.include_router(
    contact.router,
    prefix="/contact",
    tags=["Contact"]
)
