# backend/app/api/v1/endpoints/shipping.py
"""
Endpoints REST para reglas de envío: administración, resolución por código
postal, cotización y elegibilidad de los productos del carrito.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List
import logging

from app.api import deps
from app.crud import product_crud, shipping_rule_crud
from app.schemas.shipping_schema import (
    ShippingQuote,
    ShippingQuoteRequest,
    ShippingRuleCreate,
    ShippingRuleResponse,
    ShippingRuleUpdate,
    ShippingRuleValidation,
)
from app.services import shipping_rule_resolver as resolver
from app.services.cart_service import CartService

logger = logging.getLogger(__name__)
router = APIRouter()

ZIPCODE_PATTERN = r"^\d{5}$"


def _to_response(rule: Dict[str, Any]) -> ShippingRuleResponse:
    return ShippingRuleResponse(**rule, coverage_type=resolver.get_coverage_type(rule))


async def _load_rules(db: AsyncSession) -> List[Dict[str, Any]]:
    return [rule.to_dict() for rule in await shipping_rule_crud.get_rules(db)]


def _ensure_valid(rule: Dict[str, Any]) -> None:
    """Rechaza reglas con coberturas inconsistentes antes de guardarlas."""
    validation = resolver.validate_shipping_rule(rule)
    if not validation["valid"]:
        logger.warning(f"⚠️ ENVÍOS: regla rechazada: {validation['message']}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=validation["message"])

# ========================================
# ADMINISTRACIÓN DE REGLAS
# ========================================

@router.get("/rules", response_model=List[ShippingRuleResponse])
async def read_rules(
    active_only: bool = False,
    db: AsyncSession = Depends(deps.get_db),
):
    """Lista las reglas de envío en orden de creación."""
    rules = await shipping_rule_crud.get_rules(db, active_only=active_only)
    return [_to_response(rule.to_dict()) for rule in rules]


@router.post("/rules", response_model=ShippingRuleResponse, status_code=status.HTTP_201_CREATED)
async def create_rule(
    rule_in: ShippingRuleCreate,
    db: AsyncSession = Depends(deps.get_db),
):
    """Crea una regla de envío tras validar su cobertura."""
    _ensure_valid(rule_in.model_dump())
    if rule_in.rule_id and await shipping_rule_crud.get_rule(db, rule_in.rule_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"La regla {rule_in.rule_id} ya existe")

    rule = await shipping_rule_crud.create_rule(db, rule_in)
    logger.info(f"✅ ENVÍOS: regla {rule.rule_id} creada ({resolver.get_coverage_type(rule.to_dict())})")
    return _to_response(rule.to_dict())


@router.put("/rules/{rule_id}", response_model=ShippingRuleResponse)
async def update_rule(
    rule_id: str,
    rule_in: ShippingRuleUpdate,
    db: AsyncSession = Depends(deps.get_db),
):
    """Actualiza una regla de envío existente."""
    if rule_in.zipcodes is not None:
        _ensure_valid({"zipcodes": rule_in.zipcodes})

    rule = await shipping_rule_crud.update_rule(db, rule_id, rule_in)
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Regla de envío no encontrada")
    return _to_response(rule.to_dict())


@router.delete("/rules/{rule_id}", response_model=ShippingRuleResponse)
async def delete_rule(
    rule_id: str,
    db: AsyncSession = Depends(deps.get_db),
):
    """Elimina una regla de envío."""
    rule = await shipping_rule_crud.delete_rule(db, rule_id)
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Regla de envío no encontrada")
    return _to_response(rule.to_dict())


@router.post("/rules/validate", response_model=ShippingRuleValidation)
async def validate_rule(rule_in: ShippingRuleCreate):
    """Validación consultiva de una regla, sin guardarla."""
    return resolver.validate_shipping_rule(rule_in.model_dump())

# ========================================
# RESOLUCIÓN Y COTIZACIÓN
# ========================================

@router.get("/resolve", response_model=ShippingRuleResponse)
async def resolve_rule(
    zipcode: str = Query(..., pattern=ZIPCODE_PATTERN),
    db: AsyncSession = Depends(deps.get_db),
):
    """Devuelve la regla más específica para un código postal."""
    rule = resolver.find_most_specific_rule(zipcode, await _load_rules(db))
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No hay cobertura de envío para el CP {zipcode}")
    return _to_response(rule)


@router.post("/quote", response_model=ShippingQuote)
async def quote_shipping(
    request: ShippingQuoteRequest,
    db: AsyncSession = Depends(deps.get_db),
):
    """Cotiza el envío de una compra a un código postal."""
    rule = resolver.find_most_specific_rule(request.zipcode, await _load_rules(db))
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No hay cobertura de envío para el CP {request.zipcode}")

    cost = resolver.calculate_rule_shipping_cost(rule, request.subtotal)
    return ShippingQuote(
        zipcode=request.zipcode,
        state=resolver.get_state_from_zipcode(request.zipcode),
        rule=_to_response(rule),
        cost=cost,
        is_free=cost == 0,
    )


@router.get("/eligibility/{user_id}")
async def cart_shipping_eligibility(
    user_id: str,
    zipcode: str = Query(..., pattern=ZIPCODE_PATTERN),
    db: AsyncSession = Depends(deps.get_db),
    cart_service: CartService = Depends(deps.get_cart_service),
) -> Dict[str, Any]:
    """
    Separa los productos del carrito entre enviables y no enviables al CP.
    """
    items = await cart_service.get_cart_contents(user_id)
    products = await product_crud.get_products_by_ids(db, list({item["product_id"] for item in items}))
    result = resolver.filter_shippable_products(
        items,
        zipcode,
        await _load_rules(db),
        {product.product_id: product.to_dict() for product in products},
    )
    return {
        "zipcode": zipcode,
        "eligible": [
            {**item, "applicable_rules": [rule["rule_id"] for rule in item["applicable_rules"]]}
            for item in result["eligible"]
        ],
        "ineligible": result["ineligible"],
    }
