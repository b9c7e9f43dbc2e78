# backend/app/schemas/shipping_schema.py
"""
Esquemas Pydantic para reglas de envío y cotizaciones.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional

# ========================================
# ESQUEMA BASE
# ========================================

class ShippingRuleBase(BaseModel):
    """Propiedades comunes de una regla de envío."""
    name: str
    zipcodes: List[str] = Field(default_factory=list, description="CPs, 'estado_<CÓDIGO>', 'nacional' o rangos")
    activo: bool = True
    precio_base: float = Field(0, ge=0)
    envio_gratis: bool = False
    monto_minimo_gratis: Optional[float] = Field(None, ge=0)
    tiempo_minimo: Optional[int] = Field(None, ge=0, description="Días mínimos de entrega")
    tiempo_maximo: Optional[int] = Field(None, ge=0, description="Días máximos de entrega")

    @field_validator("zipcodes")
    @classmethod
    def strip_zipcodes(cls, v: List[str]) -> List[str]:
        return [code.strip() for code in v]

# ========================================
# ESQUEMAS PARA OPERACIONES
# ========================================

class ShippingRuleCreate(ShippingRuleBase):
    """Esquema para crear una regla. El ID se genera si no se indica."""
    rule_id: Optional[str] = None

class ShippingRuleUpdate(BaseModel):
    """Esquema para actualizar una regla. Todos los campos son opcionales."""
    name: Optional[str] = None
    zipcodes: Optional[List[str]] = None
    activo: Optional[bool] = None
    precio_base: Optional[float] = Field(None, ge=0)
    envio_gratis: Optional[bool] = None
    monto_minimo_gratis: Optional[float] = Field(None, ge=0)
    tiempo_minimo: Optional[int] = Field(None, ge=0)
    tiempo_maximo: Optional[int] = Field(None, ge=0)

class ShippingRuleResponse(ShippingRuleBase):
    """Esquema de respuesta de una regla de envío."""
    rule_id: str
    coverage_type: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class ShippingRuleValidation(BaseModel):
    valid: bool
    message: Optional[str] = None

# ========================================
# COTIZACIÓN DE ENVÍO
# ========================================

class ShippingQuoteRequest(BaseModel):
    """Solicitud de cotización para un código postal y un monto de compra."""
    zipcode: str = Field(..., pattern=r"^\d{5}$")
    subtotal: float = Field(0, ge=0)

class ShippingQuote(BaseModel):
    zipcode: str
    state: Optional[str] = None
    rule: ShippingRuleResponse
    cost: float
    is_free: bool
