# backend/app/db/models/shipping_rule_model.py
"""
Se encarga de definir el modelo de regla de envío para la aplicación.
"""

from sqlalchemy import Column, Integer, String, Numeric, Boolean
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from app.db.database import Base

class ShippingRule(Base):
    __tablename__ = "shipping_rules"

    rule_id = Column(String(50), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    # Coberturas: CP de 5 dígitos, "estado_<CÓDIGO>", "nacional" o rangos "NNNNN-NNNNN"
    zipcodes = Column(JSONB, nullable=False, default=list)
    activo = Column(Boolean, nullable=False, default=True)
    precio_base = Column(Numeric(10, 2), nullable=False, default=0)
    envio_gratis = Column(Boolean, nullable=False, default=False)
    monto_minimo_gratis = Column(Numeric(10, 2), nullable=True)
    tiempo_minimo = Column(Integer, nullable=True)
    tiempo_maximo = Column(Integer, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ShippingRule(id={self.rule_id}, name='{self.name}', activo={self.activo})>"

    def to_dict(self):
        """Convierte la regla en el diccionario que usa el resolvedor de envíos."""
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "zipcodes": list(self.zipcodes or []),
            "activo": self.activo,
            "precio_base": float(self.precio_base or 0),
            "envio_gratis": self.envio_gratis,
            "monto_minimo_gratis": float(self.monto_minimo_gratis) if self.monto_minimo_gratis is not None else None,
            "tiempo_minimo": self.tiempo_minimo,
            "tiempo_maximo": self.tiempo_maximo,
        }
