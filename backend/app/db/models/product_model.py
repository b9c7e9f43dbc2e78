# backend/app/db/models/product_model.py
"""
Modelos de producto y variante.

El campo `stock` del producto es el stock autoritativo y lo comparten sus
variantes; los carritos guardan solo una copia que se reconcilia
periódicamente.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Text, Numeric, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from app.db.database import Base

class Product(Base):
    __tablename__ = "products"

    product_id = Column(String(50), primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    # Precio con impuestos incluidos
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    shipping_rule_ids = Column(JSONB, nullable=False, default=list)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Product(id={self.product_id}, name='{self.name}', stock={self.stock})>"

    def to_dict(self):
        """Convierte el objeto Product en un diccionario."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price) if self.price is not None else 0.0,
            "stock": self.stock or 0,
            "active": self.active,
            "shipping_rule_ids": list(self.shipping_rule_ids or []),
        }


class ProductVariant(Base):
    __tablename__ = "product_variants"

    variant_id = Column(String(50), primary_key=True, index=True)
    product_id = Column(String(50), ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    # Si es nulo se usa el precio del producto
    price = Column(Numeric(10, 2), nullable=True)

    product = relationship("Product", back_populates="variants")

    def __repr__(self):
        return f"<ProductVariant(id={self.variant_id}, product_id={self.product_id})>"
