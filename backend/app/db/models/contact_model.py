# backend/app/db/models/contact_model.py
"""
Se encarga de definir el modelo de mensajes de contacto para la aplicación.
"""

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import TIMESTAMP

from app.db.database import Base

class ContactMessage(Base):
    __tablename__ = "contact_messages"

    message_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    subject = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<ContactMessage(id={self.message_id}, email='{self.email}')>"
