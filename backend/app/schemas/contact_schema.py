# backend/app/schemas/contact_schema.py
"""
Esquemas Pydantic para los mensajes del formulario de contacto.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional

class ContactMessageCreate(BaseModel):
    """Mensaje enviado desde el formulario de contacto."""
    name: str = Field(..., description="Nombre de quien escribe")
    email: EmailStr
    subject: Optional[str] = None
    message: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('El nombre es requerido')
        return v.strip()

class ContactMessageResponse(BaseModel):
    message_id: int
    created_at: Optional[datetime] = None
    email_sent: bool

    model_config = ConfigDict(from_attributes=True)
