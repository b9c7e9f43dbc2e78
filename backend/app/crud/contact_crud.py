# backend/app/crud/contact_crud.py
"""
Este archivo contiene las operaciones CRUD para el modelo ContactMessage.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.contact_model import ContactMessage
from app.schemas.contact_schema import ContactMessageCreate

async def create_contact_message(db: AsyncSession, message: ContactMessageCreate) -> ContactMessage:
    """
    Guarda un mensaje de contacto en la base de datos.
    """
    db_message = ContactMessage(**message.model_dump())
    db.add(db_message)
    await db.commit()
    await db.refresh(db_message)
    return db_message
