# backend/app/api/v1/endpoints/contact.py
"""
Endpoint del formulario de contacto.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.contact_schema import ContactMessageCreate, ContactMessageResponse
from app.services.contact_service import ContactService

router = APIRouter()

@router.post("/", response_model=ContactMessageResponse, status_code=status.HTTP_201_CREATED)
async def submit_contact_message(
    message: ContactMessageCreate,
    db: AsyncSession = Depends(deps.get_db),
    contact_service: ContactService = Depends(deps.get_contact_service),
):
    """
    Guarda un mensaje de contacto y envía el aviso por correo.
    Si el correo falla, el mensaje queda guardado y email_sent es false.
    """
    return await contact_service.submit(db, message)
