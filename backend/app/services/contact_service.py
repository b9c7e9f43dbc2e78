# backend/app/services/contact_service.py
"""
Servicio para los mensajes del formulario de contacto.

Guarda el mensaje y pide a la función alojada de correo que lo notifique.
Si el correo falla, el mensaje queda guardado igualmente y se informa al
llamador con email_sent=False.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import FunctionCallError
from app.crud import contact_crud
from app.schemas.contact_schema import ContactMessageCreate
from app.services.functions_client import FunctionsClient

logger = logging.getLogger(__name__)


class ContactService:

    def __init__(self, settings: Settings = default_settings, functions_client: Optional[FunctionsClient] = None):
        self.email_function = settings.CONTACT_EMAIL_FUNCTION
        self.functions_client = functions_client or FunctionsClient(settings)

    async def submit(self, db: AsyncSession, message: ContactMessageCreate) -> Dict[str, Any]:
        """
        Guarda un mensaje de contacto y solicita el correo de aviso.
        """
        db_message = await contact_crud.create_contact_message(db, message)
        logger.info(f"✅ CONTACTO: mensaje {db_message.message_id} guardado de {message.email}")

        email_sent = True
        try:
            await self.functions_client.call_function(
                self.email_function,
                {"messageId": db_message.message_id, **message.model_dump()},
            )
        except FunctionCallError as e:
            email_sent = False
            logger.error(f"❌ CONTACTO: no se pudo enviar el correo del mensaje {db_message.message_id}: {e}")

        return {
            "message_id": db_message.message_id,
            "created_at": db_message.created_at,
            "email_sent": email_sent,
        }
