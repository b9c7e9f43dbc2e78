# backend/app/services/functions_client.py
"""
Cliente para invocar funciones alojadas (HTTP callable functions).

Se usa para operaciones que la tienda delega en el proveedor de funciones,
como el envío de correos transaccionales. El protocolo es el de las
funciones "callable": se envía {"data": payload} y la respuesta trae el
resultado en el miembro "result".
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import FunctionCallError

logger = logging.getLogger(__name__)


class FunctionsClient:
    """
    Invoca funciones alojadas por nombre.
    """

    def __init__(self, settings: Settings = default_settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (settings.FUNCTIONS_BASE_URL or "").rstrip("/")
        self.timeout = settings.FUNCTIONS_TIMEOUT
        # Solo para tests: permite inyectar un transporte simulado
        self._transport = transport

    async def call_function(self, name: str, payload: Dict[str, Any]) -> Any:
        """
        Llama a la función `name` con el payload indicado.

        Returns:
            El contenido de "result" en la respuesta.

        Raises:
            FunctionCallError: si no hay URL configurada, falla la conexión o
            la función responde con error.
        """
        if not self.base_url:
            raise FunctionCallError(name, "FUNCTIONS_BASE_URL no configurada")

        url = f"{self.base_url}/{name}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json={"data": payload})
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ Error HTTP llamando a la función {name}: {e.response.status_code} - {e.response.text}")
            raise FunctionCallError(name, e.response.text, status_code=e.response.status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Error llamando a la función {name}: {e}")
            raise FunctionCallError(name, str(e)) from e

        if isinstance(body, dict) and "error" in body:
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.error(f"❌ La función {name} devolvió un error: {message}")
            raise FunctionCallError(name, message or "error desconocido")

        return body.get("result") if isinstance(body, dict) else body
