# backend/app/core/exceptions.py
"""
Excepciones propias de la aplicación.

La mayoría de los errores de validación se devuelven como valores
centinela ({"valid": False, ...}); solo los fallos de servicios externos
se modelan como excepciones.
"""

from typing import Optional


class FunctionCallError(Exception):
    """Error al invocar una función alojada (p. ej. el envío de correos)."""

    def __init__(self, function_name: str, message: str, status_code: Optional[int] = None):
        self.function_name = function_name
        self.status_code = status_code
        super().__init__(f"Error llamando a la función '{function_name}': {message}")
