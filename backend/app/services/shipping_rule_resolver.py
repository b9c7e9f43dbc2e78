# backend/app/services/shipping_rule_resolver.py
"""
Resolución de reglas de envío por código postal.

Cuando varias reglas de envío podrían aplicar a un mismo código postal,
este módulo decide cuál usar. Cada regla declara su cobertura en la lista
`zipcodes`, cuyos elementos pueden ser:

- un código postal literal de 5 dígitos ("86610"),
- un estado completo con el formato "estado_<CÓDIGO>" ("estado_TAB"),
- la palabra "nacional" para cobertura en todo el país,
- un rango de códigos postales "NNNNN-NNNNN" (solo para elegibilidad).

Prioridad de resolución: código postal exacto > estado > nacional.

Todas las funciones son puras: reciben reglas como diccionarios y no
realizan I/O.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

STATE_PREFIX = "estado_"
NATIONAL_KEYWORD = "nacional"

_ZIPCODE_RE = re.compile(r"^\d{5}$")
_ZIPCODE_RANGE_RE = re.compile(r"^\d{5}-\d{5}$")

# Prefijos de dos dígitos de código postal por estado
STATE_ZIP_PREFIXES: Dict[str, List[str]] = {
    "AGU": ["20"],  # Aguascalientes
    "BCN": ["21", "22"],  # Baja California
    "BCS": ["23"],  # Baja California Sur
    "CAM": ["24"],  # Campeche
    "CHP": ["29", "30"],  # Chiapas
    "CHH": ["31", "32", "33"],  # Chihuahua
    "CMX": [f"{n:02d}" for n in range(1, 17)],  # Ciudad de México
    "COA": ["25", "26", "27"],  # Coahuila
    "COL": ["28"],  # Colima
    "DUR": ["34", "35"],  # Durango
    "GUA": ["36", "37", "38"],  # Guanajuato
    "GRO": ["39", "40", "41"],  # Guerrero
    "HID": ["42", "43"],  # Hidalgo
    "JAL": ["44", "45", "46", "47", "48", "49"],  # Jalisco
    "MEX": ["50", "51", "52", "53", "54", "55", "56", "57"],  # Estado de México
    "MIC": ["58", "59", "60"],  # Michoacán
    "MOR": ["62"],  # Morelos
    "NAY": ["63"],  # Nayarit
    "NLE": ["64", "65", "66", "67"],  # Nuevo León
    "OAX": ["68", "69", "70", "71"],  # Oaxaca
    "PUE": ["72", "73", "74", "75"],  # Puebla
    "QUE": ["76"],  # Querétaro
    "ROO": ["77"],  # Quintana Roo
    "SLP": ["78", "79"],  # San Luis Potosí
    "SIN": ["80", "81", "82"],  # Sinaloa
    "SON": ["83", "84", "85"],  # Sonora
    "TAB": ["86"],  # Tabasco
    "TAM": ["87", "88", "89"],  # Tamaulipas
    "TLA": ["90"],  # Tlaxcala
    "VER": ["91", "92", "93", "94", "95", "96"],  # Veracruz
    "YUC": ["97"],  # Yucatán
    "ZAC": ["98", "99"],  # Zacatecas
}

# Índice inverso prefijo -> estado, construido una sola vez
_PREFIX_TO_STATE: Dict[str, str] = {
    prefix: state for state, prefixes in STATE_ZIP_PREFIXES.items() for prefix in prefixes
}


# ========================================
# CÓDIGOS POSTALES Y ESTADOS
# ========================================

def get_state_from_zipcode(zipcode: Optional[str]) -> Optional[str]:
    """
    Obtiene el código de estado a partir de un código postal.

    Args:
        zipcode: Código postal (5 dígitos)

    Returns:
        Código del estado (ej: 'TAB') o None si el prefijo no es conocido
    """
    if not zipcode or len(zipcode) < 2:
        return None
    return _PREFIX_TO_STATE.get(zipcode[:2])


def zipcode_belongs_to_state(zipcode: Optional[str], state_code: Optional[str]) -> bool:
    """Indica si un código postal pertenece al estado indicado."""
    if not zipcode or len(zipcode) < 2 or not state_code:
        return False
    return zipcode[:2] in STATE_ZIP_PREFIXES.get(state_code, [])


def is_valid_zipcode(zipcode: Any) -> bool:
    """Valida un código postal mexicano: exactamente 5 dígitos."""
    return isinstance(zipcode, str) and bool(_ZIPCODE_RE.match(zipcode))


def group_zipcodes(zipcodes: Any) -> Dict[str, List[str]]:
    """Separa una lista de coberturas en códigos individuales y rangos."""
    if not isinstance(zipcodes, list):
        return {"individual": [], "ranges": []}

    return {
        "individual": [z for z in zipcodes if is_valid_zipcode(z)],
        "ranges": [z for z in zipcodes if isinstance(z, str) and _ZIPCODE_RANGE_RE.match(z)],
    }


def _zipcode_in_range(zipcode: str, zip_range: str) -> bool:
    start, _, end = zip_range.partition("-")
    try:
        return int(start) <= int(zipcode) <= int(end)
    except ValueError:
        return False


# ========================================
# RESOLUCIÓN DE LA REGLA MÁS ESPECÍFICA
# ========================================

def find_most_specific_rule(zipcode: Optional[str], rules: Any) -> Optional[Mapping[str, Any]]:
    """
    Encuentra la regla de envío más específica para un código postal dado.

    Prioridad: código postal exacto > estado > nacional. Solo se consideran
    reglas activas (`activo` distinto de False). Si varias reglas empatan
    en el mismo nivel, gana la primera según el orden de entrada.

    Args:
        zipcode: Código postal del cliente (5 dígitos)
        rules: Lista de reglas de envío disponibles

    Returns:
        La regla más específica o None si ninguna aplica
    """
    if not zipcode or not isinstance(rules, list) or not rules:
        return None

    client_state = get_state_from_zipcode(zipcode)
    active_rules = [rule for rule in rules if rule.get("activo") is not False]

    # 1. Coincidencia exacta de código postal
    for rule in active_rules:
        if zipcode in (rule.get("zipcodes") or []):
            return rule

    # 2. Coincidencia por estado
    if client_state:
        state_code = f"{STATE_PREFIX}{client_state}"
        for rule in active_rules:
            if state_code in (rule.get("zipcodes") or []):
                return rule

    # 3. Cobertura nacional
    for rule in active_rules:
        if NATIONAL_KEYWORD in (rule.get("zipcodes") or []):
            return rule

    logger.debug(f"Sin regla de envío aplicable para el CP {zipcode}")
    return None


# ========================================
# VALIDACIÓN Y DESCRIPCIÓN DE REGLAS
# ========================================

def validate_shipping_rule(
    rule: Mapping[str, Any],
    existing_rules: Optional[Iterable[Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Valida la configuración de cobertura de una regla de envío.

    `existing_rules` se acepta por compatibilidad pero no se compara contra
    otras reglas: los solapamientos entre reglas se resuelven por orden.

    Returns:
        {"valid": True} o {"valid": False, "message": <motivo>}
    """
    zipcodes = rule.get("zipcodes") or []
    if not zipcodes:
        return {"valid": False, "message": "Debe definir al menos un código postal o área de cobertura"}

    if NATIONAL_KEYWORD in zipcodes and len(zipcodes) > 1:
        return {
            "valid": False,
            "message": "Si selecciona cobertura nacional, no debe incluir otros códigos o estados",
        }

    states = [code[len(STATE_PREFIX):] for code in zipcodes if code.startswith(STATE_PREFIX)]
    if len(set(states)) != len(states):
        return {"valid": False, "message": "Hay estados duplicados en la configuración"}

    for zipcode in (code for code in zipcodes if is_valid_zipcode(code)):
        state = get_state_from_zipcode(zipcode)
        if state and state in states:
            return {
                "valid": False,
                "message": f"El código postal {zipcode} ya está incluido en el estado {state}",
            }

    return {"valid": True}


def get_coverage_type(rule: Optional[Mapping[str, Any]]) -> str:
    """Describe el tipo de cobertura de una regla: Nacional, Regional o CP."""
    zipcodes = (rule or {}).get("zipcodes") or []
    if not zipcodes:
        return "No definido"
    if NATIONAL_KEYWORD in zipcodes:
        return "Nacional"
    if any(code.startswith(STATE_PREFIX) for code in zipcodes):
        return "Regional"
    return "CP"


def format_states_list(codes: Any, limit: int = 2) -> str:
    """Convierte una lista de coberturas en un texto corto de estados."""
    if not isinstance(codes, list):
        return ""

    states = [code[len(STATE_PREFIX):] for code in codes if isinstance(code, str) and code.startswith(STATE_PREFIX)]
    if not states:
        return ""
    if len(states) <= limit:
        return ", ".join(states)
    return f"{', '.join(states[:limit])} y {len(states) - limit} más"


def get_free_shipping_info(rule: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Indica si la regla ofrece envío gratis y bajo qué condición."""
    if not rule:
        return {"has_free_shipping": False}

    if rule.get("envio_gratis"):
        return {"has_free_shipping": True, "is_unconditional": True}

    min_amount = rule.get("monto_minimo_gratis") or 0
    if min_amount > 0:
        return {"has_free_shipping": True, "is_unconditional": False, "min_amount": min_amount}

    return {"has_free_shipping": False}


def calculate_rule_shipping_cost(rule: Mapping[str, Any], subtotal: float) -> float:
    """Costo de envío de una regla para un monto de compra dado."""
    info = get_free_shipping_info(rule)
    if info["has_free_shipping"] and (info["is_unconditional"] or subtotal >= info["min_amount"]):
        return 0.0
    return round(float(rule.get("precio_base") or 0), 2)


# ========================================
# ELEGIBILIDAD DE PRODUCTOS
# ========================================

def is_rule_valid_for_address(
    rule: Optional[Mapping[str, Any]],
    zipcode: Optional[str],
    state: Optional[str] = None,
) -> bool:
    """
    Comprueba si una regla cubre una dirección.

    Acepta cobertura nacional, código exacto, estado (explícito o deducido
    del código postal) y rangos de códigos postales.
    """
    if not rule:
        return False

    zipcodes = rule.get("zipcodes") or []
    if not zipcodes:
        return False

    if NATIONAL_KEYWORD in zipcodes:
        return True

    if zipcode and zipcode in zipcodes:
        return True

    state_code = (state or get_state_from_zipcode(zipcode) or "").upper()
    if state_code and f"{STATE_PREFIX}{state_code}" in zipcodes:
        return True

    if zipcode:
        return any(_zipcode_in_range(zipcode, code) for code in group_zipcodes(zipcodes)["ranges"])

    return False


def get_applicable_rules_for_product(
    product: Optional[Mapping[str, Any]],
    zipcode: Optional[str],
    rules: Optional[List[Mapping[str, Any]]],
) -> List[Mapping[str, Any]]:
    """
    Reglas asignadas al producto que además cubren la dirección.

    Un producto sin reglas asignadas no se puede enviar: no se generan
    opciones por defecto.
    """
    if not product or not zipcode or not rules:
        return []

    rule_ids = product.get("shipping_rule_ids") or []
    if not rule_ids:
        logger.warning(f"⚠️ Producto {product.get('product_id')} sin reglas de envío asignadas")
        return []

    applicable = [
        rule for rule in rules
        if rule.get("rule_id") in rule_ids
        and rule.get("activo") is not False
        and is_rule_valid_for_address(rule, zipcode)
    ]
    if not applicable:
        logger.warning(f"⚠️ Producto {product.get('product_id')} sin reglas aplicables para el CP {zipcode}")
    return applicable


def filter_shippable_products(
    cart_items: Optional[List[Mapping[str, Any]]],
    zipcode: Optional[str],
    rules: Optional[List[Mapping[str, Any]]],
    products: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Separa los items del carrito entre enviables y no enviables.

    `products` mapea product_id -> datos del producto (con sus
    shipping_rule_ids); si falta, se usan los datos del propio item.
    """
    if cart_items is None or not zipcode or rules is None:
        return {"eligible": [], "ineligible": []}

    products = products or {}
    eligible, ineligible = [], []
    for item in cart_items:
        product = products.get(item.get("product_id"), item)
        applicable = get_applicable_rules_for_product(product, zipcode, rules)
        if applicable:
            eligible.append({**item, "applicable_rules": applicable})
        else:
            ineligible.append(dict(item))

    return {"eligible": eligible, "ineligible": ineligible}
