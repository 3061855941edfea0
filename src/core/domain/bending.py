"""Geometría de doblado: parser de la secuencia empaquetada y formateo.

Formato de ZFIGURA: tokens separados por TAB, p.ej. `"345\\t90d\\t30"`.
- `Xd`: ángulo de doblez en grados (positivo o negativo).
- `Xr`: radio de doblado en mm.
- número sin sufijo: tramo recto en mm.

Todo aquí es puro: sin I/O y sin logging.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from core.domain.models import Doblez, Longitud, Radio, Segment

SEPARADOR = "\t"

_DOBLEZ_RE = re.compile(r"^(-?\d+\.?\d*)d$")
_RADIO_RE = re.compile(r"^(\d+\.?\d*)r$")
_NUMERO_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)$")


def parsear_secuencia_doblado(texto: str | None) -> list[Segment]:
    """Convierte la cadena empaquetada en una lista ordenada de segmentos.

    Los tokens que no encajan (incluidos los vacíos) se descartan en silencio.
    """

    if not texto:
        return []

    segmentos: list[Segment] = []
    for parte in texto.split(SEPARADOR):
        token = parte.strip()
        if not token:
            continue

        match = _DOBLEZ_RE.match(token)
        if match:
            segmentos.append(Doblez(angulo=float(match.group(1))))
            continue

        match = _RADIO_RE.match(token)
        if match:
            segmentos.append(Radio(valor=float(match.group(1))))
            continue

        if _NUMERO_RE.match(token):
            segmentos.append(Longitud(valor=float(token)))

    return segmentos


def redondear(valor: float, decimales: int = 0) -> float:
    """Redondeo half-up (alejándose de cero), no el bancario de `round()`."""

    try:
        cuanto = Decimal(1).scaleb(-decimales)
        return float(Decimal(str(valor)).quantize(cuanto, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0


def formatear_numero(valor: Any) -> str:
    """Formatea una longitud sin decimales innecesarios.

    300.000000 -> "300"
    300.5 -> "300.5"
    300.456 -> "300.46"
    """

    if valor is None or valor == "":
        return ""

    try:
        numero = float(valor)
    except (TypeError, ValueError):
        numero = 0.0

    redondeado = redondear(numero, 2)
    if redondeado == int(redondeado):
        return str(int(redondeado))

    return f"{redondeado:.2f}".rstrip("0").rstrip(".")
