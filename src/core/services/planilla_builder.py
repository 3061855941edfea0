"""Builder canónico: filas sueltas de FerraWin -> agregados tipados.

Este es el único borde donde se accede a campos por nombre sobre filas sin
tipo. Todo lo que sale de aquí son modelos Pydantic con valores ya
coaccionados (faltantes -> 0 / ""), nunca `None` propagado a consumidores.

Las funciones `construir_*` son puras; `cargar_planilla` es la única que
habla con el colaborador de extracción.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Sequence

from loguru import logger

from core.domain.bending import formatear_numero, parsear_secuencia_doblado, redondear
from core.domain.errors import EmptySourceError, MalformedCodeError
from core.domain.models import (
    ArmaduraLongitudinal,
    ArmaduraTransversal,
    Composicion,
    Distribucion,
    Element,
    Ensamblaje,
    Entity,
    PiezaEnsamblaje,
    Planilla,
    ResumenEnsamblaje,
    ResumenEntidad,
)
from core.interfaces.source import PlanillaSource, RawRow

MARCA_DOBLADO = "Doblado"
"""Valor de ZSTRBENT que marca un elemento como doblado aunque no cuente dobleces."""


def _texto(valor: Any) -> str:
    if valor is None:
        return ""
    return str(valor).strip()


def _texto_opcional(valor: Any) -> str | None:
    if valor is None:
        return None
    if isinstance(valor, datetime):
        return valor.strftime("%Y-%m-%d %H:%M:%S")
    return str(valor).strip()


def _entero(valor: Any, por_defecto: int = 0) -> int:
    if valor is None:
        return por_defecto
    try:
        return int(float(str(valor).strip()))
    except (ValueError, OverflowError):
        return por_defecto


def _decimal(valor: Any) -> float:
    if valor is None:
        return 0.0
    try:
        return float(valor)
    except (TypeError, ValueError):
        return 0.0


def dividir_codigo(codigo: str) -> tuple[str, str]:
    """`"2025-008634"` -> `("2025", "008634")`."""

    partes = (codigo or "").split("-", 1)
    if len(partes) != 2 or not partes[0].strip() or not partes[1].strip():
        raise MalformedCodeError(codigo)
    return partes[0].strip(), partes[1].strip()


def construir_ferrawin_id(fila: str, zelemento: str) -> str | None:
    if not fila or not zelemento:
        return None
    return f"{fila}-{zelemento}"


def construir_dimensiones(dobles_barra: int, figura_empaquetada: Any, longitud: float) -> str:
    """Campo de presentación `dimensiones`.

    Sin dobleces es la longitud formateada; con dobleces, la cadena
    empaquetada recortada (o la longitud si viene vacía).
    """

    if dobles_barra == 0:
        return formatear_numero(longitud)
    return _texto(figura_empaquetada) or formatear_numero(longitud)


def construir_elemento(row: RawRow) -> Element:
    """Elemento de planilla (ORD_BAR)."""

    fila = _texto(row.get("fila"))
    zelemento = _texto(row.get("zelemento"))
    longitud = _decimal(row.get("longitud"))
    dobles_barra = _entero(row.get("dobles_barra"))
    figura_empaquetada = row.get("zfigura")

    return Element(
        fila=fila,
        zelemento=zelemento,
        descripcion_fila=_texto(row.get("descripcion_fila")),
        marca=_texto(row.get("marca")),
        diametro=_entero(row.get("diametro")),
        figura=_texto(row.get("figura")),
        longitud=longitud,
        dobles_barra=dobles_barra,
        barras=_entero(row.get("barras")),
        peso=_decimal(row.get("peso")),
        dimensiones=construir_dimensiones(dobles_barra, figura_empaquetada, longitud),
        secuencia_doblado=parsear_secuencia_doblado(_texto(figura_empaquetada)),
        etiqueta=_texto(row.get("etiqueta")),
        ferrawin_id=construir_ferrawin_id(fila, zelemento),
    )


def construir_elemento_fresco(row: RawRow) -> Element:
    """Elemento re-consultado para el matcher; siempre lleva `ferrawin_id`."""

    fila = _texto(row.get("fila"))
    zelemento = _texto(row.get("zelemento"))
    return Element(
        ferrawin_id=f"{fila}-{zelemento}",
        fila=fila,
        zelemento=zelemento,
        diametro=_entero(row.get("diametro")),
        longitud=_decimal(row.get("longitud")),
        barras=_entero(row.get("barras")),
        dobles_barra=_entero(row.get("dobles_barra")),
        peso=_decimal(row.get("peso")),
        marca=_texto(row.get("marca")),
        figura=_texto(row.get("figura")),
    )


def _posicion_longitudinal(indice: int) -> str:
    if indice < 2:
        return "superior"
    if indice < 4:
        return "inferior"
    return "piel"


def calcular_distribucion(
    barras: Sequence[Element],
    estribos: Sequence[Element],
    longitud_total: float,
) -> Distribucion:
    longitudinal = [
        ArmaduraLongitudinal(
            posicion=_posicion_longitudinal(indice),
            cantidad=barra.barras,
            diametro=barra.diametro,
            longitud=barra.longitud,
        )
        for indice, barra in enumerate(barras)
    ]

    transversal: list[ArmaduraTransversal] = []
    for estribo in estribos:
        cantidad = estribo.barras
        separacion = 0
        if longitud_total > 0 and cantidad > 1:
            separacion = int(redondear(longitud_total / cantidad))
        transversal.append(
            ArmaduraTransversal(
                cantidad=cantidad,
                diametro=estribo.diametro,
                separacion_aprox_cm=separacion,
                dobleces=estribo.dobles_barra,
                forma=estribo.dimensiones,
            )
        )

    return Distribucion(
        longitud_total=longitud_total,
        armadura_longitudinal=longitudinal,
        armadura_transversal=transversal,
    )


def construir_entidad(entidad: RawRow, elementos: Iterable[RawRow]) -> Entity:
    """Entidad (ORD_DET) con su composición de barras y estribos (ORD_BAR).

    Clasificación: estribo si tiene dobleces o su tipo de forma es
    `MARCA_DOBLADO`; si no, barra recta. Las barras pueden llevar patilla
    (un doblez) y conservan su secuencia.
    """

    linea = _texto(entidad.get("linea"))
    barras: list[Element] = []
    estribos: list[Element] = []
    peso_total = 0.0
    longitud_maxima = 0.0

    for row in elementos:
        dobleces = _entero(row.get("dobleces"))
        tipo_forma = _texto(row.get("tipo_forma"))
        longitud = _decimal(row.get("longitud"))
        dimensiones_crudas = _texto(row.get("dimensiones"))
        peso = _decimal(row.get("peso"))
        zobjeto = row.get("zobjeto")

        elemento = Element(
            fila=linea,
            zelemento=_texto(row.get("elemento")),
            barras=_entero(row.get("cantidad")),
            diametro=_entero(row.get("diametro")),
            longitud=longitud,
            peso=peso,
            figura=_texto(row.get("figura")),
            dobles_barra=dobleces,
            tipo_forma=tipo_forma,
            zobjeto=None if zobjeto is None else str(zobjeto),
            dimensiones=dimensiones_crudas,
            secuencia_doblado=parsear_secuencia_doblado(dimensiones_crudas),
        )
        peso_total += peso

        if dobleces > 0 or tipo_forma == MARCA_DOBLADO:
            estribos.append(elemento)
        else:
            barras.append(elemento)
            longitud_maxima = max(longitud_maxima, longitud)

    longitud_ensamblaje = _decimal(entidad.get("longitud_ensamblaje"))
    if longitud_ensamblaje <= 0:
        longitud_ensamblaje = longitud_maxima

    return Entity(
        linea=linea,
        marca=_texto(entidad.get("marca")),
        situacion=_texto(entidad.get("situacion")),
        cantidad=_entero(entidad.get("cantidad"), por_defecto=1),
        miembros=_entero(entidad.get("miembros"), por_defecto=1),
        modelo=_texto(entidad.get("modelo")),
        cotas=_texto(entidad.get("cotas")),
        composicion=Composicion(barras=barras, estribos=estribos),
        distribucion=calcular_distribucion(barras, estribos, longitud_maxima),
        resumen=ResumenEntidad(
            total_barras=len(barras),
            total_estribos=len(estribos),
            peso_total=redondear(peso_total, 2),
            longitud_ensamblaje=longitud_ensamblaje,
        ),
    )


def construir_ensamblaje(grupo: RawRow, piezas: Iterable[RawRow]) -> Ensamblaje:
    """Ensamblaje de producción (PROD_DETO) agrupado por etiqueta."""

    elementos = [
        PiezaEnsamblaje(
            elemento=_texto(row.get("elemento")),
            diametro=_entero(row.get("diametro")),
            figura=_texto(row.get("figura")),
            cantidad=_entero(row.get("cantidad")),
            longitud=_decimal(row.get("longitud")),
            peso=_decimal(row.get("peso")),
            miembros=_entero(row.get("miembros"), por_defecto=1),
            barras_miembro=_entero(row.get("barras_miembro")),
            tipo_acero=_texto(row.get("tipo_acero")),
            maquina=_texto(row.get("maquina")),
            cotas=_texto(row.get("cotas")),
        )
        for row in piezas
    ]

    return Ensamblaje(
        etiqueta=_texto(grupo.get("etiqueta_codigo")),
        nombre=_texto(grupo.get("nombre")),
        elementos=elementos,
        resumen=ResumenEnsamblaje(
            total_elementos=len(elementos),
            cantidad_total=sum(p.cantidad for p in elementos),
            peso_total=redondear(sum(p.peso for p in elementos), 2),
        ),
    )


def _cabecera(row: RawRow) -> dict[str, Any]:
    return {
        "descripcion": _texto_opcional(row.get("descripcion_planilla")),
        "seccion": _texto_opcional(row.get("seccion")),
        "ensamblado": _texto_opcional(row.get("ensamblado")),
        "fecha_creacion_ferrawin": _texto_opcional(row.get("fecha")),
        "codigo_cliente": _texto(row.get("codigo_cliente")),
        "nombre_cliente": _texto(row.get("nombre_cliente")),
        "codigo_obra": _texto(row.get("codigo_obra")),
        "nombre_obra": _texto(row.get("nombre_obra")),
    }


def construir_planilla(
    codigo: str,
    filas: Sequence[RawRow],
    *,
    cabecera: RawRow | None = None,
    entidades: Sequence[Entity] = (),
    ensamblajes: Sequence[Ensamblaje] = (),
) -> Planilla:
    """Agregado `Planilla`.

    Sin filas se usa la cabecera suelta (`sin_elementos=True`); sin filas ni
    cabecera no hay nada que enviar y se lanza `EmptySourceError`.
    """

    if filas:
        datos_cabecera = _cabecera(filas[0])
        elementos = [construir_elemento(row) for row in filas]
    elif cabecera is not None:
        datos_cabecera = _cabecera(cabecera)
        elementos = []
    else:
        raise EmptySourceError(codigo)

    return Planilla(
        codigo=codigo,
        **datos_cabecera,
        elementos=elementos,
        entidades=list(entidades),
        ensamblajes=list(ensamblajes),
        tiene_ensamblajes=bool(ensamblajes),
        sin_elementos=not filas,
    )


def cargar_planilla(source: PlanillaSource, codigo: str) -> Planilla:
    """Extrae y construye la planilla completa de un código."""

    dividir_codigo(codigo)

    filas = source.filas_planilla(codigo)
    cabecera = None if filas else source.cabecera_planilla(codigo)
    if not filas and cabecera is None:
        raise EmptySourceError(codigo)

    entidades = [construir_entidad(grupo, elementos) for grupo, elementos in source.entidades_planilla(codigo)]
    ensamblajes = [construir_ensamblaje(grupo, piezas) for grupo, piezas in source.ensamblajes_planilla(codigo)]

    logger.debug(
        "Planilla {} construida: {} elementos, {} entidades, {} ensamblajes",
        codigo,
        len(filas),
        len(entidades),
        len(ensamblajes),
    )
    return construir_planilla(
        codigo,
        filas,
        cabecera=cabecera,
        entidades=entidades,
        ensamblajes=ensamblajes,
    )
