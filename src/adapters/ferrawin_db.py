"""Adaptador de extracción sobre la base SQL Server de FerraWin.

Por qué SQLAlchemy Core (`text()`):
- Las consultas son de solo lectura sobre un esquema ajeno: no hay ORM que mapear.
- Parámetros enlazados siempre (nada de interpolar códigos en el SQL).
- El motor (`mssql+pyodbc`) es sustituible por cualquier URL en tests/diagnóstico.

Las filas se devuelven como dicts con los alias que entiende el Builder.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from core.config import AppSettings
from core.domain.errors import ConnectivityError
from core.domain.models import FiltroCodigos
from core.services.planilla_builder import dividir_codigo

_CODIGO = "(oh.ZCONTA + '-' + oh.ZCODIGO)"

_SQL_FILAS = """
    SELECT
        p.ZCODCLI AS codigo_cliente,
        p.ZCLIENTE AS nombre_cliente,
        p.ZCODIGO AS codigo_obra,
        p.ZNOMBRE AS nombre_obra,
        p.ZPOBLA AS ensamblado,
        oh.ZMODULO AS seccion,
        oh.ZFECHA AS fecha,
        oh.ZNOMBRE AS descripcion_planilla,
        ob.ZCODLIN AS fila,
        ob.ZELEMENTO AS zelemento,
        od.ZSITUACION AS descripcion_fila,
        ob.ZMARCA AS marca,
        ob.ZDIAMETRO AS diametro,
        ob.ZCODMODELO AS figura,
        ob.ZLONGTESTD AS longitud,
        ob.ZNUMBEND AS dobles_barra,
        ob.ZCANTIDAD AS barras,
        ob.ZPESOTESTD AS peso,
        ob.ZFIGURA AS zfigura,
        COALESCE(pd.ZETIQUETA, '') AS etiqueta
    FROM ORD_BAR ob
    LEFT JOIN ORD_HEAD oh ON ob.ZCONTA = oh.ZCONTA AND ob.ZCODIGO = oh.ZCODIGO
    LEFT JOIN ORD_DET od ON ob.ZCONTA = od.ZCONTA AND ob.ZCODIGO = od.ZCODIGO
        AND ob.ZORDEN = od.ZORDEN AND ob.ZCODLIN = od.ZCODLIN
    LEFT JOIN PROJECT p ON oh.ZCODOBRA = p.ZCODIGO
    LEFT JOIN PROD_DETO pd ON ob.ZCONTA = pd.ZCONTA AND ob.ZCODIGO = pd.ZCODPLA
        AND ob.ZCODLIN = pd.ZCODLIN AND ob.ZELEMENTO = pd.ZELEMENTO
    WHERE ob.ZCONTA = :zconta AND ob.ZCODIGO = :zcodigo
    ORDER BY ob.ZCODLIN, ob.ZELEMENTO
"""

_SQL_CABECERA = """
    SELECT
        p.ZCODCLI AS codigo_cliente,
        p.ZCLIENTE AS nombre_cliente,
        p.ZCODIGO AS codigo_obra,
        p.ZNOMBRE AS nombre_obra,
        p.ZPOBLA AS ensamblado,
        oh.ZMODULO AS seccion,
        oh.ZFECHA AS fecha,
        oh.ZNOMBRE AS descripcion_planilla
    FROM ORD_HEAD oh
    LEFT JOIN PROJECT p ON oh.ZCODOBRA = p.ZCODIGO
    WHERE oh.ZCONTA = :zconta AND oh.ZCODIGO = :zcodigo
"""

_SQL_ENTIDADES = """
    SELECT
        od.ZCODLIN AS linea,
        od.ZMARCA AS marca,
        od.ZSITUACION AS situacion,
        od.ZCANTIDAD AS cantidad,
        od.ZMEMBERS AS miembros,
        od.ZCODMODELO AS modelo,
        di.ZCOTAS AS cotas,
        di.ZLONGITUD AS longitud_ensamblaje
    FROM ORD_DET od
    LEFT JOIN PROD_DETI di ON od.ZCONTA = di.ZCONTA
        AND od.ZCODIGO = di.ZCODPLA
        AND od.ZCODLIN = di.ZCODLIN
    WHERE od.ZCONTA = :zconta AND od.ZCODIGO = :zcodigo
    ORDER BY od.ZCODLIN
"""

_SQL_ELEMENTOS_ENTIDAD = """
    SELECT
        ob.ZELEMENTO AS elemento,
        ob.ZCANTIDAD AS cantidad,
        ob.ZDIAMETRO AS diametro,
        ob.ZLONGTESTD AS longitud,
        ob.ZNUMBEND AS dobleces,
        ob.ZFIGURA AS dimensiones,
        ob.ZPESOTESTD AS peso,
        ob.ZSTRBENT AS tipo_forma,
        ob.ZCODMODELO AS figura,
        ob.ZOBJETO AS zobjeto
    FROM ORD_BAR ob
    WHERE ob.ZCONTA = :zconta AND ob.ZCODIGO = :zcodigo AND ob.ZCODLIN = :zcodlin
    ORDER BY ob.ZELEMENTO
"""

_SQL_ENSAMBLAJES = """
    SELECT DISTINCT
        ZETIQUETAC AS etiqueta_codigo,
        ZSITUACION AS nombre
    FROM PROD_DETO
    WHERE ZCONTA = :zconta AND ZCODPLA = :zcodigo
    ORDER BY ZETIQUETAC
"""

_SQL_PIEZAS_ENSAMBLAJE = """
    SELECT
        ZELEMENTO AS elemento,
        ZDIAMETRO AS diametro,
        ZCODMODELO AS figura,
        ZCANTIDAD AS cantidad,
        ZLONGITUD AS longitud,
        ZPESO AS peso,
        ZMEMBERS AS miembros,
        ZBARMEMBER AS barras_miembro,
        ZTIPO AS tipo_acero,
        ZMAQUINA AS maquina,
        ZCOTAS AS cotas
    FROM PROD_DETO
    WHERE ZCONTA = :zconta AND ZCODPLA = :zcodigo AND ZETIQUETAC = :etiqueta
    ORDER BY ZELEMENTO
"""

_SQL_ELEMENTOS_FRESCOS = """
    SELECT
        ob.ZCODLIN AS fila,
        ob.ZELEMENTO AS zelemento,
        ob.ZDIAMETRO AS diametro,
        ob.ZLONGTESTD AS longitud,
        ob.ZCANTIDAD AS barras,
        ob.ZNUMBEND AS dobles_barra,
        ob.ZPESOTESTD AS peso,
        ob.ZMARCA AS marca,
        ob.ZCODMODELO AS figura
    FROM ORD_BAR ob
    WHERE ob.ZCONTA = :zconta AND ob.ZCODIGO = :zcodigo
    ORDER BY ob.ZCODLIN, ob.ZELEMENTO
"""

_SQL_DESCRIPCIONES_FILA = """
    SELECT
        ob.ZCODLIN AS fila,
        od.ZSITUACION AS descripcion_fila
    FROM ORD_BAR ob
    LEFT JOIN ORD_DET od ON ob.ZCONTA = od.ZCONTA
        AND ob.ZCODIGO = od.ZCODIGO
        AND ob.ZCODLIN = od.ZCODLIN
    WHERE ob.ZCONTA = :zconta AND ob.ZCODIGO = :zcodigo
    ORDER BY ob.ZCODLIN
"""


def build_database_url(settings: AppSettings) -> URL | str:
    if settings.ferrawin_database_url:
        return settings.ferrawin_database_url
    return URL.create(
        "mssql+pyodbc",
        username=settings.ferrawin_username,
        password=settings.ferrawin_password,
        host=settings.ferrawin_host,
        port=settings.ferrawin_port,
        database=settings.ferrawin_database,
        query={"driver": settings.ferrawin_odbc_driver, "TrustServerCertificate": "yes"},
    )


def create_engine_from_settings(settings: AppSettings) -> Engine:
    return create_engine(build_database_url(settings), pool_pre_ping=True)


def construir_where(filtro: FiltroCodigos, *, dias_atras_defecto: int, hoy: date | None = None) -> tuple[str, dict[str, Any]]:
    """Cláusula WHERE (o "") y parámetros para listar códigos de ORD_HEAD."""

    hoy = hoy or date.today()
    clausulas: list[str] = []
    params: dict[str, Any] = {}

    if filtro.anio is not None:
        clausulas.append("oh.ZCONTA = :anio")
        params["anio"] = str(filtro.anio)
    elif filtro.fecha_desde is not None:
        clausulas.append("oh.ZFECHA >= :fecha_desde AND oh.ZFECHA < :fecha_hasta")
        params["fecha_desde"] = datetime.combine(filtro.fecha_desde, time.min)
        params["fecha_hasta"] = datetime.combine((filtro.fecha_hasta or hoy) + timedelta(days=1), time.min)
    elif not filtro.todos:
        dias = filtro.dias_atras if filtro.dias_atras is not None else dias_atras_defecto
        clausulas.append("oh.ZFECHA >= :fecha_desde")
        params["fecha_desde"] = datetime.combine(hoy - timedelta(days=dias), time.min)

    if filtro.desde_codigo:
        clausulas.append(f"{_CODIGO} <= :desde_codigo")
        params["desde_codigo"] = filtro.desde_codigo

    where = f"WHERE {' AND '.join(clausulas)}" if clausulas else ""
    return where, params


class FerrawinDatabase:
    """Implementación de `PlanillaSource` sobre SQL Server."""

    def __init__(self, engine: Engine, *, dias_atras_defecto: int = 730) -> None:
        self._engine = engine
        self._dias_atras_defecto = dias_atras_defecto

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "FerrawinDatabase":
        return cls(create_engine_from_settings(settings), dias_atras_defecto=settings.sync_dias_atras)

    def _fetch(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        with self._engine.connect() as conn:
            result = conn.execute(text(sql), params or {})
            return [dict(row) for row in result.mappings()]

    def _params(self, codigo: str) -> dict[str, Any]:
        zconta, zcodigo = dividir_codigo(codigo)
        return {"zconta": zconta, "zcodigo": zcodigo}

    def listar_codigos(self, filtro: FiltroCodigos) -> list[str]:
        where, params = construir_where(filtro, dias_atras_defecto=self._dias_atras_defecto)
        sql = f"SELECT DISTINCT {_CODIGO} AS codigo FROM ORD_HEAD oh {where} ORDER BY codigo DESC"
        codigos = [str(row["codigo"]).strip() for row in self._fetch(sql, params)]
        logger.debug("Códigos de planillas obtenidos: {} ({})", len(codigos), params)
        return codigos

    def filas_planilla(self, codigo: str) -> list[dict[str, Any]]:
        return self._fetch(_SQL_FILAS, self._params(codigo))

    def cabecera_planilla(self, codigo: str) -> dict[str, Any] | None:
        filas = self._fetch(_SQL_CABECERA, self._params(codigo))
        return filas[0] if filas else None

    def entidades_planilla(self, codigo: str) -> list[tuple[dict[str, Any], list[dict[str, Any]]]]:
        params = self._params(codigo)
        resultado = []
        for entidad in self._fetch(_SQL_ENTIDADES, params):
            elementos = self._fetch(_SQL_ELEMENTOS_ENTIDAD, {**params, "zcodlin": entidad["linea"]})
            resultado.append((entidad, elementos))
        return resultado

    def ensamblajes_planilla(self, codigo: str) -> list[tuple[dict[str, Any], list[dict[str, Any]]]]:
        params = self._params(codigo)
        resultado = []
        for grupo in self._fetch(_SQL_ENSAMBLAJES, params):
            piezas = self._fetch(_SQL_PIEZAS_ENSAMBLAJE, {**params, "etiqueta": grupo["etiqueta_codigo"]})
            resultado.append((grupo, piezas))
        return resultado

    def elementos_frescos(self, codigo: str) -> list[dict[str, Any]]:
        return self._fetch(_SQL_ELEMENTOS_FRESCOS, self._params(codigo))

    def descripciones_fila(self, codigo: str) -> list[dict[str, Any]]:
        return self._fetch(_SQL_DESCRIPCIONES_FILA, self._params(codigo))

    def estadisticas(self) -> dict[str, Any]:
        total_planillas = self._fetch(
            f"SELECT COUNT(DISTINCT {_CODIGO}) AS total FROM ORD_HEAD oh"
        )[0]["total"]
        total_elementos = self._fetch("SELECT COUNT(*) AS total FROM ORD_BAR")[0]["total"]
        fechas = self._fetch(
            "SELECT MIN(ZFECHA) AS primera, MAX(ZFECHA) AS ultima FROM ORD_HEAD WHERE ZFECHA IS NOT NULL"
        )[0]
        por_anio = self._fetch(
            f"""
            SELECT YEAR(oh.ZFECHA) AS anio, COUNT(DISTINCT {_CODIGO}) AS planillas
            FROM ORD_HEAD oh
            WHERE oh.ZFECHA IS NOT NULL
            GROUP BY YEAR(oh.ZFECHA)
            ORDER BY anio DESC
            """
        )
        return {
            "total_planillas": total_planillas,
            "total_elementos": total_elementos,
            "fecha_primera": fechas["primera"],
            "fecha_ultima": fechas["ultima"],
            "por_anio": por_anio,
        }

    def test_connection(self) -> bool:
        try:
            self._fetch("SELECT 1 AS ok")
        except SQLAlchemyError as exc:
            logger.error("Error conectando a FerraWin: {}", exc)
            return False
        return True

    def ensure_connection(self) -> None:
        """Como `test_connection`, pero lanza `ConnectivityError` (fatal al arrancar)."""

        if not self.test_connection():
            raise ConnectivityError(f"No se pudo conectar a FerraWin ({self._engine.url.host})")
        logger.info("Conexión a FerraWin OK")

    def close(self) -> None:
        self._engine.dispose()
