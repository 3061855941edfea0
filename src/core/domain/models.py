"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Las filas de FerraWin llegan como bolsas de campos sin tipo; aquí viven las
  estructuras estrictas a las que se mapean en el borde del Builder.
- La serialización (`model_dump(mode="json")`) coincide con las claves que
  espera el manager remoto, así que no hay una capa de DTO aparte.

Nota:
- Estos modelos describen *qué* es una planilla, no *cómo* se extrae ni
  *cómo* se envía.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


class Longitud(BaseModel):
    """Tramo recto de la secuencia de doblado (mm)."""

    tipo: Literal["longitud"] = "longitud"
    valor: float


class Doblez(BaseModel):
    """Ángulo de doblez en grados; el signo indica el sentido."""

    tipo: Literal["doblez"] = "doblez"
    angulo: float


class Radio(BaseModel):
    """Radio de doblado (mm)."""

    tipo: Literal["radio"] = "radio"
    valor: float


Segment = Annotated[Union[Longitud, Doblez, Radio], Field(discriminator="tipo")]


class Element(BaseModel):
    """Una pieza de ferralla (barra recta o estribo) dentro de una fila.

    `ferrawin_id` es la clave estable entre sistemas una vez resuelta,
    con formato `"{fila}-{zelemento}"`.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | None = Field(
        default=None,
        description="Identificador asignado por el manager (solo lado almacenado).",
    )
    fila: str = ""
    zelemento: str = ""
    diametro: int = 0
    longitud: float = 0.0
    barras: int = 0
    dobles_barra: int = 0
    peso: float = 0.0
    marca: str = ""
    figura: str = ""
    dimensiones: str = ""
    secuencia_doblado: list[Segment] = Field(default_factory=list)
    ferrawin_id: str | None = None
    descripcion_fila: str = ""
    etiqueta: str = ""
    tipo_forma: str = ""
    zobjeto: str | None = None

    @field_validator(
        "fila", "zelemento", "marca", "figura", "dimensiones", "descripcion_fila", "etiqueta", "tipo_forma",
        mode="before",
    )
    @classmethod
    def _texto_plano(cls, value: Any) -> str:
        # El manager puede devolver la fila como número o null.
        return "" if value is None else str(value).strip()

    @field_validator("diametro", "barras", "dobles_barra", mode="before")
    @classmethod
    def _entero_plano(cls, value: Any) -> int:
        if value is None or value == "":
            return 0
        return int(float(value))

    @field_validator("longitud", "peso", mode="before")
    @classmethod
    def _decimal_plano(cls, value: Any) -> float:
        if value is None or value == "":
            return 0.0
        return float(value)

    @field_validator("ferrawin_id", mode="before")
    @classmethod
    def _id_opcional(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None


class Composicion(BaseModel):
    barras: list[Element] = Field(default_factory=list)
    estribos: list[Element] = Field(default_factory=list)


class ArmaduraLongitudinal(BaseModel):
    posicion: Literal["superior", "inferior", "piel"]
    cantidad: int
    diametro: int
    longitud: float


class ArmaduraTransversal(BaseModel):
    cantidad: int
    diametro: int
    separacion_aprox_cm: int
    dobleces: int = 0
    forma: str = ""


class Distribucion(BaseModel):
    """Vista derivada (no autoritativa) de la posición de las armaduras."""

    longitud_total: float = 0.0
    armadura_longitudinal: list[ArmaduraLongitudinal] = Field(default_factory=list)
    armadura_transversal: list[ArmaduraTransversal] = Field(default_factory=list)


class ResumenEntidad(BaseModel):
    total_barras: int = 0
    total_estribos: int = 0
    peso_total: float = 0.0
    longitud_ensamblaje: float = 0.0


class Entity(BaseModel):
    """Entidad estructural (pilar, viga, zuncho...) compuesta por elementos."""

    linea: str = ""
    marca: str = ""
    situacion: str = ""
    cantidad: int = 1
    miembros: int = 1
    modelo: str = ""
    cotas: str = ""
    composicion: Composicion = Field(default_factory=Composicion)
    distribucion: Distribucion = Field(default_factory=Distribucion)
    resumen: ResumenEntidad = Field(default_factory=ResumenEntidad)


class PiezaEnsamblaje(BaseModel):
    elemento: str = ""
    diametro: int = 0
    figura: str = ""
    cantidad: int = 0
    longitud: float = 0.0
    peso: float = 0.0
    miembros: int = 1
    barras_miembro: int = 0
    tipo_acero: str = ""
    maquina: str = ""
    cotas: str = ""


class ResumenEnsamblaje(BaseModel):
    total_elementos: int = 0
    cantidad_total: int = 0
    peso_total: float = 0.0


class Ensamblaje(BaseModel):
    """Agrupación de producción (PROD_DETO) identificada por su etiqueta."""

    etiqueta: str = ""
    nombre: str = ""
    elementos: list[PiezaEnsamblaje] = Field(default_factory=list)
    resumen: ResumenEnsamblaje = Field(default_factory=ResumenEnsamblaje)


_CAMPOS_CLIENTE_OBRA = ("codigo_cliente", "nombre_cliente", "codigo_obra", "nombre_obra")


class Planilla(BaseModel):
    """Agregado principal: una planilla de corte identificada por `codigo`.

    Por qué un agregado:
    - Es la unidad de extracción, de envío y de reanudación.
    - Una planilla sin elementos sigue siendo válida (`sin_elementos=True`).
    """

    codigo: str = Field(..., min_length=3, description="Código compuesto `{zconta}-{zcodigo}`.")
    descripcion: str | None = None
    seccion: str | None = None
    ensamblado: str | None = None
    fecha_creacion_ferrawin: str | None = None
    codigo_cliente: str = ""
    nombre_cliente: str = ""
    codigo_obra: str = ""
    nombre_obra: str = ""
    elementos: list[Element] = Field(default_factory=list)
    entidades: list[Entity] = Field(default_factory=list)
    ensamblajes: list[Ensamblaje] = Field(default_factory=list)
    tiene_ensamblajes: bool = False
    sin_elementos: bool = False

    @property
    def total_elementos(self) -> int:
        return len(self.elementos)

    def a_payload(self) -> dict[str, Any]:
        """Cuerpo JSON para el endpoint de sync.

        El manager resuelve cliente/obra por elemento, así que la cabecera se
        repite en cada uno.
        """

        data = self.model_dump(mode="json")
        cabecera = {
            "ensamblado": self.ensamblado or "",
            "seccion": self.seccion or "",
            "descripcion_planilla": self.descripcion or "",
            **{campo: getattr(self, campo) for campo in _CAMPOS_CLIENTE_OBRA},
        }
        data["elementos"] = [{**cabecera, **elemento} for elemento in data["elementos"]]
        return data


class ActualizacionId(BaseModel):
    """Instrucción de backfill: asignar `ferrawin_id` a un elemento almacenado."""

    elemento_id: int
    ferrawin_id: str


class DescripcionFila(BaseModel):
    """Descripción (`ZSITUACION`) de la fila de un elemento, para rellenar en el manager."""

    fila: str = ""
    descripcion_fila: str = ""

    @field_validator("fila", "descripcion_fila", mode="before")
    @classmethod
    def _texto_plano(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


class SyncAck(BaseModel):
    """Acuse del endpoint de sync (campos opcionales, el manager puede omitirlos)."""

    model_config = ConfigDict(extra="ignore")

    planillas_creadas: int = 0
    planillas_actualizadas: int = 0
    elementos_creados: int = 0
    entidades_creadas: int = 0
    raw: dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "planillas_creadas",
        "planillas_actualizadas",
        "elementos_creados",
        "entidades_creadas",
        mode="before",
    )
    @classmethod
    def _contador(cls, value: Any) -> int:
        if value is None or value == "":
            return 0
        return int(value)


class FiltroCodigos(BaseModel):
    """Alcance de una corrida: límite superior + ámbito inferior opcional.

    Reglas:
    - `desde_codigo` es inclusivo (`codigo <= desde_codigo`), porque se itera en
      orden descendente y así se reanuda una corrida interrumpida.
    - `anio` filtra por ZCONTA; si no, `fecha_desde`/`fecha_hasta`; si no y
      `todos` es falso, los últimos `dias_atras` días.
    """

    anio: int | None = Field(default=None, ge=1900, le=9999)
    fecha_desde: date | None = None
    fecha_hasta: date | None = None
    dias_atras: int | None = Field(default=None, ge=0)
    todos: bool = False
    desde_codigo: str | None = None
    limite: int | None = Field(default=None, ge=1)
