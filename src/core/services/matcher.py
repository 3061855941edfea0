"""Reconciliación de elementos almacenados con elementos frescos de FerraWin.

Cuando una importación antigua no guardó `ferrawin_id`, hay que volver a
enlazar cada elemento del manager con su elemento de origen. Este módulo
establece una correspondencia 1:1 por fila y emite instrucciones de backfill.

Reglas:
- Función pura de sus dos entradas; determinista si el orden de entrada lo es.
- Un candidato fresco se consume con la clave compuesta `(fila, zelemento)`
  y no puede asignarse a dos elementos almacenados.
- Empates: gana el primer candidato libre en orden de lista (no hay
  asignación óptima global).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Sequence

from core.domain.errors import UnmatchedElementError
from core.domain.models import ActualizacionId, Element

TOLERANCIA_LONGITUD = 1.0
TOLERANCIA_PESO = 0.01
TOLERANCIA_LONGITUD_POSICIONAL = 10.0


class NivelMatch(str, Enum):
    """Nivel de coincidencia, en orden estricto de prioridad."""

    EXACTO = "exacto"
    FLEXIBLE = "flexible"
    POSICIONAL = "posicional"


def normalizar_fila(fila: str | None) -> str:
    """Quita ceros a la izquierda; `"000"` -> `"0"`, `""` -> `""`."""

    valor = (fila or "").strip()
    if not valor:
        return ""
    return valor.lstrip("0") or "0"


def _coincide_exacto(a: Element, b: Element) -> bool:
    return _coincide_flexible(a, b) and abs(a.peso - b.peso) < TOLERANCIA_PESO


def _coincide_flexible(a: Element, b: Element) -> bool:
    return (
        a.diametro == b.diametro
        and abs(a.longitud - b.longitud) < TOLERANCIA_LONGITUD
        and a.barras == b.barras
        and a.dobles_barra == b.dobles_barra
    )


def _coincide_posicional(a: Element, b: Element) -> bool:
    return a.diametro == b.diametro and abs(a.longitud - b.longitud) < TOLERANCIA_LONGITUD_POSICIONAL


_NIVELES: tuple[tuple[NivelMatch, Callable[[Element, Element], bool]], ...] = (
    (NivelMatch.EXACTO, _coincide_exacto),
    (NivelMatch.FLEXIBLE, _coincide_flexible),
    (NivelMatch.POSICIONAL, _coincide_posicional),
)


@dataclass(frozen=True)
class MatchCandidate:
    """Elemento fresco candidato dentro de una fila normalizada."""

    fila: str
    elemento: Element

    @property
    def clave(self) -> tuple[str, str]:
        return (self.fila, self.elemento.zelemento)


@dataclass
class MatchResult:
    updates: list[ActualizacionId] = field(default_factory=list)
    matched: int = 0
    no_matched: int = 0
    total_almacenados: int = 0
    total_frescos: int = 0
    por_nivel: Counter[str] = field(default_factory=Counter)
    sin_match: list[UnmatchedElementError] = field(default_factory=list)

    def a_dict(self) -> dict[str, object]:
        return {
            "updates": [u.model_dump() for u in self.updates],
            "matched": self.matched,
            "no_matched": self.no_matched,
            "total_almacenados": self.total_almacenados,
            "total_frescos": self.total_frescos,
        }


def _agrupar_por_fila(elementos: Iterable[Element]) -> dict[str, list[Element]]:
    grupos: dict[str, list[Element]] = {}
    for elemento in elementos:
        grupos.setdefault(normalizar_fila(elemento.fila), []).append(elemento)
    return grupos


def _buscar_candidato(
    almacenado: Element,
    candidatos: Sequence[MatchCandidate],
    consumidos: set[tuple[str, str]],
) -> tuple[NivelMatch, MatchCandidate] | None:
    for nivel, coincide in _NIVELES:
        for candidato in candidatos:
            if candidato.clave in consumidos:
                continue
            if coincide(almacenado, candidato.elemento):
                return nivel, candidato
    return None


def emparejar_elementos(
    almacenados: Sequence[Element],
    frescos: Sequence[Element],
) -> MatchResult:
    """Empareja elementos almacenados con elementos frescos, fila a fila."""

    resultado = MatchResult(total_almacenados=len(almacenados), total_frescos=len(frescos))
    frescos_por_fila = _agrupar_por_fila(frescos)
    consumidos: set[tuple[str, str]] = set()

    for fila, elementos_fila in _agrupar_por_fila(almacenados).items():
        candidatos = [MatchCandidate(fila=fila, elemento=e) for e in frescos_por_fila.get(fila, [])]

        if not candidatos:
            resultado.no_matched += len(elementos_fila)
            resultado.sin_match.extend(
                UnmatchedElementError(e.id, fila, "fila ausente en FerraWin") for e in elementos_fila
            )
            continue

        # Los que ya tienen un ferrawin_id vigente reservan su candidato antes
        # de que ningún otro elemento de la fila entre en los niveles.
        por_id = {c.elemento.ferrawin_id: c for c in candidatos if c.elemento.ferrawin_id}
        pendientes: list[Element] = []
        for almacenado in elementos_fila:
            vigente = por_id.get(almacenado.ferrawin_id) if almacenado.ferrawin_id else None
            if vigente is not None and vigente.clave not in consumidos:
                consumidos.add(vigente.clave)
                resultado.matched += 1
                continue
            pendientes.append(almacenado)

        for almacenado in pendientes:
            encontrado = _buscar_candidato(almacenado, candidatos, consumidos)
            if encontrado is None or almacenado.id is None:
                resultado.no_matched += 1
                motivo = "sin coincidencia en ningún nivel" if encontrado is None else "elemento sin id"
                resultado.sin_match.append(UnmatchedElementError(almacenado.id, fila, motivo))
                continue

            nivel, candidato = encontrado
            consumidos.add(candidato.clave)
            resultado.matched += 1
            resultado.por_nivel[nivel.value] += 1
            resultado.updates.append(
                ActualizacionId(
                    elemento_id=almacenado.id,
                    ferrawin_id=candidato.elemento.ferrawin_id
                    or f"{candidato.elemento.fila}-{candidato.elemento.zelemento}",
                )
            )

    return resultado
