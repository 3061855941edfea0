"""Motor de envío por lotes resiliente.

Diseño (resumen):
- Un único worker secuencial: una planilla se construye a la vez y solo hay
  un lote en vuelo.
- Los lotes se cierran al alcanzar el máximo de planillas O el máximo de
  elementos (las planillas varían muchísimo en tamaño).
- Cada lote se reintenta con backoff exponencial; si agota los reintentos
  no se descarta: se encola y la corrida sigue.
- Un error ajeno al transporte (p.ej. un bug del cliente) no se reintenta
  en el momento: el lote va directo a la pasada final.
- Al final, tras una espera fija, una pasada de recuperación reintenta los
  lotes fallidos con más paciencia.
- Pausa cooperativa: la señal se relee antes de cada unidad.

Garantía: at-least-once. Una planilla cuenta como procesada solo tras el
acuse de un lote que la contiene; el manager hace upsert, así que los
duplicados entre reintentos se toleran allí.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

from loguru import logger

from core.domain.errors import (
    EmptySourceError,
    MalformedCodeError,
    RetryExhaustedError,
    TerminalBatchError,
    TransferError,
)
from core.domain.models import Planilla
from core.interfaces.cancellation import NeverPause, PauseSignal
from core.interfaces.remote import PlanillaSender

Sleep = Callable[[float], Awaitable[None]]
CargarPlanilla = Callable[[str], Planilla]


@dataclass(frozen=True)
class DispatchPolicy:
    """Límites de lote y política de reintentos."""

    max_planillas_por_lote: int = 5
    max_elementos_por_lote: int = 1000
    max_reintentos: int = 3
    delay_base: float = 5.0
    espera_recuperacion: float = 30.0
    reintentos_extra_recuperacion: int = 2
    factor_delay_recuperacion: float = 2.0


def calcular_backoff(intento: int, delay_base: float) -> float:
    """Espera previa al intento `intento` (1-based); el primero no espera."""

    if intento < 2:
        return 0.0
    return delay_base * 2 ** (intento - 2)


@dataclass
class Lote:
    planillas: list[Planilla] = field(default_factory=list)
    elementos: int = 0

    def agregar(self, planilla: Planilla) -> None:
        self.planillas.append(planilla)
        self.elementos += planilla.total_elementos

    def lleno(self, policy: DispatchPolicy) -> bool:
        return (
            len(self.planillas) >= policy.max_planillas_por_lote
            or self.elementos >= policy.max_elementos_por_lote
        )

    @property
    def codigos(self) -> list[str]:
        return [p.codigo for p in self.planillas]

    def __len__(self) -> int:
        return len(self.planillas)


@dataclass
class LoteFallido:
    lote: Lote
    error: str

    @property
    def codigos(self) -> list[str]:
        return self.lote.codigos


@dataclass
class RecoveryResult:
    recuperados: int = 0
    lotes: int = 0
    fallidos_definitivos: list[TerminalBatchError] = field(default_factory=list)


@dataclass
class SyncSummary:
    total: int = 0
    procesadas: int = 0
    vacias: int = 0
    errores: int = 0
    recuperados: int = 0
    lotes_enviados: int = 0
    no_sincronizadas: list[list[str]] = field(default_factory=list)
    pausado: bool = False
    punto_reanudacion: str | None = None


@dataclass
class DispatchHooks:
    """Callbacks opcionales para la capa de UI (progreso)."""

    progreso: Callable[[int, int, str], None] | None = None


class BatchDispatcher:
    """Orquesta extracción, agrupación y envío de planillas."""

    def __init__(
        self,
        *,
        sender: PlanillaSender,
        policy: DispatchPolicy | None = None,
        pause_signal: PauseSignal | None = None,
        sleep: Sleep = asyncio.sleep,
        hooks: DispatchHooks | None = None,
    ) -> None:
        self._sender = sender
        self._policy = policy or DispatchPolicy()
        self._pause = pause_signal or NeverPause()
        self._sleep = sleep
        self._hooks = hooks or DispatchHooks()
        self._numero_lote = 0

    async def run(self, codigos: Sequence[str], cargar: CargarPlanilla) -> SyncSummary:
        total = len(codigos)
        resumen = SyncSummary(total=total)
        lote = Lote()
        fallidos: list[LoteFallido] = []

        for indice, codigo in enumerate(codigos, start=1):
            if self._pause.is_set():
                await self._pausar(resumen, lote, fallidos, codigo_actual=codigo)
                return resumen

            progreso = f"[{indice}/{total}]"
            if self._hooks.progreso:
                self._hooks.progreso(indice, total, codigo)

            try:
                planilla = cargar(codigo)
            except EmptySourceError:
                logger.warning("{} Sin datos para formatear: {}", progreso, codigo)
                resumen.vacias += 1
                resumen.punto_reanudacion = codigo
                continue
            except MalformedCodeError as exc:
                logger.warning("{} {}", progreso, exc)
                resumen.errores += 1
                resumen.punto_reanudacion = codigo
                continue
            except Exception as exc:
                logger.error("{} Excepción en {}: {}", progreso, codigo, exc)
                resumen.errores += 1
                resumen.punto_reanudacion = codigo
                continue

            if planilla.sin_elementos:
                logger.info("{} Preparando {} (sin elementos - solo cabecera)", progreso, codigo)
            else:
                logger.info("{} Preparando {} ({} elementos)", progreso, codigo, planilla.total_elementos)

            lote.agregar(planilla)
            resumen.punto_reanudacion = codigo

            if lote.lleno(self._policy):
                await self._enviar_lote(lote, resumen, fallidos)
                lote = Lote()

        if lote:
            logger.info("Enviando lote final de {} planillas...", len(lote))
            await self._enviar_lote(lote, resumen, fallidos)

        if fallidos:
            recuperacion = await self._pasada_recuperacion(fallidos)
            resumen.recuperados = recuperacion.recuperados
            resumen.procesadas += recuperacion.recuperados
            resumen.lotes_enviados += recuperacion.lotes
            for terminal in recuperacion.fallidos_definitivos:
                resumen.errores += len(terminal.codigos)
                resumen.no_sincronizadas.append(terminal.codigos)

        logger.info(
            "=== Sincronización completada === total={} procesadas={} vacias={} errores={} recuperados={}",
            resumen.total,
            resumen.procesadas,
            resumen.vacias,
            resumen.errores,
            resumen.recuperados,
        )
        return resumen

    def _metadata(self, lote: Lote) -> dict[str, object]:
        return {
            "origen": "ferrawin-sync",
            "lote": self._numero_lote,
            "total_planillas": len(lote),
            "total_elementos": lote.elementos,
            "enviado_en": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }

    async def _enviar_lote(self, lote: Lote, resumen: SyncSummary, fallidos: list[LoteFallido]) -> None:
        logger.info("Enviando lote de {} planillas ({} elementos)...", len(lote), lote.elementos)
        try:
            await self._enviar_con_reintentos(
                lote,
                max_reintentos=self._policy.max_reintentos,
                delay_base=self._policy.delay_base,
            )
        except RetryExhaustedError as exc:
            logger.error("Error en lote (guardado para reintento final): {}", exc.ultimo_error)
            fallidos.append(LoteFallido(lote=lote, error=str(exc.ultimo_error)))
            return
        except Exception as exc:
            logger.error("Excepción enviando lote (guardado para reintento final): {}", exc)
            fallidos.append(LoteFallido(lote=lote, error=str(exc)))
            return

        resumen.procesadas += len(lote)
        resumen.lotes_enviados += 1
        logger.info("Lote OK: {} planillas", len(lote))

    async def _enviar_con_reintentos(self, lote: Lote, *, max_reintentos: int, delay_base: float) -> None:
        self._numero_lote += 1
        intentos = max(1, max_reintentos)

        for intento in range(1, intentos + 1):
            espera = calcular_backoff(intento, delay_base)
            if espera:
                logger.warning("Reintento {}/{} en {}s...", intento, intentos, espera)
                await self._sleep(espera)
            try:
                await self._sender.enviar_planillas(lote.planillas, self._metadata(lote))
                return
            except TransferError as exc:
                logger.warning("Intento {}/{} fallido: {}", intento, intentos, exc)
                if intento == intentos:
                    raise RetryExhaustedError(lote.codigos, intentos, exc) from exc

    async def _pasada_recuperacion(self, fallidos: Sequence[LoteFallido]) -> RecoveryResult:
        resultado = RecoveryResult()
        total_planillas = sum(len(f.lote) for f in fallidos)
        logger.info(
            "=== PASADA FINAL: Reintentando {} lotes fallidos ({} planillas) ===",
            len(fallidos),
            total_planillas,
        )
        logger.info("Esperando {} segundos antes de reintentar...", self._policy.espera_recuperacion)
        await self._sleep(self._policy.espera_recuperacion)

        for numero, fallido in enumerate(fallidos, start=1):
            muestra = ", ".join(fallido.codigos[:3]) + ("..." if len(fallido.codigos) > 3 else "")
            logger.info("[Reintento final {}/{}] Lote: {}", numero, len(fallidos), muestra)
            try:
                await self._enviar_con_reintentos(
                    fallido.lote,
                    max_reintentos=self._policy.max_reintentos + self._policy.reintentos_extra_recuperacion,
                    delay_base=self._policy.delay_base * self._policy.factor_delay_recuperacion,
                )
            except RetryExhaustedError as exc:
                terminal = TerminalBatchError(fallido.codigos, str(exc.ultimo_error))
                resultado.fallidos_definitivos.append(terminal)
                logger.error("Lote fallido definitivamente: {}", fallido.codigos)
                continue
            except Exception as exc:
                resultado.fallidos_definitivos.append(TerminalBatchError(fallido.codigos, str(exc)))
                logger.error("Lote fallido definitivamente: {} ({})", fallido.codigos, exc)
                continue

            resultado.recuperados += len(fallido.lote)
            resultado.lotes += 1
            logger.info("Lote recuperado exitosamente")

        if resultado.recuperados:
            logger.info("Recuperadas {} planillas en pasada final", resultado.recuperados)
        return resultado

    async def _pausar(
        self,
        resumen: SyncSummary,
        lote: Lote,
        fallidos: Sequence[LoteFallido],
        *,
        codigo_actual: str,
    ) -> None:
        resumen.pausado = True
        logger.info("PAUSADO por el usuario en planilla: {}", codigo_actual)

        if lote:
            # Envío único, sin reintentos: un fallo transitorio aquí pierde el lote.
            logger.info("Enviando lote pendiente antes de pausar...")
            self._numero_lote += 1
            try:
                await self._sender.enviar_planillas(lote.planillas, self._metadata(lote))
            except Exception as exc:
                logger.error("Lote pendiente no enviado al pausar: {}", exc)
                resumen.no_sincronizadas.append(lote.codigos)
            else:
                resumen.procesadas += len(lote)
                resumen.lotes_enviados += 1

        for fallido in fallidos:
            resumen.no_sincronizadas.append(fallido.codigos)

        if resumen.punto_reanudacion:
            logger.info("Para continuar: --desde-codigo {}", resumen.punto_reanudacion)
