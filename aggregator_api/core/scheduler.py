"""Orquestador por ticks: prune → mayoría → publicación deduplicada.

Máquina de estados: Idle → Ticking → Idle, cada ``period`` segundos.
No hay estado "pausado" dentro del motor.

Cada tick:
1. ``now = clock()``
2. ``registry.prune(now)``
3. ``view = compute_majority(registry.snapshot(), now)``
4. publica majority (retain=True) si cambió
5. si el registro está dirty: publica snapshot (retain=False) y limpia dirty

El reloj y el disparador son inyectables para que los tests ejecuten
ticks de forma determinista, sin esperar tiempo real.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from . import metrics
from .domain.device import STATE_ORDER, MajorityView
from .majority import compute_majority
from .payloads import build_majority_payload, build_snapshot_payload
from .publishing import PublishDeduplicator
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock() -> int:
    return int(time.time())


@dataclass(frozen=True)
class TickResult:
    """Resultado de un tick (para logs, stats y tests)."""

    now: int
    pruned: bool
    view: MajorityView
    majority_published: bool
    snapshot_published: bool


class AggregationScheduler:
    """Ejecuta el ciclo de agregación sobre un registro propio."""

    def __init__(
        self,
        registry: DeviceRegistry,
        deduplicator: PublishDeduplicator,
        *,
        majority_topic: str = "dashboard/majority",
        snapshot_topic: str = "dashboard/snapshot",
        clock: Optional[Clock] = None,
    ) -> None:
        self._registry = registry
        self._dedup = deduplicator
        self._majority_topic = majority_topic
        self._snapshot_topic = snapshot_topic
        self._clock = clock or wall_clock

        self._last_view: Optional[MajorityView] = None
        # ts del payload majority: instante en que cambió el contenido
        self._majority_since: int = 0
        self._ticks = 0
        self._errors = 0

    def tick(self) -> TickResult:
        """Un ciclo completo. Los errores de publicación no se propagan."""
        now = int(self._clock())
        self._ticks += 1
        metrics.TICKS.inc()

        pruned = self._registry.prune(now)
        view = compute_majority(self._registry.snapshot(), now)

        if not view.same_content(self._last_view):
            self._majority_since = now
            if self._last_view is not None:
                logger.info(
                    "[TICK] majority=%s online=%d",
                    view.winning_state.value,
                    view.online_total,
                )
        self._last_view = view
        self._update_gauges(view)

        majority_published = self._dedup.maybe_publish(
            self._majority_topic,
            build_majority_payload(view, self._majority_since),
            retain=True,
        )

        snapshot_published = False
        if self._registry.is_dirty():
            snapshot = build_snapshot_payload(self._registry.snapshot())
            snapshot_published = self._dedup.maybe_publish(
                self._snapshot_topic, snapshot, retain=False
            )
            # Si el envío falló, dirty se mantiene y el próximo tick reintenta
            if self._dedup.last_payload(self._snapshot_topic) == snapshot:
                self._registry.clear_dirty()

        return TickResult(
            now=now,
            pruned=pruned,
            view=view,
            majority_published=majority_published,
            snapshot_published=snapshot_published,
        )

    def safe_tick(self) -> Optional[TickResult]:
        """tick() que registra y absorbe cualquier error; el loop nunca se detiene."""
        try:
            return self.tick()
        except Exception as e:
            self._errors += 1
            metrics.TICK_ERRORS.inc()
            logger.exception("[TICK] Unexpected error: %s", e)
            return None

    def _update_gauges(self, view: MajorityView) -> None:
        metrics.DEVICES_ONLINE.set(view.online_total)
        for state in STATE_ORDER:
            metrics.STATE_COUNT.labels(state=state.value).set(view.count_for(state))
        metrics.MAJORITY.info({"state": view.winning_state.value})

    @property
    def last_view(self) -> Optional[MajorityView]:
        return self._last_view

    @property
    def stats(self) -> dict:
        return {
            "ticks": self._ticks,
            "tick_errors": self._errors,
            "majority_since": self._majority_since,
        }


class IntervalTrigger:
    """Hilo que invoca ``callback`` cada ``period`` segundos hasta ``stop()``.

    El callback debe ser rápido (normalmente solo encola un tick en el
    ``SerialExecutor``); el periodo se mide desde el inicio de cada
    invocación para no acumular deriva.
    """

    def __init__(
        self,
        period: float,
        callback: Callable[[], object],
        *,
        name: str = "aggregation-tick",
        fire_immediately: bool = True,
    ) -> None:
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period}")
        self._period = float(period)
        self._callback = callback
        self._name = name
        self._fire_immediately = fire_immediately
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name=self._name)
        self._thread.start()
        logger.info("[TICK] Trigger started period=%.2fs", self._period)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self) -> None:
        next_at = time.monotonic()
        if not self._fire_immediately:
            next_at += self._period
        while not self._stop_event.is_set():
            delay = next_at - time.monotonic()
            if delay > 0 and self._stop_event.wait(delay):
                break
            try:
                self._callback()
            except Exception as e:
                logger.error("[TICK] Trigger callback error: %s", e)
            next_at += self._period
            # Si nos atrasamos más de un periodo, no intentar recuperar ticks perdidos
            now = time.monotonic()
            if next_at < now:
                next_at = now

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
