"""
===============================================================================
ARCHIVO: infrastructure/queue/audit_dispatcher.py
===============================================================================

CRC CARD (Class)
-------------------------------------------------------------------------------
Clases:
    QueueAuditDispatcher (cola acotada + worker thread)
    InlineAuditDispatcher (escritura sincrónica, scripts/tests)

Responsabilidades:
    - Recibir AuditRecord desde el request sin bloquearlo.
    - Escribir cada registro en el AuditSink desde un hilo propio del proceso.
    - Absorber fallas del sink: loguear + contar, nunca relanzar.
    - Descartar (contando) cuando la cola está llena o el dispatcher cerró.
    - Drenar lo pendiente al apagar (close con timeout).

Colaboradores:
    - domain.repositories.AuditSink
    - crosscutting.metrics.record_audit_event
    - crosscutting.logger
    - api/main.py (lifespan: start / close)

Notas:
    - El worker vive a nivel proceso: si el cliente corta la conexión, lo que
      ya se entregó se escribe igual.
    - Ningún lock se mantiene durante la llamada al sink.
    - Sin reintentos: una escritura fallida queda contada como "failed".
===============================================================================
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass

from ...crosscutting.logger import logger
from ...crosscutting.metrics import record_audit_event
from ...domain.audit import AuditRecord
from ...domain.repositories import AuditSink

_STOP = object()


@dataclass(frozen=True, slots=True)
class AuditStats:
    """Foto de los contadores del dispatcher."""

    submitted: int = 0
    written: int = 0
    failed: int = 0
    dropped: int = 0


class _Counters:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values = {"submitted": 0, "written": 0, "failed": 0, "dropped": 0}

    def inc(self, name: str) -> None:
        with self._lock:
            self._values[name] += 1
        if name != "submitted":
            record_audit_event(name)

    def snapshot(self) -> AuditStats:
        with self._lock:
            return AuditStats(**self._values)


def _write(sink: AuditSink, record: AuditRecord, counters: _Counters) -> bool:
    try:
        sink.append(record)
    except Exception as exc:
        counters.inc("failed")
        logger.warning(
            "Falló la escritura del registro de auditoría",
            extra={
                "audit_id": str(record.id),
                "audit_action": record.action,
                "audit_resource": record.resource,
                "error": str(exc),
            },
        )
        return False
    counters.inc("written")
    return True


class QueueAuditDispatcher:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      QueueAuditDispatcher

    Responsabilidades:
      - submit(): put_nowait en una queue.Queue acotada
      - worker: get -> sink.append -> contadores
      - close(): sentinel + join con timeout

    Colaboradores:
      - AuditSink, _Counters
    ----------------------------------------------------------------------------
    """

    def __init__(
        self,
        sink: AuditSink,
        *,
        max_size: int = 1000,
        name: str = "audit-dispatcher",
    ):
        if max_size <= 0:
            raise ValueError("max_size debe ser mayor a 0")
        self._sink = sink
        self._queue: queue.Queue = queue.Queue(maxsize=max_size)
        self._name = name
        self._counters = _Counters()
        self._thread: threading.Thread | None = None
        self._lifecycle_lock = threading.Lock()
        self._closed = False
        self._pending = 0
        self._idle = threading.Condition()

    # ------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------
    def start(self) -> None:
        with self._lifecycle_lock:
            self._start_locked()

    def _start_locked(self) -> None:
        if self._thread is not None or self._closed:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.info("dispatcher de auditoría iniciado", extra={"worker": self._name})

    def close(self, timeout: float | None = None) -> bool:
        """
        Deja de aceptar registros y espera a que el worker drene la cola.

        Devuelve True si el worker terminó dentro del timeout.
        """
        with self._lifecycle_lock:
            if self._closed:
                return self._thread is None or not self._thread.is_alive()
            self._closed = True
            thread = self._thread

        if thread is None:
            # R: nunca arrancó; se drena en este hilo.
            self._drain_inline()
            return True

        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.error(
                "no se pudo detener el dispatcher de auditoría: cola llena",
                extra={"pending": self._pending},
            )
            return False

        thread.join(timeout)
        finished = not thread.is_alive()
        if not finished:
            logger.error(
                "dispatcher de auditoría no terminó de drenar",
                extra={"pending": self._pending, "timeout_seconds": timeout},
            )
        else:
            logger.info("dispatcher de auditoría detenido", extra=self._stats_extra())
        return finished

    # ------------------------------------------------------------
    # Handoff
    # ------------------------------------------------------------
    def submit(self, record: AuditRecord) -> bool:
        # R: put_nowait bajo el mismo lock que close(): ningún registro queda
        #    detrás del sentinel de parada.
        with self._lifecycle_lock:
            if self._closed:
                reason = "dispatcher cerrado"
            else:
                self._start_locked()
                with self._idle:
                    self._pending += 1
                try:
                    self._queue.put_nowait(record)
                    reason = None
                except queue.Full:
                    self._mark_done()
                    reason = "cola llena"

        if reason is not None:
            self._counters.inc("dropped")
            logger.warning(
                f"registro de auditoría descartado: {reason}",
                extra={"audit_id": str(record.id), "audit_action": record.action},
            )
            return False

        self._counters.inc("submitted")
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """Espera a que todo lo entregado se haya escrito (o fallado)."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def stats(self) -> AuditStats:
        return self._counters.snapshot()

    # ------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------
    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            try:
                _write(self._sink, item, self._counters)
            finally:
                self._mark_done()

    def _drain_inline(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            if item is _STOP:
                continue
            try:
                _write(self._sink, item, self._counters)
            finally:
                self._mark_done()

    def _mark_done(self) -> None:
        with self._idle:
            self._pending -= 1
            if self._pending == 0:
                self._idle.notify_all()

    def _stats_extra(self) -> dict[str, int]:
        stats = self.stats()
        return {
            "submitted": stats.submitted,
            "written": stats.written,
            "failed": stats.failed,
            "dropped": stats.dropped,
        }


class InlineAuditDispatcher:
    """Escribe en el mismo hilo. Mismas reglas de absorción de errores."""

    def __init__(self, sink: AuditSink):
        self._sink = sink
        self._counters = _Counters()
        self._closed = False

    def submit(self, record: AuditRecord) -> bool:
        if self._closed:
            self._counters.inc("dropped")
            return False
        self._counters.inc("submitted")
        _write(self._sink, record, self._counters)
        return True

    def close(self, timeout: float | None = None) -> bool:
        self._closed = True
        return True

    def flush(self, timeout: float | None = None) -> bool:
        return True

    def stats(self) -> AuditStats:
        return self._counters.snapshot()


