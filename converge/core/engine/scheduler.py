"""
Convergence Scheduler: ejecuta cada recurso exactamente una vez por corrida.

Para cada recurso, en el orden total del grafo:
1. read_state del provider
2. compara contra ensure/atributos; si coincide -> unchanged
3. si no, apply_state -> changed (encola a sus destinos notify) o failed(reason)
4. terminada la pasada ordenada, refresh una sola vez por recurso notificado

Un recurso cuyo predecesor ORDER falló (o fue saltado) queda skipped(upstream_failed).
Los refresh no generan nuevas notificaciones (un solo salto por corrida).
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional, Set

from converge.core.engine.report import (
    RUN_ABORTED,
    UPSTREAM_FAILED,
    ExecutionResult,
    ResourceStatus,
    RunReport,
)
from converge.core.errors import ConvergeError, ProviderError
from converge.core.graph.graph import DependencyGraph
from converge.core.infra.contracts import ProviderRegistry
from converge.core.resource.models import EdgeKind, Resource, ResourceId
from converge.core.runtime.context import RunContext
from converge.core.runtime.state import diff_state

logger = logging.getLogger(__name__)

_BLOCKING = (ResourceStatus.FAILED, ResourceStatus.SKIPPED)


class Scheduler:
    """Ejecuta una pasada de convergencia sobre un grafo ya validado."""

    def __init__(self, providers: ProviderRegistry, noop: bool = False, fail_fast: bool = False):
        self.providers = providers
        self.noop = noop
        self.fail_fast = fail_fast
        self._in_flight: Set[ResourceId] = set()

    def preflight(self, graph: DependencyGraph) -> None:
        """Verifica que todo tipo presente tenga provider antes de tocar el host."""
        missing = sorted({
            r.type for r in graph.resources.values() if not r.error and r.type not in self.providers
        })
        if missing:
            raise ConvergeError(f"No hay provider para: {', '.join(missing)}")

    def run(self, graph: DependencyGraph, context: RunContext) -> RunReport:
        self.preflight(graph)
        if self.noop:
            context.noop = True
        order = graph.order()
        aborted = False

        for rid in order:
            resource = graph.resources[rid]
            if aborted:
                result = ExecutionResult(rid, ResourceStatus.SKIPPED, reason=RUN_ABORTED)
            else:
                result = self._converge(graph, resource, context)
            self._record(resource, result, context)
            if result.is_failed and self.fail_fast and not aborted:
                logger.warning("fail-fast: se aborta la corrida tras fallar %s", rid)
                aborted = True

        if aborted:
            if context.pending:
                logger.warning("fail-fast: se omiten %d refresh pendientes", len(context.pending))
        else:
            self._refresh_pending(graph, order, context)

        return RunReport(
            log=context.log,
            results=context.results,
            facts=context.facts,
            noop=context.noop,
            started_at=context.started_at,
            finished_at=datetime.now(timezone.utc),
        )

    def _converge(self, graph: DependencyGraph, resource: Resource, context: RunContext) -> ExecutionResult:
        rid = resource.id
        if resource.error:
            return ExecutionResult(rid, ResourceStatus.FAILED, reason=resource.error)

        blocked = [
            p for p in graph.predecessors(rid, EdgeKind.ORDER)
            if context.results[p].status in _BLOCKING
        ]
        if blocked:
            return ExecutionResult(
                rid,
                ResourceStatus.SKIPPED,
                reason=UPSTREAM_FAILED,
                message="depende de: " + ", ".join(str(p) for p in blocked),
            )

        provider = self.providers.get(resource.type)
        desired = resource.desired
        start = time.monotonic()
        with self._exclusive(rid):
            try:
                current = provider.read_state(desired)
                diffs = diff_state(rid, provider.properties, desired, current, getattr(provider, "insync", None))
                if not diffs:
                    return ExecutionResult(rid, ResourceStatus.UNCHANGED, duration=time.monotonic() - start)
                if context.noop:
                    self._queue_notifications(graph, rid, context)
                    return ExecutionResult(
                        rid, ResourceStatus.NOOP, changes=diffs, duration=time.monotonic() - start
                    )
                outcome = provider.apply_state(desired)
            except ProviderError as e:
                return ExecutionResult(rid, ResourceStatus.FAILED, reason=str(e), duration=time.monotonic() - start)
            except Exception as e:
                logger.exception("Error inesperado en provider %s para %s", resource.type, rid)
                return ExecutionResult(
                    rid, ResourceStatus.FAILED, reason=f"error inesperado: {e}", duration=time.monotonic() - start
                )

        duration = time.monotonic() - start
        if outcome is not None and not outcome.changed:
            return ExecutionResult(rid, ResourceStatus.UNCHANGED, message=outcome.message, duration=duration)
        self._queue_notifications(graph, rid, context)
        return ExecutionResult(
            rid,
            ResourceStatus.CHANGED,
            changes=diffs,
            message=outcome.message if outcome is not None else "",
            duration=duration,
        )

    def _queue_notifications(self, graph: DependencyGraph, rid: ResourceId, context: RunContext) -> None:
        for target in graph.successors(rid, EdgeKind.NOTIFY):
            context.notify(target, rid)

    def _refresh_pending(self, graph: DependencyGraph, order, context: RunContext) -> None:
        pending = set(context.pending)
        for rid in order:
            if rid not in pending:
                continue
            resource = graph.resources[rid]
            sources = ", ".join(str(s) for s in context.notified_by(rid))
            previous = context.results[rid]
            if previous.status in _BLOCKING:
                logger.info("Se omite refresh de %s (%s)", rid, previous.status.value)
                continue
            if context.noop:
                self._record(
                    resource,
                    ExecutionResult(rid, ResourceStatus.NOOP, action="refresh", message=f"notificado por {sources}"),
                    context,
                )
                continue
            result = self._refresh(resource, sources)
            if result is None:
                logger.info("Refresh de %s sin efecto", rid)
                continue
            self._record(resource, result, context)

    def _refresh(self, resource: Resource, sources: str) -> Optional[ExecutionResult]:
        """Invoca refresh (o apply_state); None si el provider informa que no hizo nada."""
        rid = resource.id
        provider = self.providers.get(resource.type)
        refresh = getattr(provider, "refresh", None) or provider.apply_state
        start = time.monotonic()
        with self._exclusive(rid):
            try:
                outcome = refresh(resource.desired)
            except ProviderError as e:
                return ExecutionResult(
                    rid, ResourceStatus.FAILED, action="refresh", reason=str(e), duration=time.monotonic() - start
                )
            except Exception as e:
                logger.exception("Error inesperado en refresh de %s", rid)
                return ExecutionResult(
                    rid,
                    ResourceStatus.FAILED,
                    action="refresh",
                    reason=f"error inesperado: {e}",
                    duration=time.monotonic() - start,
                )
        if outcome is not None and not outcome.changed:
            return None
        message = f"notificado por {sources}"
        if outcome is not None and outcome.message:
            message = f"{message}: {outcome.message}"
        return ExecutionResult(
            rid, ResourceStatus.CHANGED, action="refresh", message=message, duration=time.monotonic() - start
        )

    def _record(self, resource: Resource, result: ExecutionResult, context: RunContext) -> None:
        context.record(result)
        resource.result = result
        level = logging.WARNING if result.is_failed else logging.INFO
        logger.log(level, "%s", result)

    @contextmanager
    def _exclusive(self, rid: ResourceId) -> Iterator[None]:
        """A lo sumo una acción en curso por recurso."""
        if rid in self._in_flight:
            raise ConvergeError(f"{rid} ya tiene una acción en curso")
        self._in_flight.add(rid)
        try:
            yield
        finally:
            self._in_flight.discard(rid)
