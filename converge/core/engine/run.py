"""
Punto de entrada único de una corrida: registro + aristas + facts -> RunReport.

No hay otro I/O que las llamadas a providers. Los errores de construcción
(UnknownResource, CyclicDependency, provider faltante) se propagan antes de
invocar a ningún provider.
"""

import logging
from typing import Iterable, Optional

from converge.core.engine.report import RunReport
from converge.core.engine.scheduler import Scheduler
from converge.core.graph.builder import build_graph
from converge.core.infra.contracts import ProviderRegistry
from converge.core.resource.models import Edge
from converge.core.resource.registry import ResourceRegistry
from converge.core.runtime.context import RunContext
from converge.core.runtime.facts import Facts

logger = logging.getLogger(__name__)


def converge(
    registry: ResourceRegistry,
    edges: Iterable[Edge] = (),
    facts: Optional[Facts] = None,
    providers: Optional[ProviderRegistry] = None,
    noop: bool = False,
    fail_fast: bool = False,
    notify_implies_order: bool = True,
) -> RunReport:
    """
    Ejecuta una pasada de convergencia.

    Args:
        registry: Recursos ya registrados (inclusión condicional ya evaluada)
        edges: Aristas explícitas adicionales (cadenas del manifiesto)
        facts: Snapshot de facts del host
        providers: Providers por tipo; por defecto los de converge.providers
        noop: Solo compara, no aplica
        fail_fast: Aborta el resto de la corrida al primer fallo
        notify_implies_order: Cada arista notify implica también orden

    Returns:
        RunReport con el log ordenado y el estado global
    """
    if providers is None:
        from converge.providers import default_providers
        providers = default_providers(facts)

    graph = build_graph(registry, edges, notify_implies_order=notify_implies_order)
    context = RunContext(facts=facts, noop=noop)
    scheduler = Scheduler(providers, noop=noop, fail_fast=fail_fast)
    logger.info("Iniciando corrida: %d recursos%s", len(graph), " (noop)" if noop else "")
    report = scheduler.run(graph, context)
    logger.info("Corrida terminada: %s %s", report.status.value, report.counts())
    return report
