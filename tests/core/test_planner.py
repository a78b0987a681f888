from typing import List

from converge.core.engine import converge
from converge.core.infra.contracts import ProviderRegistry
from converge.core.manifest import plan_from_diffs, plan_from_report
from converge.core.resource.registry import ResourceRegistry
from converge.core.runtime.state import StateDiff

from tests.helpers.providers import Call


def test_plan_from_diffs() -> None:
    actions = plan_from_diffs([
        StateDiff("Directory[/data]", "ensure", "directory", "absent", "error"),
        StateDiff("File[/etc/motd]", "mode", "0644", "0600"),
    ])

    assert actions == [
        "Crear/actualizar Directory[/data]: ensure = directory",
        "Actualizar File[/etc/motd].mode: 0600 → 0644",
    ]


def test_plan_from_noop_report_lists_changes_and_refreshes(
    registry: ResourceRegistry, providers: ProviderRegistry, journal: List[Call]
) -> None:
    registry.register("directory", "/data", {"notify": "Service[svc]"})
    registry.register("service", "svc")

    report = converge(registry, providers=providers, noop=True)
    actions = plan_from_report(report)

    assert actions == [
        "Crear/actualizar Directory[/data]: ensure = directory",
        "Crear/actualizar Service[svc]: ensure = running",
        "Refrescar Service[svc] (notificado por Directory[/data])",
    ]
    assert all(op == "read" for op, _, _ in journal)


def test_plan_is_empty_when_in_sync(registry: ResourceRegistry, providers: ProviderRegistry, fakes) -> None:
    registry.register("package", "httpd")
    fakes["package"].state["httpd"] = {"ensure": "present"}

    report = converge(registry, providers=providers, noop=True)

    assert plan_from_report(report) == []
