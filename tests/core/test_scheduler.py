from typing import Dict, List

import pytest

from converge.core.engine import RUN_ABORTED, UPSTREAM_FAILED, ResourceStatus, RunStatus, Scheduler, converge
from converge.core.errors import ConvergeError, CyclicDependency
from converge.core.graph import build_graph
from converge.core.infra.contracts import ProviderRegistry
from converge.core.resource.models import Edge, EdgeKind, ResourceId
from converge.core.resource.registry import ResourceRegistry
from converge.core.runtime.context import RunContext

from tests.helpers.providers import Call, FakeProvider

G = ResourceId("group", "g")
U = ResourceId("user", "u")
D = ResourceId("directory", "/data")
S = ResourceId("service", "svc")


def _scenario(registry: ResourceRegistry) -> ResourceRegistry:
    registry.register("group", "g")
    registry.register("user", "u", {"require": "Group[g]"})
    registry.register("directory", "/data", {"mode": "0640", "notify": "Service[svc]"})
    registry.register("service", "svc", {"require": "Directory[/data]"})
    return registry


def test_end_to_end_first_run_then_idempotent(
    registry: ResourceRegistry, providers: ProviderRegistry, journal: List[Call]
) -> None:
    _scenario(registry)

    first = converge(registry, providers=providers)

    assert first.status == RunStatus.CHANGED
    assert [(e.resource_id, e.action) for e in first.log] == [
        (G, "apply"), (U, "apply"), (D, "apply"), (S, "apply"), (S, "refresh"),
    ]
    assert all(e.status == ResourceStatus.CHANGED for e in first.log)
    assert [(op, key) for op, _, key in journal if op != "read"] == [
        ("apply", "g"), ("apply", "u"), ("apply", "/data"), ("apply", "svc"), ("refresh", "svc"),
    ]

    journal.clear()
    second = converge(registry, providers=providers)

    assert second.status == RunStatus.UNCHANGED
    assert [second.status_of(rid) for rid in (G, U, D, S)] == [ResourceStatus.UNCHANGED] * 4
    assert {op for op, _, _ in journal} == {"read"}
    assert second.exit_code(detailed=True) == 0


def test_each_resource_read_once_per_run(
    registry: ResourceRegistry, providers: ProviderRegistry, journal: List[Call]
) -> None:
    _scenario(registry)

    converge(registry, providers=providers)

    reads = [key for op, _, key in journal if op == "read"]
    assert sorted(reads) == sorted(["g", "u", "/data", "svc"])


def test_multiple_notifications_refresh_once(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    registry.register("package", "httpd", {"notify": "Service[httpd]"})
    registry.register("file", "/etc/httpd/site.conf", {"content": "a", "notify": "Service[httpd]"})
    registry.register("file", "/etc/httpd/ssl.conf", {"content": "b", "notify": "Service[httpd]"})
    registry.register("service", "httpd")

    report = converge(registry, providers=providers)

    assert fakes["service"].calls("refresh") == ["httpd"]
    refresh = [e for e in report.log if e.action == "refresh"]
    assert len(refresh) == 1
    assert "Package[httpd]" in refresh[0].message
    assert "File[/etc/httpd/ssl.conf]" in refresh[0].message


def test_unchanged_source_does_not_notify(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    registry.register("file", "/etc/svc.conf", {"content": "x", "notify": "Service[svc]"})
    registry.register("service", "svc")
    fakes["file"].state["/etc/svc.conf"] = {"ensure": "file", "content": "x"}

    report = converge(registry, providers=providers)

    assert fakes["service"].calls("refresh") == []
    assert report.status_of(S) == ResourceStatus.CHANGED


def test_failure_skips_dependents_transitively(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    _scenario(registry)
    registry.register("package", "independent")
    fakes["group"].fail_on.add("g")

    report = converge(registry, providers=providers)

    assert report.status_of(G) == ResourceStatus.FAILED
    assert report.results[U].status == ResourceStatus.SKIPPED
    assert report.results[U].reason == UPSTREAM_FAILED
    assert report.status_of(D) == ResourceStatus.CHANGED
    assert report.status_of(ResourceId("package", "independent")) == ResourceStatus.CHANGED
    assert fakes["user"].calls() == []
    assert report.status == RunStatus.FAILED
    assert report.exit_code() == 1
    assert report.exit_code(detailed=True) == 6


def test_skip_propagates_through_skipped_resources(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    registry.register("group", "g")
    registry.register("user", "u", {"require": "Group[g]"})
    registry.register("directory", "/home/u", {"require": "User[u]"})
    fakes["group"].fail_on.add("g")

    report = converge(registry, providers=providers)

    home = ResourceId("directory", "/home/u")
    assert report.results[home].status == ResourceStatus.SKIPPED
    assert report.results[home].reason == UPSTREAM_FAILED
    assert "User[u]" in report.results[home].message


def test_failed_notifier_does_not_refresh_but_others_do(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    registry.register("file", "/etc/a.conf", {"content": "a", "notify": "Service[svc]"})
    registry.register("package", "svc-tools", {"notify": "Service[svc]"})
    registry.register("service", "svc")
    fakes["file"].fail_on.add("/etc/a.conf")

    report = converge(registry, providers=providers, notify_implies_order=False)

    # Sin orden implícito el servicio no depende del archivo que falló
    assert report.status_of(S) == ResourceStatus.CHANGED
    assert fakes["service"].calls("refresh") == ["svc"]
    refresh = report.entries_for(S)[-1]
    assert refresh.action == "refresh"
    assert "Package[svc-tools]" in refresh.message


def test_notified_resource_skipped_is_not_refreshed(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    registry.register("group", "g")
    registry.register("file", "/etc/svc.conf", {"content": "x", "notify": "Service[svc]"})
    registry.register("service", "svc", {"require": "Group[g]"})
    fakes["group"].fail_on.add("g")

    report = converge(registry, providers=providers)

    assert report.status_of(S) == ResourceStatus.SKIPPED
    assert fakes["service"].calls() == []


def test_refresh_failure_marks_resource_failed(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    _scenario(registry)
    fakes["service"].fail_refresh_on.add("svc")

    report = converge(registry, providers=providers)

    assert [e.status for e in report.entries_for(S)] == [ResourceStatus.CHANGED, ResourceStatus.FAILED]
    assert report.status_of(S) == ResourceStatus.FAILED
    assert report.exit_code(detailed=True) == 6


def test_unexpected_exception_is_recorded_as_failure(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    registry.register("package", "a")
    registry.register("package", "b")
    fakes["package"].crash_on.add("a")

    report = converge(registry, providers=providers)

    assert report.status_of(ResourceId("package", "a")) == ResourceStatus.FAILED
    assert "error inesperado" in report.results[ResourceId("package", "a")].reason
    assert report.status_of(ResourceId("package", "b")) == ResourceStatus.CHANGED


def test_fail_fast_skips_the_rest_and_pending_refreshes(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    registry.register("file", "/etc/svc.conf", {"content": "x", "notify": "Service[svc]"})
    registry.register("package", "broken")
    registry.register("package", "other")
    registry.register("service", "svc")
    fakes["package"].fail_on.add("broken")

    report = converge(registry, providers=providers, fail_fast=True)

    other = report.results[ResourceId("package", "other")]
    assert other.status == ResourceStatus.SKIPPED
    assert other.reason == RUN_ABORTED
    assert report.results[S].reason == RUN_ABORTED
    assert fakes["package"].calls("read") == ["broken"]
    assert fakes["service"].calls() == []


def test_cycle_has_no_side_effects(
    registry: ResourceRegistry, providers: ProviderRegistry, journal: List[Call]
) -> None:
    registry.register("package", "a")
    registry.register("package", "b")
    a, b = ResourceId("package", "a"), ResourceId("package", "b")

    with pytest.raises(CyclicDependency):
        converge(registry, [Edge(a, b), Edge(b, a)], providers=providers)

    assert journal == []


def test_missing_provider_fails_before_any_call(registry: ResourceRegistry, journal: List[Call]) -> None:
    registry.register("package", "a")
    registry.register("selboolean", "httpd_can_network_connect")
    only_packages = ProviderRegistry([FakeProvider("package", ("ensure",), journal)])

    with pytest.raises(ConvergeError) as exc:
        converge(registry, providers=only_packages)

    assert "selboolean" in str(exc.value)
    assert journal == []


def test_noop_reads_and_reports_without_applying(
    registry: ResourceRegistry, providers: ProviderRegistry, journal: List[Call]
) -> None:
    _scenario(registry)

    report = converge(registry, providers=providers, noop=True)

    assert {op for op, _, _ in journal} == {"read"}
    assert report.noop is True
    assert report.status_of(D) == ResourceStatus.NOOP
    assert report.results[D].changes[0].field == "ensure"
    assert [e.action for e in report.entries_for(S)] == ["apply", "refresh"]
    assert report.status == RunStatus.CHANGED


def test_quarantined_resource_fails_without_provider_calls(
    registry: ResourceRegistry, providers: ProviderRegistry, fakes: Dict[str, FakeProvider]
) -> None:
    registry.register("group", "g")
    registry.quarantine("user", "u", "u: atributo 'uid' inválido", {"require": [G]})
    registry.register("directory", "/home/u", {"require": "User[u]"})

    report = converge(registry, providers=providers)

    assert report.status_of(G) == ResourceStatus.CHANGED
    assert report.results[U].status == ResourceStatus.FAILED
    assert "uid" in report.results[U].reason
    assert fakes["user"].calls() == []
    assert report.status_of(ResourceId("directory", "/home/u")) == ResourceStatus.SKIPPED


def test_ordering_respected_for_explicit_before(
    registry: ResourceRegistry, providers: ProviderRegistry, journal: List[Call]
) -> None:
    registry.register("service", "svc")
    registry.register("package", "svc", {"before": "Service[svc]"})

    converge(registry, providers=providers)

    applied = [(kind, key) for op, kind, key in journal if op == "apply"]
    assert applied == [("package", "svc"), ("service", "svc")]


def test_scheduler_guards_reentry(registry: ResourceRegistry, providers: ProviderRegistry) -> None:
    registry.register("package", "a")
    graph = build_graph(registry)
    scheduler = Scheduler(providers)
    rid = ResourceId("package", "a")

    with scheduler._exclusive(rid):
        with pytest.raises(ConvergeError):
            with scheduler._exclusive(rid):
                pass

    report = scheduler.run(graph, RunContext())
    assert report.status_of(rid) == ResourceStatus.CHANGED


def test_notify_edge_kinds_in_scenario(registry: ResourceRegistry) -> None:
    graph = build_graph(_scenario(registry))

    assert graph.predecessors(S, EdgeKind.NOTIFY) == [D]
