from pathlib import Path
from typing import Dict

import pytest

from converge.core.errors import ConfigError, InvalidAttribute, ValidationError
from converge.core.manifest import (
    compile_manifest,
    condition_holds,
    load_manifest,
    parse_chain,
    resolve_selector,
    select_declarations,
    validate_manifest_data,
)
from converge.core.manifest.models import Declaration, Manifest
from converge.core.resource.models import Edge, EdgeKind, ResourceId
from converge.core.runtime.facts import Facts
from converge.core.runtime.secrets import Secret

X86 = Facts(os_family="RedHat", os_major="9", architecture="x86_64", selinux="enforcing")
I386 = Facts(os_family="RedHat", os_major="9", architecture="i386", selinux="disabled")

MODULES = {
    "type": "symlink",
    "title": "/etc/httpd/modules",
    "attributes": {
        "target": {
            "select": "architecture",
            "cases": {"x86_64": "/usr/lib64/httpd/modules", "default": "/usr/lib/httpd/modules"},
        },
    },
}


class StaticSecrets:
    def __init__(self, values: Dict[str, str]):
        self.values = values

    def get(self, name: str) -> Secret:
        if name not in self.values:
            raise ValidationError(f"Secreto no definido: {name}")
        return Secret(name, self.values[name])


def _manifest(*resources, chains=()) -> Manifest:
    return Manifest(resources=list(resources), chains=list(chains))


def test_condition_values_lists_and_negation() -> None:
    assert condition_holds({"os_family": "redhat"}, X86)
    assert condition_holds({"os_major": ["8", "9"]}, X86)
    assert condition_holds({"selinux": "!disabled"}, X86)
    assert not condition_holds({"selinux": "!disabled"}, I386)
    assert not condition_holds({"os_family": "Debian"}, X86)
    assert not condition_holds({"datacenter": "norte"}, X86)
    assert condition_holds({}, X86)


def test_select_declarations_preserves_order() -> None:
    decls = [
        Declaration(type="package", title="a"),
        Declaration(type="package", title="b", when={"architecture": "i386"}),
        Declaration(type="package", title="c"),
    ]

    assert [d.title for d in select_declarations(decls, X86)] == ["a", "c"]
    assert [d.title for d in select_declarations(decls, I386)] == ["a", "b", "c"]


def test_selector_resolves_by_architecture() -> None:
    catalog_x86 = compile_manifest(_manifest(MODULES), X86)
    catalog_i386 = compile_manifest(_manifest(MODULES), I386)

    rid = ResourceId("symlink", "/etc/httpd/modules")
    assert catalog_x86.registry.get(rid).attributes["target"] == "/usr/lib64/httpd/modules"
    assert catalog_i386.registry.get(rid).attributes["target"] == "/usr/lib/httpd/modules"


def test_selector_without_match_or_default() -> None:
    with pytest.raises(InvalidAttribute) as exc:
        resolve_selector("Symlink[/x]", "target", {"select": "architecture", "cases": {"x86_64": "/a"}}, I386)

    assert exc.value.field == "target"


def test_selector_does_not_affect_other_resources() -> None:
    other = {"type": "package", "title": "httpd"}

    x86 = compile_manifest(_manifest(MODULES, other), X86)
    i386 = compile_manifest(_manifest(MODULES, other), I386)

    pkg = ResourceId("package", "httpd")
    assert x86.registry.get(pkg).desired == i386.registry.get(pkg).desired


def test_excluded_resource_drops_its_edges() -> None:
    manifest = _manifest(
        {"type": "selboolean", "title": "httpd_can_network_connect", "when": {"selinux": "!disabled"}},
        {"type": "service", "title": "httpd", "require": "Selboolean[httpd_can_network_connect]"},
        chains=["Selboolean[httpd_can_network_connect] -> Service[httpd]"],
    )

    catalog = compile_manifest(manifest, I386)

    assert catalog.excluded == [ResourceId("selboolean", "httpd_can_network_connect")]
    assert catalog.edges == []
    assert catalog.registry.get(ResourceId("service", "httpd")).require == []


def test_variants_of_the_same_resource() -> None:
    manifest = _manifest(
        {"type": "package", "title": "web", "attributes": {}, "when": {"os_family": "RedHat"}},
        {"type": "package", "title": "web", "ensure": "absent", "when": {"os_family": "Debian"}},
    )

    catalog = compile_manifest(manifest, X86)

    assert catalog.registry.get(ResourceId("package", "web")).ensure == "present"
    assert catalog.excluded == []


def test_chains_become_edges() -> None:
    edges = parse_chain("Package[httpd] -> File[/etc/httpd/conf.d/site.conf] ~> Service[httpd]")

    assert edges == [
        Edge(ResourceId("package", "httpd"), ResourceId("file", "/etc/httpd/conf.d/site.conf")),
        Edge(ResourceId("file", "/etc/httpd/conf.d/site.conf"), ResourceId("service", "httpd"), EdgeKind.NOTIFY),
    ]


@pytest.mark.parametrize("expression", ["Package[httpd]", "Package[httpd] ->", "httpd -> Service[httpd]"])
def test_invalid_chains(expression: str) -> None:
    with pytest.raises(ValidationError):
        parse_chain(expression)


def test_secret_reference_is_resolved() -> None:
    manifest = _manifest({
        "type": "sync",
        "title": "/srv/www",
        "attributes": {"source": "rsync://host/www/", "password": {"secret": "rsync_www"}},
    })

    catalog = compile_manifest(manifest, X86, StaticSecrets({"rsync_www": "s3cr3t"}))

    password = catalog.registry.get(ResourceId("sync", "/srv/www")).attributes["password"]
    assert password.reveal() == "s3cr3t"


def test_unknown_secret_is_invalid_attribute() -> None:
    manifest = _manifest({
        "type": "sync",
        "title": "/srv/www",
        "attributes": {"source": "rsync://host/www/", "password": {"secret": "missing"}},
    })

    with pytest.raises(InvalidAttribute) as exc:
        compile_manifest(manifest, X86, StaticSecrets({}))

    assert exc.value.field == "password"


def test_lenient_mode_quarantines_invalid_resources() -> None:
    manifest = _manifest(
        {"type": "group", "title": "g"},
        {"type": "user", "title": "u", "attributes": {"uid": "x"}, "require": "Group[g]"},
    )

    with pytest.raises(InvalidAttribute):
        compile_manifest(manifest, X86)

    catalog = compile_manifest(manifest, X86, strict=False)
    user = catalog.registry.get(ResourceId("user", "u"))
    assert user.error is not None
    assert user.require == [ResourceId("group", "g")]
    assert len(catalog.errors) == 1


def test_load_manifest_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "site.yaml"
    path.write_text(
        "resources:\n"
        "  - type: directory\n"
        "    title: /data\n"
        "    attributes:\n"
        "      mode: '0640'\n"
        "  - type: service\n"
        "    title: svc\n"
        "    subscribe: Directory[/data]\n"
    )

    catalog = load_manifest(path, X86)

    assert catalog.registry.ids() == [ResourceId("directory", "/data"), ResourceId("service", "svc")]
    assert catalog.registry.get(ResourceId("service", "svc")).subscribe == [ResourceId("directory", "/data")]


def test_load_manifest_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_manifest(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text("resources: [\n")
    with pytest.raises(ConfigError):
        load_manifest(broken)

    wrong = tmp_path / "wrong.yaml"
    wrong.write_text("resources:\n  - type: package\n")
    with pytest.raises(ConfigError):
        load_manifest(wrong)


def test_validate_manifest_data_collects_errors() -> None:
    errors = validate_manifest_data({
        "resources": [
            {"type": "package", "title": "httpd"},
            {"type": "package", "title": "httpd"},
            {"type": "cron", "title": "backup"},
            {"type": "service", "title": "httpd", "require": "not a reference"},
        ],
        "chains": ["Package[httpd]"],
    })

    assert any("duplicado" in e for e in errors)
    assert any("cron" in e for e in errors)
    assert any(e.startswith("resources.3.require") for e in errors)
    assert any(e.startswith("chains.0") for e in errors)


def test_validate_manifest_data_accepts_valid_manifest() -> None:
    assert validate_manifest_data({"resources": [{"type": "package", "title": "httpd"}]}) == []
    assert validate_manifest_data(["not", "a", "dict"]) == ["El manifiesto debe ser un diccionario"]
