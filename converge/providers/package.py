"""
Provider de paquetes del sistema según la familia del SO (facts.os_family).

RedHat: rpm -q + dnf (yum en major <= 7). Debian: dpkg-query + apt-get.
"""

from typing import Any, Dict, List, Mapping, Optional

from converge.core.errors import ProviderError
from converge.core.infra.base import BaseProvider
from converge.core.runtime.facts import Facts
from converge.core.runtime.state import ABSENT, CurrentState, Outcome
from converge.providers import command

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
_INSTALLED = ("present", "installed")
PACKAGE_TIMEOUT = 900


class PackageProvider(BaseProvider):
    name = "package"
    properties = ("ensure",)

    def __init__(self, facts: Optional[Facts] = None):
        self.facts = facts or Facts()

    @property
    def family(self) -> str:
        family = (self.facts.os_family or "").lower()
        if family in ("redhat", "debian"):
            return family
        raise ProviderError(f"Familia de SO sin gestor de paquetes soportado: {self.facts.os_family}")

    def _redhat_tool(self) -> str:
        try:
            major = int(self.facts.os_major or 0)
        except ValueError:
            major = 0
        return "yum" if 0 < major <= 7 else "dnf"

    def _installed_version(self, package: str) -> Optional[str]:
        if self.family == "redhat":
            ok, out = command.run(["rpm", "-q", "--qf", "%{VERSION}-%{RELEASE}", package])
            return out if ok else None
        ok, out = command.run(["dpkg-query", "-W", "-f", "${Status} ${Version}", package])
        if not ok or not out.startswith("install ok installed"):
            return None
        return out.split()[-1]

    def _upgrade_available(self, package: str) -> bool:
        if self.family == "redhat":
            ok, out = command.run([self._redhat_tool(), "-q", "list", "--upgrades", package])
            return ok and package in out
        ok, out = command.run(["apt-cache", "policy", package])
        if not ok:
            return False
        versions: Dict[str, str] = {}
        for line in out.splitlines():
            key, sep, value = line.strip().partition(":")
            if sep and key in ("Installed", "Candidate"):
                versions[key] = value.strip()
        candidate = versions.get("Candidate")
        return bool(candidate) and candidate != "(none)" and candidate != versions.get("Installed")

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        package = attributes["name"]
        version = self._installed_version(package)
        if version is None:
            return {"ensure": ABSENT}
        if attributes.get("ensure") == "latest" and not self._upgrade_available(package):
            return {"ensure": "latest", "version": version}
        return {"ensure": "present", "version": version}

    def insync(self, prop: str, desired: Any, actual: Any) -> bool:
        if prop == "ensure" and desired in _INSTALLED:
            return actual in ("present", "latest")
        return desired == actual

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        package = attributes["name"]
        ensure = attributes.get("ensure", "present")
        command.run_checked(self._command(ensure, package), timeout=PACKAGE_TIMEOUT, env=self._env())
        if ensure == ABSENT:
            return Outcome("desinstalado")
        version = self._installed_version(package)
        return Outcome(f"instalado {version}" if version else "instalado")

    def _env(self) -> Optional[Dict[str, str]]:
        return _APT_ENV if self.family == "debian" else None

    def _command(self, ensure: str, package: str) -> List[str]:
        if self.family == "redhat":
            tool = self._redhat_tool()
            action = {"absent": "remove", "latest": "upgrade"}.get(ensure, "install")
            if action == "upgrade" and self._installed_version(package) is None:
                action = "install"
            return [tool, "-y", "-q", action, package]
        if ensure == ABSENT:
            return ["apt-get", "-y", "-q", "remove", package]
        return ["apt-get", "-y", "-q", "install", package]
