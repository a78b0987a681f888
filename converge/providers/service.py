"""
Provider de servicios systemd.

Solo estado puntual (activo/habilitado); no supervisa procesos.
Refresh = restart, y únicamente si el servicio debe estar corriendo.
"""

from typing import Any, Mapping

from converge.core.infra.base import BaseProvider
from converge.core.runtime.state import CurrentState, Outcome
from converge.providers import command


class ServiceProvider(BaseProvider):
    name = "service"
    properties = ("ensure", "enable")

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        unit = attributes["name"]
        active, _ = command.run(["systemctl", "is-active", "--quiet", unit])
        state: CurrentState = {"ensure": "running" if active else "stopped"}
        # is-enabled devuelve 0 para enabled, enabled-runtime, static, alias...
        _, out = command.run(["systemctl", "is-enabled", unit])
        state["enable"] = out.strip() in ("enabled", "enabled-runtime")
        return state

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        unit = attributes["name"]
        current = self.read_state(attributes)
        done = []

        enable = attributes.get("enable")
        if enable is not None and enable != current["enable"]:
            command.run_checked(["systemctl", "enable" if enable else "disable", unit])
            done.append("habilitado" if enable else "deshabilitado")

        ensure = attributes.get("ensure")
        if ensure == "running" and current["ensure"] != "running":
            command.run_checked(["systemctl", "start", unit])
            done.append("iniciado")
        elif ensure == "stopped" and current["ensure"] != "stopped":
            command.run_checked(["systemctl", "stop", unit])
            done.append("detenido")

        return Outcome(", ".join(done), changed=bool(done))

    def refresh(self, attributes: Mapping[str, Any]) -> Outcome:
        if attributes.get("ensure") != "running":
            return Outcome(changed=False)
        command.run_checked(["systemctl", "restart", attributes["name"]])
        return Outcome("reiniciado")
