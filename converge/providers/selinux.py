"""Provider de booleanos SELinux (getsebool / setsebool)."""

from typing import Any, Mapping

from converge.core.errors import ProviderError
from converge.core.infra.base import BaseProvider
from converge.core.runtime.state import CurrentState, Outcome
from converge.providers import command


class SelbooleanProvider(BaseProvider):
    name = "selboolean"
    properties = ("ensure",)

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        boolean = attributes["name"]
        ok, out = command.run(["getsebool", boolean])
        if not ok:
            raise ProviderError(f"getsebool {boolean}: {out or 'sin salida'}")
        # Formato: "httpd_can_network_connect --> on"
        _, sep, value = out.partition("-->")
        if not sep:
            raise ProviderError(f"Salida inesperada de getsebool: {out}")
        return {"ensure": value.strip()}

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        args = ["setsebool"]
        if attributes.get("persistent"):
            args.append("-P")
        command.run_checked(args + [attributes["name"], attributes["ensure"]], timeout=None)
        return Outcome(f"{attributes['name']} = {attributes['ensure']}")
