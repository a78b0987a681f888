"""
Providers de cuentas locales: group y user.

Lectura con getent; cambios con groupadd/groupmod/groupdel y
useradd/usermod/userdel. Requieren privilegios elevados para aplicar.
"""

import grp
from typing import Any, List, Mapping, Optional

from converge.core.infra.base import BaseProvider
from converge.core.runtime.state import ABSENT, CurrentState, Outcome, default_insync
from converge.providers import command


def _getent(database: str, key: str) -> Optional[List[str]]:
    """Entrada de getent separada por ':'; None si no existe."""
    ok, out = command.run(["getent", database, key])
    if not ok or not out:
        return None
    return out.splitlines()[0].split(":")


def _flag(args: List[str], flag: str, value: Any) -> None:
    if value is not None:
        args.extend([flag, str(value)])


class GroupProvider(BaseProvider):
    name = "group"
    properties = ("ensure", "gid")

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        entry = _getent("group", attributes["name"])
        if entry is None:
            return {"ensure": ABSENT}
        return {"ensure": "present", "gid": int(entry[2])}

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        group = attributes["name"]
        exists = _getent("group", group) is not None

        if attributes.get("ensure") == ABSENT:
            if not exists:
                return Outcome(changed=False)
            command.run_checked(["groupdel", group])
            return Outcome("eliminado")

        if not exists:
            args = ["groupadd"]
            _flag(args, "-g", attributes.get("gid"))
            if attributes.get("system"):
                args.append("-r")
            command.run_checked(args + [group])
            return Outcome("creado")

        if attributes.get("gid") is not None:
            command.run_checked(["groupmod", "-g", str(attributes["gid"]), group])
        return Outcome("actualizado")


class UserProvider(BaseProvider):
    """Usuario local. gid acepta número o nombre de grupo."""

    name = "user"
    properties = ("ensure", "uid", "gid", "home", "shell", "comment")

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        entry = _getent("passwd", attributes["name"])
        if entry is None:
            return {"ensure": ABSENT}
        return {
            "ensure": "present",
            "uid": int(entry[2]),
            "gid": int(entry[3]),
            "comment": entry[4],
            "home": entry[5],
            "shell": entry[6],
        }

    def insync(self, prop: str, desired: Any, actual: Any) -> bool:
        if prop == "gid" and not str(desired).isdigit():
            try:
                return grp.getgrnam(str(desired)).gr_gid == actual
            except KeyError:
                return False
        return default_insync(desired, actual)

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        user = attributes["name"]
        exists = _getent("passwd", user) is not None

        if attributes.get("ensure") == ABSENT:
            if not exists:
                return Outcome(changed=False)
            args = ["userdel"]
            if attributes.get("managehome"):
                args.append("-r")
            command.run_checked(args + [user])
            return Outcome("eliminado")

        args = ["usermod"] if exists else ["useradd"]
        _flag(args, "-u", attributes.get("uid"))
        _flag(args, "-g", attributes.get("gid"))
        _flag(args, "-d", attributes.get("home"))
        _flag(args, "-s", attributes.get("shell"))
        _flag(args, "-c", attributes.get("comment"))
        if not exists:
            if attributes.get("system"):
                args.append("-r")
            args.append("-m" if attributes.get("managehome") else "-M")
        command.run_checked(args + [user])
        return Outcome("actualizado" if exists else "creado")
