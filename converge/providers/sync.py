"""
Provider de sincronización con rsync.

Operación opaca y bloqueante: el timeout del recurso se pasa tal cual a rsync
(--timeout); el core no la interrumpe. La contraseña llega como Secret y solo
se revela en el entorno del proceso (RSYNC_PASSWORD), nunca en argumentos ni logs.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from converge.core.errors import ProviderError
from converge.core.infra.base import BaseProvider
from converge.core.runtime.state import ABSENT, CurrentState, Outcome
from converge.providers import command

logger = logging.getLogger(__name__)

IN_SYNC = "sincronizado"


def _source_url(attributes: Mapping[str, Any]) -> str:
    """Inserta user@ en URLs rsync:// cuando se declara usuario."""
    source = attributes["source"]
    user = attributes.get("user")
    prefix = "rsync://"
    if user and source.startswith(prefix) and "@" not in source:
        return f"{prefix}{user}@{source[len(prefix):]}"
    return source


def _env(attributes: Mapping[str, Any]) -> Optional[Dict[str, str]]:
    secret = attributes.get("password")
    if secret is None:
        return None
    return {"RSYNC_PASSWORD": secret.reveal()}


def rsync_command(attributes: Mapping[str, Any], dry_run: bool = False) -> List[str]:
    args = ["rsync", "-a"]
    if dry_run:
        args.extend(["--dry-run", "--itemize-changes"])
    if attributes.get("delete"):
        args.append("--delete")
    for pattern in attributes.get("exclude") or []:
        args.append(f"--exclude={pattern}")
    if attributes.get("timeout"):
        args.append(f"--timeout={attributes['timeout']}")
    args.extend(attributes.get("options") or [])
    args.extend([_source_url(attributes), attributes["destination"]])
    return args


class SyncProvider(BaseProvider):
    """El estado comparado es 'source': sincronizado o la lista de cambios pendientes."""

    name = "sync"
    properties = ("ensure", "source")

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        if not Path(attributes["destination"]).exists():
            return {"ensure": ABSENT}
        ok, out = command.run(rsync_command(attributes, dry_run=True), timeout=None, env=_env(attributes))
        if not ok:
            raise ProviderError(f"rsync (dry-run) falló: {out}")
        pending = [line for line in out.splitlines() if line.strip()]
        if pending:
            logger.debug("%s: %d cambios pendientes", attributes["destination"], len(pending))
            return {"ensure": "present", "source": f"{len(pending)} cambios pendientes"}
        return {"ensure": "present", "source": IN_SYNC}

    def insync(self, prop: str, desired: Any, actual: Any) -> bool:
        if prop == "source":
            return actual == IN_SYNC
        return desired == actual

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        out = command.run_checked(rsync_command(attributes), timeout=None, env=_env(attributes))
        return Outcome(out.splitlines()[-1] if out else "sincronizado")
