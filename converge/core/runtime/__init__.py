"""
Runtime: facts, contexto de corrida, contratos de estado, secretos y rutas de estado.

El estado persistente NUNCA vive dentro del repo; se escribe en /var/lib/converge/.
"""

from converge.core.runtime.context import RunContext
from converge.core.runtime.facts import Facts
from converge.core.runtime.resolver import reports_dir, secrets_dir, secrets_file, state_root
from converge.core.runtime.secrets import Secret, SecretProvider
from converge.core.runtime.state import CurrentState, Outcome, StateDiff, diff_state

__all__ = [
    "CurrentState",
    "Facts",
    "Outcome",
    "RunContext",
    "Secret",
    "SecretProvider",
    "StateDiff",
    "diff_state",
    "reports_dir",
    "secrets_dir",
    "secrets_file",
    "state_root",
]
