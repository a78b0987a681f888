"""
Resolución de rutas de estado.

- state_root(): directorio canónico de estado/runtime (/var/lib/converge/).
- reports_dir(): donde la CLI deja el último reporte de corrida.
- secrets_dir(): donde el provider de secretos generados persiste credenciales.
- secrets_file(): archivo YAML opcional con secretos declarados por nombre.

El core NO escribe en disco; solo expone estas rutas. Quién escribe (CLI/providers)
debe usar estas funciones para no dejar estado dentro del repo.
"""

import os
from pathlib import Path
from typing import Optional


# Ruta canónica del estado (fuera del repo)
CONVERGE_STATE_ROOT = Path("/var/lib/converge")


def state_root() -> Path:
    """
    Directorio raíz del estado y runtime.
    Se puede redirigir con CONVERGE_STATE_ROOT (tests, ejecución sin root).
    """
    explicit = os.environ.get("CONVERGE_STATE_ROOT", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    return CONVERGE_STATE_ROOT


def reports_dir() -> Path:
    return state_root() / "reports"


def secrets_dir() -> Path:
    return state_root() / "secrets"


def secrets_file() -> Optional[Path]:
    """Archivo YAML de secretos (CONVERGE_SECRETS_FILE); None si no está definido."""
    explicit = os.environ.get("CONVERGE_SECRETS_FILE", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    return None
