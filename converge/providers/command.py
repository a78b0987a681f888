"""
Ejecución de comandos del sistema para providers.

Los providers no imprimen nada: devuelven datos o levantan ProviderError.
"""

import logging
import os
import subprocess
from typing import List, Mapping, Optional, Tuple

from converge.core.errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120


def run(
    cmd: List[str],
    timeout: Optional[int] = DEFAULT_TIMEOUT,
    env: Optional[Mapping[str, str]] = None,
) -> Tuple[bool, str]:
    """
    Ejecuta comando; retorna (éxito, salida).

    Args:
        cmd: Comando y argumentos (sin shell)
        timeout: Segundos; None = sin límite (operaciones opacas con su propio timeout)
        env: Variables extra para el proceso (no se registran en logs)

    Raises:
        ProviderError: si el comando no existe o supera el timeout
    """
    logger.debug("Ejecutando: %s", " ".join(cmd))
    full_env = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)
    try:
        r = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=full_env,
        )
    except FileNotFoundError:
        raise ProviderError(f"Comando no encontrado: {cmd[0]}") from None
    except subprocess.TimeoutExpired:
        raise ProviderError(f"Timeout ({timeout}s) ejecutando: {' '.join(cmd)}") from None
    out = (r.stdout or "") + (r.stderr or "")
    return (r.returncode == 0, out.strip())


def run_checked(
    cmd: List[str],
    timeout: Optional[int] = DEFAULT_TIMEOUT,
    env: Optional[Mapping[str, str]] = None,
) -> str:
    """Como run(), pero un código de salida distinto de 0 es ProviderError."""
    ok, out = run(cmd, timeout=timeout, env=env)
    if not ok:
        detail = f": {out}" if out else ""
        raise ProviderError(f"Falló '{' '.join(cmd)}'{detail}")
    return out
