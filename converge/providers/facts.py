"""
Recolección de facts del host actual.

Fuentes: /etc/os-release, platform.machine(), getenforce.
El resultado es un Facts inmutable que se pasa al manifiesto y a los providers.
"""

import logging
import platform
import socket
from pathlib import Path
from typing import Dict, Optional

import yaml

from converge.core.errors import ConfigError, ProviderError
from converge.core.runtime.facts import Facts
from converge.providers import command

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")

# ID / ID_LIKE de os-release -> familia
_FAMILIES = {
    "rhel": "RedHat",
    "centos": "RedHat",
    "fedora": "RedHat",
    "rocky": "RedHat",
    "almalinux": "RedHat",
    "ol": "RedHat",
    "debian": "Debian",
    "ubuntu": "Debian",
    "suse": "Suse",
    "opensuse": "Suse",
    "sles": "Suse",
    "arch": "Archlinux",
    "alpine": "Alpine",
}


def parse_os_release(text: str) -> Dict[str, str]:
    """Parsea el formato KEY=valor de os-release (comillas opcionales)."""
    data: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data


def os_family(release: Dict[str, str]) -> Optional[str]:
    candidates = [release.get("ID", "")] + release.get("ID_LIKE", "").split()
    for candidate in candidates:
        family = _FAMILIES.get(candidate.lower())
        if family:
            return family
    return None


def selinux_mode() -> str:
    """enforcing / permissive / disabled (disabled si getenforce no existe)."""
    try:
        ok, out = command.run(["getenforce"], timeout=10)
    except ProviderError:
        return "disabled"
    return out.strip().lower() if ok and out else "disabled"


def gather_facts(os_release: Path = OS_RELEASE) -> Facts:
    release: Dict[str, str] = {}
    try:
        release = parse_os_release(os_release.read_text())
    except OSError as e:
        logger.warning("No se pudo leer %s: %s", os_release, e)

    version = release.get("VERSION_ID", "")
    data = {
        "os_family": os_family(release),
        "os_major": version.split(".")[0] if version else None,
        "architecture": platform.machine() or None,
        "selinux": selinux_mode(),
        "os_name": release.get("ID"),
        "os_version": version or None,
        "hostname": socket.gethostname(),
        "kernel": platform.release(),
    }
    facts = Facts.from_mapping(data)
    logger.debug("Facts recolectados: %s", facts.as_dict())
    return facts


def load_facts_file(path: Path) -> Dict[str, object]:
    """Facts (o overrides) desde un YAML plano clave: valor."""
    if not path.exists():
        raise ConfigError(f"Archivo de facts no encontrado: {path}")
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error al parsear YAML {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: se esperaba un diccionario de facts")
    return data
