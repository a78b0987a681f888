"""
Providers de secretos.

- FileSecretProvider: YAML nombre -> valor (CONVERGE_SECRETS_FILE)
- EnvSecretProvider: variables CONVERGE_SECRET_<NOMBRE>
- GeneratedSecretProvider: genera y persiste (0600) bajo <state_root>/secrets
- ChainSecretProvider: el primero que conozca el nombre gana

Los valores nunca se registran en logs; solo el nombre lógico.
"""

import logging
import os
import re
import secrets as _random
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from converge.core.errors import ConfigError, ConvergeError
from converge.core.runtime.resolver import secrets_dir, secrets_file
from converge.core.runtime.secrets import Secret, SecretProvider

logger = logging.getLogger(__name__)

ENV_PREFIX = "CONVERGE_SECRET_"
_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class SecretNotFound(ConvergeError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Secreto no definido: {name}")


class FileSecretProvider:
    def __init__(self, path: Path):
        self.path = path
        self._values: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._values is None:
            if not self.path.exists():
                raise ConfigError(f"Archivo de secretos no encontrado: {self.path}")
            try:
                with open(self.path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Error al parsear YAML {self.path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"{self.path}: se esperaba un diccionario nombre: valor")
            self._values = {str(k): str(v) for k, v in data.items()}
        return self._values

    def get(self, name: str) -> Secret:
        values = self._load()
        if name not in values:
            raise SecretNotFound(name)
        return Secret(name, values[name])


class EnvSecretProvider:
    def __init__(self, prefix: str = ENV_PREFIX):
        self.prefix = prefix

    def get(self, name: str) -> Secret:
        key = self.prefix + re.sub(r"[^A-Za-z0-9]", "_", name).upper()
        value = os.environ.get(key)
        if value is None:
            raise SecretNotFound(name)
        return Secret(name, value)


class GeneratedSecretProvider:
    """
    Genera credenciales aleatorias la primera vez y las reutiliza en corridas siguientes.
    Con persist=False (plan/noop) genera en memoria sin escribir en disco.
    """

    def __init__(self, directory: Optional[Path] = None, length: int = 32, persist: bool = True):
        self.directory = directory or secrets_dir()
        self.length = length
        self.persist = persist
        self._generated: Dict[str, Secret] = {}

    def get(self, name: str) -> Secret:
        if not _NAME_RE.match(name):
            raise ConfigError(f"Nombre de secreto inválido: {name}")
        path = self.directory / name
        if path.exists():
            return Secret(name, path.read_text().strip())
        if name in self._generated:
            return self._generated[name]

        secret = Secret(name, _random.token_urlsafe(self.length))
        if not self.persist:
            self._generated[name] = secret
            return secret
        try:
            self.directory.mkdir(parents=True, exist_ok=True, mode=0o700)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "w") as f:
                f.write(secret.reveal())
        except OSError as e:
            raise ConfigError(f"No se pudo persistir el secreto {name} en {self.directory}: {e}") from e
        logger.info("Secreto generado: %s", name)
        return secret


class ChainSecretProvider:
    def __init__(self, providers: List[SecretProvider]):
        self.providers = providers

    def get(self, name: str) -> Secret:
        for provider in self.providers:
            try:
                return provider.get(name)
            except SecretNotFound:
                continue
        raise SecretNotFound(name)


def default_secret_provider(persist: bool = True) -> ChainSecretProvider:
    """Archivo declarado (si hay) -> entorno -> generados."""
    chain: List[SecretProvider] = []
    path = secrets_file()
    if path is not None:
        chain.append(FileSecretProvider(path))
    chain.append(EnvSecretProvider())
    chain.append(GeneratedSecretProvider(persist=persist))
    return ChainSecretProvider(chain)
