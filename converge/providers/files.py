"""
Providers de filesystem: file, directory y symlink.

Idempotencia basada en el propio archivo: hash de contenido, modo y ownership
leídos con os.lstat; nada de marcadores externos.
"""

import grp
import hashlib
import os
import pwd
import shutil
import stat
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from converge.core.errors import ProviderError
from converge.core.infra.base import BaseProvider
from converge.core.runtime.state import ABSENT, CurrentState, Outcome, default_insync


def sha256_text(text: str) -> str:
    return "{sha256}" + hashlib.sha256(text.encode("utf-8")).hexdigest()


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return "{sha256}" + digest.hexdigest()


def _owner_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _kind(st: os.stat_result) -> str:
    if stat.S_ISLNK(st.st_mode):
        return "link"
    if stat.S_ISDIR(st.st_mode):
        return "directory"
    return "file"


class _PathProvider(BaseProvider):
    """Lectura/aplicación común de modo y ownership."""

    def _lstat(self, path: Path) -> Optional[os.stat_result]:
        try:
            return os.lstat(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ProviderError(f"No se pudo leer {path}: {e}") from e

    def _ownership(self, st: os.stat_result) -> CurrentState:
        return {
            "mode": f"{stat.S_IMODE(st.st_mode):04o}",
            "owner": _owner_name(st.st_uid),
            "group": _group_name(st.st_gid),
        }

    def _apply_ownership(self, path: Path, attributes: Mapping[str, Any]) -> None:
        try:
            if attributes.get("mode"):
                os.chmod(path, int(attributes["mode"], 8))
            owner = attributes.get("owner")
            group = attributes.get("group")
            if owner or group:
                shutil.chown(
                    path,
                    user=int(owner) if owner and owner.isdigit() else owner,
                    group=int(group) if group and group.isdigit() else group,
                )
        except (OSError, LookupError) as e:
            raise ProviderError(f"No se pudo ajustar permisos de {path}: {e}") from e

    def insync(self, prop: str, desired: Any, actual: Any) -> bool:
        if prop == "owner" and str(desired).isdigit():
            return _owner_name(int(desired)) == actual
        if prop == "group" and str(desired).isdigit():
            return _group_name(int(desired)) == actual
        return default_insync(desired, actual)


class FileProvider(_PathProvider):
    """Archivo regular: contenido (literal o desde source), modo, owner, group."""

    name = "file"
    properties = ("ensure", "content", "source", "mode", "owner", "group")

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        path = Path(attributes["path"])
        st = self._lstat(path)
        if st is None:
            return {"ensure": ABSENT}
        kind = _kind(st)
        if kind != "file":
            return {"ensure": kind}
        current: CurrentState = {"ensure": "file"}
        current.update(self._ownership(st))
        if attributes.get("content") is not None or attributes.get("source") is not None:
            try:
                checksum = sha256_file(path)
            except OSError as e:
                raise ProviderError(f"No se pudo leer {path}: {e}") from e
            current["content"] = checksum
            current["source"] = checksum
        return current

    def insync(self, prop: str, desired: Any, actual: Any) -> bool:
        if prop == "ensure":
            if desired == "present":
                return actual == "file"
            return desired == actual
        if prop == "content":
            return sha256_text(desired) == actual
        if prop == "source":
            try:
                return sha256_file(Path(desired)) == actual
            except OSError as e:
                raise ProviderError(f"No se pudo leer source {desired}: {e}") from e
        return super().insync(prop, desired, actual)

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        path = Path(attributes["path"])
        st = self._lstat(path)
        if attributes.get("ensure") == ABSENT:
            if st is None:
                return Outcome(changed=False)
            if _kind(st) == "directory":
                raise ProviderError(f"{path} es un directorio; no se elimina como file")
            try:
                path.unlink()
            except OSError as e:
                raise ProviderError(f"No se pudo eliminar {path}: {e}") from e
            return Outcome("eliminado")

        if st is not None and _kind(st) == "directory":
            raise ProviderError(f"{path} existe y es un directorio")
        if not path.parent.is_dir():
            raise ProviderError(f"El directorio padre no existe: {path.parent}")

        data: Optional[bytes] = None
        if attributes.get("source") is not None:
            try:
                data = Path(attributes["source"]).read_bytes()
            except OSError as e:
                raise ProviderError(f"No se pudo leer source {attributes['source']}: {e}") from e
        elif attributes.get("content") is not None:
            data = attributes["content"].encode("utf-8")
        if data is not None:
            self._write_atomic(path, data)
        elif st is None:
            try:
                path.touch()
            except OSError as e:
                raise ProviderError(f"No se pudo crear {path}: {e}") from e
        self._apply_ownership(path, attributes)
        return Outcome("creado" if st is None else "actualizado")

    def _write_atomic(self, path: Path, data: bytes) -> None:
        """Escribe en un temporal del mismo directorio y reemplaza (os.replace)."""
        try:
            fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                if path.exists():
                    shutil.copymode(path, tmp)
                else:
                    # archivo nuevo: modo por defecto (0666 & ~umask), no el 0600 de mkstemp
                    os.chmod(tmp, 0o666 & ~_current_umask())
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise ProviderError(f"No se pudo escribir {path}: {e}") from e


class DirectoryProvider(_PathProvider):
    """Directorio: existencia, modo, owner, group (no crea padres)."""

    name = "directory"
    properties = ("ensure", "mode", "owner", "group")

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        st = self._lstat(Path(attributes["path"]))
        if st is None:
            return {"ensure": ABSENT}
        kind = _kind(st)
        if kind != "directory":
            return {"ensure": kind}
        current: CurrentState = {"ensure": "directory"}
        current.update(self._ownership(st))
        return current

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        path = Path(attributes["path"])
        st = self._lstat(path)
        if attributes.get("ensure") == ABSENT:
            if st is None:
                return Outcome(changed=False)
            try:
                path.rmdir()
            except OSError as e:
                raise ProviderError(f"No se pudo eliminar {path}: {e}") from e
            return Outcome("eliminado")

        if st is not None and _kind(st) != "directory":
            raise ProviderError(f"{path} existe y no es un directorio")
        created = st is None
        if created:
            try:
                path.mkdir()
            except OSError as e:
                raise ProviderError(f"No se pudo crear {path}: {e}") from e
        self._apply_ownership(path, attributes)
        return Outcome("creado" if created else "actualizado")


class SymlinkProvider(_PathProvider):
    """Enlace simbólico: nunca reemplaza archivos o directorios reales."""

    name = "symlink"
    properties = ("ensure", "target")

    def read_state(self, attributes: Mapping[str, Any]) -> CurrentState:
        path = Path(attributes["path"])
        st = self._lstat(path)
        if st is None:
            return {"ensure": ABSENT}
        kind = _kind(st)
        if kind != "link":
            return {"ensure": kind}
        return {"ensure": "link", "target": os.readlink(path)}

    def apply_state(self, attributes: Mapping[str, Any]) -> Outcome:
        path = Path(attributes["path"])
        st = self._lstat(path)
        if st is not None and _kind(st) != "link":
            raise ProviderError(f"{path} existe y no es un enlace simbólico")
        try:
            if st is not None:
                path.unlink()
            if attributes.get("ensure") == ABSENT:
                return Outcome("eliminado" if st is not None else "", changed=st is not None)
            os.symlink(attributes["target"], path)
        except OSError as e:
            raise ProviderError(f"No se pudo ajustar el enlace {path}: {e}") from e
        return Outcome(f"-> {attributes['target']}")
