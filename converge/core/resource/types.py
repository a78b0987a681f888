"""
Esquemas de atributos por tipo de recurso.
Usa Pydantic para validación y coerción en tiempo de registro (falla rápido).

Cada esquema declara:
- namevar: atributo que toma el título por defecto (path o name)
- ensure: valores permitidos y valor por defecto
"""

import re
from typing import Any, ClassVar, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from converge.core.runtime.secrets import Secret


_MODE_RE = re.compile(r"^0?[0-7]{3,4}$")


def _absolute(value: Optional[str], field_name: str) -> Optional[str]:
    if value is None:
        return value
    if not str(value).startswith("/"):
        raise ValueError(f"'{field_name}' debe ser una ruta absoluta: {value}")
    return str(value)


def _mode(value: Any) -> Optional[str]:
    """
    Normaliza permisos a 4 dígitos octales.

    Texto se lee como octal ('640' -> '0640', '2775' -> '2775'). Un entero son bits
    de permiso (0o640 -> '0640'); YAML sin comillas ya entrega `0644` como 420.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"modo octal inválido: {value}")
    if isinstance(value, int):
        if not 0 <= value <= 0o7777:
            raise ValueError(f"modo fuera de rango: {value:o}")
        return f"{value:04o}"
    text = str(value).strip()
    if not _MODE_RE.match(text):
        raise ValueError(f"modo octal inválido: {value}")
    return text.zfill(4) if len(text) < 4 else text[-4:]


class ResourceSchema(BaseModel):
    """Base de todos los esquemas: atributos desconocidos se rechazan."""
    model_config = ConfigDict(extra="forbid")

    namevar: ClassVar[str] = "name"


class _PathSchema(ResourceSchema):
    namevar: ClassVar[str] = "path"

    path: str = Field(..., description="Ruta absoluta del recurso")

    @field_validator("path")
    @classmethod
    def path_is_absolute(cls, v):
        return _absolute(v, "path")


class _OwnedPathSchema(_PathSchema):
    mode: Optional[str] = Field(None, description="Permisos octales (ej: 0640)")
    owner: Optional[str] = Field(None, description="Usuario propietario")
    group: Optional[str] = Field(None, description="Grupo propietario")

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        return _mode(v)

    @field_validator("owner", "group", mode="before")
    @classmethod
    def ids_as_text(cls, v):
        return None if v is None else str(v)


class FileSchema(_OwnedPathSchema):
    """Archivo regular con contenido literal o copiado de un origen local"""
    ensure: Literal["present", "file", "absent"] = "file"
    content: Optional[str] = None
    source: Optional[str] = Field(None, description="Archivo local del que se copia el contenido")

    @field_validator("source")
    @classmethod
    def source_is_absolute(cls, v):
        return _absolute(v, "source")

    @model_validator(mode="after")
    def content_or_source(self):
        if self.content is not None and self.source is not None:
            raise ValueError("'content' y 'source' son excluyentes")
        return self


class DirectorySchema(_OwnedPathSchema):
    ensure: Literal["directory", "absent"] = "directory"


class SymlinkSchema(_PathSchema):
    """Enlace simbólico: solo path, ensure y target"""
    ensure: Literal["link", "absent"] = "link"
    target: Optional[str] = Field(None, description="Destino del enlace")

    @model_validator(mode="after")
    def target_required(self):
        if self.ensure == "link" and not self.target:
            raise ValueError("'target' es obligatorio cuando ensure=link")
        return self


class ServiceSchema(ResourceSchema):
    name: str
    ensure: Literal["running", "stopped"] = "running"
    enable: Optional[bool] = Field(None, description="Arranque en boot (systemctl enable)")


class GroupSchema(ResourceSchema):
    name: str
    ensure: Literal["present", "absent"] = "present"
    gid: Optional[int] = None
    system: bool = False


class UserSchema(ResourceSchema):
    name: str
    ensure: Literal["present", "absent"] = "present"
    uid: Optional[int] = None
    gid: Optional[Union[int, str]] = Field(None, description="Grupo primario (gid o nombre)")
    home: Optional[str] = None
    shell: Optional[str] = None
    comment: Optional[str] = None
    system: bool = False
    managehome: bool = False

    @field_validator("home", "shell")
    @classmethod
    def paths_are_absolute(cls, v, info):
        return _absolute(v, info.field_name)


class PackageSchema(ResourceSchema):
    name: str
    ensure: Literal["present", "installed", "latest", "absent"] = "present"


class SelbooleanSchema(ResourceSchema):
    """Booleano SELinux; ensure acepta on/off y también true/false/1/0"""
    name: str
    ensure: Literal["on", "off"] = "on"
    persistent: bool = False

    @field_validator("ensure", mode="before")
    @classmethod
    def coerce_toggle(cls, v):
        if isinstance(v, bool):
            return "on" if v else "off"
        text = str(v).strip().lower()
        if text in ("true", "1", "yes", "on"):
            return "on"
        if text in ("false", "0", "no", "off"):
            return "off"
        return text


class SyncSchema(ResourceSchema):
    """Sincronización de contenido con rsync (operación bloqueante con su propio timeout)"""
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)
    namevar: ClassVar[str] = "destination"

    destination: str
    source: str = Field(..., description="Origen rsync (ruta o rsync://host/módulo)")
    ensure: Literal["present"] = "present"
    user: Optional[str] = None
    password: Optional[Secret] = Field(None, description="Credencial; solo vía {secret: nombre}")
    delete: bool = False
    exclude: List[str] = Field(default_factory=list)
    options: List[str] = Field(default_factory=list)
    timeout: Optional[int] = Field(None, gt=0, description="Segundos; se pasa tal cual a rsync")

    @field_validator("destination")
    @classmethod
    def destination_is_absolute(cls, v):
        return _absolute(v, "destination")


SCHEMAS: Dict[str, Type[ResourceSchema]] = {
    "file": FileSchema,
    "directory": DirectorySchema,
    "symlink": SymlinkSchema,
    "service": ServiceSchema,
    "group": GroupSchema,
    "user": UserSchema,
    "package": PackageSchema,
    "selboolean": SelbooleanSchema,
    "sync": SyncSchema,
}
