"""
Modelos del manifiesto declarativo (agnósticos de interfaz y filesystem).
Usa Pydantic para validación de la estructura YAML.
"""

from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


References = Union[str, List[str]]


class Declaration(BaseModel):
    """Declaración de un recurso tal como aparece en el manifiesto"""
    model_config = ConfigDict(extra="forbid")

    type: str = Field(..., description="Tipo de recurso (file, service, user...)")
    title: str = Field(..., description="Título único dentro del tipo")
    ensure: Any = Field(None, description="Estado deseado; acepta selector")
    attributes: Dict[str, Any] = Field(default_factory=dict)
    require: List[str] = Field(default_factory=list)
    before: List[str] = Field(default_factory=list)
    notify: List[str] = Field(default_factory=list)
    subscribe: List[str] = Field(default_factory=list)
    when: Dict[str, Any] = Field(default_factory=dict, description="Condiciones sobre facts")

    @field_validator("type")
    @classmethod
    def lower_type(cls, v):
        return v.strip().lower()

    @field_validator("title", mode="before")
    @classmethod
    def title_as_text(cls, v):
        return str(v)

    @field_validator("require", "before", "notify", "subscribe", mode="before")
    @classmethod
    def as_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @property
    def reference(self) -> str:
        return f"{self.type.capitalize()}[{self.title}]"


class Manifest(BaseModel):
    """Manifiesto completo: recursos + cadenas de relación"""
    model_config = ConfigDict(extra="forbid")

    version: int = Field(1, description="Versión del esquema")
    description: str = ""
    resources: List[Declaration] = Field(default_factory=list)
    chains: List[str] = Field(default_factory=list, description="Ej: Package[httpd] -> File[/etc/httpd] ~> Service[httpd]")
