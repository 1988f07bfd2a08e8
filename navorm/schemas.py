"""Raw entity descriptors as read from a model document (JSON, YAML, dict)."""

from typing import Optional

from pydantic import BaseModel, Field

from navorm.orm_types import DeleteBehavior, Multiplicity


class RawAttribute(BaseModel):
    name: str
    type: str = "str"
    nullable: bool = True
    key: bool = False


class RawNavigation(BaseModel):
    name: str
    target: str
    multiplicity: Multiplicity = Multiplicity.SINGLE
    foreign_key: Optional[str] = None
    inverse: Optional[str] = None
    required: bool = False
    on_delete: Optional[DeleteBehavior] = None


class RawForeignKey(BaseModel):
    principal: str
    attribute: str
    required: bool = False
    on_delete: Optional[DeleteBehavior] = None


class RawEntity(BaseModel):
    name: str
    attributes: list[RawAttribute] = Field(default_factory=list)
    navigations: list[RawNavigation] = Field(default_factory=list)
    foreign_keys: list[RawForeignKey] = Field(default_factory=list)


class RawModel(BaseModel):
    entities: list[RawEntity] = Field(default_factory=list)
