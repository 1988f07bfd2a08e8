"""Entity descriptor registry.

Descriptors are frozen pydantic models. The registry accepts them during the
model-build phase only; ``seal()`` checks cross references and freezes the
catalog, after which every ``register`` call fails.
"""

from types import MappingProxyType
from typing import Optional

from pydantic import BaseModel, ConfigDict

from navorm.config import get_logger
from navorm.errors import (
    DuplicateEntityError,
    DuplicateMemberError,
    ModelBuildError,
    ModelSealedError,
    PrimaryKeyError,
    UnknownEntityError,
)
from navorm.orm_types import DeleteBehavior, Multiplicity

logger = get_logger("registry")


class Attribute(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "str"
    nullable: bool = True
    key: bool = False


class NavigationSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    target: str
    multiplicity: Multiplicity
    foreign_key: Optional[str] = None
    inverse: Optional[str] = None
    required: bool = False
    on_delete: Optional[DeleteBehavior] = None

    @property
    def is_collection(self) -> bool:
        return self.multiplicity is Multiplicity.COLLECTION

    @property
    def qualified_name(self) -> str:
        return f"{self.owner}.{self.name}"

    def __str__(self):
        return self.qualified_name


class ForeignKeyOverride(BaseModel):
    """Explicit foreign key declared by a dependent type."""

    model_config = ConfigDict(frozen=True)

    dependent: str
    principal: str
    attribute: str
    required: bool = False
    on_delete: Optional[DeleteBehavior] = None


class EntityDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    attributes: tuple[Attribute, ...] = ()
    navigations: tuple[NavigationSlot, ...] = ()
    foreign_keys: tuple[ForeignKeyOverride, ...] = ()

    @property
    def key(self) -> Optional[Attribute]:
        """The primary-key attribute: the one marked ``key``, else ``Id`` or ``<Type>Id``."""
        marked = [a for a in self.attributes if a.key]
        if marked:
            return marked[0]
        for candidate in ("Id", f"{self.name}Id"):
            attribute = self.attribute(candidate)
            if attribute is not None:
                return attribute
        return None

    def attribute(self, name) -> Optional[Attribute]:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        return None

    def navigation(self, name) -> Optional[NavigationSlot]:
        for slot in self.navigations:
            if slot.name == name:
                return slot
        return None

    def slot_index(self, name) -> int:
        return [s.name for s in self.navigations].index(name)


class EntityRegistry:
    def __init__(self):
        self._entities = {}
        self._sealed = False

    def __repr__(self):
        state = "sealed" if self._sealed else "open"
        return f"<EntityRegistry {state} entities=[{', '.join(self._entities)}]>"

    def __contains__(self, name):
        return name in self._entities

    def __iter__(self):
        return iter(self._entities.values())

    def __len__(self):
        return len(self._entities)

    @property
    def sealed(self):
        return self._sealed

    @property
    def names(self):
        return tuple(self._entities)

    def register(self, name, attributes=(), navigations=(), foreign_keys=()):
        descriptor = EntityDescriptor(
            name=name,
            attributes=tuple(attributes),
            navigations=tuple(navigations),
            foreign_keys=tuple(foreign_keys),
        )
        return self.add(descriptor)

    def add(self, descriptor):
        if self._sealed:
            raise ModelSealedError(descriptor.name)
        if descriptor.name in self._entities:
            raise DuplicateEntityError(descriptor.name)
        self._validate_members(descriptor)
        self._validate_key(descriptor)
        self._entities[descriptor.name] = descriptor
        logger.debug("[REGISTRY]: Registered %s", descriptor.name)
        return descriptor

    def lookup(self, name):
        try:
            return self._entities[name]
        except KeyError:
            raise UnknownEntityError(name) from None

    def order(self, name):
        """Registration position of an entity type."""
        return self.names.index(name)

    def foreign_key_overrides(self):
        return tuple(fk for d in self._entities.values() for fk in d.foreign_keys)

    def seal(self):
        if self._sealed:
            return self
        for descriptor in self._entities.values():
            for slot in descriptor.navigations:
                if slot.target not in self._entities:
                    raise UnknownEntityError(slot.target, referenced_by=slot.qualified_name)
            for fk in descriptor.foreign_keys:
                if fk.principal not in self._entities:
                    raise UnknownEntityError(
                        fk.principal, referenced_by=f"{descriptor.name}.{fk.attribute}"
                    )
        self._entities = MappingProxyType(dict(self._entities))
        self._sealed = True
        logger.info("[REGISTRY]: Sealed with %d entity types", len(self._entities))
        return self

    def _validate_members(self, descriptor):
        seen = set()
        members = [a.name for a in descriptor.attributes] + [s.name for s in descriptor.navigations]
        for member in members:
            if member in seen:
                raise DuplicateMemberError(descriptor.name, member)
            seen.add(member)
        for slot in descriptor.navigations:
            if slot.owner != descriptor.name:
                raise ModelBuildError(
                    f"Navigation '{slot.qualified_name}' is declared on '{descriptor.name}'"
                )
        for fk in descriptor.foreign_keys:
            if fk.dependent != descriptor.name:
                raise UnknownEntityError(fk.dependent, referenced_by=f"{descriptor.name}.{fk.attribute}")

    def _validate_key(self, descriptor):
        marked = [a.name for a in descriptor.attributes if a.key]
        if len(marked) > 1:
            raise PrimaryKeyError(descriptor.name, f"composite keys are not supported {marked}")
        if descriptor.key is None:
            raise PrimaryKeyError(descriptor.name, "no primary key attribute defined")
