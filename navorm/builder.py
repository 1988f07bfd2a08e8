"""Fluent model builder.

Collects entity declarations from declared classes, raw model documents or
chained calls, registers them and runs the build pipeline exactly once.
"""

from navorm.base import descriptor_for
from navorm.config import get_logger
from navorm.errors import ModelSealedError
from navorm.model import build_model
from navorm.orm_types import DeleteBehavior, Multiplicity
from navorm.registry import (
    Attribute,
    EntityDescriptor,
    EntityRegistry,
    ForeignKeyOverride,
    NavigationSlot,
)
from navorm.schemas import RawModel

logger = get_logger("builder")


class EntityBuilder:
    def __init__(self, builder, name):
        self.builder = builder
        self.name = name
        self.attributes = []
        self.navigations = []
        self.foreign_keys = []

    def attribute(self, name, type="str", nullable=True, key=False):
        self.attributes.append(Attribute(name=name, type=type, nullable=nullable, key=key))
        return self

    def key(self, name, type="str"):
        return self.attribute(name, type=type, nullable=False, key=True)

    def reference(self, name, target, **options):
        return self._navigation(name, target, Multiplicity.SINGLE, options)

    def collection(self, name, target, **options):
        return self._navigation(name, target, Multiplicity.COLLECTION, options)

    def foreign_key(self, principal, attribute, required=False, on_delete=None):
        self.foreign_keys.append(ForeignKeyOverride(
            dependent=self.name,
            principal=principal,
            attribute=attribute,
            required=required,
            on_delete=DeleteBehavior(on_delete) if on_delete else None,
        ))
        return self

    def entity(self, name):
        return self.builder.entity(name)

    def build(self):
        return self.builder.build()

    def _navigation(self, name, target, multiplicity, options):
        on_delete = options.pop("on_delete", None)
        self.navigations.append(NavigationSlot(
            owner=self.name,
            name=name,
            target=target,
            multiplicity=multiplicity,
            on_delete=DeleteBehavior(on_delete) if on_delete else None,
            **options,
        ))
        return self

    def descriptor(self):
        return EntityDescriptor(
            name=self.name,
            attributes=tuple(self.attributes),
            navigations=tuple(self.navigations),
            foreign_keys=tuple(self.foreign_keys),
        )


class ModelBuilder:
    def __init__(self, settings=None):
        self.settings = settings
        self._entities = []
        self._classes = {}
        self._model = None

    def entity(self, name):
        self._check_open(name)
        entity = EntityBuilder(self, name)
        self._entities.append(entity)
        return entity

    def add_descriptor(self, descriptor):
        self._check_open(descriptor.name)
        self._entities.append(descriptor)
        return self

    def add_class(self, cls):
        self.add_descriptor(descriptor_for(cls))
        self._classes[cls._entity_name] = cls
        return self

    def add_classes(self, base):
        """Add every class declared on a ``model_base()`` base, in declaration order."""
        for cls in base._registry:
            self.add_class(cls)
        return self

    def add_raw(self, raw):
        raw = raw if isinstance(raw, RawModel) else RawModel.model_validate(raw)
        for raw_entity in raw.entities:
            entity = self.entity(raw_entity.name)
            for attribute in raw_entity.attributes:
                entity.attribute(attribute.name, attribute.type, attribute.nullable, attribute.key)
            for nav in raw_entity.navigations:
                entity._navigation(nav.name, nav.target, nav.multiplicity, {
                    "foreign_key": nav.foreign_key,
                    "inverse": nav.inverse,
                    "required": nav.required,
                    "on_delete": nav.on_delete,
                })
            for fk in raw_entity.foreign_keys:
                entity.foreign_key(fk.principal, fk.attribute, fk.required, fk.on_delete)
        return self

    @classmethod
    def from_base(cls, base, settings=None):
        return cls(settings).add_classes(base).build()

    @classmethod
    def from_raw(cls, raw, settings=None):
        return cls(settings).add_raw(raw).build()

    def build(self):
        if self._model is not None:
            return self._model
        registry = EntityRegistry()
        for entity in self._entities:
            descriptor = entity.descriptor() if isinstance(entity, EntityBuilder) else entity
            registry.add(descriptor)
        self._model = build_model(registry, self.settings, self._classes)
        logger.debug("[BUILDER]: Model ready %r", self._model)
        return self._model

    def _check_open(self, name):
        if self._model is not None:
            raise ModelSealedError(name)
