"""The relationship model: the frozen output of the build pipeline.

``build_model`` runs registry sealing, discovery, foreign-key resolution and
delete-behavior evaluation once. The resulting ``RelationshipModel`` is never
mutated afterwards and can be shared between threads.
"""

from types import MappingProxyType
from typing import Optional

from pydantic import BaseModel, ConfigDict

from navorm.config import get_logger
from navorm.delete_behavior import DeleteBehaviorEvaluator
from navorm.discovery import RelationshipDiscovery
from navorm.errors import UnknownNavigationError, UnknownRelationshipError
from navorm.foreign_keys import ForeignKeyAttribute, ForeignKeyResolver, JoinAssociation
from navorm.orm_types import Cardinality, DeleteBehavior

logger = get_logger("model")

PRINCIPAL = "principal"
DEPENDENT = "dependent"


class Relationship(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    principal: str
    dependent: str
    cardinality: Cardinality
    foreign_key: Optional[ForeignKeyAttribute] = None
    join: Optional[JoinAssociation] = None
    principal_slot: Optional[str] = None
    dependent_slot: Optional[str] = None
    required: bool = False
    delete_behavior: DeleteBehavior

    @property
    def is_many_to_many(self):
        return self.cardinality is Cardinality.MANY_TO_MANY

    def side_of(self, entity_type, slot):
        """Which end of the relationship a navigation slot sits on."""
        if entity_type == self.principal and slot == self.principal_slot:
            return PRINCIPAL
        if entity_type == self.dependent and slot == self.dependent_slot:
            return DEPENDENT
        raise UnknownNavigationError(entity_type, slot, f"not part of '{self.id}'")


def freeze(candidate):
    return Relationship(
        id=candidate.id,
        principal=candidate.principal,
        dependent=candidate.dependent,
        cardinality=candidate.cardinality,
        foreign_key=candidate.foreign_key,
        join=candidate.join,
        principal_slot=candidate.principal_slot.name if candidate.principal_slot else None,
        dependent_slot=candidate.dependent_slot.name if candidate.dependent_slot else None,
        required=candidate.required,
        delete_behavior=candidate.delete_behavior,
    )


class RelationshipModel:
    def __init__(self, registry, relationships, classes=None):
        self.registry = registry
        self.relationships = tuple(relationships)
        self._by_id = MappingProxyType({r.id: r for r in self.relationships})

        by_slot = {}
        for rel in self.relationships:
            if rel.principal_slot:
                by_slot[(rel.principal, rel.principal_slot)] = rel
            if rel.dependent_slot:
                by_slot[(rel.dependent, rel.dependent_slot)] = rel
        self._by_slot = MappingProxyType(by_slot)

        self._as_principal = MappingProxyType({
            name: tuple(r for r in self.relationships if r.principal == name)
            for name in registry.names
        })
        self._as_dependent = MappingProxyType({
            name: tuple(r for r in self.relationships if r.dependent == name)
            for name in registry.names
        })
        self._classes = MappingProxyType(self._entity_classes(classes or {}))

    def __repr__(self):
        return (
            f"<RelationshipModel entities={len(self.registry)} "
            f"relationships={len(self.relationships)}>"
        )

    def relationship(self, rel_id):
        try:
            return self._by_id[rel_id]
        except KeyError:
            raise UnknownRelationshipError(rel_id) from None

    def for_slot(self, entity_type, slot):
        descriptor = self.registry.lookup(entity_type)
        if descriptor.navigation(slot) is None:
            raise UnknownNavigationError(entity_type, slot)
        return self._by_slot[(entity_type, slot)]

    def as_principal(self, entity_type):
        return self._as_principal.get(entity_type, ())

    def as_dependent(self, entity_type):
        return self._as_dependent.get(entity_type, ())

    def relationships_for(self, entity_type):
        seen = {}
        for rel in self.as_principal(entity_type) + self.as_dependent(entity_type):
            seen[rel.id] = rel
        return tuple(seen.values())

    def foreign_keys(self, entity_type):
        return tuple(
            r.foreign_key for r in self.as_dependent(entity_type) if r.foreign_key is not None
        )

    def join_associations(self):
        return tuple(r.join for r in self.relationships if r.join is not None)

    def entity_class(self, name):
        self.registry.lookup(name)
        return self._classes[name]

    def to_dict(self):
        return {
            "entities": [d.model_dump(mode="json") for d in self.registry],
            "relationships": [r.model_dump(mode="json") for r in self.relationships],
        }

    def _entity_classes(self, classes):
        from navorm.base import synthesize_class

        resolved = {}
        for descriptor in self.registry:
            cls = classes.get(descriptor.name)
            resolved[descriptor.name] = cls if cls is not None else synthesize_class(descriptor)
        return resolved


def build_model(registry, settings=None, classes=None):
    """Run the build pipeline over ``registry`` and return the frozen model."""
    candidates = RelationshipDiscovery(registry, settings).discover()
    ForeignKeyResolver(registry).resolve(candidates)
    DeleteBehaviorEvaluator().evaluate(candidates)

    model = RelationshipModel(registry, [freeze(c) for c in candidates], classes)
    logger.info(
        "[MODEL]: Built %d relationships over %d entity types",
        len(model.relationships), len(registry),
    )
    return model
