"""Navigation synchronizer.

Keeps the navigation links of live entities consistent with the
relationship model. Entities live in an identity arena and their links in
an adjacency table; navigation properties are views over both.

Every operation plans its complete set of mutations in a ``ChangeSet``,
validating as it goes, and applies the set only once planning succeeded.
A failing operation therefore leaves the graph untouched.

Not thread-safe: callers serialize access to a connected part of the graph.
"""

from navorm.adjacency import AdjacencyTable
from navorm.config import get_logger
from navorm.errors import (
    CascadeCycleError,
    DeleteRestrictedError,
    DetachedEntityError,
    IdentityConflictError,
    InvalidTargetError,
    MissingKeyValueError,
    RequiredRelationshipViolationError,
    UnknownNavigationError,
    UnmappedEntityError,
)
from navorm.identity_map import IdentityMap
from navorm.loading import LazyNavigation
from navorm.model import DEPENDENT, PRINCIPAL
from navorm.orm_types import Cardinality, DeleteBehavior, Multiplicity
from navorm.states import LinkState, LoadState
from navorm.tracking import ChangeTracker
from navorm.transactions import ChangeSet

logger = get_logger("sync")


class NavigationSynchronizer:
    def __init__(self, model, tracker=None, loader=None):
        self.model = model
        self.tracker = tracker if tracker is not None else ChangeTracker()
        self.loader = loader
        self.identity_map = IdentityMap()
        self.links = AdjacencyTable()
        self._from_storage = set()
        self._navigations = {}

    def __repr__(self):
        return f"<NavigationSynchronizer entities={len(self.identity_map)}>"

    # Identity

    def entity_type(self, entity):
        name = getattr(type(entity), "_entity_name", None)
        if name is None:
            raise TypeError(f"{entity!r} is not an entity instance")
        if name not in self.model.registry:
            raise UnmappedEntityError(entity, name)
        return name

    def identity_of(self, entity):
        name = self.entity_type(entity)
        key = self.model.registry.lookup(name).key.name
        value = getattr(entity, key, None)
        if value is None:
            raise MissingKeyValueError(entity, key)
        return name, value

    def contains(self, entity):
        try:
            identity = self.identity_of(entity)
        except (MissingKeyValueError, UnmappedEntityError):
            return False
        return self.identity_map.get(identity) is entity

    def get(self, entity_type, key):
        return self.identity_map.get((entity_type, key))

    def entities(self):
        return list(self.identity_map)

    # Operations

    def attach(self, entity, loaded=True):
        """Admit an entity to the graph, linking it to attached entities its foreign keys name.

        ``loaded=False`` marks an entity read from storage: its navigations
        start unloaded.
        """
        changes = ChangeSet(self)
        self._admit(changes, entity, loaded)
        self._commit(changes, "attach")
        return entity

    def set_single(self, entity, slot, target):
        changes = ChangeSet(self)
        self._plan_set_single(changes, entity, slot, target)
        self._commit(changes, "set_single")

    def add_to_collection(self, owner, slot, member):
        changes = ChangeSet(self)
        self._plan_add(changes, owner, slot, member)
        self._commit(changes, "add_to_collection")

    def remove_from_collection(self, owner, slot, member):
        """Remove ``member``; returns False when it was not in the collection."""
        rel, side, declared = self._navigation(owner, slot, Multiplicity.COLLECTION)
        self._check_target(rel, declared, member)
        owner_id = self._attached_identity(owner)
        if not self.contains(member):
            return False
        member_id = self.identity_of(member)

        changes = ChangeSet(self)
        if rel.is_many_to_many:
            pair = (owner_id, member_id) if side == PRINCIPAL else (member_id, owner_id)
            removed = changes.unlink(rel, *pair)
        elif changes.links.has_link(rel.id, owner_id, member_id):
            self._detach(changes, rel, owner_id, member_id)
            removed = True
        else:
            removed = False
        self._commit(changes, "remove_from_collection")
        return removed

    def delete(self, entity):
        identity = self._attached_identity(entity)
        changes = ChangeSet(self)
        self._plan_delete(changes, identity, [])
        self._commit(changes, "delete")

    # Views

    def reference(self, entity, slot):
        rel, side, _ = self._navigation(entity, slot, Multiplicity.SINGLE)
        if not self.contains(entity):
            return None
        identity = self.identity_of(entity)
        if side == DEPENDENT:
            ids = self.links.principals(rel.id, identity)
        else:
            ids = self.links.dependents(rel.id, identity)
        return self.identity_map.get(ids[0]) if ids else None

    def collection(self, entity, slot):
        rel, side, _ = self._navigation(entity, slot, Multiplicity.COLLECTION)
        if not self.contains(entity):
            return ()
        identity = self.identity_of(entity)
        if side == PRINCIPAL:
            ids = self.links.dependents(rel.id, identity)
        else:
            ids = self.links.principals(rel.id, identity)
        return tuple(self.identity_map.get(i) for i in ids)

    def link_state(self, entity, slot):
        declared = self.model.registry.lookup(self.entity_type(entity)).navigation(slot)
        if declared is None:
            raise UnknownNavigationError(self.entity_type(entity), slot)
        if declared.is_collection:
            linked = bool(self.collection(entity, slot))
        else:
            linked = self.reference(entity, slot) is not None
        return LinkState.LINKED if linked else LinkState.UNLINKED

    def principal_of(self, relationship_id, dependent):
        rel = self.model.relationship(relationship_id)
        if not self.contains(dependent):
            return None
        ids = self.links.principals(rel.id, self.identity_of(dependent))
        return self.identity_map.get(ids[0]) if ids else None

    def dependents_of(self, relationship_id, principal):
        rel = self.model.relationship(relationship_id)
        if not self.contains(principal):
            return ()
        ids = self.links.dependents(rel.id, self.identity_of(principal))
        return tuple(self.identity_map.get(i) for i in ids)

    def pairs(self, relationship_id):
        rel = self.model.relationship(relationship_id)
        return [
            (self.identity_map.get(p), self.identity_map.get(d))
            for p, d in self.links.links(rel.id)
        ]

    # Lazy loading

    def navigation(self, entity, slot):
        identity = self._attached_identity(entity)
        self.model.for_slot(identity[0], slot)
        key = (identity, slot)
        if key not in self._navigations:
            state = LoadState.UNLOADED if identity in self._from_storage else LoadState.LOADED
            self._navigations[key] = LazyNavigation(self, entity, slot, state)
        return self._navigations[key]

    def _link_loaded(self, entity, slot, result):
        declared = self.model.registry.lookup(self.entity_type(entity)).navigation(slot)
        changes = ChangeSet(self)
        if declared.is_collection:
            for member in result or ():
                self._plan_add(changes, entity, slot, self._canonical(member), loaded=False)
        elif result is not None:
            self._plan_set_single(changes, entity, slot, self._canonical(result), loaded=False)
        self._commit(changes, "load")

    def _canonical(self, entity):
        existing = self.identity_map.get(self.identity_of(entity))
        return existing if existing is not None else entity

    def _forget(self, identity):
        self._from_storage.discard(identity)
        for key in [k for k in self._navigations if k[0] == identity]:
            del self._navigations[key]

    # Planning

    def _navigation(self, entity, slot, multiplicity):
        entity_type = self.entity_type(entity)
        rel = self.model.for_slot(entity_type, slot)
        declared = self.model.registry.lookup(entity_type).navigation(slot)
        if declared.multiplicity is not multiplicity:
            raise UnknownNavigationError(
                entity_type, slot, f"it is a {declared.multiplicity.value} navigation"
            )
        return rel, rel.side_of(entity_type, slot), declared

    def _check_target(self, rel, declared, target):
        if getattr(type(target), "_entity_name", None) != declared.target:
            raise InvalidTargetError(rel.id, declared.qualified_name, declared.target, target)

    def _attached_identity(self, entity):
        if not self.contains(entity):
            raise DetachedEntityError(entity)
        return self.identity_of(entity)

    def _admit(self, changes, entity, loaded=True):
        identity = self.identity_of(entity)
        current = changes.entity(identity)
        if current is entity and not changes.is_deleted(identity):
            return identity
        if current is not None:
            raise IdentityConflictError(identity, f"already held by another instance {current!r}")
        graph = entity.__dict__.get("_graph")
        if graph is not None and graph is not self:
            raise IdentityConflictError(identity, "attached to a different navigation graph")
        changes.attach(identity, entity, loaded)
        self._plan_fixup(changes, identity, entity)
        return identity

    def _plan_fixup(self, changes, identity, entity):
        entity_type, key = identity
        for rel in self.model.as_dependent(entity_type):
            if rel.foreign_key is None:
                continue
            value = getattr(entity, rel.foreign_key.attribute, None)
            principal_id = (rel.principal, value)
            if value is None or principal_id == identity or not changes.is_attached(principal_id):
                continue
            if changes.links.principals(rel.id, identity) or self._one_to_one_taken(changes, rel, principal_id):
                self._clear_stale_key(changes, rel, identity, principal_id)
                continue
            logger.debug("[SYNC]: Fix-up %s links %s -> %s", rel.id, principal_id, identity)
            changes.link(rel, principal_id, identity)

        for rel in self.model.as_principal(entity_type):
            if rel.foreign_key is None:
                continue
            for candidate in changes.attached_of_type(rel.dependent):
                if candidate is entity or getattr(candidate, rel.foreign_key.attribute, None) != key:
                    continue
                dependent_id = self.identity_of(candidate)
                if changes.is_deleted(dependent_id):
                    continue
                if changes.links.principals(rel.id, dependent_id) or self._one_to_one_taken(changes, rel, identity):
                    self._clear_stale_key(changes, rel, dependent_id, identity)
                    continue
                logger.debug("[SYNC]: Fix-up %s links %s -> %s", rel.id, identity, dependent_id)
                changes.link(rel, identity, dependent_id)

    def _clear_stale_key(self, changes, rel, dependent_id, principal_id):
        # The foreign key must not name a principal the dependent is not linked to
        logger.warning(
            "[SYNC]: Fix-up %s skipped %s -> %s; foreign key cleared",
            rel.id, principal_id, dependent_id,
        )
        changes.clear_foreign_key(rel, dependent_id)

    def _one_to_one_taken(self, changes, rel, principal_id):
        return rel.cardinality is Cardinality.ONE_TO_ONE and bool(
            changes.links.dependents(rel.id, principal_id)
        )

    def _detach(self, changes, rel, principal_id, dependent_id):
        if rel.required and not changes.is_deleted(dependent_id):
            raise RequiredRelationshipViolationError(
                rel.id, changes.entity(principal_id), changes.entity(dependent_id)
            )
        changes.unlink(rel, principal_id, dependent_id)

    def _plan_set_single(self, changes, entity, slot, target, loaded=True):
        rel, side, declared = self._navigation(entity, slot, Multiplicity.SINGLE)
        if target is None:
            # Clearing a reference never attaches the entity
            identity = self._attached_identity(entity)
            target_id = None
        else:
            self._check_target(rel, declared, target)
            identity = self._admit(changes, entity)
            target_id = self._admit(changes, target, loaded)

        if side == DEPENDENT:
            current = changes.links.principals(rel.id, identity)
            if target_id is not None and current == (target_id,):
                return
            for principal_id in current:
                if target_id is None:
                    self._detach(changes, rel, principal_id, identity)
                else:
                    changes.unlink(rel, principal_id, identity)
            if target_id is not None:
                if rel.cardinality is Cardinality.ONE_TO_ONE:
                    for other in changes.links.dependents(rel.id, target_id):
                        self._detach(changes, rel, target_id, other)
                changes.link(rel, target_id, identity)
            return

        # Principal side of a one-to-one
        current = changes.links.dependents(rel.id, identity)
        if target_id is not None and current == (target_id,):
            return
        for dependent_id in current:
            self._detach(changes, rel, identity, dependent_id)
        if target_id is not None:
            for other in changes.links.principals(rel.id, target_id):
                changes.unlink(rel, other, target_id)
            changes.link(rel, identity, target_id)

    def _plan_add(self, changes, owner, slot, member, loaded=True):
        rel, side, declared = self._navigation(owner, slot, Multiplicity.COLLECTION)
        self._check_target(rel, declared, member)
        owner_id = self._admit(changes, owner)
        member_id = self._admit(changes, member, loaded)

        if rel.is_many_to_many:
            pair = (owner_id, member_id) if side == PRINCIPAL else (member_id, owner_id)
            changes.link(rel, *pair)
            return

        current = changes.links.principals(rel.id, member_id)
        if current == (owner_id,):
            return
        for principal_id in current:
            changes.unlink(rel, principal_id, member_id)
        changes.link(rel, owner_id, member_id)

    def _plan_delete(self, changes, identity, path):
        if changes.is_deleted(identity):
            return
        if identity in path:
            cycle = path[path.index(identity):] + [identity]
            raise CascadeCycleError([changes.entity(i) for i in cycle])
        path.append(identity)
        entity_type = identity[0]
        owned = [r for r in self.model.as_principal(entity_type) if not r.is_many_to_many]

        # Restrict checks the links as they were before this delete began
        for rel in owned:
            if rel.delete_behavior is not DeleteBehavior.RESTRICT:
                continue
            dependents = self.links.dependents(rel.id, identity)
            if dependents:
                raise DeleteRestrictedError(
                    rel.id, changes.entity(identity), [changes.entity(d) for d in dependents]
                )

        for rel in owned:
            if rel.delete_behavior is DeleteBehavior.RESTRICT:
                continue
            for dependent_id in changes.links.dependents(rel.id, identity):
                if rel.delete_behavior is DeleteBehavior.CASCADE:
                    self._plan_delete(changes, dependent_id, path)
                else:
                    changes.unlink(rel, identity, dependent_id)

        for rel in self.model.relationships_for(entity_type):
            if not rel.is_many_to_many:
                continue
            if rel.principal == entity_type:
                for other in changes.links.dependents(rel.id, identity):
                    changes.unlink(rel, identity, other)
            if rel.dependent == entity_type:
                for other in changes.links.principals(rel.id, identity):
                    changes.unlink(rel, other, identity)

        for rel in self.model.as_dependent(entity_type):
            if rel.is_many_to_many:
                continue
            for principal_id in changes.links.principals(rel.id, identity):
                changes.unlink(rel, principal_id, identity)

        path.pop()
        changes.delete(identity)

    def _commit(self, changes, operation):
        if not changes:
            logger.debug("[SYNC]: %s changed nothing", operation)
            return
        changes.apply()
        logger.info("[SYNC]: %s applied %d mutations", operation, len(changes))
