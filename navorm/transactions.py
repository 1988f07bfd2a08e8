from abc import ABC, abstractmethod

from navorm.adjacency import StagedAdjacency


class Mutation(ABC):
    @abstractmethod
    def apply(self, synchronizer):
        """Write the change into the synchronizer's arena and adjacency table."""
        pass

    @abstractmethod
    def notify(self, tracker):
        pass


class AttachMutation(Mutation):
    def __init__(self, identity, entity, loaded):
        self.identity = identity
        self.entity = entity
        self.loaded = loaded

    def apply(self, synchronizer):
        synchronizer.identity_map.add(self.identity, self.entity)
        object.__setattr__(self.entity, "_graph", synchronizer)
        for fk in synchronizer.model.foreign_keys(self.identity[0]):
            if fk.attribute not in self.entity.__dict__:
                object.__setattr__(self.entity, fk.attribute, None)
        if not self.loaded:
            synchronizer._from_storage.add(self.identity)

    def notify(self, tracker):
        tracker.on_attach(self.entity)

    def __repr__(self):
        return f"<AttachMutation {self.identity}>"


class LinkMutation(Mutation):
    def __init__(self, relationship, principal_id, principal, dependent_id, dependent):
        self.relationship = relationship
        self.principal_id = principal_id
        self.principal = principal
        self.dependent_id = dependent_id
        self.dependent = dependent

    def apply(self, synchronizer):
        synchronizer.links.link(self.relationship.id, self.principal_id, self.dependent_id)
        write_foreign_key(synchronizer, self.relationship, self.dependent, self.principal_id[1])

    def notify(self, tracker):
        tracker.on_link(self.relationship.id, self.principal, self.dependent)

    def __repr__(self):
        return f"<LinkMutation {self.relationship.id} {self.principal_id} -> {self.dependent_id}>"


class UnlinkMutation(LinkMutation):
    def apply(self, synchronizer):
        synchronizer.links.unlink(self.relationship.id, self.principal_id, self.dependent_id)
        write_foreign_key(synchronizer, self.relationship, self.dependent, None)

    def notify(self, tracker):
        tracker.on_unlink(self.relationship.id, self.principal, self.dependent)

    def __repr__(self):
        return f"<UnlinkMutation {self.relationship.id} {self.principal_id} -> {self.dependent_id}>"


class ClearForeignKeyMutation(Mutation):
    """Clears a foreign key that names a principal the dependent is not linked to."""

    def __init__(self, relationship, dependent_id, dependent):
        self.relationship = relationship
        self.dependent_id = dependent_id
        self.dependent = dependent

    def apply(self, synchronizer):
        write_foreign_key(synchronizer, self.relationship, self.dependent, None)

    def notify(self, tracker):
        pass

    def __repr__(self):
        return f"<ClearForeignKeyMutation {self.relationship.id} {self.dependent_id}>"


class DeleteMutation(Mutation):
    def __init__(self, identity, entity):
        self.identity = identity
        self.entity = entity

    def apply(self, synchronizer):
        synchronizer.identity_map.remove(self.identity)
        synchronizer._forget(self.identity)
        object.__setattr__(self.entity, "_graph", None)

    def notify(self, tracker):
        tracker.on_delete(self.entity)

    def __repr__(self):
        return f"<DeleteMutation {self.identity}>"


def write_foreign_key(synchronizer, relationship, dependent, value):
    fk = relationship.foreign_key
    if fk is None:
        return
    # A foreign key shared with the dependent's own key is never rewritten
    if fk.attribute == synchronizer.model.registry.lookup(fk.dependent).key.name:
        return
    object.__setattr__(dependent, fk.attribute, value)


class ChangeSet:
    """Mutations planned by one synchronizer operation.

    Planning reads and writes a staged view of the adjacency table; nothing
    reaches the synchronizer until ``apply()``. Discarding a change set is
    the rollback.
    """

    def __init__(self, synchronizer):
        self.synchronizer = synchronizer
        self.links = StagedAdjacency(synchronizer.links)
        self.mutations = []
        self._attached = {}
        self._deleted = {}

    def __len__(self):
        return len(self.mutations)

    def entity(self, identity):
        if identity in self._attached:
            return self._attached[identity]
        return self.synchronizer.identity_map.get(identity)

    def is_attached(self, identity):
        return self.entity(identity) is not None and identity not in self._deleted

    def is_deleted(self, identity):
        return identity in self._deleted

    def attached_of_type(self, entity_type):
        staged = [e for (t, _), e in self._attached.items() if t == entity_type]
        return self.synchronizer.identity_map.of_type(entity_type) + staged

    def attach(self, identity, entity, loaded=True):
        self._attached[identity] = entity
        self.mutations.append(AttachMutation(identity, entity, loaded))

    def link(self, relationship, principal_id, dependent_id):
        if self.links.has_link(relationship.id, principal_id, dependent_id):
            return False
        self.links.link(relationship.id, principal_id, dependent_id)
        self.mutations.append(LinkMutation(
            relationship, principal_id, self.entity(principal_id),
            dependent_id, self.entity(dependent_id),
        ))
        return True

    def unlink(self, relationship, principal_id, dependent_id):
        if not self.links.has_link(relationship.id, principal_id, dependent_id):
            return False
        self.links.unlink(relationship.id, principal_id, dependent_id)
        self.mutations.append(UnlinkMutation(
            relationship, principal_id, self.entity(principal_id),
            dependent_id, self.entity(dependent_id),
        ))
        return True

    def clear_foreign_key(self, relationship, dependent_id):
        self.mutations.append(
            ClearForeignKeyMutation(relationship, dependent_id, self.entity(dependent_id))
        )

    def delete(self, identity):
        entity = self.entity(identity)
        self._deleted[identity] = entity
        self.mutations.append(DeleteMutation(identity, entity))

    def apply(self):
        for mutation in self.mutations:
            mutation.apply(self.synchronizer)
        for mutation in self.mutations:
            mutation.notify(self.synchronizer.tracker)
        return self.mutations
