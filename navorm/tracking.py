"""Change-tracking hooks.

The synchronizer calls a ``ChangeTracker`` after each operation has been
applied, in the order the changes were planned. ``PendingChanges`` keeps
them as a queue of pending changes for a unit of work to consume.
"""

from collections import deque
from enum import Enum, auto


class ChangeTracker:
    def on_attach(self, entity):
        pass

    def on_link(self, relationship_id, principal, dependent):
        pass

    def on_unlink(self, relationship_id, principal, dependent):
        pass

    def on_delete(self, entity):
        pass


class ChangeKind(Enum):
    ATTACH = auto()
    LINK = auto()
    UNLINK = auto()
    DELETE = auto()


class PendingChange:
    def __init__(self, kind, entity=None, relationship_id=None, principal=None, dependent=None):
        self.kind = kind
        self.entity = entity
        self.relationship_id = relationship_id
        self.principal = principal
        self.dependent = dependent

    def __repr__(self):
        if self.relationship_id is None:
            return f"<PendingChange {self.kind.name} {self.entity!r}>"
        return (
            f"<PendingChange {self.kind.name} {self.relationship_id} "
            f"{self.principal!r} -> {self.dependent!r}>"
        )


class PendingChanges(ChangeTracker):
    def __init__(self):
        self.changes = deque()

    def __iter__(self):
        return iter(self.changes)

    def __len__(self):
        return len(self.changes)

    def on_attach(self, entity):
        self.changes.append(PendingChange(ChangeKind.ATTACH, entity=entity))

    def on_link(self, relationship_id, principal, dependent):
        self.changes.append(PendingChange(
            ChangeKind.LINK, relationship_id=relationship_id,
            principal=principal, dependent=dependent,
        ))

    def on_unlink(self, relationship_id, principal, dependent):
        self.changes.append(PendingChange(
            ChangeKind.UNLINK, relationship_id=relationship_id,
            principal=principal, dependent=dependent,
        ))

    def on_delete(self, entity):
        self.changes.append(PendingChange(ChangeKind.DELETE, entity=entity))

    def of_kind(self, kind):
        return [c for c in self.changes if c.kind is kind]

    def clear(self):
        self.changes.clear()
