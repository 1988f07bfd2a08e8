"""Exception hierarchy.

Model-build errors subclass ``ValueError`` and mean the declared model is
structurally inconsistent; they are raised while the relationship model is
built and are not meant to be recovered from. Synchronization errors
subclass ``RuntimeError`` and are raised by a single synchronizer operation,
which leaves the instance graph exactly as it was before the call.
"""


class NavormError(Exception):
    """Base class for every error raised by NavORM."""


class ModelBuildError(NavormError, ValueError):
    pass


class DuplicateEntityError(ModelBuildError):
    def __init__(self, entity):
        self.entity = entity
        super().__init__(f"Entity type '{entity}' is already registered")


class DuplicateMemberError(ModelBuildError):
    def __init__(self, entity, member):
        self.entity = entity
        self.member = member
        super().__init__(f"Entity type '{entity}' declares '{member}' more than once")


class UnknownEntityError(ModelBuildError):
    def __init__(self, entity, referenced_by=None):
        self.entity = entity
        self.referenced_by = referenced_by
        msg = f"Unknown entity type '{entity}'"
        if referenced_by:
            msg += f" (referenced by {referenced_by})"
        super().__init__(msg)


class PrimaryKeyError(ModelBuildError):
    def __init__(self, entity, reason):
        self.entity = entity
        super().__init__(f"Entity type '{entity}': {reason}")


class ModelSealedError(ModelBuildError):
    def __init__(self, entity):
        self.entity = entity
        super().__init__(f"Cannot register '{entity}': the entity registry is sealed")


class AmbiguousRelationshipError(ModelBuildError):
    def __init__(self, first, second, slots, reason=None):
        self.types = (first, second)
        self.slots = tuple(slots)
        names = ", ".join(self.slots)
        msg = (
            f"Ambiguous relationship between '{first}' and '{second}': "
            f"cannot pair navigation slots [{names}]"
        )
        msg += f"; {reason}" if reason else "; annotate them with explicit inverses"
        super().__init__(msg)


class InvalidInverseError(ModelBuildError):
    def __init__(self, slot, reason):
        self.slot = slot
        super().__init__(f"Invalid inverse on navigation '{slot}': {reason}")


class ForeignKeyConflictError(ModelBuildError):
    def __init__(self, dependent, attribute, relationships, reason=None):
        self.dependent = dependent
        self.attribute = attribute
        self.relationships = tuple(relationships)
        msg = (
            f"Foreign key '{attribute}' on '{dependent}' conflicts between "
            f"relationships {list(self.relationships)}"
        )
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidDeleteBehaviorError(ModelBuildError):
    def __init__(self, relationship, behavior, reason):
        self.relationship = relationship
        self.behavior = behavior
        super().__init__(
            f"Invalid delete behavior {behavior} for relationship '{relationship}': {reason}"
        )


class UnknownRelationshipError(NavormError, LookupError):
    def __init__(self, relationship):
        self.relationship = relationship
        super().__init__(f"Unknown relationship '{relationship}'")


class SynchronizationError(NavormError, RuntimeError):
    pass


class RequiredRelationshipViolationError(SynchronizationError):
    def __init__(self, relationship, principal, dependent):
        self.relationship = relationship
        self.principal = principal
        self.dependent = dependent
        super().__init__(
            f"Cannot detach {dependent!r} from {principal!r}: "
            f"relationship '{relationship}' is required"
        )


class DeleteRestrictedError(SynchronizationError):
    def __init__(self, relationship, principal, dependents):
        self.relationship = relationship
        self.principal = principal
        self.dependents = tuple(dependents)
        super().__init__(
            f"Cannot delete {principal!r}: relationship '{relationship}' restricts "
            f"deletion while dependents exist {list(self.dependents)}"
        )


class CascadeCycleError(SynchronizationError):
    def __init__(self, path):
        self.path = tuple(path)
        chain = " -> ".join(repr(e) for e in self.path)
        super().__init__(f"Cascade delete cycle detected: {chain}")


class IdentityConflictError(SynchronizationError):
    def __init__(self, identity, reason):
        self.identity = identity
        super().__init__(f"Identity {identity}: {reason}")


class MissingKeyValueError(SynchronizationError):
    def __init__(self, entity, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity!r} has no value for key attribute '{key}'")


class DetachedEntityError(SynchronizationError):
    def __init__(self, entity):
        self.entity = entity
        super().__init__(f"{entity!r} is not attached to a navigation graph")


class UnmappedEntityError(SynchronizationError):
    def __init__(self, entity, entity_type):
        self.entity = entity
        self.entity_type = entity_type
        super().__init__(
            f"{entity!r} is of type '{entity_type}', which the relationship model does not map"
        )


class UnknownNavigationError(SynchronizationError):
    def __init__(self, entity_type, slot, reason=None):
        self.entity_type = entity_type
        self.slot = slot
        msg = f"Entity type '{entity_type}' has no usable navigation '{slot}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidTargetError(SynchronizationError):
    def __init__(self, relationship, slot, expected, actual):
        self.relationship = relationship
        self.slot = slot
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Navigation '{slot}' of relationship '{relationship}' expects "
            f"'{expected}', got {actual!r}"
        )


class NavigationLoadError(SynchronizationError):
    def __init__(self, entity, slot, reason):
        self.entity = entity
        self.slot = slot
        super().__init__(f"Cannot load '{slot}' of {entity!r}: {reason}")


class NavigationNotLoadedError(SynchronizationError):
    def __init__(self, entity, slot):
        self.entity = entity
        self.slot = slot
        super().__init__(f"Navigation '{slot}' of {entity!r} has not been loaded; call load()")
