"""Foreign-key placement and naming.

The default attribute name is the principal type name followed by the
principal's key attribute name; explicit overrides win. Many-to-many
relationships get a join association carrying one key per side instead.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from navorm.config import get_logger
from navorm.errors import ForeignKeyConflictError
from navorm.orm_types import Cardinality

logger = get_logger("foreign_keys")


class ForeignKeyAttribute(BaseModel):
    model_config = ConfigDict(frozen=True)

    attribute: str
    dependent: str
    principal: str
    principal_key: str
    type: str
    nullable: bool = True
    # False for a synthesized (shadow) attribute
    declared: bool = False


class JoinAssociation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    left: str
    left_key: str
    right: str
    right_key: str


class ForeignKeyResolver:
    def __init__(self, registry):
        self.registry = registry

    def default_name(self, principal):
        return principal + self.registry.lookup(principal).key.name

    def resolve(self, candidates):
        claimed = {}
        join_names = set()
        for candidate in candidates:
            if candidate.cardinality is Cardinality.MANY_TO_MANY:
                candidate.join = self._join_association(candidate, join_names)
                candidate.required = False
                continue

            name = self._explicit_name(candidate) or self.default_name(candidate.principal)
            slot_key = (candidate.dependent, name)
            if slot_key in claimed:
                raise ForeignKeyConflictError(
                    candidate.dependent, name, [claimed[slot_key].id, candidate.id]
                )
            claimed[slot_key] = candidate
            candidate.foreign_key = self._foreign_key(candidate, name)
            candidate.required = not candidate.foreign_key.nullable
            logger.debug("[FOREIGN KEY]: %s.%s for %s", candidate.dependent, name, candidate.id)
        return candidates

    def _explicit_name(self, candidate) -> Optional[str]:
        names = [s.foreign_key for s in candidate.slots if s.foreign_key]
        if candidate.override is not None:
            names.append(candidate.override.attribute)
        distinct = sorted(set(names))
        if len(distinct) > 1:
            raise ForeignKeyConflictError(
                candidate.dependent, distinct[0], [candidate.id],
                reason=f"the relationship is given several foreign key names {distinct}",
            )
        return distinct[0] if distinct else None

    def _foreign_key(self, candidate, name):
        dependent = self.registry.lookup(candidate.dependent)
        principal_key = self.registry.lookup(candidate.principal).key

        if dependent.navigation(name) is not None:
            raise ForeignKeyConflictError(
                candidate.dependent, name, [candidate.id],
                reason="the name is already used by a navigation slot",
            )

        declared = dependent.attribute(name)
        if declared is not None and declared.type != principal_key.type:
            raise ForeignKeyConflictError(
                candidate.dependent, name, [candidate.id],
                reason=(
                    f"declared as '{declared.type}' but the key of "
                    f"'{candidate.principal}' is '{principal_key.type}'"
                ),
            )

        required = any(s.required for s in candidate.slots)
        if candidate.override is not None:
            required = required or candidate.override.required
        if declared is not None and not declared.nullable:
            required = True

        return ForeignKeyAttribute(
            attribute=name,
            dependent=candidate.dependent,
            principal=candidate.principal,
            principal_key=principal_key.name,
            type=principal_key.type,
            nullable=not required,
            declared=declared is not None,
        )

    def _join_association(self, candidate, used_names):
        left, right = candidate.principal, candidate.dependent
        left_key, right_key = self.default_name(left), self.default_name(right)
        if left_key == right_key:
            left_key = candidate.principal_slot.name + left_key
            right_key = candidate.dependent_slot.name + right_key

        name = left + right
        if name in used_names:
            name = f"{left}{candidate.principal_slot.name}{right}{candidate.dependent_slot.name}"
        used_names.add(name)
        return JoinAssociation(
            name=name, left=left, left_key=left_key, right=right, right_key=right_key
        )
