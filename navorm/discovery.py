"""Relationship discovery.

Groups the navigation slots between every pair of entity types into
relationships and classifies their cardinality. Pairing uses explicit
inverse annotations first and falls back to convention only while the
pairing is unambiguous.
"""

from navorm.config import get_logger, get_settings
from navorm.errors import AmbiguousRelationshipError, InvalidInverseError
from navorm.orm_types import Cardinality, Multiplicity

logger = get_logger("discovery")


class RelationshipCandidate:
    """A discovered relationship, filled in by the later build stages."""

    def __init__(self, principal, dependent, cardinality, principal_slot=None,
                 dependent_slot=None, override=None):
        self.principal = principal
        self.dependent = dependent
        self.cardinality = cardinality
        self.principal_slot = principal_slot
        self.dependent_slot = dependent_slot
        self.override = override
        self.foreign_key = None
        self.join = None
        self.required = False
        self.delete_behavior = None

    @property
    def id(self):
        principal = self.principal_slot.name if self.principal_slot else "*"
        dependent = self.dependent_slot.name if self.dependent_slot else "*"
        rel_id = f"{self.principal}.{principal}->{self.dependent}.{dependent}"
        if self.principal_slot is None and self.dependent_slot is None:
            rel_id += f"[{self.override.attribute}]"
        return rel_id

    @property
    def slots(self):
        return tuple(s for s in (self.principal_slot, self.dependent_slot) if s is not None)

    def __repr__(self):
        return f"<RelationshipCandidate {self.cardinality.value} {self.id}>"


class RelationshipDiscovery:
    def __init__(self, registry, settings=None):
        self.registry = registry
        self.settings = settings or get_settings()

    def discover(self):
        self.registry.seal()
        candidates = []
        names = self.registry.names
        for i, first in enumerate(names):
            for second in names[i:]:
                candidates.extend(self._discover_pair(first, second))
        self._apply_overrides(candidates)
        self._check_ownership(candidates)
        logger.info("[DISCOVERY]: Found %d relationships", len(candidates))
        return candidates

    def _slots_between(self, owner, target):
        return [s for s in self.registry.lookup(owner).navigations if s.target == target]

    def _discover_pair(self, first, second):
        slots = self._slots_between(first, second)
        if first != second:
            slots += self._slots_between(second, first)
        if not slots:
            return []

        pairs, remaining = self._pair_explicit(slots)
        pairs.extend(self._pair_by_convention(first, second, remaining))

        found = [self._classify(a, b) for a, b in pairs]
        for candidate in found:
            logger.debug("[DISCOVERY]: %s -> %s", candidate.id, candidate.cardinality.value)
        return found

    def _pair_explicit(self, slots):
        by_name = {(s.owner, s.name): s for s in slots}
        paired = {}
        pairs = []
        for slot in slots:
            if slot.inverse is None or slot.qualified_name in paired:
                continue
            inverse = by_name.get((slot.target, slot.inverse))
            if inverse is None:
                if self.registry.lookup(slot.target).navigation(slot.inverse) is not None:
                    reason = f"'{slot.target}.{slot.inverse}' does not point back at '{slot.owner}'"
                else:
                    reason = f"'{slot.target}' has no navigation named '{slot.inverse}'"
                raise InvalidInverseError(slot.qualified_name, reason)
            if inverse is slot:
                raise InvalidInverseError(slot.qualified_name, "a navigation cannot be its own inverse")
            if inverse.inverse not in (None, slot.name):
                raise InvalidInverseError(
                    slot.qualified_name,
                    f"'{inverse.qualified_name}' names '{inverse.inverse}' as its inverse",
                )
            if inverse.qualified_name in paired:
                raise InvalidInverseError(
                    slot.qualified_name,
                    f"'{inverse.qualified_name}' is already paired with "
                    f"'{paired[inverse.qualified_name].qualified_name}'",
                )
            paired[slot.qualified_name] = inverse
            paired[inverse.qualified_name] = slot
            pairs.append((slot, inverse))
        remaining = [s for s in slots if s.qualified_name not in paired]
        return pairs, remaining

    def _pair_by_convention(self, first, second, remaining):
        if not remaining:
            return []
        names = [s.qualified_name for s in remaining]

        if first == second:
            if len(remaining) == 1:
                return [(remaining[0], None)]
            singles = [s for s in remaining if not s.is_collection]
            collections = [s for s in remaining if s.is_collection]
            if len(singles) == 1 and len(collections) == 1:
                return [(singles[0], collections[0])]
            raise AmbiguousRelationshipError(first, second, names)

        on_first = [s for s in remaining if s.owner == first]
        on_second = [s for s in remaining if s.owner == second]
        if len(on_first) > 1 or len(on_second) > 1:
            raise AmbiguousRelationshipError(first, second, names)
        if on_first and on_second:
            return [(on_first[0], on_second[0])]
        return [(remaining[0], None)]

    def _classify(self, slot, inverse):
        if inverse is None:
            return self._classify_unpaired(slot)

        if slot.is_collection and inverse.is_collection:
            principal_slot, dependent_slot = sorted((slot, inverse), key=self._declaration_order)
            return RelationshipCandidate(
                principal_slot.owner, dependent_slot.owner, Cardinality.MANY_TO_MANY,
                principal_slot=principal_slot, dependent_slot=dependent_slot,
            )

        if slot.is_collection != inverse.is_collection:
            principal_slot = slot if slot.is_collection else inverse
            dependent_slot = inverse if slot.is_collection else slot
            return RelationshipCandidate(
                principal_slot.owner, dependent_slot.owner, Cardinality.ONE_TO_MANY,
                principal_slot=principal_slot, dependent_slot=dependent_slot,
            )

        dependent_slot, principal_slot = self._one_to_one_sides(slot, inverse)
        return RelationshipCandidate(
            principal_slot.owner, dependent_slot.owner, Cardinality.ONE_TO_ONE,
            principal_slot=principal_slot, dependent_slot=dependent_slot,
        )

    def _classify_unpaired(self, slot):
        if slot.is_collection:
            return RelationshipCandidate(
                slot.owner, slot.target, Cardinality.ONE_TO_MANY, principal_slot=slot,
            )
        return RelationshipCandidate(
            slot.target, slot.owner, self.settings.unidirectional_reference, dependent_slot=slot,
        )

    def _one_to_one_sides(self, slot, inverse):
        """Return ``(dependent_slot, principal_slot)`` for two paired single slots."""
        if slot.required != inverse.required:
            return (slot, inverse) if slot.required else (inverse, slot)
        first, second = sorted((slot, inverse), key=self._declaration_order)
        return first, second

    def _declaration_order(self, slot):
        descriptor = self.registry.lookup(slot.owner)
        return self.registry.order(slot.owner), descriptor.slot_index(slot.name)

    def _apply_overrides(self, candidates):
        grouped = {}
        for override in self.registry.foreign_key_overrides():
            grouped.setdefault((override.dependent, override.principal), []).append(override)

        for (dependent, principal), overrides in grouped.items():
            matching = [
                c for c in candidates
                if c.dependent == dependent and c.principal == principal
                and c.cardinality is not Cardinality.MANY_TO_MANY
            ]
            if not matching:
                for override in overrides:
                    candidate = RelationshipCandidate(
                        principal, dependent, self.settings.no_navigation_cardinality,
                        override=override,
                    )
                    logger.debug("[DISCOVERY]: %s -> %s (no navigation)", candidate.id,
                                 candidate.cardinality.value)
                    candidates.append(candidate)
            elif len(matching) == 1 and len(overrides) == 1:
                matching[0].override = overrides[0]
            else:
                names = [s.qualified_name for c in matching for s in c.slots]
                names += [f"{o.dependent}.{o.attribute}" for o in overrides]
                raise AmbiguousRelationshipError(
                    dependent, principal, names,
                    reason="cannot tell which relationship each foreign key belongs to",
                )

    def _check_ownership(self, candidates):
        owners = {}
        for candidate in candidates:
            for slot in candidate.slots:
                if slot.qualified_name in owners:
                    raise AmbiguousRelationshipError(
                        candidate.principal, candidate.dependent, [slot.qualified_name],
                        reason=f"claimed by both {owners[slot.qualified_name]} and {candidate.id}",
                    )
                owners[slot.qualified_name] = candidate.id
