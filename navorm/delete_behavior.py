from navorm.config import get_logger
from navorm.errors import InvalidDeleteBehaviorError
from navorm.orm_types import Cardinality, DeleteBehavior

logger = get_logger("delete_behavior")


def default_behavior(required):
    return DeleteBehavior.CASCADE if required else DeleteBehavior.SET_NULL


class DeleteBehaviorEvaluator:
    def evaluate(self, candidates):
        for candidate in candidates:
            requested = self._requested(candidate)

            if candidate.cardinality is Cardinality.MANY_TO_MANY:
                if requested not in (None, DeleteBehavior.CASCADE):
                    logger.warning(
                        "[DELETE BEHAVIOR]: %s is many-to-many; %s ignored, join rows cascade",
                        candidate.id, requested.value,
                    )
                candidate.delete_behavior = DeleteBehavior.CASCADE
                continue

            behavior = requested or default_behavior(candidate.required)
            if behavior is DeleteBehavior.SET_NULL and not candidate.foreign_key.nullable:
                raise InvalidDeleteBehaviorError(
                    candidate.id, behavior.value,
                    f"foreign key '{candidate.foreign_key.attribute}' is not nullable",
                )
            candidate.delete_behavior = behavior
        return candidates

    def _requested(self, candidate):
        requested = {s.on_delete for s in candidate.slots if s.on_delete is not None}
        if candidate.override is not None and candidate.override.on_delete is not None:
            requested.add(candidate.override.on_delete)
        if len(requested) > 1:
            raise InvalidDeleteBehaviorError(
                candidate.id, sorted(b.value for b in requested),
                "conflicting delete behaviors requested",
            )
        return requested.pop() if requested else None
