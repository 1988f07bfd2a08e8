# NavORM - relationship conventions and navigation synchronization
from navorm.base import Entity, model_base
from navorm.builder import ModelBuilder
from navorm.model import Relationship, RelationshipModel, build_model
from navorm.orm_types import (
    Cardinality,
    Collection,
    DeleteBehavior,
    ForeignKey,
    Multiplicity,
    Number,
    Reference,
    Text,
)
from navorm.registry import EntityRegistry
from navorm.synchronizer import NavigationSynchronizer
from navorm.tracking import ChangeTracker, PendingChanges

__version__ = "0.1.0"
__all__ = [
    "Entity", "model_base", "ModelBuilder", "Relationship", "RelationshipModel", "build_model",
    "Cardinality", "Collection", "DeleteBehavior", "ForeignKey", "Multiplicity", "Number",
    "Reference", "Text", "EntityRegistry", "NavigationSynchronizer", "ChangeTracker",
    "PendingChanges",
]
