from enum import Enum

from navorm.errors import DetachedEntityError


class Multiplicity(str, Enum):
    SINGLE = "single"
    COLLECTION = "collection"


class Cardinality(str, Enum):
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


class DeleteBehavior(str, Enum):
    CASCADE = "cascade"
    SET_NULL = "set-null"
    RESTRICT = "restrict"


class Column:
    def __init__(self, dtype, pk=False, nullable=True, unique=False, default=None):
        self.dtype = dtype
        self.pk = pk
        self.nullable = nullable
        self.unique = unique
        self.default = default

    @property
    def semantic_type(self):
        if isinstance(self.dtype, type):
            return self.dtype.__name__
        return str(self.dtype)

    def __repr__(self):
        return f"<Column {self.semantic_type} pk={self.pk} nullable={self.nullable}>"


class Text(Column):
    def __init__(self, pk=False, nullable=True, unique=False, default=None):
        super().__init__(str, pk, nullable, unique, default)


class Number(Column):
    def __init__(self, pk=False, nullable=True, unique=False, default=None):
        super().__init__(int, pk, nullable, unique, default)


class ForeignKey:
    """Relationship declared on the dependent without any navigation slot.

    Declared in a model's ``Meta.foreign_keys``; also used to name the
    foreign key of the single navigation relationship between the two types.
    """

    def __init__(self, principal, attribute, required=False, on_delete=None):
        self.principal = principal
        self.attribute = attribute
        self.required = required
        self.on_delete = DeleteBehavior(on_delete) if on_delete else None

    @property
    def principal_name(self):
        return _entity_name(self.principal)

    def __repr__(self):
        return f"<ForeignKey {self.attribute} -> {self.principal_name}>"


class Navigation:
    """Navigation slot declared on a model class.

    Acts as a data descriptor on instances: reads are views over the
    navigation graph the instance is attached to.
    """

    multiplicity = None

    def __init__(self, target, foreign_key=None, inverse=None, required=False, on_delete=None):
        self.target = target
        self.foreign_key = foreign_key
        self.inverse = inverse
        self.required = required
        self.on_delete = DeleteBehavior(on_delete) if on_delete else None
        self.name = None
        self.owner = None

    def __set_name__(self, owner, name):
        self.owner = owner
        self.name = name

    @property
    def target_name(self):
        return _entity_name(self.target)

    def _graph_of(self, instance):
        return instance.__dict__.get("_graph")

    def __repr__(self):
        parts = [self.multiplicity.value, f"target={self.target_name}"]
        if self.inverse:
            parts.append(f"inverse={self.inverse}")
        if self.foreign_key:
            parts.append(f"foreign_key={self.foreign_key}")
        return f"<{type(self).__name__} {', '.join(parts)}>"


class Reference(Navigation):
    multiplicity = Multiplicity.SINGLE

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        graph = self._graph_of(instance)
        if graph is None:
            return None
        return graph.reference(instance, self.name)

    def __set__(self, instance, value):
        graph = self._graph_of(instance)
        if graph is None:
            raise DetachedEntityError(instance)
        graph.set_single(instance, self.name, value)


class Collection(Navigation):
    multiplicity = Multiplicity.COLLECTION

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        from navorm.views import CollectionView
        return CollectionView(self._graph_of(instance), instance, self.name)

    def __set__(self, instance, value):
        raise AttributeError(
            f"Collection '{self.name}' cannot be assigned; use add() and remove()"
        )


def _entity_name(target):
    if isinstance(target, type):
        return getattr(target, "_entity_name", None) or target.__name__
    return target
