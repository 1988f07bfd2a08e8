from navorm.orm_types import Column, Navigation, Collection, Reference
from navorm.registry import Attribute, EntityDescriptor, ForeignKeyOverride, NavigationSlot


class Entity:
    """Base class of every entity instance.

    Subclasses declare scalar columns, navigations and an optional ``Meta``
    (``entity_name``, ``foreign_keys``). Declarations are read once, when the
    class is created; the model builder turns them into descriptors.
    """

    _registry = None
    _entity_name = None

    def __repr__(self):
        graph = self.__dict__.get("_graph")
        key = None
        if graph is not None:
            key = getattr(self, graph.model.registry.lookup(self._entity_name).key.name, None)
        else:
            for name, column in self._columns.items():
                if column.pk or name in ("Id", f"{self._entity_name}Id"):
                    key = getattr(self, name, None)
                    break
        return f"<{self._entity_name}(id={key if key is not None else 'New'})>"

    def __init__(self, **kwargs):
        object.__setattr__(self, "_graph", None)
        for name, column in self._columns.items():
            object.__setattr__(self, name, column.default)
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "_registry" in cls.__dict__:
            return

        meta_cls = getattr(cls, "Meta", None)
        meta_attrs = {}
        if meta_cls:
            for attr in dir(meta_cls):
                if not attr.startswith("_"):
                    meta_attrs[attr] = getattr(meta_cls, attr)

        cls._entity_name = meta_attrs.get("entity_name", cls.__name__)
        cls._columns = {
            name: col for name, col in cls.__dict__.items() if isinstance(col, Column)
        }
        cls._navigations = {
            name: nav for name, nav in cls.__dict__.items() if isinstance(nav, Navigation)
        }
        cls._foreign_keys = tuple(meta_attrs.get("foreign_keys", ()))

        if cls._registry is not None:
            cls._registry.append(cls)

    def __setattr__(self, name, value):
        graph = self.__dict__.get("_graph")
        if graph is not None:
            key = graph.model.registry.lookup(self._entity_name).key.name
            if name == key and self.__dict__.get(name) != value:
                raise AttributeError(
                    f"Critical error: Cannot change primary key '{name}' "
                    f"for {self._entity_name} while it is attached."
                )
        object.__setattr__(self, name, value)


def model_base(name="ModelBase"):
    """Return a fresh declarative base that collects its subclasses."""
    return type(name, (Entity,), {"_registry": []})


def descriptor_for(cls):
    """Build the entity descriptor of a declared model class."""
    entity = cls._entity_name
    attributes = [
        Attribute(name=name, type=col.semantic_type, nullable=col.nullable, key=col.pk)
        for name, col in cls._columns.items()
    ]
    navigations = [
        NavigationSlot(
            owner=entity,
            name=name,
            target=nav.target_name,
            multiplicity=nav.multiplicity,
            foreign_key=nav.foreign_key,
            inverse=nav.inverse,
            required=nav.required,
            on_delete=nav.on_delete,
        )
        for name, nav in cls._navigations.items()
    ]
    foreign_keys = [
        ForeignKeyOverride(
            dependent=entity,
            principal=fk.principal_name,
            attribute=fk.attribute,
            required=fk.required,
            on_delete=fk.on_delete,
        )
        for fk in cls._foreign_keys
    ]
    return EntityDescriptor(
        name=entity,
        attributes=tuple(attributes),
        navigations=tuple(navigations),
        foreign_keys=tuple(foreign_keys),
    )


def synthesize_class(descriptor):
    """Create an entity class for a descriptor that has no declared class."""
    namespace = {"__module__": __name__}
    for attribute in descriptor.attributes:
        namespace[attribute.name] = Column(attribute.type, pk=attribute.key, nullable=attribute.nullable)
    for slot in descriptor.navigations:
        nav_cls = Collection if slot.is_collection else Reference
        namespace[slot.name] = nav_cls(
            slot.target,
            foreign_key=slot.foreign_key,
            inverse=slot.inverse,
            required=slot.required,
            on_delete=slot.on_delete,
        )
    namespace["Meta"] = type("Meta", (), {"entity_name": descriptor.name})
    return type(descriptor.name, (Entity,), namespace)
