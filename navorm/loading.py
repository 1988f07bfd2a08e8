"""Explicit loading of navigations.

A navigation of an entity read from storage starts ``UNLOADED``. Nothing is
fetched on attribute access; ``load()`` calls the synchronizer's loader,
links whatever it returns and moves the navigation to ``LOADED``.

The loader is any callable ``loader(entity, slot) -> result`` where ``slot``
is the ``NavigationSlot`` descriptor and ``result`` is an entity or ``None``
for a single navigation, an iterable of entities for a collection.
"""

from navorm.errors import NavigationLoadError, NavigationNotLoadedError
from navorm.states import LoadState


class LazyNavigation:
    def __init__(self, synchronizer, entity, slot, state=LoadState.UNLOADED):
        self._synchronizer = synchronizer
        self._entity = entity
        self._slot = slot
        self._state = state

    def __repr__(self):
        return f"<LazyNavigation {self._slot} {self._state.name}>"

    @property
    def state(self):
        return self._state

    @property
    def is_loaded(self):
        return self._state is LoadState.LOADED

    @property
    def slot(self):
        sync = self._synchronizer
        return sync.model.registry.lookup(sync.entity_type(self._entity)).navigation(self._slot)

    @property
    def value(self):
        if self._state is not LoadState.LOADED:
            raise NavigationNotLoadedError(self._entity, self._slot)
        return self._current()

    def load(self):
        if self._state is LoadState.LOADED:
            return self._current()
        if self._state is LoadState.LOADING:
            raise NavigationLoadError(self._entity, self._slot, "load() re-entered while loading")
        loader = self._synchronizer.loader
        if loader is None:
            raise NavigationLoadError(self._entity, self._slot, "no loader configured")

        self._state = LoadState.LOADING
        try:
            result = loader(self._entity, self.slot)
            self._synchronizer._link_loaded(self._entity, self._slot, result)
        except Exception:
            self._state = LoadState.UNLOADED
            raise
        self._state = LoadState.LOADED
        return self._current()

    def _current(self):
        if self.slot.is_collection:
            return self._synchronizer.collection(self._entity, self._slot)
        return self._synchronizer.reference(self._entity, self._slot)
