from navorm.errors import DetachedEntityError


class CollectionView:
    """Live, read-through view of a collection navigation.

    Holds no members itself; every read asks the synchronizer, every write
    goes through it.
    """

    def __init__(self, graph, owner, slot):
        self._graph = graph
        self._owner = owner
        self._slot = slot

    def _members(self):
        if self._graph is None:
            return ()
        return self._graph.collection(self._owner, self._slot)

    def add(self, member):
        if self._graph is None:
            raise DetachedEntityError(self._owner)
        self._graph.add_to_collection(self._owner, self._slot, member)

    def remove(self, member):
        if self._graph is None:
            raise DetachedEntityError(self._owner)
        return self._graph.remove_from_collection(self._owner, self._slot, member)

    def __iter__(self):
        return iter(self._members())

    def __len__(self):
        return len(self._members())

    def __contains__(self, member):
        return any(m is member for m in self._members())

    def __eq__(self, other):
        if isinstance(other, CollectionView):
            other = other._members()
        try:
            other = list(other)
        except TypeError:
            return NotImplemented
        members = list(self._members())
        return len(members) == len(other) and all(
            any(m is o for o in other) for m in members
        )

    __hash__ = None

    def __repr__(self):
        return f"<CollectionView {self._slot}={list(self._members())}>"
