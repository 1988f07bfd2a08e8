class IdentityMap:
    """Arena of live entities keyed by ``(entity type, key value)``."""

    def __init__(self):
        self._map = {}

    def __contains__(self, identity):
        return identity in self._map

    def __iter__(self):
        return iter(self._map.values())

    def __len__(self):
        return len(self._map)

    def get(self, identity):
        return self._map.get(identity)

    def add(self, identity, instance):
        self._map[identity] = instance

    def remove(self, identity):
        self._map.pop(identity, None)

    def of_type(self, entity_type):
        return [e for (t, _), e in self._map.items() if t == entity_type]

    def clear(self):
        self._map.clear()
