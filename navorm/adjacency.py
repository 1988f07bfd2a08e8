"""Navigation links stored as identity sets, indexed in both directions.

Entities never reference each other directly; a relationship's links live
here as ``principal identity -> dependent identities`` and the reverse.
Dicts with ``None`` values serve as insertion-ordered sets.
"""

FORWARD = "forward"
REVERSE = "reverse"


class AdjacencyTable:
    def __init__(self):
        self._index = {FORWARD: {}, REVERSE: {}}

    def bucket(self, direction, rel_id, identity):
        return self._index[direction].get(rel_id, {}).get(identity, {})

    def dependents(self, rel_id, principal):
        return tuple(self.bucket(FORWARD, rel_id, principal))

    def principals(self, rel_id, dependent):
        return tuple(self.bucket(REVERSE, rel_id, dependent))

    def has_link(self, rel_id, principal, dependent):
        return dependent in self.bucket(FORWARD, rel_id, principal)

    def links(self, rel_id):
        for principal, dependents in self._index[FORWARD].get(rel_id, {}).items():
            for dependent in dependents:
                yield principal, dependent

    def link(self, rel_id, principal, dependent):
        self._writable(FORWARD, rel_id, principal)[dependent] = None
        self._writable(REVERSE, rel_id, dependent)[principal] = None

    def unlink(self, rel_id, principal, dependent):
        self._discard(FORWARD, rel_id, principal, dependent)
        self._discard(REVERSE, rel_id, dependent, principal)

    def _writable(self, direction, rel_id, identity):
        return self._index[direction].setdefault(rel_id, {}).setdefault(identity, {})

    def _discard(self, direction, rel_id, identity, member):
        by_identity = self._index[direction].get(rel_id, {})
        members = by_identity.get(identity)
        if members is None:
            return
        members.pop(member, None)
        if not members:
            del by_identity[identity]


class StagedAdjacency:
    """Copy-on-write overlay used while an operation is planned.

    Reads fall through to the base table until a bucket is first written;
    the base table itself is never touched.
    """

    def __init__(self, table):
        self._table = table
        self._buckets = {}

    def bucket(self, direction, rel_id, identity):
        key = (direction, rel_id, identity)
        if key not in self._buckets:
            self._buckets[key] = dict(self._table.bucket(direction, rel_id, identity))
        return self._buckets[key]

    def dependents(self, rel_id, principal):
        return tuple(self.bucket(FORWARD, rel_id, principal))

    def principals(self, rel_id, dependent):
        return tuple(self.bucket(REVERSE, rel_id, dependent))

    def has_link(self, rel_id, principal, dependent):
        return dependent in self.bucket(FORWARD, rel_id, principal)

    def link(self, rel_id, principal, dependent):
        self.bucket(FORWARD, rel_id, principal)[dependent] = None
        self.bucket(REVERSE, rel_id, dependent)[principal] = None

    def unlink(self, rel_id, principal, dependent):
        self.bucket(FORWARD, rel_id, principal).pop(dependent, None)
        self.bucket(REVERSE, rel_id, dependent).pop(principal, None)
