from enum import Enum, auto


class LinkState(Enum):
    UNLINKED = auto()
    LINKED = auto()


class LoadState(Enum):
    UNLOADED = auto()
    LOADING = auto()
    LOADED = auto()
