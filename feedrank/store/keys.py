"""Storage keys used by feed ranking."""

from enum import Enum


class StorageKey(str, Enum):
    """Keys of persisted values.

    USER is stored unprefixed; every other key is namespaced by the
    identity of the current user.
    """

    TOP_FAVS = "favs"
    TOP_REBLOGS = "reblogs"
    TOP_INTERACTS = "interacts"
    CORE_SERVER = "coreServer"
    USER = "algouser"
    WEIGHTS = "weights"
