"""Identity-scoped views over the key-value store."""

from datetime import timedelta
from typing import Any

import structlog

from feedrank.store.errors import IdentityNotSetError
from feedrank.store.keys import StorageKey
from feedrank.store.store import KeyValueStore
from feedrank.timeline.models import Account


logger = structlog.get_logger()


def suffixed(key: StorageKey, suffix: str = "") -> str:
    """Append an optional suffix to a storage key."""
    if not suffix:
        return key.value
    return f"{key.value}_{suffix}"


class UserScopedStorage:
    """Key-value access namespaced by an explicit user identity.

    Every key is stored as ``{identity.id}_{key}`` so that several users
    can share one database without seeing each other's data.
    """

    def __init__(self, kv: KeyValueStore, identity: Account) -> None:
        """Initialize the scoped storage.

        Args:
            kv: Underlying key-value store.
            identity: Account that owns every key written through this view.
        """
        self._kv = kv
        self._identity = identity

    @property
    def identity(self) -> Account:
        """Get the identity this storage is scoped to."""
        return self._identity

    def qualify(self, key: StorageKey, suffix: str = "") -> str:
        """Build the fully qualified key for this identity."""
        return f"{self._identity.id}_{suffixed(key, suffix)}"

    async def get(
        self,
        key: StorageKey,
        suffix: str = "",
        max_age: timedelta | None = None,
    ) -> Any:
        """Get a value for this identity, or None if absent or expired."""
        return self._kv.get_json(self.qualify(key, suffix), max_age=max_age)

    async def set(self, key: StorageKey, value: Any, suffix: str = "") -> None:
        """Store a value for this identity."""
        self._kv.set_json(self.qualify(key, suffix), value)

    async def remove(self, key: StorageKey, suffix: str = "") -> None:
        """Remove a value for this identity."""
        self._kv.delete(self.qualify(key, suffix))


class IdentityStore:
    """Persists the account feed ranking is currently running for."""

    def __init__(self, kv: KeyValueStore) -> None:
        """Initialize the identity store.

        Args:
            kv: Underlying key-value store.
        """
        self._kv = kv
        self._log = logger.bind(component="store", subcomponent="identity")

    async def get_identity(self) -> Account | None:
        """Get the stored account, or None if no identity was recorded."""
        data = self._kv.get_json(StorageKey.USER.value)
        if data is None:
            return None
        return Account.model_validate(data)

    async def set_identity(self, account: Account) -> None:
        """Record the current account."""
        self._kv.set_json(StorageKey.USER.value, account.model_dump(mode="json"))
        self._log.info("identity_set", account_id=account.id, acct=account.acct)

    async def scoped(self) -> UserScopedStorage:
        """Get storage scoped to the stored identity.

        Raises:
            IdentityNotSetError: If no identity has been recorded.
        """
        identity = await self.get_identity()
        if identity is None:
            raise IdentityNotSetError
        return UserScopedStorage(self._kv, identity)
