"""Persistence of user-tunable scorer weights."""

from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

import structlog

from feedrank.store.keys import StorageKey
from feedrank.store.scoped import UserScopedStorage


logger = structlog.get_logger()

WeightsMap = dict[str, float]


@runtime_checkable
class WeightStore(Protocol):
    """Batched access to the weights map of one user.

    Missing entries are simply absent from the returned mapping; callers
    treat them as a weight of 0.
    """

    async def get_weights_multi(self, names: Iterable[str]) -> WeightsMap:
        """Get the stored weights for the given scorer names."""
        ...

    async def set_weights_multi(self, weights: Mapping[str, float]) -> None:
        """Store weights, leaving names not in ``weights`` untouched."""
        ...


class UserWeightStore:
    """WeightStore backed by identity-scoped key-value storage.

    The whole map lives under the user's ``weights`` key and is created
    empty the first time it is read.
    """

    def __init__(self, storage: UserScopedStorage) -> None:
        """Initialize the weight store.

        Args:
            storage: Storage scoped to the user owning the weights.
        """
        self._storage = storage
        self._log = logger.bind(
            component="store",
            subcomponent="weights",
            account_id=storage.identity.id,
        )

    async def _load(self) -> WeightsMap:
        stored = await self._storage.get(StorageKey.WEIGHTS)
        if stored is None:
            await self._storage.set(StorageKey.WEIGHTS, {})
            self._log.info("weights_initialized")
            return {}
        return {str(name): float(weight) for name, weight in stored.items()}

    async def get_weights_multi(self, names: Iterable[str]) -> WeightsMap:
        """Get the stored weights for the given scorer names.

        Args:
            names: Scorer verbose names.

        Returns:
            Mapping containing only the names that have a stored weight.
        """
        stored = await self._load()
        return {name: stored[name] for name in names if name in stored}

    async def set_weights_multi(self, weights: Mapping[str, float]) -> None:
        """Merge weights into the stored map in one write.

        Args:
            weights: Scorer name to weight.
        """
        stored = await self._load()
        stored.update({name: float(weight) for name, weight in weights.items()})
        await self._storage.set(StorageKey.WEIGHTS, stored)
        self._log.info("weights_updated", names=sorted(weights))
