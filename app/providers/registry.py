from __future__ import annotations

"""Thread-safe registry for stream providers."""

import threading
from typing import Dict, Iterable, List, Optional

from loguru import logger

from .base import ProviderDescriptor, StreamProvider


class ProviderRegistry:
    """Keyed collection of StreamProvider instances.

    Iteration order is ascending priority; providers sharing a priority keep
    their registration order.
    """

    def __init__(self, providers: Iterable[StreamProvider] = ()) -> None:
        self._providers: Dict[str, StreamProvider] = {}
        self._lock = threading.Lock()
        for provider in providers:
            self.register(provider)

    def register(self, provider: StreamProvider) -> None:
        """Register a provider, replacing any previous one with the same key.

        Parameters:
            provider (StreamProvider): Provider instance to register.
        """
        with self._lock:
            if provider.key in self._providers:
                logger.debug("Replacing registered provider {}", provider.key)
            self._providers[provider.key] = provider

    def get(self, key: str) -> Optional[StreamProvider]:
        """Return the provider registered for the given key, if any.

        Parameters:
            key (str): Provider key to look up.
        """
        with self._lock:
            return self._providers.get(key)

    def providers(self, *, include_disabled: bool = False) -> List[StreamProvider]:
        """Return providers sorted by ascending priority (stable)."""
        with self._lock:
            items = list(self._providers.values())
        if not include_disabled:
            items = [p for p in items if p.enabled]
        return sorted(items, key=lambda p: p.priority)

    def candidates(self, preferred: Optional[str] = None) -> List[StreamProvider]:
        """Return the attempt order for one resolution.

        A known `preferred` key is moved to the front; the rest keep priority
        order. Unknown or disabled keys are ignored with a warning.

        Parameters:
            preferred (str | None): Provider key the caller asked for.

        Returns:
            List[StreamProvider]: Providers in the order they should be tried.
        """
        ordered = self.providers()
        if not preferred:
            return ordered
        key = preferred.strip().lower()
        for idx, provider in enumerate(ordered):
            if provider.key == key:
                return [provider] + ordered[:idx] + ordered[idx + 1 :]
        logger.warning("Preferred provider '{}' is not registered; ignoring", preferred)
        return ordered

    def descriptors(self) -> List[ProviderDescriptor]:
        return [p.descriptor() for p in self.providers()]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)
