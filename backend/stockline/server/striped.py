"""
Lock-striped dictionary.

Keys hash onto a fixed number of stripes, each a plain dict guarded by its
own lock. Two connections touching different keys almost never contend,
and each single-key operation is atomic.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Stripe(Generic[K, V]):
    __slots__ = ("lock", "items")

    def __init__(self):
        self.lock = threading.Lock()
        self.items: dict[K, V] = {}


class StripedMap(Generic[K, V]):
    def __init__(self, stripes: int = 16):
        if stripes < 1:
            raise ValueError("stripes must be at least 1")
        self._stripes = [_Stripe() for _ in range(stripes)]

    def _stripe(self, key: K) -> _Stripe:
        return self._stripes[hash(key) % len(self._stripes)]

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        stripe = self._stripe(key)
        with stripe.lock:
            return stripe.items.get(key, default)

    def set(self, key: K, value: V) -> None:
        stripe = self._stripe(key)
        with stripe.lock:
            stripe.items[key] = value

    def pop(self, key: K, default: Optional[V] = None) -> Optional[V]:
        stripe = self._stripe(key)
        with stripe.lock:
            return stripe.items.pop(key, default)

    def compute(self, key: K, fn: Callable[[Optional[V]], Optional[V]]) -> Optional[V]:
        """
        Atomically replace the value for key with fn(current).

        fn receives None when the key is absent. Returning None removes the
        key. fn runs under the stripe lock and must not touch this map.
        """
        stripe = self._stripe(key)
        with stripe.lock:
            new_value = fn(stripe.items.get(key))
            if new_value is None:
                stripe.items.pop(key, None)
            else:
                stripe.items[key] = new_value
            return new_value

    def values(self) -> list[V]:
        """Point-in-time copy, stripe by stripe."""
        result: list[V] = []
        for stripe in self._stripes:
            with stripe.lock:
                result.extend(stripe.items.values())
        return result

    def __len__(self) -> int:
        total = 0
        for stripe in self._stripes:
            with stripe.lock:
                total += len(stripe.items)
        return total
