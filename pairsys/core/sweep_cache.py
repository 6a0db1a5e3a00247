# sweep_cache.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

import hashlib
import logging
import threading
import weakref

from collections import namedtuple
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

import numpy as np

import pairsys.core.central_dispatch as dispatch

from pairsys.core.storage import SpectrumResult
from pairsys.utils.misc import to_builtin

if TYPE_CHECKING:
    from pairsys.io_utils.cache_store import CacheStore

LOGGER = logging.getLogger(__name__)


SweepKey = namedtuple("SweepKey", ["basis_token", "param_fingerprint"])


def _normalized(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.shape, tuple(value.ravel().tolist())
    if isinstance(value, (list, tuple)):
        return tuple(_normalized(entry) for entry in value)
    return to_builtin(value)


def fingerprint(params: Mapping[str, Any], **options) -> str:
    """Deterministic fingerprint of a parameter point. Keyword `options` (such as
    the number of requested eigenvalues or the subspace label) are included, so
    that results computed with different solver settings do not collide."""
    digest = hashlib.sha1()
    for name in sorted(params):
        digest.update(repr(("param", name, _normalized(params[name]))).encode())
    for name in sorted(options):
        digest.update(repr(("option", name, _normalized(options[name]))).encode())
    return digest.hexdigest()


class SweepCache(dispatch.DispatchClient):
    """Cache of spectra keyed by `(basis token, parameter fingerprint)`.

    The cache holds entries of a single basis at a time. Using a key with a new
    basis token clears all entries first; this transition happens under a lock, so
    concurrent workers never see entries of two different bases. Watched objects
    (bases or systems, see `watch`) invalidate the cache when they broadcast a
    membership change.

    Parameters
    ----------
    store:
        optional persistent `CacheStore` consulted on misses and written on inserts
    """

    def __init__(self, store: Optional["CacheStore"] = None) -> None:
        self._lock = threading.RLock()
        self._entries: Dict[SweepKey, SpectrumResult] = {}
        self._basis_token: Optional[str] = None
        self._watched: "weakref.WeakSet" = weakref.WeakSet()
        self.store = store
        self.hits = 0
        self.misses = 0
        dispatch.CENTRAL_DISPATCH.register("BASISINDEX_UPDATE", self)
        dispatch.CENTRAL_DISPATCH.register("SYSTEM_UPDATE", self)

    def __repr__(self) -> str:
        return "{}(entries={}, hits={}, misses={})".format(
            type(self).__name__, len(self), self.hits, self.misses
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: SweepKey) -> bool:
        return key in self._entries

    @property
    def basis_token(self) -> Optional[str]:
        return self._basis_token

    @staticmethod
    def key(basis_token: str, params: Mapping[str, Any], **options) -> SweepKey:
        return SweepKey(basis_token, fingerprint(params, **options))

    def _use_basis(self, basis_token: str) -> None:
        if basis_token != self._basis_token:
            if self._entries:
                LOGGER.debug(
                    "New basis token; dropping {} cached spectra.".format(
                        len(self._entries)
                    )
                )
            self._entries.clear()
            self._basis_token = basis_token

    def lookup(self, key: SweepKey) -> Optional[SpectrumResult]:
        """Returns the cached result for `key` or `None`. Misses fall back to the
        persistent store, if any."""
        with self._lock:
            self._use_basis(key.basis_token)
            result = self._entries.get(key)
            if result is None and self.store is not None:
                result = self.store.get(key)
                if result is not None:
                    self._entries[key] = result
            return result

    def insert(self, key: SweepKey, result: SpectrumResult) -> None:
        with self._lock:
            self._use_basis(key.basis_token)
            self._entries[key] = result
            if self.store is not None:
                self.store.put(key, result)

    def get_or_compute(
        self, key: SweepKey, compute_func: Callable[[], SpectrumResult]
    ) -> SpectrumResult:
        """Returns the cached result for `key`, computing and inserting it with
        `compute_func()` on a miss. The computation runs outside the lock; errors
        raised by `compute_func` propagate and leave the cache unchanged."""
        result = self.lookup(key)
        if result is not None:
            with self._lock:
                self.hits += 1
            LOGGER.debug("Cache hit for {}.".format(key.param_fingerprint[:8]))
            return result
        with self._lock:
            self.misses += 1
        result = compute_func()
        self.insert(key, result)
        return result

    def invalidate(self) -> None:
        """Drops all entries (the persistent store is left untouched)."""
        with self._lock:
            LOGGER.debug(
                "Invalidating sweep cache ({} entries).".format(len(self._entries))
            )
            self._entries.clear()
            self._basis_token = None

    def watch(self, obj: dispatch.DispatchClient) -> None:
        """Invalidate the cache whenever `obj` broadcasts a membership change."""
        self._watched.add(obj)

    def receive(self, event: str, sender: object, **kwargs) -> None:
        if sender in self._watched:
            self.invalidate()
