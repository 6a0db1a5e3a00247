# test_sweep_cache.py
# meant to be run with 'pytest'
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from pairsys.core.basis import BasisIndex
from pairsys.core.storage import SpectrumResult
from pairsys.core.sweep_cache import SweepCache, fingerprint
from pairsys.io_utils.cache_store import DictStore


def _result(value=0.0):
    return SpectrumResult(np.array([value]), np.eye(1))


class TestFingerprint:
    def test_deterministic(self):
        assert fingerprint({"a": 1.0, "b": 2}) == fingerprint({"b": 2, "a": 1.0})
        assert fingerprint({"a": np.float64(1.0)}) == fingerprint({"a": 1.0})
        assert fingerprint({"a": 1.0}) != fingerprint({"a": 1.5})

    def test_options(self):
        params = {"efield": 0.1}
        assert fingerprint(params, evals_count=3) != fingerprint(params, evals_count=4)
        assert fingerprint(params, subspace="symmetric") != fingerprint(params)


class TestSweepCache:
    def test_get_or_compute(self):
        cache = SweepCache()
        key = cache.key("token", {"efield": 0.1})
        calls = []

        def compute():
            calls.append(1)
            return _result()

        first = cache.get_or_compute(key, compute)
        second = cache.get_or_compute(key, compute)
        assert first is second
        assert len(calls) == 1
        assert (cache.hits, cache.misses) == (1, 1)
        assert key in cache

    def test_new_basis_token_clears(self):
        cache = SweepCache()
        cache.insert(cache.key("token-1", {"x": 1}), _result())
        cache.insert(cache.key("token-1", {"x": 2}), _result())
        assert len(cache) == 2
        assert cache.lookup(cache.key("token-2", {"x": 1})) is None
        assert len(cache) == 0
        assert cache.basis_token == "token-2"

    def test_errors_leave_cache_unchanged(self):
        cache = SweepCache()
        key = cache.key("token", {"x": 1})

        def failing():
            raise RuntimeError("solver failed")

        with pytest.raises(RuntimeError):
            cache.get_or_compute(key, failing)
        assert key not in cache

    def test_watched_basis_invalidates(self, rb_states):
        basis = BasisIndex(rb_states[:-1])
        cache = SweepCache()
        cache.watch(basis)
        cache.insert(cache.key(basis.token, {"x": 1}), _result())
        basis.add(rb_states[-1])
        assert len(cache) == 0

    def test_unwatched_basis_ignored(self, rb_states):
        basis = BasisIndex(rb_states[:-1])
        cache = SweepCache()
        cache.insert(cache.key(basis.token, {"x": 1}), _result())
        basis.add(rb_states[-1])
        assert len(cache) == 1

    def test_store_fallback(self):
        store = DictStore()
        key = SweepCache.key("token", {"x": 1})
        SweepCache(store).insert(key, _result(1.0))
        assert len(store) == 1
        other = SweepCache(store)
        result = other.get_or_compute(key, lambda: _result(2.0))
        assert result.evals[0] == 1.0
        assert other.hits == 1

    def test_concurrent_access(self):
        cache = SweepCache()
        keys = [cache.key("token", {"x": k % 5}) for k in range(40)]

        def work(key):
            return cache.get_or_compute(key, _result).evals[0]

        with ThreadPoolExecutor(max_workers=4) as executor:
            values = list(executor.map(work, keys))
        assert values == [0.0] * 40
        assert len(cache) == 5
        # every call is counted exactly once
        assert cache.hits + cache.misses == 40
        assert cache.misses >= 5
