# test_cache_store.py
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

import os

import numpy as np
import pytest

from pairsys.core.storage import SpectrumResult
from pairsys.core.sweep_cache import SweepCache
from pairsys.io_utils.cache_store import DictStore, H5Store


@pytest.fixture
def result():
    evecs = np.array([[1.0, 1.0j], [1.0j, 1.0]]) / np.sqrt(2)
    return SpectrumResult(
        np.array([-0.5, 0.5]),
        evecs,
        subspace_label="symmetric",
        params={"efield": np.float64(0.25), "distance": 3},
    )


class TestSpectrumResult:
    def test_dict_representation(self, result):
        result.basis_token = "token"
        data = result.to_dict()
        assert data["subspace_label"] == "symmetric"
        restored = SpectrumResult.from_dict(data)
        assert restored.key == ("token", None)
        assert restored.params == result.params
        assert np.allclose(restored.evecs, result.evecs)
        assert len(restored) == 2

    def test_to_full_basis_without_subspace(self, result):
        assert result.to_full_basis(2) is result.evecs


class TestDictStore:
    def test_get_put(self, result):
        store = DictStore()
        key = SweepCache.key("token", {"efield": 0.25})
        assert store.get(key) is None
        store.put(key, result)
        assert store.get(key) is result
        assert key in store
        assert SweepCache.key("token", {"efield": 0.5}) not in store


class TestH5Store:
    @pytest.fixture(autouse=True)
    def set_tmpdir(self, request):
        setattr(self, "tmpdir", request.getfixturevalue("tmpdir"))

    def test_roundtrip(self, result):
        filename = os.path.join(str(self.tmpdir), "cache.h5")
        store = H5Store(filename)
        key = SweepCache.key("token", result.params)
        store.put(key, result)
        assert os.path.exists(filename)

        loaded = H5Store(filename).get(key)
        assert np.allclose(loaded.evals, result.evals)
        assert np.allclose(loaded.evecs, result.evecs)
        assert loaded.subspace_label == "symmetric"
        assert loaded.params == {"efield": 0.25, "distance": 3}
        assert loaded.key == tuple(key)

    def test_missing(self, result):
        filename = os.path.join(str(self.tmpdir), "missing.h5")
        store = H5Store(filename)
        key = SweepCache.key("token", {})
        assert store.get(key) is None
        store.put(SweepCache.key("token", {"x": 1}), result)
        assert store.get(key) is None

    def test_overwrite(self, result):
        store = H5Store(os.path.join(str(self.tmpdir), "cache.h5"))
        key = SweepCache.key("token", {})
        store.put(key, result)
        store.put(key, SpectrumResult(np.array([1.0]), np.eye(1)))
        loaded = store.get(key)
        assert np.allclose(loaded.evals, [1.0])
        assert loaded.subspace_label is None
        assert loaded.params == {}

    def test_persistent_sweep_cache(self, rb_system):
        store = H5Store(os.path.join(str(self.tmpdir), "sweep.h5"))
        params = {"efield": 0.1}
        first = rb_system.diagonalize(params, cache=SweepCache(store))["full"]

        cache = SweepCache(store)
        second = rb_system.diagonalize(params, cache=cache)["full"]
        assert cache.hits == 1
        assert np.allclose(second.evals, first.evals)
        assert np.allclose(second.evecs, first.evecs)
