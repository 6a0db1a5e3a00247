# cache_store.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################
"""
Key/value stores persisting sweep-cache entries across runs. Keys are
`(basis token, parameter fingerprint)` pairs, values `SpectrumResult` objects.
"""
import ast
import logging
import os

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Optional, Tuple

import numpy as np

try:
    import h5py
except ImportError:
    _HAS_H5PY = False
else:
    _HAS_H5PY = True

import pairsys.utils.misc as utils

from pairsys.core.storage import SpectrumResult

if TYPE_CHECKING:
    from pairsys.core.sweep_cache import SweepKey

LOGGER = logging.getLogger(__name__)


class CacheStore(ABC):
    """Opaque get/put interface used by `SweepCache` for persistence."""

    @abstractmethod
    def get(self, key: "SweepKey") -> Optional[SpectrumResult]:
        pass

    @abstractmethod
    def put(self, key: "SweepKey", result: SpectrumResult) -> None:
        pass

    def __contains__(self, key: "SweepKey") -> bool:
        return self.get(key) is not None


class DictStore(CacheStore):
    """In-memory store, mainly useful for sharing entries between caches."""

    def __init__(self) -> None:
        self._data: Dict[Tuple[str, str], SpectrumResult] = {}

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: "SweepKey") -> Optional[SpectrumResult]:
        return self._data.get(tuple(key))

    def put(self, key: "SweepKey", result: SpectrumResult) -> None:
        self._data[tuple(key)] = result


class H5Store(CacheStore):
    """Store writing each entry to the group `/<basis token>/<fingerprint>` of an h5
    file. Requires the optional package h5py.

    Eigenvalues and eigenvectors are stored as datasets; the remaining fields of
    `SpectrumResult.to_dict()` are stored as attributes holding Python literals.

    Parameters
    ----------
    filename:
        path of the h5 file; created on the first `put`
    """

    _DATASETS = ("evals", "evecs")

    def __init__(self, filename: str) -> None:
        self.filename = filename

    @staticmethod
    def _group_name(key: "SweepKey") -> str:
        return "{}/{}".format(key.basis_token, key.param_fingerprint)

    @utils.Required(h5py=_HAS_H5PY)
    def get(self, key: "SweepKey") -> Optional[SpectrumResult]:
        if not os.path.exists(self.filename):
            return None
        with h5py.File(self.filename, "r") as h5file:
            name = self._group_name(key)
            if name not in h5file:
                return None
            group = h5file[name]
            data = {field: np.asarray(group[field]) for field in self._DATASETS}
            data.update(
                {field: ast.literal_eval(value) for field, value in group.attrs.items()}
            )
        LOGGER.debug("Read cached spectrum {} from {}.".format(name, self.filename))
        return SpectrumResult.from_dict(data)

    @utils.Required(h5py=_HAS_H5PY)
    def put(self, key: "SweepKey", result: SpectrumResult) -> None:
        data = result.to_dict()
        data.update(basis_token=key.basis_token, param_fingerprint=key.param_fingerprint)
        data["params"] = {
            param: utils.to_builtin(value) for param, value in data["params"].items()
        }
        with h5py.File(self.filename, "a") as h5file:
            name = self._group_name(key)
            if name in h5file:
                del h5file[name]
            group = h5file.create_group(name)
            for field, value in data.items():
                if field in self._DATASETS:
                    group.create_dataset(field, data=value)
                else:
                    group.attrs[field] = repr(value)
