# param_sweep.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
# This source code is licensed under the BSD-style license found in the LICENSE file
# in the root directory of this source tree.
# ###########################################################################

import functools
import logging

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from numpy import ndarray

import pairsys.core.central_dispatch as dispatch
import pairsys.utils.cpu_switch as cpu_switch
import pairsys.utils.misc as utils

from pairsys import settings as settings
from pairsys.core.storage import SpectrumResult
from pairsys.core.sweep_cache import SweepCache
from pairsys.core.system import AtomicSystem
from pairsys.utils.typedefs import ParameterPoint, ParameterValuesByName

if settings.IN_IPYTHON:
    from tqdm.notebook import tqdm
else:
    from tqdm import tqdm

LOGGER = logging.getLogger(__name__)

Spectra = Dict[str, SpectrumResult]


def _diagonalize_point(
    system: AtomicSystem,
    evals_count: Optional[int],
    sigma: Optional[float],
    eigenvalues: Union[None, int, Iterable[Optional[int]]],
    params: ParameterPoint,
) -> Spectra:
    return system.diagonalize(
        params, evals_count=evals_count, sigma=sigma, eigenvalues=eigenvalues
    )


class ParameterSweep(dispatch.DispatchClient):
    """
    Spectra of a system on a multi-dimensional grid of parameter points.

    Each point is assembled and diagonalized independently; with `num_cpus > 1`
    points are distributed over a process pool and reassembled in parameter order.
    A `SweepCache` is consulted before any point is computed, and newly computed
    spectra are inserted into it.

    Parameters
    ----------
    system:
        `SystemOne` or `SystemTwo` whose Hamiltonian is diagonalized
    paramvals_by_name:
        Dictionary which specifies a parameter name for each set of parameter values,
        and the set of values to be used in the sweep. The last parameter varies
        fastest.
    evals_count:
        number of eigenpairs per subspace and point (all if `None`)
    sigma:
        target energy for windowed diagonalization
    fixed_params:
        parameters held fixed during the sweep
    eigenvalues:
        symmetry eigenvalue(s) of the subspaces to diagonalize (all if `None`)
    num_cpus:
        number of CPU cores requested for computing the sweep
        (default value `settings.NUM_CPUS`)
    cache:
        sweep cache (a new cache watching `system` is created if `None`)
    """

    def __init__(
        self,
        system: AtomicSystem,
        paramvals_by_name: ParameterValuesByName,
        evals_count: Optional[int] = None,
        sigma: Optional[float] = None,
        fixed_params: Optional[ParameterPoint] = None,
        eigenvalues: Union[None, int, Iterable[Optional[int]]] = None,
        num_cpus: Optional[int] = None,
        cache: Optional[SweepCache] = None,
    ) -> None:
        if not paramvals_by_name:
            raise ValueError("At least one swept parameter is required.")
        self._system = system
        self._paramvals_by_name = OrderedDict(
            (name, np.asarray(list(values))) for name, values in paramvals_by_name.items()
        )
        self._evals_count = evals_count
        self._sigma = sigma
        self._fixed_params = dict(fixed_params or {})
        self._eigenvalues = eigenvalues
        self._num_cpus = num_cpus or settings.NUM_CPUS
        if cache is None:
            cache = SweepCache()
            cache.watch(system)
        self._cache = cache
        self._data: Optional[ndarray] = None
        self._out_of_sync = False

        dispatch.CENTRAL_DISPATCH.register("SYSTEM_UPDATE", self)

    def __repr__(self) -> str:
        return "{}(shape={}, evals_count={}, sigma={})".format(
            type(self).__name__, self.shape, self._evals_count, self._sigma
        )

    def __getitem__(self, multi_index: Union[int, Tuple[int, ...]]) -> Spectra:
        if self._data is None:
            raise ValueError("ParameterSweep has not been run yet; call `run()`.")
        return self._data[multi_index]

    @property
    def system(self) -> AtomicSystem:
        return self._system

    @property
    def cache(self) -> SweepCache:
        return self._cache

    @property
    def param_names(self) -> List[str]:
        return list(self._paramvals_by_name)

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(len(values) for values in self._paramvals_by_name.values())

    @property
    def out_of_sync(self) -> bool:
        return self._out_of_sync

    def receive(self, event: str, sender: object, **kwargs) -> None:
        if event == "SYSTEM_UPDATE" and sender is self._system and self._data is not None:
            self._out_of_sync = True

    def _point_params(self, params: ParameterPoint) -> Dict[str, Any]:
        full = dict(self._fixed_params)
        full.update((name, utils.to_builtin(value)) for name, value in params.items())
        return full

    def _cached_spectra(self, params: ParameterPoint) -> Optional[Spectra]:
        spectra = {}
        for subspace in self._system.selected_subspaces(self._eigenvalues):
            key = self._system.cache_key(params, subspace, self._evals_count, self._sigma)
            result = self._cache.lookup(key)
            if result is None:
                return None
            spectra[subspace.label] = result
        return spectra

    def _store_spectra(self, params: ParameterPoint, spectra: Spectra) -> None:
        subspaces = {s.label: s for s in self._system.selected_subspaces(self._eigenvalues)}
        for label, result in spectra.items():
            key = self._system.cache_key(
                params, subspaces[label], self._evals_count, self._sigma
            )
            self._cache.insert(key, result)

    def run(self) -> ndarray:
        """Computes the spectra of all parameter points.

        Returns
        -------
            object array of shape `self.shape`; each entry is a dictionary mapping
            subspace labels to `SpectrumResult`
        """
        self._system.prepare()
        results = np.empty(self.shape, dtype=object)
        pending: List[Tuple[Tuple[int, ...], ParameterPoint]] = []
        for multi_index, params in utils.parameter_grid(self._paramvals_by_name):
            params = self._point_params(params)
            spectra = self._cached_spectra(params)
            if spectra is None:
                pending.append((multi_index, params))
            else:
                results[multi_index] = spectra
        LOGGER.debug(
            "Parameter sweep: {} of {} points cached.".format(
                results.size - len(pending), results.size
            )
        )

        multi_cpu = self._num_cpus > 1
        target_map = cpu_switch.get_map_method(self._num_cpus)
        dispatch_enabled = settings.DISPATCH_ENABLED
        settings.DISPATCH_ENABLED = False
        try:
            with utils.InfoBar(
                "Parallel compute spectra [num_cpus={}]".format(self._num_cpus),
                self._num_cpus,
            ):
                computed = list(
                    tqdm(
                        target_map(
                            functools.partial(
                                _diagonalize_point,
                                self._system,
                                self._evals_count,
                                self._sigma,
                                self._eigenvalues,
                            ),
                            [params for _, params in pending],
                        ),
                        total=len(pending),
                        desc="Spectra",
                        leave=False,
                        disable=multi_cpu or settings.PROGRESSBAR_DISABLED,
                    )
                )
        finally:
            settings.DISPATCH_ENABLED = dispatch_enabled

        for (multi_index, params), spectra in zip(pending, computed):
            self._store_spectra(params, spectra)
            results[multi_index] = spectra

        self._data = results
        self._out_of_sync = False
        return results

    def evals(self, subspace_label: Optional[str] = None) -> ndarray:
        """Eigenvalues of one subspace (the only one if not given) at all points, as
        an array of shape `self.shape + (evals_count,)`."""
        if self._data is None:
            raise ValueError("ParameterSweep has not been run yet; call `run()`.")
        if subspace_label is None:
            labels = [s.label for s in self._system.selected_subspaces(self._eigenvalues)]
            if len(labels) != 1:
                raise ValueError(
                    "Sweep holds several subspaces {}; pass subspace_label.".format(labels)
                )
            subspace_label = labels[0]
        return np.asarray(
            [spectra[subspace_label].evals for spectra in self._data.ravel()]
        ).reshape(self.shape + (-1,))
