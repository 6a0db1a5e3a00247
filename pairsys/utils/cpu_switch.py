# cpu_switch.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

import logging

from typing import Callable

import pairsys.settings as settings

LOGGER = logging.getLogger(__name__)


def _pathos_pool(num_cpus: int):
    try:
        import dill
        import pathos
    except ImportError:
        raise ImportError(
            "pairsys multiprocessing mode set to 'pathos'. Need but cannot find"
            " 'pathos'/'dill'!"
        )
    # systems carry providers built from closures and lambdas
    dill.settings["recurse"] = True
    return pathos.pools.ProcessPool(nodes=num_cpus)


def _multiprocessing_pool(num_cpus: int):
    import multiprocessing

    return multiprocessing.Pool(processes=num_cpus)


POOL_STARTERS = {
    "pathos": _pathos_pool,
    "multiprocessing": _multiprocessing_pool,
}


def get_map_method(num_cpus: int) -> Callable:
    """
    Returns the `map` used by parameter sweeps to diagonalize parameter points.
    For `num_cpus > 1`, a process pool of the kind selected by `settings.MULTIPROC`
    is started and kept in `settings.POOL`.

    Parameters
    ----------
    num_cpus: int
        number of worker processes

    Returns
    -------
    function
        `map(func, iterable)` to be used by the caller
    """
    if num_cpus < 1:
        raise ValueError("num_cpus must be at least 1, got {}.".format(num_cpus))
    if num_cpus == 1:
        return map
    try:
        start_pool = POOL_STARTERS[settings.MULTIPROC]
    except KeyError:
        raise ValueError(
            "Unknown multiprocessing type: settings.MULTIPROC = {}".format(
                settings.MULTIPROC
            )
        )
    LOGGER.debug(
        "Starting {} pool with {} processes.".format(settings.MULTIPROC, num_cpus)
    )
    settings.POOL = start_pool(num_cpus)
    return settings.POOL.map
