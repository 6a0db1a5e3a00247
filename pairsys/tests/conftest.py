# conftest.py  ---  for use with pytest
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
#######################################################################################################################


import numpy as np
import pytest

from pairsys.core.basis import BasisIndex
from pairsys.core.providers import FunctionProvider
from pairsys.core.states import StateKey
from pairsys.core.system import SystemOne

QUANTUM_DEFECTS = {0: 3.13, 1: 2.65, 2: 1.35}


def model_energy(state, params):
    """Rydberg-like level scheme with a linear Zeeman shift."""
    defect = QUANTUM_DEFECTS.get(state.l, 0.0)
    return -0.5 / (state.n - defect) ** 2 + params.get("bfield", 0.0) * state.m


def model_coupling(a, b, tag, params):
    """Field coupling symmetric in the two states; magnetic couplings vanish."""
    if tag.kind != "E":
        return 0.0
    return params.get("efield", 0.0) * 0.01 * (a.n + b.n) * (1.0 + 0.1 * (a.l + b.l))


def model_dipole(a, b, tag, params):
    """Bare dipole matrix elements, as used by the dipole-dipole interaction."""
    return 0.05 * (a.n + b.n)


def pytest_addoption(parser):
    parser.addoption("--num_cpus", action="store", default=1, help="number of cores to be used")


@pytest.fixture(scope='session')
def num_cpus(pytestconfig):
    return int(pytestconfig.getoption("num_cpus"))


@pytest.fixture
def model_provider():
    return FunctionProvider(model_energy, model_coupling)


@pytest.fixture
def dipole_provider():
    return FunctionProvider(model_energy, model_dipole)


@pytest.fixture
def rb_states():
    """Rb states with n = 5, 6 and l = 0, 1 (all j, m): 16 states."""
    return [
        StateKey(n, l, j, float(m), "Rb")
        for n in (5, 6)
        for l, j in ((0, 0.5), (1, 0.5), (1, 1.5))
        for m in np.arange(-j, j + 1)
    ]


@pytest.fixture
def rb_basis(rb_states):
    return BasisIndex(rb_states, representation=StateKey)


@pytest.fixture
def rb_system(model_provider):
    return SystemOne.from_quantum_numbers("Rb", model_provider, n=(5, 6), l=(0, 1))


@pytest.fixture
def two_level_states():
    return [
        StateKey.from_label("Rb 5 S 1/2 1/2"),
        StateKey.from_label("Rb 5 P 1/2 1/2"),
    ]
