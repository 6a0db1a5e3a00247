# test_utils.py
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

import numpy as np
import pytest

import pairsys.settings as ps_settings
import pairsys.utils.cpu_switch as cpu_switch
import pairsys.utils.misc as utils
import pairsys.utils.spectrum_utils as spec_utils


def test_orthonormalize_degenerate():
    evals = np.array([1.0, 1.0, 2.0])
    evecs = np.array([[1.0, 1.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    evecs[:, 1] /= np.sqrt(2)
    result = spec_utils.orthonormalize_degenerate(evals, evecs)
    assert np.allclose(result.T @ result, np.eye(3))
    assert np.allclose(np.abs(result[:, 2]), [0.0, 0.0, 1.0])


def test_no_degeneracy():
    assert not spec_utils.has_degeneracy(np.array([1.0, 2.0]))
    assert spec_utils.has_degeneracy(np.array([1.0, 1.0 + 1e-12]))
    assert not spec_utils.has_degeneracy(np.array([1.0]))


def test_closest_indices():
    evals = np.array([-1.0, 0.0, 0.4, 1.0, 3.0])
    assert list(spec_utils.closest_indices(evals, 0.5, 3)) == [1, 2, 3]


def test_standardize_phases():
    evecs = np.array([[1j, 0.0], [0.0, -1.0]])
    result = spec_utils.standardize_phases(evecs)
    assert np.isrealobj(result)
    assert np.allclose(result, np.eye(2))


def test_parameter_grid():
    grid = list(utils.parameter_grid({"a": [1, 2], "b": [10, 20, 30]}))
    assert len(grid) == 6
    assert grid[1] == ((0, 1), {"a": 1, "b": 20})
    assert grid[-1] == ((1, 2), {"a": 2, "b": 30})


def test_to_builtin():
    assert type(utils.to_builtin(np.float64(0.5))) is float
    assert utils.to_builtin("x") == "x"


def test_required():
    @utils.Required(missing_package=False)
    def needs_package():
        return True

    with pytest.raises(ImportError):
        needs_package()


def test_map_method_single_cpu():
    assert cpu_switch.get_map_method(1) is map


def test_map_method_invalid():
    with pytest.raises(ValueError):
        cpu_switch.get_map_method(0)
    multiproc = ps_settings.MULTIPROC
    ps_settings.MULTIPROC = "threads"
    try:
        with pytest.raises(ValueError):
            cpu_switch.get_map_method(2)
    finally:
        ps_settings.MULTIPROC = multiproc
