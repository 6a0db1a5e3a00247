# spectrum_utils.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

import cmath

from typing import Optional, Tuple

import numpy as np
import scipy as sp

from numpy import ndarray

import pairsys.settings as settings


def has_degeneracy(evals: ndarray, atol: Optional[float] = None) -> bool:
    """Checks whether neighboring entries of the (sorted) eigenvalue array coincide
    within `atol` (default: `settings.DEGENERACY_ATOL`)."""
    if len(evals) < 2:
        return False
    atol = settings.DEGENERACY_ATOL if atol is None else atol
    return bool(np.min(np.abs(np.diff(evals))) <= atol)


def orthonormalize_degenerate(evals: ndarray, evecs: ndarray) -> ndarray:
    """Re-orthonormalizes eigenvectors when degenerate eigenvalues are present;
    iterative solvers do not guarantee orthogonality within degenerate blocks."""
    if has_degeneracy(evals):
        evecs, _ = sp.linalg.qr(evecs, mode="economic")
    return evecs


def order_eigensystem(evals: ndarray, evecs: ndarray) -> Tuple[ndarray, ndarray]:
    """Takes eigenvalues and corresponding eigenvectors and orders them (in place)
    according to the eigenvalues (from smallest to largest; real valued eigenvalues
    are assumed). Compare http://stackoverflow.com/questions/22806398.

    Parameters
    ----------
    evals:
        array of eigenvalues
    evecs:
        array containing eigenvectors; evecs[:, 0] is the first eigenvector etc.
    """
    ordered_evals_indices = evals.argsort(kind="stable")
    evals[:] = evals[ordered_evals_indices]
    evecs[:] = evecs[:, ordered_evals_indices]
    return evals, evecs


def extract_phase(complex_array: ndarray) -> float:
    """Extracts the global phase of `complex_array` from its entry with the largest
    modulus."""
    position = np.argmax(np.abs(complex_array))
    return cmath.phase(complex_array[position])


def standardize_phases(evecs: ndarray) -> ndarray:
    """Multiplies every eigenvector (column) by a global phase such that its entry of
    largest modulus is real and positive. Eigenvectors of a given matrix are then
    reproducible across solvers and runs."""
    evecs = np.array(evecs, dtype=np.result_type(evecs, np.complex128))
    for index in range(evecs.shape[1]):
        evecs[:, index] *= np.exp(-1j * extract_phase(evecs[:, index]))
    if np.allclose(evecs.imag, 0.0):
        return evecs.real
    return evecs


def closest_indices(evals: ndarray, target: float, count: int) -> ndarray:
    """Indices of the `count` entries of `evals` nearest `target`, in ascending order
    of the eigenvalues."""
    nearest = np.argsort(np.abs(evals - target), kind="stable")[:count]
    return np.sort(nearest)
