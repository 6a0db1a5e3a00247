# diag.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

import copy
import logging
import warnings

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np
import qutip as qt
import scipy as sp

from numpy import ndarray
from qutip import Qobj
from scipy.sparse import csc_matrix
from scipy.sparse.linalg import ArpackError, ArpackNoConvergence
from typing_extensions import Literal

import pairsys.settings as settings

from pairsys.core.errors import ConvergenceError
from pairsys.core.hamiltonian import HamiltonianMatrix
from pairsys.core.storage import SpectrumResult
from pairsys.core.sweep_cache import fingerprint
from pairsys.utils.spectrum_utils import (
    closest_indices,
    order_eigensystem,
    orthonormalize_degenerate,
    standardize_phases,
)
from pairsys.utils.typedefs import Diagonalizable, MatrixLike

LOGGER = logging.getLogger(__name__)


def _dict_merge(
    d: Dict[str, Any],
    d_other: Dict[str, Any],
    exclude: Union[List[str], None] = None,
    overwrite=False,
) -> Dict[str, Any]:
    """
    Selective dictionary merge. This function makes a copy of the given
    dictionary `d` and selectively updates/adds entries from `d_other`,
    as long as the keys are not given in `exclude`.
    Whether entries in `d` are overwritten by entries in `d_other` is
    determined by the value of the `overwrite` parameter

    Parameters
    ----------
    d: dict
        dictionary
    d_other:
        second dictionary to be merged with the first
    exclude: dict
        list of potential keys in d_other to be excluded from being added to resulting merge
    overwrite: bool
        determines if keys already in d should be overwritten by those in d_other

    Returns
    ----------
        merged dictionary

    """
    exclude = [] if exclude is None else exclude

    d_new = copy.deepcopy(d)
    for key in d_other:
        if key not in exclude and (overwrite or key not in d):
            d_new[key] = d_other[key]

    return d_new


def _cast_matrix(
    matrix: MatrixLike, cast_to: Literal["sparse", "dense"], force_cast: bool = True
) -> MatrixLike:
    """
    Casts a given matrix into a required form ('sparse' or 'dense')
    as defined by `cast_to` parameter.
    Note that in some cases casting may not be explicitly needed,
    for example: the sparse matrix routines can often accept
    dense matrices. The parameter `force_cast` determines if the
    casting should be always done, or only where it is necessary.

    Parameters
    ----------
    matrix: Qobj, ndarray or sparse matrix
        matrix given as an ndarray, Qobj, or scipy's sparse matrix format
    cast_to: str
        string representing the format that matrix should be cast into: 'sparse' or 'dense'
    force_cast: bool
        determines of casting should be always performed or only where necessary

    Returns
    ----------
        matrix in the right sparse or dense form

    """
    m = matrix

    if cast_to == "sparse":
        if isinstance(matrix, Qobj):
            m = csc_matrix(matrix.full())
        elif force_cast and isinstance(matrix, ndarray):
            m = csc_matrix(matrix)

    elif cast_to == "dense":
        if isinstance(matrix, Qobj):
            m = matrix.full()
        elif force_cast and sp.sparse.issparse(matrix):
            m = matrix.toarray()
    else:
        raise ValueError("Can only matrix to 'sparse' or 'dense' forms.")

    return m


### scipy based routines ####


def esys_scipy_dense(
    matrix: MatrixLike, evals_count: int, **kwargs
) -> Tuple[ndarray, ndarray]:
    """
    Diagonalization based on scipy's (dense) `eigh` function.
    Returns the `evals_count` lowest eigenpairs.

    Parameters
    ----------
    matrix:
        matrix to be diagonalized
    evals_count:
        how many eigenvalues/vectors should be returned
    kwargs:
        optional settings that are passed onto the diagonalization routine
    """
    m = _cast_matrix(matrix, "dense")
    if evals_count < m.shape[0]:
        kwargs = _dict_merge(dict(subset_by_index=(0, evals_count - 1)), kwargs)
    return sp.linalg.eigh(m, **kwargs)


def esys_scipy_sparse(
    matrix: MatrixLike, evals_count: int, **kwargs
) -> Tuple[ndarray, ndarray]:
    """
    Diagonalization based on scipy's (sparse) `eigsh` function.

    This function ensures that:
    1. We always use the same "random" starting vector v0. Otherwise results show
    random behavior (small deviations between different runs, problem for pytests)
    2. We test for degenerate eigenvalues. If there are any, we orthogonalize the
    eigenvectors properly.

    Parameters
    ----------
    matrix:
        matrix to be diagonalized
    evals_count:
        how many eigenvalues/vectors should be returned
    kwargs:
        optional settings that are passed onto the diagonalization routine
    """
    m = _cast_matrix(matrix, "sparse")

    options = _dict_merge(
        dict(
            which="SA",
            v0=settings.RANDOM_ARRAY[: matrix.shape[0]],
            return_eigenvectors=True,
        ),
        kwargs,
        overwrite=True,
    )
    evals, evecs = sp.sparse.linalg.eigsh(m, k=evals_count, **options)
    evals, evecs = order_eigensystem(evals, evecs)
    return evals, orthonormalize_degenerate(evals, evecs)


def esys_scipy_sparse_shift_invert(
    matrix: MatrixLike, evals_count: int, sigma: float = 0.0, **kwargs
) -> Tuple[ndarray, ndarray]:
    """
    Shift-invert diagonalization based on scipy's (sparse) `eigsh` function. Returns
    the `evals_count` eigenpairs with eigenvalues nearest `sigma`.
    """
    return esys_scipy_sparse(
        matrix,
        evals_count,
        **_dict_merge(dict(which="LM", sigma=sigma), kwargs, overwrite=True)
    )


### qutip based routines ####


def esys_qutip(
    matrix: MatrixLike, evals_count: int, **kwargs
) -> Tuple[ndarray, ndarray]:
    """
    Diagonalization based on qutip's `Qobj.eigenstates`. Eigenvectors are returned as
    columns of an ndarray.
    """
    m = matrix if isinstance(matrix, Qobj) else qt.Qobj(matrix, isherm=True)
    if evals_count < m.shape[0]:
        kwargs = _dict_merge(dict(eigvals=evals_count), kwargs)
    evals, kets = m.eigenstates(**kwargs)
    evecs = np.column_stack([ket.full().ravel() for ket in kets])
    return np.asarray(evals), evecs


DIAG_METHODS: Dict[str, Callable[..., Tuple[ndarray, ndarray]]] = {
    # scipy dense
    "esys_scipy_dense": esys_scipy_dense,
    # scipy sparse
    "esys_scipy_sparse": esys_scipy_sparse,
    "esys_scipy_sparse_SM": lambda matrix, evals_count, **kwargs: esys_scipy_sparse(
        matrix, evals_count, **_dict_merge(dict(which="SM"), kwargs, overwrite=True)
    ),
    "esys_scipy_sparse_shift_invert": esys_scipy_sparse_shift_invert,
    # qutip
    "esys_qutip": esys_qutip,
}


class EigenSolver:
    """Diagonalizes Hamiltonians in one of three modes:

    * full: all eigenpairs (`evals_count=None`, `sigma=None`)
    * lowest: the `evals_count` lowest eigenpairs (`sigma=None`)
    * windowed: the `evals_count` eigenpairs nearest the target value `sigma`

    Results are always sorted by ascending eigenvalue, and eigenvector phases are
    standardized.

    Parameters
    ----------
    esys_method:
        name of a routine in `DIAG_METHODS` or a callable with signature
        `esys_method(matrix, evals_count, **kwargs) -> (evals, evecs)`, used in the
        full and lowest modes (default: dense scipy for full, sparse scipy for
        lowest). Windowed mode always uses shift-invert iteration.
    esys_method_options:
        keyword arguments passed on to `esys_method`
    max_iterations:
        iteration cap of the iterative solvers (default:
        `settings.ARPACK_MAX_ITERATIONS`)
    tolerance:
        relative accuracy of the iterative solvers, 0 meaning machine precision
        (default: `settings.ARPACK_TOLERANCE`)
    """

    def __init__(
        self,
        esys_method: Union[str, Callable, None] = None,
        esys_method_options: Optional[Dict[str, Any]] = None,
        max_iterations: Optional[int] = None,
        tolerance: Optional[float] = None,
    ) -> None:
        if isinstance(esys_method, str) and esys_method not in DIAG_METHODS:
            raise ValueError(
                "Invalid esys_method {!r}; choose from {}.".format(
                    esys_method, list(DIAG_METHODS)
                )
            )
        self.esys_method = esys_method
        self.esys_method_options = esys_method_options or {}
        self.max_iterations = (
            settings.ARPACK_MAX_ITERATIONS if max_iterations is None else max_iterations
        )
        self.tolerance = settings.ARPACK_TOLERANCE if tolerance is None else tolerance

    def __repr__(self) -> str:
        return "{}(esys_method={!r})".format(type(self).__name__, self.esys_method)

    def _method(
        self, default: str, evals_count: int, dimension: int
    ) -> Tuple[Callable, Dict[str, Any]]:
        method = default if self.esys_method is None else self.esys_method
        if callable(method):
            return method, dict(self.esys_method_options)
        if not method.startswith("esys_scipy_sparse"):
            return DIAG_METHODS[method], dict(self.esys_method_options)
        # ARPACK needs evals_count < dimension - 1
        if evals_count >= dimension - 1:
            return esys_scipy_dense, {}
        options = _dict_merge(
            dict(maxiter=self.max_iterations, tol=self.tolerance),
            self.esys_method_options,
            overwrite=True,
        )
        return DIAG_METHODS[method], options

    def _run(
        self, method: Callable, matrix: MatrixLike, evals_count: int, **options
    ) -> Tuple[ndarray, ndarray]:
        try:
            return method(matrix, evals_count, **options)
        except ArpackNoConvergence as error:
            raise ConvergenceError(
                "Iterative diagonalization did not converge within {} iterations ({} of"
                " {} eigenpairs converged).".format(
                    options.get("maxiter"), len(error.eigenvalues), evals_count
                )
            ) from error
        except ArpackError as error:
            raise ConvergenceError(
                "Iterative diagonalization failed: {}".format(error)
            ) from error

    def solve(
        self,
        hamiltonian: Diagonalizable,
        evals_count: Optional[int] = None,
        sigma: Optional[float] = None,
    ) -> SpectrumResult:
        """Diagonalizes `hamiltonian`.

        Parameters
        ----------
        hamiltonian:
            `HamiltonianMatrix`, or a Hermitian ndarray, sparse matrix or Qobj
        evals_count:
            number of eigenpairs (all if `None`; required in windowed mode)
        sigma:
            target value of windowed mode

        Returns
        -------
            eigenpairs sorted by ascending eigenvalue

        Raises
        ------
        ConvergenceError
            if an iterative solver does not converge
        """
        if isinstance(hamiltonian, HamiltonianMatrix):
            matrix = hamiltonian.matrix
            metadata = dict(
                basis_token=hamiltonian.basis_token,
                param_fingerprint=fingerprint(hamiltonian.params),
                subspace=hamiltonian.subspace,
                params=hamiltonian.params,
            )
        else:
            matrix = hamiltonian
            metadata = {}
        dimension = matrix.shape[0]

        if evals_count is not None and evals_count < 1:
            raise ValueError("evals_count must be positive.")
        if sigma is not None and evals_count is None:
            raise ValueError("Windowed diagonalization requires evals_count.")
        evals_count = dimension if evals_count is None else min(evals_count, dimension)

        if dimension == 0:
            evals, evecs = np.zeros(0), np.zeros((0, 0))
        elif sigma is None:
            default = "esys_scipy_dense" if evals_count == dimension else "esys_scipy_sparse"
            method, options = self._method(default, evals_count, dimension)
            evals, evecs = self._run(method, matrix, evals_count, **options)
        elif evals_count >= dimension - 1:
            warnings.warn(
                "Windowed diagonalization of {} eigenpairs in dimension {}; falling back"
                " to dense diagonalization.".format(evals_count, dimension),
                Warning,
            )
            evals, evecs = esys_scipy_dense(matrix, dimension)
            nearest = closest_indices(evals, sigma, evals_count)
            evals, evecs = evals[nearest], evecs[:, nearest]
        else:
            options = dict(
                sigma=sigma, maxiter=self.max_iterations, tol=self.tolerance
            )
            evals, evecs = self._run(
                esys_scipy_sparse_shift_invert, matrix, evals_count, **options
            )

        evals = np.real(np.asarray(evals))
        evecs = np.asarray(evecs)
        if dimension:
            evals, evecs = order_eigensystem(evals.copy(), evecs.copy())
            evecs = standardize_phases(evecs)
        LOGGER.debug(
            "Diagonalized matrix of dimension {}: {} eigenpairs.".format(
                dimension, len(evals)
            )
        )
        return SpectrumResult(evals, evecs, **metadata)
