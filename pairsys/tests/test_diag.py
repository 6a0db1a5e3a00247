# test_diag.py
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
import scipy as sp

import pairsys as ps

from pairsys.core.diag import EigenSolver
from pairsys.core.errors import ConvergenceError
from pairsys.core.hamiltonian import HamiltonianAssembler
from pairsys.core.selection_rules import SelectionRuleEvaluator, field_operator_tags
from pairsys.core.sweep_cache import fingerprint


def _random_hermitian(dimension, seed=0, shift=0.0):
    rng = np.random.default_rng(seed)
    matrix = rng.normal(size=(dimension, dimension))
    matrix = matrix + matrix.T + shift * np.eye(dimension)
    return matrix


def _assert_orthonormal(evecs):
    assert np.allclose(evecs.conj().T @ evecs, np.eye(evecs.shape[1]), atol=1e-8)


class TestEigenSolver:
    def test_full(self):
        matrix = _random_hermitian(12)
        result = EigenSolver().solve(matrix)
        assert np.allclose(result.evals, np.linalg.eigvalsh(matrix))
        assert np.all(np.diff(result.evals) >= 0)
        _assert_orthonormal(result.evecs)
        assert np.allclose(matrix @ result.evecs, result.evecs * result.evals)

    def test_lowest_sparse(self):
        matrix = _random_hermitian(60, seed=1)
        result = EigenSolver().solve(sp.sparse.csr_matrix(matrix), evals_count=5)
        assert np.allclose(result.evals, np.linalg.eigvalsh(matrix)[:5])
        _assert_orthonormal(result.evecs)

    @pytest.mark.parametrize(
        "esys_method",
        ["esys_scipy_dense", "esys_scipy_sparse", "esys_qutip"],
    )
    def test_diag_methods(self, esys_method):
        matrix = _random_hermitian(40, seed=2, shift=5.0)
        reference = np.linalg.eigvalsh(matrix)[:4]
        result = EigenSolver(esys_method=esys_method).solve(
            sp.sparse.csc_matrix(matrix), evals_count=4
        )
        assert np.allclose(result.evals, reference)
        _assert_orthonormal(result.evecs)

    def test_windowed(self):
        matrix = _random_hermitian(60, seed=3)
        sigma = 0.123
        exact = np.linalg.eigvalsh(matrix)
        expected = np.sort(exact[np.argsort(np.abs(exact - sigma))[:6]])
        result = EigenSolver().solve(
            sp.sparse.csc_matrix(matrix), evals_count=6, sigma=sigma
        )
        assert np.allclose(result.evals, expected)
        _assert_orthonormal(result.evecs)

    def test_windowed_falls_back_to_dense(self):
        matrix = np.diag([0.0, 1.0, 2.0, 3.0])
        with pytest.warns(Warning):
            result = EigenSolver().solve(matrix, evals_count=3, sigma=2.1)
        assert np.allclose(result.evals, [1.0, 2.0, 3.0])

    def test_phase_convention(self):
        rng = np.random.default_rng(4)
        matrix = rng.normal(size=(8, 8)) + 1j * rng.normal(size=(8, 8))
        matrix = matrix + matrix.conj().T
        result = EigenSolver().solve(matrix)
        for vector in result.evecs.T:
            largest = vector[np.argmax(np.abs(vector))]
            assert np.isclose(largest.imag, 0.0)
            assert largest.real > 0

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            EigenSolver(esys_method="esys_magic")
        with pytest.raises(ValueError):
            EigenSolver().solve(np.eye(3), evals_count=0)
        with pytest.raises(ValueError):
            EigenSolver().solve(np.eye(3), sigma=1.0)

    def test_no_convergence(self):
        matrix = _random_hermitian(200, seed=5)
        solver = EigenSolver(max_iterations=1, tolerance=1e-15)
        with pytest.raises(ConvergenceError):
            solver.solve(sp.sparse.csc_matrix(matrix), evals_count=5)

    def test_no_convergence_windowed(self):
        matrix = sp.sparse.csc_matrix(_random_hermitian(300, seed=5))
        solver = EigenSolver(max_iterations=1, tolerance=1e-15)
        with pytest.raises(ConvergenceError):
            solver.solve(matrix, evals_count=6, sigma=0.1)

    def test_custom_callable(self):
        def esys_numpy(matrix, evals_count, **kwargs):
            evals, evecs = np.linalg.eigh(matrix)
            return evals[:evals_count], evecs[:, :evals_count]

        matrix = _random_hermitian(10, seed=6)
        result = EigenSolver(esys_method=esys_numpy).solve(matrix, evals_count=3)
        assert np.allclose(result.evals, np.linalg.eigvalsh(matrix)[:3])

    def test_hamiltonian_metadata(self, model_provider, rb_basis):
        evaluator = SelectionRuleEvaluator(model_provider, field_operator_tags())
        params = {"efield": 0.2}
        hamiltonian = HamiltonianAssembler(model_provider, evaluator).assemble(
            rb_basis, params
        )
        result = EigenSolver().solve(hamiltonian)
        assert len(result) == len(rb_basis)
        assert result.basis_token == rb_basis.token
        assert result.param_fingerprint == fingerprint(params)
        assert result.params == params

    def test_empty_matrix(self):
        result = EigenSolver().solve(np.zeros((0, 0)))
        assert len(result) == 0

    def test_registry(self):
        assert "esys_scipy_sparse_shift_invert" in ps.DIAG_METHODS
