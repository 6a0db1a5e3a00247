# test_hamiltonian.py
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
import qutip as qt

from pairsys.core.basis import BasisIndex
from pairsys.core.errors import ProviderError
from pairsys.core.hamiltonian import HamiltonianAssembler
from pairsys.core.providers import TableProvider
from pairsys.core.selection_rules import (
    SelectionRuleEvaluator,
    electric,
    field_operator_tags,
    magnetic,
)
from pairsys.core.states import StateKey


def _two_level_assembler(states, coupling=0.5, threshold=None, tags=None):
    s, p = states
    provider = TableProvider({s: 1.0, p: 2.0}, {(s, p, electric(1, 0)): coupling})
    tags = field_operator_tags() if tags is None else tags
    evaluator = SelectionRuleEvaluator(provider, tags)
    return HamiltonianAssembler(provider, evaluator, threshold)


def _naive_hamiltonian(assembler, basis, params):
    dimension = len(basis)
    matrix = np.zeros((dimension, dimension), dtype=complex)
    for i in range(dimension):
        matrix[i, i] = assembler.provider.energy(basis[i], params)
    for i in range(dimension):
        for j in range(i, dimension):
            for allowed in assembler.evaluator.evaluate_all(basis[i], basis[j]):
                value = allowed(params)
                matrix[i, j] += value
                if j != i:
                    matrix[j, i] += np.conj(value)
    return matrix


class TestHamiltonianAssembler:
    def test_two_level_system(self, two_level_states):
        basis = BasisIndex(two_level_states)
        assembler = _two_level_assembler(two_level_states)
        structure = assembler.coupling_structure(basis)
        assert len(structure) == 1
        assert (structure.terms[0].row, structure.terms[0].col) == (0, 1)

        hamiltonian = assembler.assemble(basis, {})
        assert np.allclose(hamiltonian.toarray(), [[1.0, 0.5], [0.5, 2.0]])
        assert hamiltonian.is_hermitian()
        assert np.isrealobj(hamiltonian.matrix.data)
        evals = np.linalg.eigvalsh(hamiltonian.toarray())
        assert np.allclose(evals, [1.5 - np.sqrt(0.5), 1.5 + np.sqrt(0.5)])

    def test_complex_coupling(self, two_level_states):
        basis = BasisIndex(two_level_states)
        hamiltonian = _two_level_assembler(two_level_states, coupling=0.5j).assemble(
            basis, {}
        )
        assert hamiltonian[0, 1] == pytest.approx(0.5j)
        assert hamiltonian[1, 0] == pytest.approx(-0.5j)
        assert hamiltonian.is_hermitian()
        evals = np.linalg.eigvalsh(hamiltonian.toarray())
        assert np.allclose(evals, [1.5 - np.sqrt(0.5), 1.5 + np.sqrt(0.5)])

    def test_threshold(self, two_level_states):
        basis = BasisIndex(two_level_states)
        hamiltonian = _two_level_assembler(two_level_states, threshold=0.6).assemble(
            basis, {}
        )
        assert hamiltonian.matrix.nnz == 2
        assert np.allclose(hamiltonian.diagonal(), [1.0, 2.0])

    def test_threshold_applies_to_summed_couplings(self):
        # dipole and octupole both couple P3/2 and D5/2; each term alone is below
        # the threshold, their sum is not
        p = StateKey.from_label("Rb 5 P 3/2 1/2")
        d = StateKey.from_label("Rb 5 D 5/2 1/2")
        threshold = 1e-3
        couplings = {
            (p, d, electric(1, 0)): 0.6 * threshold,
            (p, d, electric(3, 0)): 0.6 * threshold,
        }
        provider = TableProvider({p: 1.0, d: 2.0}, couplings)
        evaluator = SelectionRuleEvaluator(provider, [electric(1, 0), electric(3, 0)])
        assembler = HamiltonianAssembler(provider, evaluator, threshold)
        basis = BasisIndex([p, d])
        assert len(assembler.coupling_structure(basis)) == 2

        hamiltonian = assembler.assemble(basis, {})
        assert hamiltonian[0, 1] == pytest.approx(1.2 * threshold)
        assert hamiltonian.matrix.nnz == 4
        assert np.allclose(
            hamiltonian.toarray(), _naive_hamiltonian(assembler, basis, {})
        )

        provider.couplings[(p, d, electric(3, 0))] = -0.2 * threshold
        hamiltonian = assembler.assemble(basis, {})
        assert hamiltonian.matrix.nnz == 2

    def test_diagonal_couplings(self, two_level_states):
        s, p = two_level_states
        provider = TableProvider({s: 1.0, p: 2.0}, {(s, s, magnetic(0)): 0.1})
        evaluator = SelectionRuleEvaluator(provider, field_operator_tags(False, True))
        hamiltonian = HamiltonianAssembler(provider, evaluator).assemble(
            BasisIndex(two_level_states), {}
        )
        assert np.allclose(hamiltonian.toarray(), np.diag([1.1, 2.0]))

    def test_provider_errors_propagate(self, two_level_states):
        s, p = two_level_states
        provider = TableProvider({s: 1.0})
        evaluator = SelectionRuleEvaluator(provider, field_operator_tags())
        with pytest.raises(ProviderError):
            HamiltonianAssembler(provider, evaluator).assemble(
                BasisIndex(two_level_states), {}
            )

    def test_structure_of_other_basis(self, two_level_states, rb_basis):
        assembler = _two_level_assembler(two_level_states)
        structure = assembler.coupling_structure(BasisIndex(two_level_states))
        with pytest.raises(ValueError):
            assembler.assemble(rb_basis, {}, structure=structure)

    @pytest.mark.parametrize("efield", [0.0, 0.3])
    def test_matches_naive_assembly(self, model_provider, rb_basis, efield):
        evaluator = SelectionRuleEvaluator(
            model_provider, field_operator_tags(magnetic_field=True)
        )
        assembler = HamiltonianAssembler(model_provider, evaluator)
        params = {"efield": efield, "bfield": 0.01}
        hamiltonian = assembler.assemble(rb_basis, params)
        assert hamiltonian.shape == (len(rb_basis), len(rb_basis))
        assert hamiltonian.is_hermitian()
        assert np.allclose(
            hamiltonian.toarray(), _naive_hamiltonian(assembler, rb_basis, params)
        )
        if efield == 0.0:
            assert hamiltonian.matrix.nnz == len(rb_basis)

    def test_shared_structure(self, model_provider, rb_basis):
        evaluator = SelectionRuleEvaluator(model_provider, field_operator_tags())
        assembler = HamiltonianAssembler(model_provider, evaluator)
        structure = assembler.coupling_structure(rb_basis)
        for efield in (0.1, 0.2):
            params = {"efield": efield}
            assert np.allclose(
                assembler.assemble(rb_basis, params, structure=structure).toarray(),
                assembler.assemble(rb_basis, params).toarray(),
            )

    def test_to_qobj(self, two_level_states):
        hamiltonian = _two_level_assembler(two_level_states).assemble(
            BasisIndex(two_level_states), {}
        )
        qobj = hamiltonian.to_qobj()
        assert isinstance(qobj, qt.Qobj)
        assert qobj.isherm
        assert np.allclose(qobj.full(), hamiltonian.toarray())
