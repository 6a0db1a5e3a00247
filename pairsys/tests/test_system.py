# test_system.py
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

import pairsys as ps

from pairsys.core.errors import NotFoundError
from pairsys.core.providers import DipoleDipoleProvider, FunctionProvider
from pairsys.core.symmetry import ExchangeSymmetry
from pairsys.core.system import SystemOne, SystemTwo


@pytest.fixture
def pair_system(two_level_states, dipole_provider):
    single = SystemOne(two_level_states, dipole_provider, operator_tags=[])
    return SystemTwo(
        single,
        interaction_provider=DipoleDipoleProvider(dipole_provider),
        symmetry=ExchangeSymmetry(),
    )


class TestSystemOne:
    def test_from_quantum_numbers(self, rb_system):
        assert rb_system.dimension == 16
        assert all(state.species == "Rb" for state in rb_system.states)
        assert {state.l for state in rb_system.states} == {0, 1}

    def test_from_quantum_numbers_projection(self, model_provider):
        system = SystemOne.from_quantum_numbers("Rb", model_provider, n=5, m=0.5)
        # S: one j value; P, D, F, G: two j values each
        assert system.dimension == 9
        assert all(state.m == 0.5 for state in system.states)

    def test_from_quantum_numbers_invalid(self, model_provider):
        with pytest.raises(ValueError):
            SystemOne.from_quantum_numbers("Rb", model_provider, n=None)
        with pytest.raises(ValueError):
            SystemOne.from_quantum_numbers("Rb", model_provider, n=(60, None))
        with pytest.raises(ValueError):
            SystemOne.from_quantum_numbers("Xx", model_provider, n=(5, 6))

    def test_unperturbed_spectrum(self, rb_system, model_provider):
        (result,) = rb_system.diagonalize({"efield": 0.0}).values()
        energies = sorted(model_provider.energy(s, {}) for s in rb_system.states)
        assert np.allclose(result.evals, energies)
        assert result.subspace is None

    def test_field_spectrum(self, rb_system):
        params = {"efield": 0.3, "bfield": 0.01}
        result = rb_system.diagonalize(params)["full"]
        matrix = rb_system.hamiltonian(params).toarray()
        assert np.allclose(result.evals, np.linalg.eigvalsh(matrix))
        assert result.params == params

    def test_add_state(self, rb_system):
        position = rb_system.add_state("Rb 7 S 1/2 1/2")
        assert position == 16
        assert rb_system.dimension == 17
        assert rb_system.coupling_structure.dimension == 17
        with pytest.raises(ps.AlreadyPresentError):
            rb_system.add_state("Rb 7 S 1/2 1/2")

    def test_restrict_energy(self, rb_system):
        token = rb_system.basis.token
        basis = rb_system.restrict_energy((-0.1, None))
        assert len(basis) == 14
        assert rb_system.dimension == 14
        assert basis.token != token
        assert all(state.n == 6 or state.l == 1 for state in basis)

    def test_restrict_quantum_numbers(self, rb_system):
        rb_system.restrict_quantum_numbers({"j": (0.5, 0.5)})
        assert rb_system.dimension == 8

    def test_overlap(self, rb_system):
        result = rb_system.diagonalize({"efield": 0.2, "bfield": 0.01})["full"]
        weights = rb_system.overlap(result, "Rb 5 S 1/2 1/2")
        assert np.isclose(np.sum(weights), 1.0)
        with pytest.raises(NotFoundError):
            rb_system.overlap(result, "Rb 7 S 1/2 1/2")

    def test_cache(self, rb_system):
        cache = ps.SweepCache()
        params = {"efield": 0.1}
        first = rb_system.diagonalize(params, cache=cache)
        second = rb_system.diagonalize(params, cache=cache)
        assert first["full"] is second["full"]
        assert cache.hits == 1
        other = rb_system.diagonalize(
            params, evals_count=rb_system.dimension, cache=cache
        )
        assert other["full"] is not first["full"]
        assert len(cache) == 2

    def test_cache_distinguishes_models(self, two_level_states, model_provider):
        # same basis and parameters, but only one system couples the states
        coupled = SystemOne(two_level_states, model_provider)
        uncoupled = SystemOne(two_level_states, model_provider, operator_tags=[])
        assert coupled.basis.token == uncoupled.basis.token
        cache = ps.SweepCache()
        params = {"efield": 0.5}
        first = coupled.diagonalize(params, cache=cache)["full"]
        second = uncoupled.diagonalize(params, cache=cache)["full"]
        assert cache.hits == 0
        assert len(cache) == 2
        energies = sorted(model_provider.energy(s, params) for s in two_level_states)
        assert np.allclose(second.evals, energies)
        assert not np.allclose(first.evals, energies)

    def test_provider_identity(self, two_level_states, model_provider):
        again = FunctionProvider(model_provider.energy_func, model_provider.coupling_func)
        assert again.identity() == model_provider.identity()
        assert (
            SystemOne(two_level_states, again).model_fingerprint()
            == SystemOne(two_level_states, model_provider).model_fingerprint()
        )
        anonymous = FunctionProvider(lambda s, p: 0.0, model_provider.coupling_func)
        assert anonymous.identity() != model_provider.identity()


class TestSystemTwo:
    def test_basis(self, pair_system):
        assert pair_system.dimension == 4
        assert pair_system.basis.representation is ps.PairState

    def test_subspaces_reproduce_spectrum(self, pair_system):
        params = {"distance": 2.0}
        spectra = pair_system.diagonalize(params)
        assert set(spectra) == {"symmetric", "antisymmetric"}
        block_evals = np.sort(
            np.concatenate([result.evals for result in spectra.values()])
        )
        full = pair_system.hamiltonian(params).toarray()
        assert np.allclose(block_evals, np.linalg.eigvalsh(full))

    def test_full_basis_eigenvectors(self, pair_system):
        params = {"distance": 2.0}
        full = pair_system.hamiltonian(params).toarray()
        for result in pair_system.diagonalize(params).values():
            evecs = result.to_full_basis(pair_system.dimension)
            assert evecs.shape == (pair_system.dimension, len(result))
            assert np.allclose(full @ evecs, evecs * result.evals)
            assert np.allclose(evecs.conj().T @ evecs, np.eye(len(result)))

    def test_select_subspace(self, pair_system):
        spectra = pair_system.diagonalize({"distance": 2.0}, eigenvalues=-1)
        assert list(spectra) == ["antisymmetric"]
        assert len(spectra["antisymmetric"]) == 1

    def test_overlap(self, pair_system):
        spectra = pair_system.diagonalize({"distance": 3.0})
        state = "Rb 5 S 1/2 1/2 | Rb 5 P 1/2 1/2"
        total = sum(np.sum(pair_system.overlap(r, state)) for r in spectra.values())
        assert np.isclose(total, 1.0)

    def test_without_symmetry(self, pair_system):
        pair_system.set_symmetry(None)
        spectra = pair_system.diagonalize({"distance": 2.0})
        assert list(spectra) == ["full"]
        assert len(spectra["full"]) == 4

    def test_interaction_requires_distance(self, pair_system):
        with pytest.raises(ps.ProviderError):
            pair_system.diagonalize({})
