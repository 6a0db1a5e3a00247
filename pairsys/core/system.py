# system.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

import functools
import logging

from fractions import Fraction
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import numpy as np

from numpy import ndarray

import pairsys.core.central_dispatch as dispatch
import pairsys.settings as settings

from pairsys.core.basis import BasisIndex
from pairsys.core.diag import EigenSolver
from pairsys.core.hamiltonian import (
    CouplingStructure,
    HamiltonianAssembler,
    HamiltonianMatrix,
)
from pairsys.core.pair_composer import ConservationRule, PairComposer
from pairsys.core.providers import MatrixElementProvider
from pairsys.core.restrictor import BasisRestrictor
from pairsys.core.selection_rules import (
    OperatorTag,
    SelectionRuleEvaluator,
    Tag,
    field_operator_tags,
)
from pairsys.core.states import (
    SpeciesRegistry,
    StateKey,
    StateRepresentation,
    check_quantum_numbers,
    default_registry,
)
from pairsys.core.storage import SpectrumResult
from pairsys.core.sweep_cache import SweepCache, SweepKey
from pairsys.core.symmetry import SymmetryOperator, SymmetryReducer, SymmetrySubspace

LOGGER = logging.getLogger(__name__)

QuantumNumberSpec = Union[None, float, Tuple[float, float], Sequence[float]]
StateSpec = Union[StateRepresentation, str]


class AtomicSystem(dispatch.DispatchClient):
    """Common base of `SystemOne` and `SystemTwo`: owns a basis and the pipeline
    turning it into spectra (selection rules, assembly, restriction, symmetry
    reduction and diagonalization).

    The coupling structure and the symmetry partition are computed lazily and
    cached until the basis changes. Call `prepare()` before sharing the system with
    parallel workers, so that they do not recompute them.

    Parameters
    ----------
    basis:
        basis of the system
    provider:
        matrix-element provider
    operator_tags:
        operators of the perturbation
    conserve_m_total:
        whether interaction terms conserve the total projection of a pair
    symmetry:
        symmetry operator used to block-diagonalize the Hamiltonian
    solver:
        eigensolver (default: `EigenSolver()`)
    threshold:
        coupling threshold passed to the assembler
    """

    def __init__(
        self,
        basis: BasisIndex,
        provider: MatrixElementProvider,
        operator_tags: Iterable[Tag] = (),
        conserve_m_total: bool = True,
        symmetry: Optional[SymmetryOperator] = None,
        solver: Optional[EigenSolver] = None,
        threshold: Optional[float] = None,
    ) -> None:
        self._basis = basis
        self.provider = provider
        self.evaluator = SelectionRuleEvaluator(provider, operator_tags, conserve_m_total)
        self.assembler = HamiltonianAssembler(provider, self.evaluator, threshold)
        self.restrictor = BasisRestrictor(provider, self.evaluator)
        self.reducer = SymmetryReducer(symmetry)
        self.solver = EigenSolver() if solver is None else solver
        self._structure: Optional[CouplingStructure] = None
        self._subspaces: Optional[List[SymmetrySubspace]] = None
        dispatch.CENTRAL_DISPATCH.register("BASISINDEX_UPDATE", self)

    def __repr__(self) -> str:
        return "{}(dimension={}, symmetry={})".format(
            type(self).__name__, self.dimension, self.reducer.operator
        )

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self.__dict__.update(state)
        dispatch.CENTRAL_DISPATCH.register("BASISINDEX_UPDATE", self)

    @property
    def basis(self) -> BasisIndex:
        return self._basis

    @property
    def dimension(self) -> int:
        return len(self._basis)

    @property
    def states(self) -> Tuple[StateRepresentation, ...]:
        return self._basis.states

    ###################################################################################
    # AtomicSystem: basis management
    ###################################################################################
    def _reset(self) -> None:
        self._structure = None
        self._subspaces = None

    def _set_basis(self, basis: BasisIndex) -> None:
        if basis is self._basis:
            return
        self._basis = basis
        self._reset()
        self.broadcast("SYSTEM_UPDATE")

    def receive(self, event: str, sender: object, **kwargs) -> None:
        if event == "BASISINDEX_UPDATE" and sender is self._basis:
            self._reset()
            self.broadcast("SYSTEM_UPDATE")

    def _as_state(self, state: StateSpec) -> StateRepresentation:
        if isinstance(state, str):
            return self.create_state_from_label(state)
        return state

    def create_state_from_label(self, label: str) -> StateRepresentation:
        """Constructs a state of the system's representation from a label; the basis
        is not modified."""
        return self._basis.from_label(label)

    def add_state(self, state: StateSpec) -> int:
        """Appends a state (or the state described by a label) to the basis."""
        position = self._basis.add(self._as_state(state))
        self._reset()
        return position

    def restrict_energy(
        self,
        window: Tuple[Optional[float], Optional[float]],
        params: Optional[Dict[str, Any]] = None,
    ) -> BasisIndex:
        self._set_basis(self.restrictor.restrict_energy(self._basis, window, params))
        return self._basis

    def restrict_quantum_numbers(self, ranges: Dict[str, Any]) -> BasisIndex:
        self._set_basis(self.restrictor.restrict_quantum_numbers(self._basis, ranges))
        return self._basis

    def restrict_reachable(
        self, core: Iterable[StateSpec], max_hops: int
    ) -> BasisIndex:
        core_states = [self._as_state(state) for state in core]
        self._set_basis(
            self.restrictor.restrict_reachable(self._basis, core_states, max_hops)
        )
        return self._basis

    ###################################################################################
    # AtomicSystem: symmetry and preparation
    ###################################################################################
    def set_symmetry(self, operator: Optional[SymmetryOperator]) -> None:
        self.reducer.operator = operator
        self._subspaces = None
        self.broadcast("SYSTEM_UPDATE")

    def subspaces(self) -> List[SymmetrySubspace]:
        if self._subspaces is None:
            self._subspaces = self.reducer.partition(self._basis)
        return self._subspaces

    @property
    def coupling_structure(self) -> CouplingStructure:
        if self._structure is None:
            self._structure = self.assembler.coupling_structure(self._basis)
        return self._structure

    def prepare(self) -> "AtomicSystem":
        """Computes the coupling structure and the symmetry partition."""
        _ = self.coupling_structure
        self.subspaces()
        return self

    ###################################################################################
    # AtomicSystem: Hamiltonian and spectra
    ###################################################################################
    def _projection(self, subspace: SymmetrySubspace) -> Optional[SymmetrySubspace]:
        return None if self.reducer.operator is None else subspace

    def hamiltonian(
        self,
        params: Optional[Dict[str, Any]] = None,
        subspace: Optional[SymmetrySubspace] = None,
    ) -> HamiltonianMatrix:
        """Assembles the Hamiltonian at the parameter point `params`, optionally
        projected onto a symmetry subspace."""
        params = {} if params is None else params
        return self.assembler.assemble(
            self._basis, params, subspace=subspace, structure=self.coupling_structure
        )

    def _solve(
        self,
        params: Dict[str, Any],
        subspace: SymmetrySubspace,
        evals_count: Optional[int],
        sigma: Optional[float],
    ) -> SpectrumResult:
        hamiltonian = self.hamiltonian(params, self._projection(subspace))
        result = self.solver.solve(hamiltonian, evals_count=evals_count, sigma=sigma)
        result.subspace_label = subspace.label
        return result

    def model_fingerprint(self) -> str:
        """Describes everything besides the basis and the parameter point that the
        spectrum depends on: provider, operator tags, conservation of the total
        magnetic quantum number, coupling threshold and symmetry operator."""
        threshold = self.assembler.threshold
        return repr(
            (
                self.provider.identity(),
                self.evaluator.operator_tags,
                self.evaluator.conserve_m_total,
                settings.COUPLING_THRESHOLD if threshold is None else threshold,
                type(self.reducer.operator).__qualname__,
            )
        )

    def cache_key(
        self,
        params: Dict[str, Any],
        subspace: SymmetrySubspace,
        evals_count: Optional[int] = None,
        sigma: Optional[float] = None,
    ) -> SweepKey:
        return SweepCache.key(
            self._basis.token,
            params,
            model=self.model_fingerprint(),
            subspace=subspace.label,
            evals_count=evals_count,
            sigma=sigma,
        )

    def selected_subspaces(
        self, eigenvalues: Union[None, int, Iterable[Optional[int]]] = None
    ) -> List[SymmetrySubspace]:
        return self.reducer.select(self.subspaces(), eigenvalues)

    def diagonalize(
        self,
        params: Optional[Dict[str, Any]] = None,
        evals_count: Optional[int] = None,
        sigma: Optional[float] = None,
        eigenvalues: Union[None, int, Iterable[Optional[int]]] = None,
        cache: Optional[SweepCache] = None,
    ) -> Dict[str, SpectrumResult]:
        """Diagonalizes the Hamiltonian at `params`, independently in every selected
        symmetry subspace.

        Parameters
        ----------
        params:
            parameter point
        evals_count:
            number of eigenpairs per subspace (all if `None`)
        sigma:
            target energy for windowed diagonalization
        eigenvalues:
            symmetry eigenvalue(s) of the subspaces to diagonalize (all if `None`)
        cache:
            sweep cache consulted before diagonalizing

        Returns
        -------
            dictionary mapping subspace labels to spectra
        """
        params = {} if params is None else dict(params)
        results = {}
        for subspace in self.selected_subspaces(eigenvalues):
            compute = functools.partial(self._solve, params, subspace, evals_count, sigma)
            if cache is None:
                result = compute()
            else:
                key = self.cache_key(params, subspace, evals_count, sigma)
                result = cache.get_or_compute(key, compute)
            if result.subspace is None:
                result.subspace = self._projection(subspace)
            results[subspace.label] = result
        return results

    def overlap(self, result: SpectrumResult, state: StateSpec) -> ndarray:
        """Weights of a basis state in all eigenvectors of `result`."""
        return result.overlaps(self._basis.lookup(self._as_state(state)))


def _candidates(spec: QuantumNumberSpec, allowed: Iterable[Fraction]) -> List[Fraction]:
    allowed = list(allowed)
    if spec is None:
        return allowed
    if isinstance(spec, tuple) and len(spec) == 2:
        lower, upper = spec
        return [
            value
            for value in allowed
            if (lower is None or value >= Fraction(lower))
            and (upper is None or value <= Fraction(upper))
        ]
    if isinstance(spec, (list, set, frozenset, ndarray)):
        wanted = {Fraction(value) for value in spec}
        return [value for value in allowed if value in wanted]
    return [value for value in allowed if value == Fraction(spec)]


def _half_integer_range(lower: Fraction, upper: Fraction) -> List[Fraction]:
    values = []
    value = lower
    while value <= upper:
        values.append(value)
        value += 1
    return values


class SystemOne(AtomicSystem):
    """Single atom in external fields.

    Parameters
    ----------
    basis:
        single-particle basis (a `BasisIndex` or an iterable of `StateKey`)
    provider:
        matrix-element provider of the atom
    operator_tags:
        operators of the perturbation (default: electric dipole coupling to an
        external field, all spherical components)
    registry:
        species registry used for labels
    symmetry, solver, threshold:
        see `AtomicSystem`
    """

    def __init__(
        self,
        basis: Union[BasisIndex, Iterable[StateKey]],
        provider: MatrixElementProvider,
        operator_tags: Optional[Iterable[Tag]] = None,
        registry: Optional[SpeciesRegistry] = None,
        symmetry: Optional[SymmetryOperator] = None,
        solver: Optional[EigenSolver] = None,
        threshold: Optional[float] = None,
    ) -> None:
        if not isinstance(basis, BasisIndex):
            basis = BasisIndex(basis, registry=registry, representation=StateKey)
        operator_tags = field_operator_tags() if operator_tags is None else operator_tags
        super().__init__(
            basis,
            provider,
            operator_tags,
            symmetry=symmetry,
            solver=solver,
            threshold=threshold,
        )

    @classmethod
    def from_quantum_numbers(
        cls,
        species: str,
        provider: MatrixElementProvider,
        n: QuantumNumberSpec,
        l: QuantumNumberSpec = None,
        j: QuantumNumberSpec = None,
        m: QuantumNumberSpec = None,
        registry: Optional[SpeciesRegistry] = None,
        **kwargs
    ) -> "SystemOne":
        """Creates a system whose basis contains all valid states of `species` with
        quantum numbers in the given specifications. Each specification is a single
        value, a closed range `(min, max)` (with `None` for an open side), a list of
        values, or `None` for all values. `n` must be bounded.
        """
        registry = default_registry() if registry is None else registry
        if species not in registry:
            raise ValueError("Unknown species {!r}.".format(species))
        info = registry[species]
        spin = Fraction(info.spin)
        if n is None or (isinstance(n, tuple) and n[1] is None):
            raise ValueError("The principal quantum number n must be bounded.")
        if isinstance(n, tuple):
            n_lower = info.n_min if n[0] is None else max(int(n[0]), info.n_min)
            n_values = [Fraction(value) for value in range(n_lower, int(n[1]) + 1)]
        else:
            n_values = [Fraction(value) for value in np.atleast_1d(n)]

        states = []
        for n_value in n_values:
            for l_value in _candidates(l, (Fraction(k) for k in range(int(n_value)))):
                j_values = _half_integer_range(abs(l_value - spin), l_value + spin)
                for j_value in _candidates(j, j_values):
                    for m_value in _candidates(m, _half_integer_range(-j_value, j_value)):
                        if check_quantum_numbers(
                            species, n_value, int(l_value), j_value, m_value, registry
                        ):
                            continue
                        states.append(
                            StateKey(
                                int(n_value),
                                int(l_value),
                                float(j_value),
                                float(m_value),
                                species,
                            )
                        )
        LOGGER.debug("Created {} states of {}.".format(len(states), species))
        basis = BasisIndex(states, registry=registry, representation=StateKey)
        return cls(basis, provider, registry=registry, **kwargs)


class SystemTwo(AtomicSystem):
    """Pair of atoms, composed from two single-atom systems.

    Parameters
    ----------
    system0:
        system of particle 0
    system1:
        system of particle 1 (default: `system0`)
    interaction_provider:
        provider of the interparticle interaction (`InteractionTag` couplings); no
        interaction is included if `None`
    order:
        highest order of the multipole expansion of the interaction (3: dipole-dipole)
    conservation:
        rule on the total projection applied when composing the pair basis
    conserve_m_total:
        whether interaction terms conserve the total projection
    symmetry, solver, threshold:
        see `AtomicSystem`
    """

    def __init__(
        self,
        system0: SystemOne,
        system1: Optional[SystemOne] = None,
        interaction_provider: Optional[MatrixElementProvider] = None,
        order: int = 3,
        conservation: Optional[ConservationRule] = None,
        conserve_m_total: bool = True,
        symmetry: Optional[SymmetryOperator] = None,
        solver: Optional[EigenSolver] = None,
        threshold: Optional[float] = None,
    ) -> None:
        self.system0 = system0
        self.system1 = system0 if system1 is None else system1
        self.order = order
        self.composer = PairComposer(conservation)
        basis = self.composer.compose(self.system0.basis, self.system1.basis)
        provider = self.composer.pair_provider(
            self.system0.provider, self.system1.provider, interaction_provider
        )
        tags = self.composer.pair_tags(
            self._single_particle_tags(self.system0),
            self._single_particle_tags(self.system1),
            order if interaction_provider is not None else None,
        )
        super().__init__(
            basis,
            provider,
            tags,
            conserve_m_total=conserve_m_total,
            symmetry=symmetry,
            solver=solver if solver is not None else system0.solver,
            threshold=threshold,
        )

    @staticmethod
    def _single_particle_tags(system: SystemOne) -> List[OperatorTag]:
        return [
            tag for tag in system.evaluator.operator_tags if isinstance(tag, OperatorTag)
        ]
