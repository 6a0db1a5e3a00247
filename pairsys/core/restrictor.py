# restrictor.py
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

from collections import deque
from typing import Any, Dict, Iterable, List, Optional

from pairsys.core.basis import BasisIndex
from pairsys.core.providers import MatrixElementProvider
from pairsys.core.selection_rules import SelectionRuleEvaluator
from pairsys.core.states import StateRepresentation
from pairsys.utils.typedefs import QuantumNumberRange

LOGGER = logging.getLogger(__name__)

Range = QuantumNumberRange

QUANTUM_NUMBER_KEYS = ("n", "l", "j", "m", "m_total", "species")


def _in_range(value: Any, bounds: Range) -> bool:
    lower, upper = bounds
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def _matches(state: StateRepresentation, ranges: Dict[str, Any]) -> bool:
    for key, bounds in ranges.items():
        if key == "m_total":
            if not _in_range(state.m_total, bounds):
                return False
        elif key == "species":
            allowed = {bounds} if isinstance(bounds, str) else set(bounds)
            if any(s.species not in allowed for s in state.constituents):
                return False
        elif not all(_in_range(getattr(s, key), bounds) for s in state.constituents):
            return False
    return True


class BasisRestrictor:
    """Shrinks a basis by energy window, quantum-number ranges and reachability from
    a core set of states.

    All restrictions are idempotent. If a restriction drops nothing, the given
    `BasisIndex` object itself is returned, so repeated application leaves the basis
    identity (and any cached results) untouched.

    Parameters
    ----------
    provider:
        provider of unperturbed energies, required for energy windows
    evaluator:
        selection-rule evaluator, required for reachability restrictions
    """

    def __init__(
        self,
        provider: Optional[MatrixElementProvider] = None,
        evaluator: Optional[SelectionRuleEvaluator] = None,
    ) -> None:
        self.provider = provider
        self.evaluator = evaluator

    @staticmethod
    def _keep(basis: BasisIndex, positions: List[int], reason: str) -> BasisIndex:
        if len(positions) == len(basis):
            return basis
        LOGGER.debug(
            "{} restriction keeps {} of {} states.".format(
                reason, len(positions), len(basis)
            )
        )
        return basis.keep(positions)

    def restrict_energy(
        self,
        basis: BasisIndex,
        window: Range,
        params: Optional[Dict[str, Any]] = None,
    ) -> BasisIndex:
        """Drops states whose unperturbed energy lies outside the closed interval
        `window = (min, max)`; `None` leaves the corresponding side open."""
        if self.provider is None:
            raise ValueError("Energy restriction requires a matrix-element provider.")
        params = {} if params is None else params
        positions = basis.positions_where(
            lambda state: _in_range(self.provider.energy(state, params), window)
        )
        return self._keep(basis, positions, "Energy")

    def restrict_quantum_numbers(
        self, basis: BasisIndex, ranges: Dict[str, Any]
    ) -> BasisIndex:
        """Drops states outside the given quantum-number ranges.

        Parameters
        ----------
        basis:
            basis to restrict
        ranges:
            dictionary mapping `"n"`, `"l"`, `"j"`, `"m"` (applied to every particle)
            and `"m_total"` to closed intervals `(min, max)`, where `None` leaves a
            side open; `"species"` maps to a name or a collection of names
        """
        unknown = set(ranges) - set(QUANTUM_NUMBER_KEYS)
        if unknown:
            raise ValueError(
                "Unknown quantum number(s) {}; choose from {}.".format(
                    sorted(unknown), QUANTUM_NUMBER_KEYS
                )
            )
        positions = basis.positions_where(lambda state: _matches(state, ranges))
        return self._keep(basis, positions, "Quantum number")

    def restrict_reachable(
        self,
        basis: BasisIndex,
        core: Iterable[StateRepresentation],
        max_hops: int,
    ) -> BasisIndex:
        """Keeps only states connected to one of the `core` states by at most
        `max_hops` allowed couplings. Core states absent from the basis are
        ignored."""
        if self.evaluator is None:
            raise ValueError("Reachability restriction requires a selection-rule evaluator.")
        if max_hops < 0:
            raise ValueError("max_hops must be non-negative.")
        distance = {basis.lookup(state): 0 for state in core if state in basis}
        if not distance:
            raise ValueError("None of the core states is part of the basis.")

        index = self.evaluator.build_index(basis)
        queue = deque(distance)
        while queue:
            position = queue.popleft()
            if distance[position] == max_hops:
                continue
            for partner, _ in self.evaluator.partners(position, basis, index):
                if partner not in distance:
                    distance[partner] = distance[position] + 1
                    queue.append(partner)
        return self._keep(basis, sorted(distance), "Reachability")

    def restrict(
        self,
        basis: BasisIndex,
        energy_window: Optional[Range] = None,
        quantum_numbers: Optional[Dict[str, Any]] = None,
        core: Optional[Iterable[StateRepresentation]] = None,
        max_hops: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> BasisIndex:
        """Applies quantum-number, energy and reachability restrictions in this
        order. Reachability requires both `core` and `max_hops`."""
        if quantum_numbers:
            basis = self.restrict_quantum_numbers(basis, quantum_numbers)
        if energy_window is not None:
            basis = self.restrict_energy(basis, energy_window, params)
        if core is not None and max_hops is not None:
            basis = self.restrict_reachable(basis, core, max_hops)
        return basis
