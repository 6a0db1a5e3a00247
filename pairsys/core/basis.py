# basis.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

import hashlib
import logging

from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
    Type,
)

import pairsys.core.central_dispatch as dispatch

from pairsys.core.errors import AlreadyPresentError, NotFoundError
from pairsys.core.states import (
    SpeciesRegistry,
    StateRepresentation,
    create_state_from_label,
    default_registry,
)

LOGGER = logging.getLogger(__name__)


class BasisIndex(dispatch.DispatchClient):
    """Ordered, duplicate-free collection of basis states together with the inverse
    map from state to its dense integer position. All states must share one state
    representation (`StateKey` or `PairState`).

    Every membership change yields a new identity `token`; results computed for
    one token (Hamiltonians, spectra) are only valid for that token. Pruning via
    `remove` or `keep` returns a new `BasisIndex` and preserves the relative order
    of surviving states.

    Parameters
    ----------
    states:
        initial states, inserted in the given order
    registry:
        species registry used when constructing states from labels
        (default: `default_registry()`)
    representation:
        state representation class; inferred from the first state if not given
    """

    def __init__(
        self,
        states: Iterable[StateRepresentation] = (),
        registry: Optional[SpeciesRegistry] = None,
        representation: Optional[Type[StateRepresentation]] = None,
    ) -> None:
        self._registry = default_registry() if registry is None else registry
        self._representation = representation
        self._states: List[StateRepresentation] = []
        self._position_by_state: Dict[StateRepresentation, int] = {}
        for state in states:
            self._insert(state)
        self._token: Optional[str] = None

    def __repr__(self) -> str:
        return "{}(dimension={}, representation={})".format(
            type(self).__name__,
            len(self),
            getattr(self._representation, "__name__", None),
        )

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[StateRepresentation]:
        return iter(self._states)

    def __getitem__(self, position: int) -> StateRepresentation:
        return self._states[position]

    def __contains__(self, state: object) -> bool:
        return state in self._position_by_state

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BasisIndex):
            return NotImplemented
        return self._states == other._states

    __hash__ = object.__hash__

    @property
    def token(self) -> str:
        """Identity token derived from the ordered members; changes whenever the
        membership of the basis changes. Bases with identical members share a
        token, so results stored under it stay valid across runs."""
        if self._token is None:
            digest = hashlib.sha1(
                getattr(self._representation, "__name__", "").encode()
            )
            for state in self._states:
                digest.update(repr(tuple(state)).encode())
            self._token = digest.hexdigest()
        return self._token

    @property
    def registry(self) -> SpeciesRegistry:
        return self._registry

    @property
    def representation(self) -> Optional[Type[StateRepresentation]]:
        return self._representation

    @property
    def states(self) -> Tuple[StateRepresentation, ...]:
        return tuple(self._states)

    @property
    def dimension(self) -> int:
        return len(self._states)

    ###################################################################################
    # BasisIndex: membership
    ###################################################################################
    def _insert(self, state: StateRepresentation) -> int:
        if not isinstance(state, StateRepresentation):
            raise TypeError(
                "Basis states must be StateKey or PairState, got {}.".format(
                    type(state).__name__
                )
            )
        if self._representation is None:
            self._representation = type(state)
        elif not isinstance(state, self._representation):
            raise TypeError(
                "Cannot add {} to a basis of {} states.".format(
                    type(state).__name__, self._representation.__name__
                )
            )
        if state in self._position_by_state:
            raise AlreadyPresentError(
                "State {} is already present at position {}.".format(
                    state, self._position_by_state[state]
                )
            )
        position = len(self._states)
        self._states.append(state)
        self._position_by_state[state] = position
        return position

    def add(self, state: StateRepresentation) -> int:
        """Appends `state` and returns its position.

        Raises
        ------
        AlreadyPresentError
            if the state is already part of the basis
        """
        position = self._insert(state)
        self._token = None
        self.broadcast("BASISINDEX_UPDATE")
        return position

    def lookup(self, state: StateRepresentation) -> int:
        """Returns the position of `state`.

        Raises
        ------
        NotFoundError
            if the state is not part of the basis
        """
        try:
            return self._position_by_state[state]
        except KeyError:
            raise NotFoundError("State {} is not part of the basis.".format(state))

    def _checked_positions(self, positions: Iterable[int]) -> set:
        position_set = set()
        for position in positions:
            position = int(position)
            if not 0 <= position < len(self._states):
                raise NotFoundError(
                    "Position {} is out of range for a basis of dimension {}.".format(
                        position, len(self._states)
                    )
                )
            position_set.add(position)
        return position_set

    def remove(self, positions: Iterable[int]) -> "BasisIndex":
        """Returns a new, compacted `BasisIndex` without the states at `positions`.
        The relative order of the remaining states is preserved; this instance is
        left unchanged.
        """
        dropped = self._checked_positions(positions)
        LOGGER.debug(
            "Removing {} of {} basis states.".format(len(dropped), len(self._states))
        )
        return BasisIndex(
            (
                state
                for position, state in enumerate(self._states)
                if position not in dropped
            ),
            registry=self._registry,
            representation=self._representation,
        )

    def keep(self, positions: Iterable[int]) -> "BasisIndex":
        """Returns a new `BasisIndex` holding only the states at `positions` (in
        their original relative order)."""
        kept = self._checked_positions(positions)
        return self.remove(
            position for position in range(len(self._states)) if position not in kept
        )

    def positions_where(self, predicate: Callable[[StateRepresentation], bool]) -> List[int]:
        return [
            position
            for position, state in enumerate(self._states)
            if predicate(state)
        ]

    ###################################################################################
    # BasisIndex: construction from labels
    ###################################################################################
    def from_label(self, label: str) -> StateRepresentation:
        """Constructs a state of this basis' representation from a label. The basis
        itself is not modified.

        Raises
        ------
        LabelParseError
            if the label is malformed
        """
        if self._representation is None:
            raise ValueError(
                "Basis has no state representation yet; pass `representation` when "
                "creating an empty BasisIndex."
            )
        return create_state_from_label(self._representation, label, self._registry)

    def add_label(self, label: str) -> int:
        """Parses `label` and appends the resulting state; on a parse error the basis
        is left unchanged."""
        return self.add(self.from_label(label))
