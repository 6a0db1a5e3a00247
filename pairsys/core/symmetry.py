# symmetry.py
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
import warnings

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import scipy as sp

from numpy import ndarray
from scipy.sparse import csc_matrix

from pairsys.core.basis import BasisIndex
from pairsys.core.states import PairState, StateRepresentation

LOGGER = logging.getLogger(__name__)

Image = Optional[Tuple[StateRepresentation, complex]]

UNSYMMETRIZED_LABEL = "unsymmetrized"


# -Symmetry operators---------------------------------------------------------------------


class SymmetryOperator(ABC):
    """Involutive symmetry operation on basis states. `image(state)` returns the
    image state together with its phase, `S|state> = phase |image>`, or `None` if
    the operation is not defined for the state."""

    labels: Dict[int, str] = {1: "symmetric", -1: "antisymmetric"}

    @abstractmethod
    def image(self, state: StateRepresentation) -> Image:
        pass

    def __repr__(self) -> str:
        return "{}()".format(type(self).__name__)


class ExchangeSymmetry(SymmetryOperator):
    """Exchange of the two particles of a pair. Not defined for heteronuclear pair
    states."""

    def image(self, state: PairState) -> Image:
        if not isinstance(state, PairState):
            raise TypeError("Particle exchange is defined for pair states only.")
        if not state.is_homonuclear:
            return None
        return state.swapped(), 1


class InversionSymmetry(SymmetryOperator):
    """Inversion of the pair through its center, `|a, b> -> (-1)^(l_a + l_b) |b, a>`.
    Not defined for heteronuclear pair states."""

    labels = {1: "gerade", -1: "ungerade"}

    def image(self, state: PairState) -> Image:
        if not isinstance(state, PairState):
            raise TypeError("Inversion through the pair center needs pair states.")
        if not state.is_homonuclear:
            return None
        return state.swapped(), (-1) ** (state.first.l + state.second.l)


class ParitySymmetry(SymmetryOperator):
    """Spatial parity of all electrons, diagonal in the basis."""

    labels = {1: "even", -1: "odd"}

    def image(self, state: StateRepresentation) -> Image:
        return state, (-1) ** sum(s.l for s in state.constituents)


# -Subspaces------------------------------------------------------------------------------


class SymmetrySubspace:
    """Block of the Hamiltonian belonging to one eigenvalue of a symmetry operator.

    Parameters
    ----------
    label:
        name of the subspace
    eigenvalue:
        eigenvalue of the symmetry operator, `None` for unsymmetrized states
    positions:
        anchor basis position of every subspace vector; the anchors of all subspaces
        of a partition cover the basis exactly once
    support:
        ascending basis positions contributing to the subspace vectors
    transformation:
        sparse matrix of shape `(len(support), len(positions))`, whose orthonormal
        columns express the subspace vectors in support coordinates
    """

    def __init__(
        self,
        label: str,
        eigenvalue: Optional[int],
        positions: Iterable[int],
        support: Iterable[int],
        transformation: csc_matrix,
    ) -> None:
        self.label = label
        self.eigenvalue = eigenvalue
        self.positions: Tuple[int, ...] = tuple(positions)
        self.support: Tuple[int, ...] = tuple(support)
        self.transformation = transformation

    def __repr__(self) -> str:
        return "{}(label={!r}, eigenvalue={}, dimension={})".format(
            type(self).__name__, self.label, self.eigenvalue, self.dimension
        )

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def dimension(self) -> int:
        return len(self.positions)

    def to_full(self, vectors: ndarray, dimension: int) -> ndarray:
        """Maps vectors (or matrix columns) in subspace coordinates to the full basis
        of given `dimension`."""
        vectors = np.asarray(vectors)
        support_vectors = self.transformation @ vectors
        full = np.zeros(
            (dimension,) + support_vectors.shape[1:], dtype=support_vectors.dtype
        )
        full[list(self.support)] = support_vectors
        return full

    @classmethod
    def full(cls, basis: BasisIndex) -> "SymmetrySubspace":
        """Trivial subspace spanning the entire basis."""
        dimension = len(basis)
        return cls(
            "full",
            None,
            range(dimension),
            range(dimension),
            sp.sparse.identity(dimension, format="csc"),
        )


class SymmetryReducer:
    """Splits a basis into symmetry subspaces. The Hamiltonian is block diagonal
    with respect to these subspaces whenever it commutes with the operator, so each
    block is assembled and diagonalized on its own.

    Parameters
    ----------
    operator:
        default symmetry operator used by `partition`
    """

    def __init__(self, operator: Optional[SymmetryOperator] = None) -> None:
        self.operator = operator

    def partition(
        self, basis: BasisIndex, operator: Optional[SymmetryOperator] = None
    ) -> List[SymmetrySubspace]:
        """Partitions `basis` into subspaces of the symmetry `operator`.

        For a pair of basis states `i < j` mapped onto each other, the symmetric
        combination is anchored at `i` and the antisymmetric one at `j`. States whose
        image is undefined (heteronuclear pairs) are collected in an unsymmetrized
        subspace with eigenvalue `None`. If such states, or states whose image is
        missing from the basis, coexist with symmetrized ones, a warning is issued
        and the single unreduced subspace `"full"` is returned.
        """
        operator = self.operator if operator is None else operator
        if operator is None:
            return [SymmetrySubspace.full(basis)]

        # eigenvalue -> list of (anchor, {position: coefficient})
        columns: Dict[Optional[int], List[Tuple[int, Dict[int, complex]]]] = {
            1: [],
            -1: [],
            None: [],
        }
        done = set()
        for position, state in enumerate(basis):
            if position in done:
                continue
            done.add(position)
            image = operator.image(state)
            if image is None or image[0] not in basis:
                columns[None].append((position, {position: 1.0}))
                continue
            image_state, phase = image
            if image_state == state:
                eigenvalue = int(np.round(np.real(phase)))
                columns[eigenvalue].append((position, {position: 1.0}))
                continue
            partner = basis.lookup(image_state)
            done.add(partner)
            norm = 1 / np.sqrt(2)
            for eigenvalue, anchor in ((1, position), (-1, partner)):
                columns[eigenvalue].append(
                    (anchor, {position: norm, partner: eigenvalue * phase * norm})
                )

        # the operator does not map the basis onto itself, so it does not commute
        # with the Hamiltonian restricted to it
        if columns[None] and (columns[1] or columns[-1]):
            warnings.warn(
                "{} basis state(s) cannot be symmetrized under {}; the basis is not"
                " closed under the operator and is left unreduced.".format(
                    len(columns[None]), operator
                ),
                Warning,
            )
            return [SymmetrySubspace.full(basis)]

        subspaces = []
        for eigenvalue in (1, -1, None):
            if not columns[eigenvalue]:
                continue
            label = operator.labels.get(eigenvalue, UNSYMMETRIZED_LABEL)
            subspaces.append(self._build(label, eigenvalue, columns[eigenvalue]))
        LOGGER.debug(
            "Symmetry partition under {}: {}".format(
                operator, [(s.label, s.dimension) for s in subspaces]
            )
        )
        return subspaces

    @staticmethod
    def _build(
        label: str,
        eigenvalue: Optional[int],
        columns: List[Tuple[int, Dict[int, complex]]],
    ) -> SymmetrySubspace:
        columns = sorted(columns, key=lambda column: column[0])
        support = sorted({p for _, coefficients in columns for p in coefficients})
        local_index = {position: local for local, position in enumerate(support)}
        rows, cols, values = [], [], []
        for col, (_, coefficients) in enumerate(columns):
            for position, value in coefficients.items():
                rows.append(local_index[position])
                cols.append(col)
                values.append(value)
        values = np.asarray(values)
        if np.all(np.isreal(values)):
            values = values.real
        transformation = sp.sparse.csc_matrix(
            (values, (rows, cols)), shape=(len(support), len(columns))
        )
        return SymmetrySubspace(
            label, eigenvalue, [anchor for anchor, _ in columns], support, transformation
        )

    @staticmethod
    def select(
        subspaces: Iterable[SymmetrySubspace],
        eigenvalues: Union[None, int, Iterable[Optional[int]]] = None,
    ) -> List[SymmetrySubspace]:
        """Picks the subspaces with the requested eigenvalue(s); `None` selects all."""
        subspaces = list(subspaces)
        if eigenvalues is None:
            return subspaces
        if isinstance(eigenvalues, int):
            eigenvalues = [eigenvalues]
        wanted = set(eigenvalues)
        return [subspace for subspace in subspaces if subspace.eigenvalue in wanted]
