# hamiltonian.py
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

from collections import namedtuple
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import qutip as qt
import scipy as sp

from numpy import ndarray
from scipy.sparse import csr_matrix

import pairsys.settings as settings

from pairsys.core.basis import BasisIndex
from pairsys.core.providers import MatrixElementProvider
from pairsys.core.selection_rules import SelectionRuleEvaluator

if TYPE_CHECKING:
    from pairsys.core.symmetry import SymmetrySubspace

LOGGER = logging.getLogger(__name__)


CouplingTerm = namedtuple(
    "CouplingTerm", ["row", "col", "row_state", "col_state", "tag", "coefficient"]
)
CouplingTerm.__doc__ = """Allowed coupling `<row_state|O_tag|col_state>` at matrix
position `(row, col)` with `row <= col`; `coefficient(params)` evaluates the
matrix-element provider. The assembled matrix holds the Hermitian conjugate at
`(col, row)`."""


class CouplingStructure:
    """Parameter-independent list of allowed couplings of a basis (upper triangle
    including the diagonal). It is computed once per basis and may be shared
    read-only by all points of a sweep.

    Parameters
    ----------
    basis_token:
        identity token of the basis the structure was computed for
    dimension:
        basis dimension
    terms:
        allowed coupling terms
    """

    def __init__(
        self, basis_token: str, dimension: int, terms: Iterable[CouplingTerm]
    ) -> None:
        self.basis_token = basis_token
        self.dimension = dimension
        self.terms: Tuple[CouplingTerm, ...] = tuple(terms)

    def __repr__(self) -> str:
        return "{}(dimension={}, terms={})".format(
            type(self).__name__, self.dimension, len(self.terms)
        )

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self):
        return iter(self.terms)

    def within(self, support: Iterable[int]) -> List[CouplingTerm]:
        """Terms with both row and column inside `support`."""
        support = set(support)
        return [
            term for term in self.terms if term.row in support and term.col in support
        ]


class HamiltonianMatrix:
    """Sparse Hermitian Hamiltonian assembled for one parameter point.

    Parameters
    ----------
    matrix:
        Hamiltonian in scipy CSR format
    basis:
        basis the matrix refers to
    params:
        parameter point used during assembly
    subspace:
        symmetry subspace the matrix is projected onto (`None` for the full basis)
    """

    def __init__(
        self,
        matrix: csr_matrix,
        basis: BasisIndex,
        params: Dict[str, Any],
        subspace: Optional["SymmetrySubspace"] = None,
    ) -> None:
        self.matrix = matrix
        self.basis = basis
        self.params = dict(params)
        self.subspace = subspace

    def __repr__(self) -> str:
        return "{}(dimension={}, nnz={}, subspace={})".format(
            type(self).__name__,
            self.dimension,
            self.matrix.nnz,
            None if self.subspace is None else self.subspace.label,
        )

    def __getitem__(self, index: Tuple[int, int]) -> Union[float, complex]:
        return self.matrix[index]

    @property
    def dimension(self) -> int:
        return self.matrix.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.matrix.shape

    @property
    def basis_token(self) -> str:
        return self.basis.token

    def diagonal(self) -> ndarray:
        return self.matrix.diagonal()

    def toarray(self) -> ndarray:
        return self.matrix.toarray()

    def to_qobj(self) -> qt.Qobj:
        return qt.Qobj(self.matrix, isherm=True)

    def is_hermitian(self, atol: Optional[float] = None) -> bool:
        atol = settings.HERMITIAN_ATOL if atol is None else atol
        difference = self.matrix - self.matrix.conj().transpose()
        if difference.nnz == 0:
            return True
        return bool(np.max(np.abs(difference.data)) <= atol)


class HamiltonianAssembler:
    """Builds `HamiltonianMatrix` objects from a basis, a matrix-element provider and
    a selection-rule evaluator.

    Candidate couplings are enumerated through the coarse index of the evaluator;
    the provider is only consulted for couplings the selection rules allow.
    Assembly is a pure function of its inputs: provider errors propagate unchanged
    and no shared state is modified.

    Parameters
    ----------
    provider:
        matrix-element provider for unperturbed energies
    evaluator:
        selection-rule evaluator holding the operator tags of the perturbation
    threshold:
        off-diagonal elements with modulus at or below this value are dropped
        (default: `settings.COUPLING_THRESHOLD`)
    """

    def __init__(
        self,
        provider: MatrixElementProvider,
        evaluator: SelectionRuleEvaluator,
        threshold: Optional[float] = None,
    ) -> None:
        self.provider = provider
        self.evaluator = evaluator
        self.threshold = threshold

    def coupling_structure(self, basis: BasisIndex) -> CouplingStructure:
        """Enumerates all allowed couplings `(row, col)` with `row <= col`."""
        index = self.evaluator.build_index(basis)
        terms = []
        for row in range(len(basis)):
            for col, allowed in self.evaluator.partners(
                row, basis, index, min_position=row
            ):
                terms.append(
                    CouplingTerm(row, col, basis[row], basis[col], allowed.tag, allowed)
                )
        LOGGER.debug(
            "Coupling structure: {} allowed terms for {} basis states.".format(
                len(terms), len(basis)
            )
        )
        return CouplingStructure(basis.token, len(basis), terms)

    def assemble(
        self,
        basis: BasisIndex,
        params: Dict[str, Any],
        subspace: Optional["SymmetrySubspace"] = None,
        structure: Optional[CouplingStructure] = None,
    ) -> HamiltonianMatrix:
        """Assembles the Hamiltonian at parameter point `params`.

        Parameters
        ----------
        basis:
            basis of the Hamiltonian
        params:
            parameter point passed on to the provider
        subspace:
            if given, only couplings inside the support of the subspace are evaluated
            and the matrix is projected onto the subspace
        structure:
            precomputed coupling structure of `basis`; computed on the fly if omitted

        Returns
        -------
            Hermitian Hamiltonian
        """
        if structure is None:
            structure = self.coupling_structure(basis)
        elif structure.basis_token != basis.token:
            raise ValueError(
                "Coupling structure was computed for a different basis "
                "(token {} vs. {}).".format(structure.basis_token, basis.token)
            )
        threshold = (
            settings.COUPLING_THRESHOLD if self.threshold is None else self.threshold
        )

        if subspace is None:
            positions = list(range(len(basis)))
            terms = structure.terms
        else:
            positions = list(subspace.support)
            terms = structure.within(positions)
        local_index = {position: local for local, position in enumerate(positions)}
        dimension = len(positions)

        diagonal = [self.provider.energy(basis[position], params) for position in positions]
        rows: List[int] = []
        cols: List[int] = []
        values: List[Union[float, complex]] = []
        for term in terms:
            value = term.coefficient(params)
            if term.row == term.col:
                diagonal[local_index[term.row]] += value
                continue
            rows.append(local_index[term.row])
            cols.append(local_index[term.col])
            values.append(value)

        upper = sp.sparse.coo_matrix(
            (np.asarray(values), (rows, cols)), shape=(dimension, dimension)
        ).tocsr()
        # several operator tags may couple the same pair; compare their sum
        upper.data[np.abs(upper.data) <= threshold] = 0
        upper.eliminate_zeros()
        matrix = sp.sparse.diags(np.asarray(diagonal), format="csr") + upper
        matrix = matrix + upper.conj().transpose()
        # diagonal couplings of a Hermitian operator sum are real
        matrix = (0.5 * (matrix + matrix.conj().transpose())).tocsr()
        if np.all(np.isreal(matrix.data)):
            matrix = matrix.real.tocsr()

        if subspace is not None:
            transformation = subspace.transformation
            matrix = (transformation.conj().transpose() @ matrix @ transformation).tocsr()
        matrix.eliminate_zeros()

        LOGGER.debug(
            "Assembled Hamiltonian of dimension {} with {} stored elements.".format(
                matrix.shape[0], matrix.nnz
            )
        )
        return HamiltonianMatrix(matrix, basis, params, subspace)
