# storage.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional, Tuple

import numpy as np

from numpy import ndarray

if TYPE_CHECKING:
    from pairsys.core.symmetry import SymmetrySubspace


class SpectrumResult:
    """Eigenvalues and eigenvectors obtained for one parameter point.

    Eigenvalues are sorted in ascending order; `evecs[:, k]` is the eigenvector of
    `evals[k]` expressed in the coordinates of the diagonalized (sub)space. Iterating
    over a `SpectrumResult` yields `(eigenvalue, eigenvector)` pairs.

    Parameters
    ----------
    evals:
        eigenvalues (ascending)
    evecs:
        eigenvectors as columns
    basis_token:
        identity token of the basis the Hamiltonian was assembled in
    param_fingerprint:
        fingerprint of the parameter point
    subspace:
        symmetry subspace of the diagonalized block, if any
    subspace_label:
        label of that subspace (taken from `subspace` if not given)
    params:
        parameter point
    """

    def __init__(
        self,
        evals: ndarray,
        evecs: ndarray,
        basis_token: Optional[str] = None,
        param_fingerprint: Optional[str] = None,
        subspace: Optional["SymmetrySubspace"] = None,
        subspace_label: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.evals = np.asarray(evals)
        self.evecs = np.asarray(evecs)
        self.basis_token = basis_token
        self.param_fingerprint = param_fingerprint
        self.subspace = subspace
        if subspace_label is None and subspace is not None:
            subspace_label = subspace.label
        self.subspace_label = subspace_label
        self.params = {} if params is None else dict(params)

    def __repr__(self) -> str:
        return "{}(evals_count={}, subspace={!r}, params={})".format(
            type(self).__name__, len(self), self.subspace_label, self.params
        )

    def __len__(self) -> int:
        return len(self.evals)

    def __iter__(self) -> Iterator[Tuple[float, ndarray]]:
        return iter(zip(self.evals, self.evecs.T))

    def __getitem__(self, index: int) -> Tuple[float, ndarray]:
        return self.evals[index], self.evecs[:, index]

    @property
    def key(self) -> Tuple[Optional[str], Optional[str]]:
        return self.basis_token, self.param_fingerprint

    def to_full_basis(self, dimension: int) -> ndarray:
        """Eigenvectors expressed in the full basis of given `dimension`."""
        if self.subspace is None:
            return self.evecs
        return self.subspace.to_full(self.evecs, dimension)

    def overlaps(self, position: int) -> ndarray:
        """Weights `|<position|v_k>|^2` of the full-basis state at `position` in all
        eigenvectors."""
        if self.subspace is None:
            return np.abs(self.evecs[position]) ** 2
        if position not in self.subspace.support:
            return np.zeros(len(self))
        local = self.subspace.support.index(position)
        row = self.subspace.transformation[local, :] @ self.evecs
        return np.abs(np.asarray(row).ravel()) ** 2

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary representation used by cache stores."""
        return {
            "evals": self.evals,
            "evecs": self.evecs,
            "basis_token": self.basis_token,
            "param_fingerprint": self.param_fingerprint,
            "subspace_label": self.subspace_label,
            "params": self.params,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpectrumResult":
        return cls(
            data["evals"],
            data["evecs"],
            basis_token=data.get("basis_token"),
            param_fingerprint=data.get("param_fingerprint"),
            subspace_label=data.get("subspace_label"),
            params=data.get("params"),
        )
