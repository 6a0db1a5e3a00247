# typedefs.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Tuple, Union

from numpy import ndarray
from qutip import Qobj
from scipy.sparse import csc_matrix, csr_matrix

if TYPE_CHECKING:
    from pairsys.core.hamiltonian import HamiltonianMatrix

ParameterPoint = Dict[str, Any]
ParameterValuesByName = Dict[str, Iterable[Any]]

QuantumNumberRange = Tuple[Union[int, float, None], Union[int, float, None]]

MatrixLike = Union[ndarray, csc_matrix, csr_matrix, Qobj]
Diagonalizable = Union["HamiltonianMatrix", MatrixLike]
