# pairsys: Hamiltonians of single atoms and atom pairs in Python
#
# This file is part of pairsys.
#
#     Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#     All rights reserved.
#
#     This source code is licensed under the BSD-style license found in the
#     LICENSE file in the root directory of this source tree.
"""pairsys is a Python library for constructing and diagonalizing Hamiltonians of one
or two interacting atoms in a truncated basis of quantum states. It builds and
indexes the basis, assembles sparse Hermitian matrices from unperturbed energies
and selection-rule governed couplings, restricts and symmetry-reduces the basis,
and computes eigen-spectra across parameter sweeps. Internally, numerics within
pairsys is carried out with the help of Numpy and Scipy."""
#######################################################################################


import warnings

from pairsys import settings

# core
from pairsys.core.basis import BasisIndex
from pairsys.core.central_dispatch import CentralDispatch
from pairsys.core.errors import (
    AlreadyPresentError,
    ConvergenceError,
    LabelParseError,
    NotFoundError,
    PairSysError,
    ProviderError,
)
from pairsys.core.hamiltonian import (
    CouplingStructure,
    HamiltonianAssembler,
    HamiltonianMatrix,
)
from pairsys.core.pair_composer import PairComposer, ProjectionRange, ProjectionSet
from pairsys.core.param_sweep import ParameterSweep
from pairsys.core.providers import (
    DipoleDipoleProvider,
    FunctionProvider,
    MatrixElementProvider,
    PairProvider,
    TableProvider,
)
from pairsys.core.restrictor import BasisRestrictor
from pairsys.core.selection_rules import (
    FORBIDDEN,
    Allowed,
    InteractionTag,
    OperatorTag,
    SelectionRuleEvaluator,
    electric,
    field_operator_tags,
    magnetic,
)
from pairsys.core.states import (
    PairState,
    SingleParticleState,
    SpeciesRegistry,
    StateKey,
    StateRepresentation,
    create_state_from_label,
    default_registry,
)
from pairsys.core.storage import SpectrumResult
from pairsys.core.sweep_cache import SweepCache, SweepKey
from pairsys.core.symmetry import (
    ExchangeSymmetry,
    InversionSymmetry,
    ParitySymmetry,
    SymmetryReducer,
    SymmetrySubspace,
)
from pairsys.core.system import SystemOne, SystemTwo

# file IO
from pairsys.io_utils.cache_store import CacheStore, DictStore, H5Store

# diagonalization
import pairsys.core.diag as diag
from pairsys.core.diag import DIAG_METHODS, EigenSolver

# version
try:
    from pairsys.version import version as __version__
except ImportError:
    __version__ = "???"
    warnings.warn(
        "pairsys: missing version information - did pairsys install correctly?",
        ImportWarning,
    )

# build a public API list by finding all names not starting with underscore
import pairsys as _pairsys
from pairsys.utils.misc import inspect_public_API as _inspect_public_API

__all__ = _inspect_public_API(
    _pairsys,
    public_names=[
        "__version__",
    ],
    private_names=["utils", "warnings", "io_utils", "version"],
)
