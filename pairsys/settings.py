# settings.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
#######################################################################################

import warnings

from typing import Any, Type, Union

import numpy as np


# Set format for output of warnings
def warning_on_one_line(
    message: Union[Warning, str],
    category: Type[Warning],
    filename: str,
    lineno: int,
    line: str = None,
) -> str:
    return "{}: {}\n {}: {}".format(category.__name__, message, filename, lineno)


warnings.formatwarning = warning_on_one_line


# Function checking whether code is run from a jupyter notebook or inside ipython
def executed_in_ipython():
    try:  # inside ipython, the function get_ipython is always in globals()
        shell = get_ipython().__class__.__name__
        if shell in ["ZMQInteractiveShell", "TerminalInteractiveShell"]:
            return True  # Jupyter notebook or qtconsole of IPython
        return False  # Other type (?)
    except NameError:
        return False  # Probably standard Python interpreter


# a switch for displaying of progress bar; default: show only in ipython
if executed_in_ipython():
    PROGRESSBAR_DISABLED = False
    IN_IPYTHON = True
else:
    PROGRESSBAR_DISABLED = True
    IN_IPYTHON = False


# enable/disable the CENTRAL_DISPATCH system
DISPATCH_ENABLED = True

# For parallel processing --------------------------------------------------------------
# store processing pool once generated
POOL: Any = None
# number of cores to be used by default in methods that enable parallel processing
NUM_CPUS = 1

# Select multiprocessing library
# Options:  'multiprocessing'
#           'pathos'
MULTIPROC = "pathos"

# State labels -------------------------------------------------------------------------
# delimiter separating the two single-particle labels of a pair label, e.g.
# "Rb 60 S 1/2 1/2 | Rb 61 S 1/2 -1/2"
PAIR_LABEL_DELIMITER = "|"

# Hamiltonian assembly -----------------------------------------------------------------
# off-diagonal matrix elements with modulus at or below this value are dropped
COUPLING_THRESHOLD = 0.0
# absolute tolerance used when checking hermiticity of assembled matrices
HERMITIAN_ATOL = 1e-10

# Diagonalization ----------------------------------------------------------------------
# global random number generator for consistent initial state vector v0 in ARPACK
SEED = 63142
RNG = np.random.default_rng(seed=SEED)
RANDOM_ARRAY = RNG.random(size=1000000)

# iteration cap and relative tolerance for windowed (shift-invert) diagonalization
ARPACK_MAX_ITERATIONS = 10000
ARPACK_TOLERANCE = 0.0

# eigenvalues closer than this are treated as degenerate (eigenvectors are then
# re-orthogonalized)
DEGENERACY_ATOL = 1e-10
