# This file is part of pairsys.
#
#     Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#     All rights reserved.
#
#     This source code is licensed under the BSD-style license found in the
#     LICENSE file in the root directory of this source tree.
"""pairsys.core contains the central parts of the pairsys package: basis states and
their index, selection rules and matrix-element providers, Hamiltonian assembly,
basis restriction, symmetry reduction, pair composition, diagonalization, and the
cache and sweep machinery built on top of single-atom and pair systems."""
########################################################################################
