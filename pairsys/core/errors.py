# errors.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################


class PairSysError(Exception):
    """Base class of all errors raised by pairsys."""


class LabelParseError(PairSysError, ValueError):
    """Raised when a spectroscopic state label does not follow the label grammar."""

    def __init__(self, label: str, reason: str) -> None:
        self.label = label
        self.reason = reason
        super().__init__("Cannot parse state label {!r}: {}".format(label, reason))


class NotFoundError(PairSysError, KeyError):
    """Raised when a state or position is absent from a `BasisIndex`."""

    def __str__(self) -> str:
        # KeyError would otherwise print the repr of the message
        return str(self.args[0]) if self.args else ""


class AlreadyPresentError(PairSysError):
    """Raised when a state is inserted into a `BasisIndex` a second time."""


class ConvergenceError(PairSysError):
    pass


class ProviderError(PairSysError):
    """Raised by matrix-element providers (collaborators) that cannot deliver a
    requested energy or coupling. pairsys propagates these verbatim."""
