# providers.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################
"""
Matrix-element providers. pairsys does not compute physical matrix elements
itself; it consults a provider for unperturbed energies and for the couplings that
the selection rules allow.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from pairsys.core.errors import ProviderError
from pairsys.core.selection_rules import (
    InteractionTag,
    OperatorTag,
    Tag,
    adjoint_tag,
    electric,
)
from pairsys.core.states import UNTAGGED, PairState, StateKey, StateRepresentation

Params = Mapping[str, Any]
Value = Union[float, complex, Callable[[Params], Union[float, complex]]]


class MatrixElementProvider(ABC):
    """Interface of matrix-element collaborators.

    `energy(state, params)` returns the unperturbed energy of a basis state,
    `coupling(a, b, tag, params)` the matrix element `<a|O_tag|b>` (including any
    field amplitudes or distance dependence contained in `params`). Implementations
    must be consistent with Hermitian conjugation,
    `coupling(b, a, adjoint_tag(tag)) == conj(coupling(a, b, tag))`.
    """

    cache_tag: Optional[str] = None

    @abstractmethod
    def energy(self, state: StateRepresentation, params: Params) -> float:
        pass

    @abstractmethod
    def coupling(
        self,
        a: StateRepresentation,
        b: StateRepresentation,
        tag: Tag,
        params: Params,
    ) -> complex:
        pass

    def identity(self) -> str:
        """String identifying the matrix elements this provider returns; part of
        the cache keys of spectra computed with it. Providers whose results do
        not depend on object identity may set the class attribute `cache_tag`."""
        if self.cache_tag is not None:
            return "{}:{}".format(type(self).__qualname__, self.cache_tag)
        return "{}@{:x}".format(type(self).__qualname__, id(self))


def _untagged(state: StateKey) -> StateKey:
    return state.with_particle(UNTAGGED)


def _evaluate(value: Value, params: Params) -> Union[float, complex]:
    if callable(value):
        return value(params)
    return value


class TableProvider(MatrixElementProvider):
    """Provider backed by explicit tables, mainly for small model systems.

    Parameters
    ----------
    energies:
        dictionary mapping states to energies; values may be numbers or callables
        taking the parameter dictionary
    couplings:
        dictionary mapping `(a, b, tag)` to matrix elements `<a|O_tag|b>` (numbers
        or callables). Missing entries are completed from the Hermitian-conjugate
        entry `(b, a, adjoint_tag(tag))` if present, and are zero otherwise.
    """

    def __init__(
        self,
        energies: Dict[StateRepresentation, Value],
        couplings: Optional[Dict[Tuple[StateRepresentation, StateRepresentation, Tag], Value]] = None,
    ) -> None:
        self.energies = dict(energies)
        self.couplings = dict(couplings or {})

    def energy(self, state: StateRepresentation, params: Params) -> float:
        try:
            value = self.energies[state]
        except KeyError:
            raise ProviderError("No energy tabulated for state {}.".format(state))
        return _evaluate(value, params)

    def coupling(
        self,
        a: StateRepresentation,
        b: StateRepresentation,
        tag: Tag,
        params: Params,
    ) -> complex:
        if (a, b, tag) in self.couplings:
            return _evaluate(self.couplings[(a, b, tag)], params)
        if (b, a, adjoint_tag(tag)) in self.couplings:
            return np.conj(_evaluate(self.couplings[(b, a, adjoint_tag(tag))], params))
        return 0.0


class FunctionProvider(MatrixElementProvider):
    """Adapter turning two plain functions into a provider.

    Parameters
    ----------
    energy_func:
        `energy_func(state, params) -> float`
    coupling_func:
        `coupling_func(a, b, tag, params) -> complex`
    """

    def __init__(
        self,
        energy_func: Callable[[StateRepresentation, Params], float],
        coupling_func: Callable[[StateRepresentation, StateRepresentation, Tag, Params], complex],
    ) -> None:
        self.energy_func = energy_func
        self.coupling_func = coupling_func

    def identity(self) -> str:
        names = []
        for func in (self.energy_func, self.coupling_func):
            module = getattr(func, "__module__", None)
            qualname = getattr(func, "__qualname__", None)
            # lambdas and local functions are not unique by name
            if module is None or qualname is None or "<" in qualname:
                return super().identity()
            names.append("{}.{}".format(module, qualname))
        return "{}({})".format(type(self).__qualname__, ",".join(names))

    def energy(self, state: StateRepresentation, params: Params) -> float:
        return self.energy_func(state, params)

    def coupling(
        self,
        a: StateRepresentation,
        b: StateRepresentation,
        tag: Tag,
        params: Params,
    ) -> complex:
        return self.coupling_func(a, b, tag, params)


class PairProvider(MatrixElementProvider):
    """Provider for pair states built from single-particle providers.

    The energy of a pair state is the sum of the single-particle energies.
    Single-particle operator tags are routed to the provider of the particle they
    act on (with untagged states), interaction tags to the interaction provider.

    Parameters
    ----------
    provider0:
        provider of particle 0
    provider1:
        provider of particle 1 (defaults to `provider0`)
    interaction:
        provider for `InteractionTag` couplings between pair states
    """

    def __init__(
        self,
        provider0: MatrixElementProvider,
        provider1: Optional[MatrixElementProvider] = None,
        interaction: Optional[MatrixElementProvider] = None,
    ) -> None:
        self.providers = (provider0, provider0 if provider1 is None else provider1)
        self.interaction = interaction

    def identity(self) -> str:
        parts = [provider.identity() for provider in self.providers]
        if self.interaction is not None:
            parts.append(self.interaction.identity())
        return "{}({})".format(type(self).__qualname__, ",".join(parts))

    def energy(self, state: PairState, params: Params) -> float:
        return sum(
            provider.energy(_untagged(constituent), params)
            for provider, constituent in zip(self.providers, state.constituents)
        )

    def coupling(
        self, a: PairState, b: PairState, tag: Tag, params: Params
    ) -> complex:
        if isinstance(tag, InteractionTag):
            if self.interaction is None:
                raise ProviderError(
                    "Pair provider has no interaction provider for {}.".format(tag)
                )
            return self.interaction.coupling(a, b, tag, params)
        particle = tag.particle
        if particle not in (0, 1):
            raise ProviderError(
                "Cannot route untagged operator {} on pair states.".format(tag)
            )
        return self.providers[particle].coupling(
            _untagged(a.constituents[particle]),
            _untagged(b.constituents[particle]),
            tag._replace(particle=UNTAGGED),
            params,
        )


class DipoleDipoleProvider(MatrixElementProvider):
    """Dipole-dipole interaction of two particles separated by `params["distance"]`
    along the quantization axis,

        V = -(1/R^3) [2 d1_0 d2_0 + d1_{+1} d2_{-1} + d1_{-1} d2_{+1}],

    with single-particle dipole matrix elements `d_q = <a|E^1_q|b>` taken from the
    given single-particle providers. Only `InteractionTag(1, 1)` is supported.

    Parameters
    ----------
    provider0, provider1:
        single-particle providers supplying electric dipole matrix elements
    distance_key:
        name of the parameter holding the interparticle distance
    """

    _WEIGHTS = {0: 2.0, 1: 1.0, -1: 1.0}

    def __init__(
        self,
        provider0: MatrixElementProvider,
        provider1: Optional[MatrixElementProvider] = None,
        distance_key: str = "distance",
    ) -> None:
        self.providers = (provider0, provider0 if provider1 is None else provider1)
        self.distance_key = distance_key

    def identity(self) -> str:
        return "{}({},{},{})".format(
            type(self).__qualname__,
            self.providers[0].identity(),
            self.providers[1].identity(),
            self.distance_key,
        )

    def energy(self, state: StateRepresentation, params: Params) -> float:
        raise ProviderError("DipoleDipoleProvider provides couplings only.")

    def coupling(
        self, a: PairState, b: PairState, tag: Tag, params: Params
    ) -> complex:
        if tag != InteractionTag(1, 1):
            raise ProviderError(
                "DipoleDipoleProvider cannot evaluate {}.".format(tag)
            )
        try:
            distance = params[self.distance_key]
        except KeyError:
            raise ProviderError(
                "Parameter {!r} required for the dipole-dipole interaction.".format(
                    self.distance_key
                )
            )
        q1 = a.first.m - b.first.m
        q2 = a.second.m - b.second.m
        if q1 + q2 != 0 or abs(q1) > 1:
            return 0.0
        q1 = int(q1)
        d1 = self.providers[0].coupling(
            _untagged(a.first), _untagged(b.first), electric(1, q1), params
        )
        d2 = self.providers[1].coupling(
            _untagged(a.second), _untagged(b.second), electric(1, -q1), params
        )
        return -self._WEIGHTS[q1] * d1 * d2 / distance ** 3
