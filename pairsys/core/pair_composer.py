# pair_composer.py
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

from typing import Callable, Iterable, List, Optional, Union

from pairsys.core.basis import BasisIndex
from pairsys.core.providers import MatrixElementProvider, PairProvider
from pairsys.core.selection_rules import InteractionTag, OperatorTag, Tag
from pairsys.core.states import PairState, StateKey

LOGGER = logging.getLogger(__name__)


class ProjectionRange:
    """Conservation rule admitting pair states with `min <= m_total <= max`; `None`
    leaves a side open."""

    def __init__(
        self, minimum: Optional[float] = None, maximum: Optional[float] = None
    ) -> None:
        self.minimum = minimum
        self.maximum = maximum

    def __repr__(self) -> str:
        return "ProjectionRange({}, {})".format(self.minimum, self.maximum)

    def allows(self, m_total: float) -> bool:
        if self.minimum is not None and m_total < self.minimum:
            return False
        if self.maximum is not None and m_total > self.maximum:
            return False
        return True

    __call__ = allows


class ProjectionSet:
    """Conservation rule admitting pair states whose `m_total` is one of `values`."""

    def __init__(self, values: Iterable[float]) -> None:
        self.values = frozenset(float(value) for value in values)

    def __repr__(self) -> str:
        return "ProjectionSet({})".format(sorted(self.values))

    def allows(self, m_total: float) -> bool:
        return float(m_total) in self.values

    __call__ = allows


ConservationRule = Union[ProjectionRange, ProjectionSet, Callable[[float], bool]]


class PairComposer:
    """Builds two-particle bases as filtered tensor products of single-particle
    bases.

    Parameters
    ----------
    conservation:
        default conservation rule on the total projection `m_total` of composed
        pair states (`ProjectionRange`, `ProjectionSet` or any callable taking
        `m_total`); `None` keeps all combinations
    """

    def __init__(self, conservation: Optional[ConservationRule] = None) -> None:
        self.conservation = conservation

    def compose(
        self,
        basis0: BasisIndex,
        basis1: BasisIndex,
        conservation: Optional[ConservationRule] = None,
    ) -> BasisIndex:
        """Returns the basis of all pair states `|a> x |b>` with `a` from `basis0`
        and `b` from `basis1` admitted by the conservation rule. Particle 0 varies
        slowest. The single-particle bases are not modified."""
        conservation = self.conservation if conservation is None else conservation
        for basis in (basis0, basis1):
            if basis.representation not in (None, StateKey):
                raise TypeError(
                    "Pair composition needs single-particle bases, got {}.".format(
                        basis.representation.__name__
                    )
                )
        pair_states: List[PairState] = []
        for state0 in basis0:
            for state1 in basis1:
                if conservation is not None and not conservation(state0.m + state1.m):
                    continue
                pair_states.append(PairState.from_states(state0, state1))
        LOGGER.debug(
            "Composed {} of {} pair states.".format(
                len(pair_states), len(basis0) * len(basis1)
            )
        )
        return BasisIndex(pair_states, registry=basis0.registry, representation=PairState)

    @staticmethod
    def interaction_tags(order: int = 3) -> List[InteractionTag]:
        """Multipole terms `(kappa1, kappa2)` of the interaction up to `order`, where
        a term falls off as `1/R^(kappa1 + kappa2 + 1)`; order 3 is the dipole-dipole
        interaction."""
        if order < 3:
            raise ValueError("Interaction order must be at least 3 (dipole-dipole).")
        return [
            InteractionTag(kappa1, kappa2)
            for kappa1 in range(1, order - 1)
            for kappa2 in range(1, order - kappa1)
        ]

    @staticmethod
    def pair_tags(
        tags0: Iterable[OperatorTag] = (),
        tags1: Optional[Iterable[OperatorTag]] = None,
        order: Optional[int] = 3,
    ) -> List[Tag]:
        """Operator tags of a pair system: the single-particle tags of particle 0 and
        of particle 1 (default: same as particle 0), followed by the interaction tags
        up to `order` (`None` for no interaction)."""
        tags0 = list(tags0)
        tags1 = tags0 if tags1 is None else list(tags1)
        tags: List[Tag] = [tag._replace(particle=0) for tag in tags0]
        tags += [tag._replace(particle=1) for tag in tags1]
        if order is not None:
            tags += PairComposer.interaction_tags(order)
        return tags

    @staticmethod
    def pair_provider(
        provider0: MatrixElementProvider,
        provider1: Optional[MatrixElementProvider] = None,
        interaction: Optional[MatrixElementProvider] = None,
    ) -> PairProvider:
        return PairProvider(provider0, provider1, interaction)
