# states.py
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
Basis states and their construction from spectroscopic labels.

Label grammar for a single particle (whitespace separated tokens)::

    [<k>_]<species> <n> <L> <j> <m>

`L` is a spectroscopic letter (S, P, D, F, ...) or a non-negative integer, `j`
and `m` are integers, decimals or fractions such as `1/2` or `-3/2`. The optional
`<k>_` prefix tags the particle index (0 or 1) of a state that is part of a pair.
Example: `"Rb 60 S 1/2 1/2"`, `"1_Rb 60 P 3/2 -1/2"`.

A pair label consists of two single-particle labels joined by
`settings.PAIR_LABEL_DELIMITER`; the first label is parsed as `"0_" + A`, the
second as `"1_" + B`. A pair label without delimiter assigns the same label to
both particles.
"""

import re

from abc import ABC, abstractmethod
from collections import namedtuple
from fractions import Fraction
from typing import Dict, Iterator, Optional, Tuple, Type, Union

import pairsys.settings as settings

from pairsys.core.errors import LabelParseError

ORBITAL_LETTERS = "SPDFGHIKLMNOQRTUV"
UNTAGGED = -1

_PARTICLE_PREFIX = re.compile(r"^(\d+)_(.*)$", re.DOTALL)


# -Species registry---------------------------------------------------------------------

SpeciesInfo = namedtuple("SpeciesInfo", ["spin", "n_min"], defaults=(1,))


class SpeciesRegistry:
    """Explicit table of the atomic species known to label parsing and basis
    construction. Each species records its total electron spin `s` (which fixes the
    allowed values of `j` for a given `l`) and the smallest principal quantum number
    of its valence electron.

    Parameters
    ----------
    species:
        dictionary mapping species names to `SpeciesInfo`, or to `(spin, n_min)`
        tuples
    """

    def __init__(
        self, species: Optional[Dict[str, Union[SpeciesInfo, Tuple]]] = None
    ) -> None:
        self._species: Dict[str, SpeciesInfo] = {}
        for name, info in (species or {}).items():
            self.register(name, *info)

    def register(self, name: str, spin: float, n_min: int = 1) -> None:
        if not name or any(char.isspace() for char in name):
            raise ValueError("Species name must be a non-empty string without blanks.")
        if Fraction(spin) < 0 or (2 * Fraction(spin)).denominator != 1:
            raise ValueError("Spin must be a non-negative multiple of 1/2.")
        self._species[name] = SpeciesInfo(float(spin), int(n_min))

    def __contains__(self, name: object) -> bool:
        return name in self._species

    def __getitem__(self, name: str) -> SpeciesInfo:
        return self._species[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._species)

    def __len__(self) -> int:
        return len(self._species)

    def __repr__(self) -> str:
        return "{}({!r})".format(type(self).__name__, self._species)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._species)


def default_registry() -> SpeciesRegistry:
    """Returns a new registry with the alkali atoms and the singlet/triplet
    series of strontium."""
    return SpeciesRegistry(
        {
            "Li": (0.5, 2),
            "Na": (0.5, 3),
            "K": (0.5, 4),
            "Rb": (0.5, 5),
            "Cs": (0.5, 6),
            "Sr1": (0, 5),
            "Sr3": (1, 5),
        }
    )


# -helpers--------------------------------------------------------------------------------


def _format_qn(value: float) -> str:
    return str(Fraction(value).limit_denominator(2))


def _parse_number(label: str, token: str, name: str) -> Fraction:
    try:
        return Fraction(token)
    except (ValueError, ZeroDivisionError):
        raise LabelParseError(label, "{} {!r} is not a number".format(name, token))


def _parse_orbital(label: str, token: str) -> int:
    if token.isdigit():
        return int(token)
    if len(token) == 1 and token in ORBITAL_LETTERS:
        return ORBITAL_LETTERS.index(token)
    raise LabelParseError(label, "unknown orbital angular momentum {!r}".format(token))


def check_quantum_numbers(
    species: str,
    n: Union[int, Fraction],
    l: int,
    j: Union[float, Fraction],
    m: Union[float, Fraction],
    registry: SpeciesRegistry,
) -> Optional[str]:
    """Checks a set of quantum numbers against the species registry and the
    angular momentum coupling rules.

    Returns
    -------
        `None` if the quantum numbers are valid, otherwise a description of the
        first violated condition
    """
    if species not in registry:
        return "unknown species {!r}".format(species)
    info = registry[species]
    n, j, m = Fraction(n), Fraction(j), Fraction(m)
    spin = Fraction(info.spin)
    if n.denominator != 1:
        return "principal quantum number n={} is not an integer".format(n)
    if n < info.n_min:
        return "principal quantum number n={} below {} for {}".format(
            n, info.n_min, species
        )
    if not 0 <= l < n:
        return "orbital quantum number l={} out of range for n={}".format(l, n)
    if not abs(l - spin) <= j <= l + spin or (j - abs(l - spin)).denominator != 1:
        return "total angular momentum j={} not allowed for l={}, s={}".format(
            j, l, spin
        )
    if abs(m) > j or (j - m).denominator != 1:
        return "projection m={} not allowed for j={}".format(m, j)
    return None


# -State representations----------------------------------------------------------------


class StateRepresentation(ABC):
    """Capability interface of basis states. Implemented by the single-particle
    `StateKey` and the two-particle `PairState`."""

    __slots__ = ()

    @classmethod
    @abstractmethod
    def from_label(
        cls, label: str, registry: Optional[SpeciesRegistry] = None
    ) -> "StateRepresentation":
        """Construct a state from its spectroscopic label."""

    @property
    @abstractmethod
    def m_total(self) -> float:
        """Total projection of the angular momentum onto the quantization axis."""

    @property
    @abstractmethod
    def constituents(self) -> Tuple["StateKey", ...]:
        """Single-particle states making up this state."""

    @abstractmethod
    def to_label(self) -> str:
        pass


_StateKeyFields = namedtuple(
    "StateKey", ["n", "l", "j", "m", "species", "particle"], defaults=(UNTAGGED,)
)


class StateKey(_StateKeyFields, StateRepresentation):
    """Immutable single-particle basis state `|n, l, j, m>` of a given species.
    Equality and ordering are component-wise in the order `(n, l, j, m, species,
    particle)`; `particle` is the particle index inside a pair (`-1` if untagged).
    """

    __slots__ = ()

    @classmethod
    def from_label(
        cls, label: str, registry: Optional[SpeciesRegistry] = None
    ) -> "StateKey":
        registry = default_registry() if registry is None else registry
        if not isinstance(label, str) or not label.strip():
            raise LabelParseError(label, "empty label")

        text = label.strip()
        particle = UNTAGGED
        match = _PARTICLE_PREFIX.match(text)
        if match:
            particle = int(match.group(1))
            if particle not in (0, 1):
                raise LabelParseError(
                    label, "particle index must be 0 or 1, got {}".format(particle)
                )
            text = match.group(2)

        tokens = text.split()
        if len(tokens) != 5:
            raise LabelParseError(
                label,
                "expected 5 tokens '<species> <n> <L> <j> <m>', got {}".format(
                    len(tokens)
                ),
            )
        species, n_token, l_token, j_token, m_token = tokens
        n = _parse_number(label, n_token, "principal quantum number")
        l = _parse_orbital(label, l_token)
        j = _parse_number(label, j_token, "total angular momentum")
        m = _parse_number(label, m_token, "projection")

        problem = check_quantum_numbers(species, n, l, j, m, registry)
        if problem:
            raise LabelParseError(label, problem)
        return cls(int(n), l, float(j), float(m), species, particle)

    @property
    def m_total(self) -> float:
        return self.m

    @property
    def constituents(self) -> Tuple["StateKey", ...]:
        return (self,)

    @property
    def parity(self) -> int:
        return -1 if self.l % 2 else 1

    def with_particle(self, particle: int) -> "StateKey":
        return self._replace(particle=particle)

    def to_label(self) -> str:
        letter = ORBITAL_LETTERS[self.l] if self.l < len(ORBITAL_LETTERS) else self.l
        label = "{} {} {} {} {}".format(
            self.species, self.n, letter, _format_qn(self.j), _format_qn(self.m)
        )
        if self.particle != UNTAGGED:
            label = "{}_{}".format(self.particle, label)
        return label

    def __str__(self) -> str:
        return self.to_label()


SingleParticleState = StateKey


class PairState(namedtuple("PairState", ["first", "second"]), StateRepresentation):
    """Immutable two-particle product state `|first> x |second>`; `first` is tagged
    as particle 0, `second` as particle 1."""

    __slots__ = ()

    @classmethod
    def from_states(cls, first: StateKey, second: StateKey) -> "PairState":
        return cls(first.with_particle(0), second.with_particle(1))

    @classmethod
    def from_label(
        cls, label: str, registry: Optional[SpeciesRegistry] = None
    ) -> "PairState":
        if not isinstance(label, str) or not label.strip():
            raise LabelParseError(label, "empty label")
        delimiter = settings.PAIR_LABEL_DELIMITER
        if delimiter in label:
            parts = [part.strip() for part in label.split(delimiter)]
            if len(parts) != 2:
                raise LabelParseError(
                    label, "expected two particle labels separated by {!r}".format(
                        delimiter
                    )
                )
            if not all(parts):
                raise LabelParseError(label, "empty particle label")
            label_0, label_1 = parts
        else:
            label_0 = label_1 = label.strip()
        return cls(
            StateKey.from_label("0_" + label_0, registry),
            StateKey.from_label("1_" + label_1, registry),
        )

    @property
    def m_total(self) -> float:
        return self.first.m + self.second.m

    @property
    def constituents(self) -> Tuple[StateKey, StateKey]:
        return self.first, self.second

    @property
    def is_homonuclear(self) -> bool:
        return self.first.species == self.second.species

    def swapped(self) -> "PairState":
        """Returns the state with the two particles exchanged."""
        return PairState.from_states(self.second, self.first)

    def to_label(self) -> str:
        return "{} {} {}".format(
            self.first.with_particle(UNTAGGED).to_label(),
            settings.PAIR_LABEL_DELIMITER,
            self.second.with_particle(UNTAGGED).to_label(),
        )

    def __str__(self) -> str:
        return self.to_label()


STATE_REPRESENTATIONS: Dict[str, Type[StateRepresentation]] = {
    "one": StateKey,
    "two": PairState,
}


def create_state_from_label(
    representation: Union[str, Type[StateRepresentation]],
    label: str,
    registry: Optional[SpeciesRegistry] = None,
) -> StateRepresentation:
    """Factory dispatching label construction to the requested state representation.

    Parameters
    ----------
    representation:
        `StateKey`, `PairState`, or one of the names in `STATE_REPRESENTATIONS`
    label:
        spectroscopic label following the grammar documented in this module
    registry:
        species registry used for validation (default: `default_registry()`)
    """
    if isinstance(representation, str):
        try:
            representation = STATE_REPRESENTATIONS[representation]
        except KeyError:
            raise ValueError(
                "Unknown state representation {!r}; choose from {}.".format(
                    representation, list(STATE_REPRESENTATIONS)
                )
            )
    return representation.from_label(label, registry)
