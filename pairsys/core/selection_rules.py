# selection_rules.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

from collections import defaultdict, namedtuple
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
    Union,
)

from pairsys.core.states import UNTAGGED, PairState, StateKey, StateRepresentation

if TYPE_CHECKING:
    from pairsys.core.basis import BasisIndex
    from pairsys.core.providers import MatrixElementProvider


# -Operator tags--------------------------------------------------------------------------

OperatorTag = namedtuple("OperatorTag", ["kind", "kappa", "q", "particle"])
OperatorTag.__doc__ = """Single-particle operator: spherical component `q` of an
electric multipole of order `kappa` (kind "E") or of the magnetic dipole (kind
"M", kappa=1). On pair states, `particle` selects the particle acted upon."""

InteractionTag = namedtuple("InteractionTag", ["kappa1", "kappa2"])
InteractionTag.__doc__ = """Term of the multipole expansion of the interaction
between the two particles of a pair, of order `kappa1` on particle 0 and `kappa2`
on particle 1."""

Tag = Union[OperatorTag, InteractionTag]
CoarseKey = Hashable

OPERATOR_KINDS = ("E", "M")


def electric(kappa: int, q: int, particle: int = UNTAGGED) -> OperatorTag:
    if kappa < 1 or abs(q) > kappa:
        raise ValueError(
            "Invalid multipole component: kappa={}, q={}.".format(kappa, q)
        )
    return OperatorTag("E", kappa, q, particle)


def magnetic(q: int, particle: int = UNTAGGED) -> OperatorTag:
    if abs(q) > 1:
        raise ValueError("Invalid magnetic dipole component q={}.".format(q))
    return OperatorTag("M", 1, q, particle)


def field_operator_tags(
    electric_field: bool = True,
    magnetic_field: bool = False,
    particle: int = UNTAGGED,
) -> List[OperatorTag]:
    """Returns the dipole operator tags coupling a particle to homogeneous external
    fields. All spherical components are included, so the set is closed under
    Hermitian conjugation."""
    tags = []
    if electric_field:
        tags += [electric(1, q, particle) for q in (-1, 0, 1)]
    if magnetic_field:
        tags += [magnetic(q, particle) for q in (-1, 0, 1)]
    return tags


def adjoint_tag(tag: Tag) -> Tag:
    """Tag of the Hermitian-conjugate operator."""
    if isinstance(tag, OperatorTag):
        return tag._replace(q=-tag.q)
    return tag


# -Single-particle rules------------------------------------------------------------------


def _triangle(a: float, b: float, c: float) -> bool:
    return abs(a - b) <= c <= a + b


def electric_allowed(
    a: StateKey, b: StateKey, kappa: int, q: Optional[int] = None
) -> bool:
    """Checks whether `<a|E^kappa_q|b>` can be nonzero. With `q=None`, any component
    `|q| <= kappa` is accepted."""
    if a.species != b.species or a.particle != b.particle:
        return False
    delta_m = a.m - b.m
    if q is None:
        if abs(delta_m) > kappa or delta_m != int(delta_m):
            return False
    elif delta_m != q:
        return False
    if (a.l + b.l + kappa) % 2:
        return False
    return _triangle(a.l, b.l, kappa) and _triangle(a.j, b.j, kappa)


def magnetic_allowed(a: StateKey, b: StateKey, q: int) -> bool:
    """Checks whether `<a|mu_q|b>` can be nonzero."""
    if (a.species, a.particle, a.n, a.l) != (b.species, b.particle, b.n, b.l):
        return False
    if a.m - b.m != q:
        return False
    return _triangle(a.j, b.j, 1)


def _single_allowed(a: StateKey, b: StateKey, tag: OperatorTag) -> bool:
    if tag.kind == "E":
        return electric_allowed(a, b, tag.kappa, tag.q)
    if tag.kind == "M":
        return magnetic_allowed(a, b, tag.q)
    raise ValueError(
        "Unknown operator kind {!r}; expected one of {}.".format(
            tag.kind, OPERATOR_KINDS
        )
    )


# -Evaluation results---------------------------------------------------------------------


class Forbidden:
    """Result of a selection-rule check for a matrix element that vanishes
    structurally."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "FORBIDDEN"

    def __reduce__(self):
        return Forbidden, ()


FORBIDDEN = Forbidden()


class Allowed:
    """Result of a selection-rule check for a matrix element that may be nonzero.
    Calling the object (or `value`) evaluates the element through the provider.

    Parameters
    ----------
    a, b:
        row and column state
    tag:
        operator tag
    provider:
        matrix-element provider consulted for the numerical value
    """

    __slots__ = ("a", "b", "tag", "provider")

    def __init__(
        self,
        a: StateRepresentation,
        b: StateRepresentation,
        tag: Tag,
        provider: "MatrixElementProvider",
    ) -> None:
        self.a = a
        self.b = b
        self.tag = tag
        self.provider = provider

    def __bool__(self) -> bool:
        return True

    def __repr__(self) -> str:
        return "Allowed({}, {}, {})".format(self.a, self.b, self.tag)

    def value(self, params: Dict[str, Any]) -> complex:
        return self.provider.coupling(self.a, self.b, self.tag, params)

    __call__ = value


# -SelectionRuleEvaluator-----------------------------------------------------------------


class SelectionRuleEvaluator:
    """Decides which couplings between basis states can be nonzero, before the
    (expensive) matrix-element provider is consulted.

    Candidate partners are found through a coarse index keyed by species, particle
    and angular momentum projection: for a given state and operator, only states
    whose projection differs by an allowed component `q` are examined with the fine
    rules.

    Parameters
    ----------
    provider:
        matrix-element provider handed to `Allowed` results
    operator_tags:
        operators making up the perturbation; all allowed contributions for a pair
        of states are summed. The set is expected to be closed under Hermitian
        conjugation (use `field_operator_tags`).
    conserve_m_total:
        if True (default), interaction terms conserve the total projection of a pair
        (interparticle axis parallel to the quantization axis)
    """

    def __init__(
        self,
        provider: "MatrixElementProvider",
        operator_tags: Iterable[Tag] = (),
        conserve_m_total: bool = True,
    ) -> None:
        self.provider = provider
        self.operator_tags: Tuple[Tag, ...] = tuple(dict.fromkeys(operator_tags))
        self.conserve_m_total = conserve_m_total

    def __repr__(self) -> str:
        return "{}(operator_tags={!r}, conserve_m_total={})".format(
            type(self).__name__, self.operator_tags, self.conserve_m_total
        )

    ###################################################################################
    # SelectionRuleEvaluator: fine rules
    ###################################################################################
    def evaluate(
        self, a: StateRepresentation, b: StateRepresentation, tag: Tag
    ) -> Union[Forbidden, Allowed]:
        """Returns `FORBIDDEN` if `<a|O_tag|b>` vanishes under the conservation laws,
        otherwise an `Allowed` result delegating to the provider."""
        if self._allowed(a, b, tag):
            return Allowed(a, b, tag, self.provider)
        return FORBIDDEN

    def evaluate_all(
        self, a: StateRepresentation, b: StateRepresentation
    ) -> List[Allowed]:
        """Returns all allowed contributions of the configured operators."""
        results = (self.evaluate(a, b, tag) for tag in self.operator_tags)
        return [result for result in results if result]

    def _allowed(
        self, a: StateRepresentation, b: StateRepresentation, tag: Tag
    ) -> bool:
        if isinstance(a, StateKey) and isinstance(b, StateKey):
            if isinstance(tag, InteractionTag):
                return False
            if tag.particle not in (UNTAGGED, a.particle):
                return False
            return _single_allowed(a, b, tag)

        if isinstance(a, PairState) and isinstance(b, PairState):
            if isinstance(tag, InteractionTag):
                return self._interaction_allowed(a, b, tag)
            if tag.particle == 0:
                return a.second == b.second and _single_allowed(
                    a.first, b.first, tag
                )
            if tag.particle == 1:
                return a.first == b.first and _single_allowed(
                    a.second, b.second, tag
                )
            raise ValueError(
                "Single-particle operator {} acting on pair states must be tagged "
                "with particle 0 or 1.".format(tag)
            )

        raise TypeError(
            "Cannot evaluate selection rules between {} and {}.".format(
                type(a).__name__, type(b).__name__
            )
        )

    def _interaction_allowed(
        self, a: PairState, b: PairState, tag: InteractionTag
    ) -> bool:
        if not electric_allowed(a.first, b.first, tag.kappa1):
            return False
        if not electric_allowed(a.second, b.second, tag.kappa2):
            return False
        if self.conserve_m_total:
            return a.m_total == b.m_total
        return True

    ###################################################################################
    # SelectionRuleEvaluator: candidate search
    ###################################################################################
    @staticmethod
    def coarse_key(state: StateRepresentation) -> CoarseKey:
        """Coarse compatibility key of a state: species, particle and projection of
        each constituent."""
        if isinstance(state, PairState):
            return tuple((s.species, s.particle, s.m) for s in state.constituents)
        return state.species, state.particle, state.m

    def candidate_keys(
        self, state: StateRepresentation, tag: Tag
    ) -> Iterator[CoarseKey]:
        """Yields the coarse keys of all states `b` for which `<state|O_tag|b>` may
        be nonzero."""
        if isinstance(state, StateKey):
            if isinstance(tag, OperatorTag):
                yield state.species, state.particle, state.m - tag.q
            return

        key_0, key_1 = self.coarse_key(state)
        if isinstance(tag, OperatorTag):
            if tag.particle == 0:
                yield (key_0[0], key_0[1], key_0[2] - tag.q), key_1
            elif tag.particle == 1:
                yield key_0, (key_1[0], key_1[1], key_1[2] - tag.q)
            return

        for q1 in range(-tag.kappa1, tag.kappa1 + 1):
            for q2 in range(-tag.kappa2, tag.kappa2 + 1):
                if self.conserve_m_total and q1 + q2 != 0:
                    continue
                yield (
                    (key_0[0], key_0[1], key_0[2] - q1),
                    (key_1[0], key_1[1], key_1[2] - q2),
                )

    def build_index(self, basis: "BasisIndex") -> Dict[CoarseKey, List[int]]:
        """Groups basis positions by coarse key (positions ascending)."""
        index: Dict[CoarseKey, List[int]] = defaultdict(list)
        for position, state in enumerate(basis):
            index[self.coarse_key(state)].append(position)
        return dict(index)

    def partners(
        self,
        position: int,
        basis: "BasisIndex",
        index: Dict[CoarseKey, List[int]],
        min_position: int = 0,
    ) -> Iterator[Tuple[int, Allowed]]:
        """Yields `(partner_position, Allowed)` for every configured operator with an
        allowed element `<basis[position]|O|basis[partner_position]>`. Only partners
        at or beyond `min_position` are considered.
        """
        state = basis[position]
        for tag in self.operator_tags:
            for key in self.candidate_keys(state, tag):
                for partner in index.get(key, ()):
                    if partner < min_position:
                        continue
                    result = self.evaluate(state, basis[partner], tag)
                    if result:
                        yield partner, result
