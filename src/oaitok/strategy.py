"""Special token handling for tokenization."""

from abc import ABC, abstractmethod
from collections.abc import Collection
from typing import Final, Literal, overload, override
import logging

from .errors import DisallowedSpecialTokenError, SpecialTokenError, StrategyError
from .special import SpecialTokenMatch, SpecialTokenTable

log = logging.getLogger(__name__)

# =========================================================================================

# special token handling strategies


class SpecialTokenStrategy(ABC):
    """Base strategy for handling special tokens during encoding."""

    @abstractmethod
    def handle(self, text: str, special: SpecialTokenTable) -> list[SpecialTokenMatch]:
        """Return the literal occurrences in ``text`` to encode as special ids."""


def _raise_disallowed(disallowed: list[SpecialTokenMatch]) -> None:
    first = disallowed[0]
    raise DisallowedSpecialTokenError(
        first.literal,
        first.offset,
        found_tokens={m.literal for m in disallowed},
    )


class AllowAllStrategy(SpecialTokenStrategy):
    """Strategy that allows all registered special tokens."""

    @override
    def handle(self, text: str, special: SpecialTokenTable) -> list[SpecialTokenMatch]:
        if not len(special):
            log.warning("no special tokens registered")
        return special.find_all(text)


class AllowNoneRaiseStrategy(SpecialTokenStrategy):
    """Strategy that raises if special tokens are found in text to be encoded."""

    @override
    def handle(self, text: str, special: SpecialTokenTable) -> list[SpecialTokenMatch]:
        found = special.find_all(text)
        if found:
            _raise_disallowed(found)
        return []


class AllowNoneStrategy(SpecialTokenStrategy):
    """Strategy that encodes special token literals as ordinary text."""

    @override
    def handle(self, text: str, special: SpecialTokenTable) -> list[SpecialTokenMatch]:
        return []


class AllowCustomStrategy(SpecialTokenStrategy):
    """Strategy that allows only specified special tokens and raises on the rest."""

    def __init__(self, allowed_subset: Collection[str]) -> None:
        """Store the special token subset allowed during encoding."""
        super().__init__()
        self.allowed_subset = frozenset(str(seq) for seq in allowed_subset)

    @override
    def handle(self, text: str, special: SpecialTokenTable) -> list[SpecialTokenMatch]:
        """
        Return occurrences of allowed literals.

        :raises SpecialTokenError: If the subset names a literal the encoding
                                   does not recognise.
        :raises DisallowedSpecialTokenError: If a literal outside the subset
                                             occurs in ``text``.
        """
        unknown = self.allowed_subset - special.literals
        if unknown:
            raise SpecialTokenError(
                "special tokens not recognised by encoding", found_tokens=set(unknown)
            )

        found = special.find_all(text)
        disallowed = [m for m in found if m.literal not in self.allowed_subset]
        if disallowed:
            _raise_disallowed(disallowed)
        return found

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({sorted(self.allowed_subset)!r})"


StrategyName = Literal["all", "none", "none-raise", "custom"]

_SPECIAL_TOKEN_STRATEGIES: Final[dict[str, type[SpecialTokenStrategy]]] = {
    "all": AllowAllStrategy,
    "none": AllowNoneStrategy,
    "none-raise": AllowNoneRaiseStrategy,
    "custom": AllowCustomStrategy,
}


def list_strategies() -> list[str]:
    """Return available special token strategy names."""
    return list(_SPECIAL_TOKEN_STRATEGIES.keys())


@overload
def get_strategy(
    name: Literal["all", "none", "none-raise"],
) -> SpecialTokenStrategy: ...


@overload
def get_strategy(
    name: Literal["custom"], allowed_subset: Collection[str]
) -> AllowCustomStrategy: ...


def get_strategy(
    name: StrategyName = "none-raise", allowed_subset: Collection[str] | None = None
) -> SpecialTokenStrategy:
    """
    Create a special token strategy by name.

    :param name: Strategy identifier: "all", "none", "none-raise", or "custom".
    :param allowed_subset: Required for "custom"; tokens allowed during encoding.
    :raises StrategyError: If name is unknown or allowed_subset is missing for custom.

    .. code-block:: python

        strategy = get_strategy("all")
        strategy = get_strategy("custom", allowed_subset={"<|endoftext|>"})
    """
    if name not in _SPECIAL_TOKEN_STRATEGIES:
        raise StrategyError(
            "unknown strategy name",
            invalid_name=name,
            available_strats=list(_SPECIAL_TOKEN_STRATEGIES.keys()),
        )

    if name == "custom":
        if allowed_subset is None:
            raise StrategyError("allowed_subset is required for custom strategy")
        return AllowCustomStrategy(allowed_subset)

    return _SPECIAL_TOKEN_STRATEGIES[name]()


type AllowedSpecial = SpecialTokenStrategy | StrategyName | Collection[str] | None

_DEFAULT_STRATEGY: Final[SpecialTokenStrategy] = AllowNoneRaiseStrategy()


def as_strategy(allowed: AllowedSpecial) -> SpecialTokenStrategy:
    """
    Normalise an ``allowed_special`` argument into a strategy.

    ``None`` is the strict default; a strategy name selects a built-in
    strategy; any other collection of literals is an explicit allow-list.
    """
    if allowed is None:
        return _DEFAULT_STRATEGY
    if isinstance(allowed, SpecialTokenStrategy):
        return allowed
    if isinstance(allowed, str):
        if allowed == "custom":
            raise StrategyError("custom strategy needs an explicit allowed subset")
        return get_strategy(allowed)
    return AllowCustomStrategy(allowed)


__all__ = [
    "StrategyName",
    "AllowedSpecial",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "list_strategies",
    "get_strategy",
    "as_strategy",
]
