"""Ordered-strategy fallback used by embedding and generation."""
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def always(error: Exception) -> bool:
    """Fallback predicate that treats every error as recoverable."""
    return True


@dataclass
class Strategy(Generic[T]):
    """
    One provider in a fallback chain.

    Attributes:
        name: Provider label, returned with the result for provenance
        call: Zero-argument callable producing the result
        should_fall_back: Decides whether an error from this strategy lets the
            chain continue with the next one
    """
    name: str
    call: Callable[[], T]
    should_fall_back: Callable[[Exception], bool] = always


def run_with_fallback(strategies: Sequence[Strategy[T]], label: str = "operation") -> Tuple[str, T]:
    """
    Try strategies in order and return the first success.

    An error moves on to the next strategy only if the failing strategy's
    predicate accepts it; otherwise, or when no strategies remain, the error
    is re-raised unchanged.

    Args:
        strategies: Providers in priority order
        label: Name used in log messages

    Returns:
        Tuple of (name of the strategy that succeeded, its result)

    Raises:
        ValueError: If no strategies were given
    """
    if not strategies:
        raise ValueError("At least one strategy is required")

    last_index = len(strategies) - 1
    for idx, strategy in enumerate(strategies):
        try:
            return strategy.name, strategy.call()
        except Exception as e:
            if idx == last_index or not strategy.should_fall_back(e):
                raise
            logger.warning(
                f"{label}: '{strategy.name}' failed, falling back to "
                f"'{strategies[idx + 1].name}': {e}"
            )
