"""Iteration budget of a single agent turn."""

from dataclasses import dataclass, field


@dataclass
class AgentBudget:
    """Bounds the number of tool-dispatch iterations of a turn.

    The effective limit starts at ``base_limit`` and may be raised once to
    ``hard_limit``. The used iteration count only increases.

    Attributes:
        base_limit: Iterations allowed before any extension
        hard_limit: Absolute ceiling reachable through the one-time extension
    """

    base_limit: int
    hard_limit: int
    _used_iterations: int = field(default=0, init=False, repr=False)
    _extended: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.base_limit < 0:
            raise ValueError(f"base_limit must be >= 0, got {self.base_limit}")
        if self.hard_limit < self.base_limit:
            raise ValueError(f"hard_limit ({self.hard_limit}) must be >= base_limit ({self.base_limit})")

    @property
    def used_iterations(self) -> int:
        return self._used_iterations

    @property
    def extended(self) -> bool:
        """Whether the one-time extension has been consumed."""
        return self._extended

    @property
    def allowed_limit(self) -> int:
        return self.hard_limit if self._extended else self.base_limit

    @property
    def remaining(self) -> int:
        return max(self.allowed_limit - self._used_iterations, 0)

    def has_remaining(self) -> bool:
        """Check whether another tool-dispatch iteration is allowed."""
        return self._used_iterations < self.allowed_limit

    def record_iteration(self) -> int:
        """Record one completed tool-dispatch iteration.

        Returns:
            The new used iteration count
        """
        self._used_iterations += 1
        return self._used_iterations

    def try_extend(self) -> bool:
        """Raise the effective limit to the hard ceiling, at most once.

        Returns:
            True if the limit was raised by this call, False if the extension
            was already consumed or there is no headroom above the base limit
        """
        if self._extended or self.hard_limit <= self.base_limit:
            return False
        self._extended = True
        return True
