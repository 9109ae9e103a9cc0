"""
Progress derived from a table of step weights.

processing_percent is the sum of the weights of completed steps, plus a
small increment while a step is running. It never decreases.
"""

from typing import List, Optional, Tuple

from sliceflow.core.constants import PIPELINE_STEP_WEIGHTS, STEP_START_INCREMENT


class ProgressTracker:
    """
    Tracks processing_percent across the ordered pipeline steps.
    """

    def __init__(
        self,
        weights: Optional[List[Tuple[str, int]]] = None,
        start_increment: int = STEP_START_INCREMENT
    ):
        """
        Args:
            weights (List[Tuple[str, int]], optional): Ordered (step, weight) pairs summing to 100
            start_increment (int): Percent reported when a step starts
        """
        self.weights = list(weights or PIPELINE_STEP_WEIGHTS)
        total = sum(weight for _, weight in self.weights)
        if total != 100:
            raise ValueError(f"Step weights must sum to 100, got {total}")

        self.start_increment = start_increment
        self._index = {step: i for i, (step, _) in enumerate(self.weights)}
        self._percent = 0

    @property
    def percent(self) -> int:
        return self._percent

    def _completed_before(self, step: str) -> int:
        if step not in self._index:
            raise KeyError(f"Unknown pipeline step: {step}")
        return sum(weight for _, weight in self.weights[:self._index[step]])

    def _advance(self, value: int) -> int:
        self._percent = max(self._percent, min(100, value))
        return self._percent

    def start(self, step: str) -> int:
        """
        Mark a step as started.

        Returns:
            int: Percent to persist
        """
        weight = self.weights[self._index[step]][1] if step in self._index else 0
        return self._advance(self._completed_before(step) + min(self.start_increment, weight))

    def complete(self, step: str) -> int:
        """
        Mark a step as completed.

        Returns:
            int: Percent to persist
        """
        weight = self.weights[self._index[step]][1] if step in self._index else 0
        return self._advance(self._completed_before(step) + weight)

    def finish(self) -> int:
        return self._advance(100)
