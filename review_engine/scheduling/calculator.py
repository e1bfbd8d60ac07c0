"""
SM-2 Spaced Repetition Calculator.

Pure mapping from (quality, prior ease/interval/repetitions) to the next
ease/interval/repetitions. No I/O and no clock: the recorder owns time.

SM-2 Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from ..core.models import QualityGrade


@dataclass(frozen=True)
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    first_interval: int = 1  # Days after first successful review
    second_interval: int = 6  # Days after second consecutive success

    @classmethod
    def from_settings(cls, settings) -> SM2Config:
        """Build from the application Settings."""
        params = settings.get_sm2_config()
        return cls(
            initial_easiness=params["initial_ease"],
            minimum_easiness=params["minimum_ease"],
            first_interval=params["first_interval"],
            second_interval=params["second_interval"],
        )


class SM2Result(NamedTuple):
    """Next scheduling triple."""

    ease: float
    interval_days: int
    repetitions: int


class SM2Calculator:
    """
    Implements the SM-2 spaced repetition algorithm.

    Each reviewed item carries:
    - Easiness Factor (EF): How easy the item is (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetitions: Consecutive correct recalls
    """

    def __init__(self, config: SM2Config | None = None):
        self.config = config or SM2Config()

    def ease_delta(self, quality: int) -> float:
        """EF' - EF = 0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)"""
        return 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)

    def next(
        self,
        quality: int,
        prior_ease: float,
        prior_interval_days: int,
        prior_repetitions: int,
    ) -> SM2Result:
        """
        Calculate the next scheduling state.

        Args:
            quality: Recall grade (0-5)
            prior_ease: Current easiness factor
            prior_interval_days: Current interval (0 before the first review)
            prior_repetitions: Current consecutive successes

        Returns:
            SM2Result with the new ease, interval and repetitions

        Raises:
            InvalidInputError: quality outside 0-5
        """
        grade = QualityGrade.parse(quality)

        new_ease = max(self.config.minimum_easiness, prior_ease + self.ease_delta(grade))

        if grade.is_success:
            new_repetitions = prior_repetitions + 1

            if new_repetitions == 1:
                new_interval = self.config.first_interval
            elif new_repetitions == 2:
                new_interval = self.config.second_interval
            else:
                new_interval = round(prior_interval_days * new_ease)
        else:
            # Failed - reset to beginning
            new_repetitions = 0
            new_interval = self.config.first_interval

        return SM2Result(
            ease=new_ease,
            interval_days=max(1, new_interval),
            repetitions=new_repetitions,
        )

    def seed(self) -> SM2Result:
        """State assumed for an item that has never been graded."""
        return SM2Result(ease=self.config.initial_easiness, interval_days=0, repetitions=0)


def calculate_next(
    quality: int,
    prior_ease: float,
    prior_interval_days: int,
    prior_repetitions: int,
) -> SM2Result:
    """Module-level shortcut using the default configuration."""
    return _DEFAULT_CALCULATOR.next(quality, prior_ease, prior_interval_days, prior_repetitions)


_DEFAULT_CALCULATOR = SM2Calculator()
