"""Quality control flag definitions.

This module defines the vocabulary for data quality. Each sensor value
carries exactly one user flag and an accumulation of automatic flags.

Rules:
- Flags are a closed set with a fixed significance order
- "Worse wins" when two flags are combined
- FLUSHING values are excluded from derived values but are not errors
"""

from __future__ import annotations

from enum import Enum


class Flag(Enum):
    """QC flag with the integer code used in storage."""

    NEEDED = -10  # Automatic QC raised something, user review pending
    ASSUMED_GOOD = -2  # No QC issues found, not yet reviewed
    NO_QC = 0  # QC not performed
    GOOD = 2
    QUESTIONABLE = 3
    BAD = 4
    FLUSHING = 9  # Instrument flushing; excluded from output values

    @classmethod
    def from_code(cls, code: int) -> Flag:
        """Look up a flag from its integer storage code.

        Raises:
            ValueError: If the code is not a known flag
        """
        try:
            return cls(int(code))
        except ValueError:
            raise ValueError(f"Unknown QC flag code: {code}") from None

    @property
    def significance(self) -> int:
        return _SIGNIFICANCE[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    def more_significant_than(self, other: Flag) -> bool:
        return self.significance > other.significance

    def is_good(self) -> bool:
        return self in (Flag.GOOD, Flag.ASSUMED_GOOD)

    def simplified(self) -> Flag:
        """Collapse ASSUMED_GOOD into GOOD for aggregation."""
        return Flag.GOOD if self is Flag.ASSUMED_GOOD else self

    def __str__(self) -> str:
        return self.label


_SIGNIFICANCE = {
    Flag.NO_QC: 0,
    Flag.GOOD: 1,
    Flag.ASSUMED_GOOD: 1,
    Flag.NEEDED: 2,
    Flag.QUESTIONABLE: 3,
    Flag.BAD: 4,
    Flag.FLUSHING: 5,
}

_LABELS = {
    Flag.NEEDED: "Needs Flag",
    Flag.ASSUMED_GOOD: "Assumed Good",
    Flag.NO_QC: "No QC",
    Flag.GOOD: "Good",
    Flag.QUESTIONABLE: "Questionable",
    Flag.BAD: "Bad",
    Flag.FLUSHING: "Flushing",
}

# Storage codes accepted by the raw value schema
FLAG_CODES = sorted(flag.value for flag in Flag)


def worst_of(a: Flag, b: Flag) -> Flag:
    """Return the more significant of two flags (the first on ties)."""
    return b if b.more_significant_than(a) else a
