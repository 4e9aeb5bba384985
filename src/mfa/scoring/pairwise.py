"""Pairwise importance judgments between attributes.

A PairwiseMatrix holds M[i][j], the importance of attribute i relative to
attribute j. Users express each judgment through a six-position slider:

    slider  ratio   meaning
    ------  -----   -------------------------------
      -5    5       left (i) much more important
      -3    3       left (i) more important
      -1    1.5     left (i) slightly more important
       1    1/1.5   right (j) slightly more important
       3    1/3     right (j) more important
       5    1/5     right (j) much more important

Invariants held after every operation:
- M[i][i] == 1
- M[i][j] * M[j][i] == 1
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Final

SLIDER_TO_RATIO: Final[dict[int, float]] = {
    -5: 5.0,
    -3: 3.0,
    -1: 1.5,
    1: 1 / 1.5,
    3: 1 / 3,
    5: 1 / 5,
}

SLIDER_POSITIONS: Final[tuple[int, ...]] = tuple(sorted(SLIDER_TO_RATIO))

IMPORTANCE_DOMAIN: Final[frozenset[float]] = frozenset({*SLIDER_TO_RATIO.values(), 1.0})

DEFAULT_UPPER_RATIO: Final[float] = 1.5

RECIPROCITY_TOLERANCE: Final[float] = 1e-9


class InvalidJudgmentError(ValueError):
    """Raised when a pairwise judgment cannot be applied to the matrix."""


def ratio_for_slider(slider_position: int) -> float:
    """Map a slider position to its importance ratio.

    Args:
        slider_position: One of -5, -3, -1, 1, 3, 5.

    Returns:
        Importance ratio of the left attribute relative to the right one.

    Raises:
        InvalidJudgmentError: If the slider position is not recognised.
    """
    # bool is an int subclass; True would silently map to slider 1
    if isinstance(slider_position, bool) or slider_position not in SLIDER_TO_RATIO:
        raise InvalidJudgmentError(
            f"Invalid slider position {slider_position!r}. Valid: {list(SLIDER_POSITIONS)}"
        )
    return SLIDER_TO_RATIO[slider_position]


def _in_domain(ratio: float) -> bool:
    return any(
        math.isclose(ratio, allowed, abs_tol=RECIPROCITY_TOLERANCE) for allowed in IMPORTANCE_DOMAIN
    )


def slider_for_ratio(ratio: float) -> int:
    """Map a stored ratio back to the nearest slider position.

    Distance is measured in log space so 1.5 and 1/1.5 are equally far from
    1. An exact equal-importance ratio resolves to -1 (left slightly more
    important), the first of the two nearest positions.

    Args:
        ratio: Positive importance ratio.

    Returns:
        Slider position in SLIDER_POSITIONS.
    """
    if ratio <= 0:
        raise InvalidJudgmentError(f"Importance ratio must be positive, got {ratio}")
    target = math.log(ratio)
    # rounded so that float noise cannot break the -1 / 1 tie at ratio 1
    return min(
        SLIDER_POSITIONS,
        key=lambda pos: (round(abs(math.log(SLIDER_TO_RATIO[pos]) - target), 9), pos),
    )


class PairwiseMatrix:
    """Square reciprocal matrix of attribute importance ratios."""

    def __init__(self, size: int) -> None:
        """Create the default matrix for ``size`` attributes.

        Entries above the diagonal default to 1.5 and below it to 1/1.5.

        Args:
            size: Number of attributes (0 or more).
        """
        if size < 0:
            raise ValueError(f"Matrix size must be non-negative, got {size}")
        self._rows: list[list[float]] = [
            [
                1.0 if i == j else (DEFAULT_UPPER_RATIO if i < j else 1 / DEFAULT_UPPER_RATIO)
                for j in range(size)
            ]
            for i in range(size)
        ]

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> PairwiseMatrix:
        """Build a matrix from nested rows, validating its invariants.

        Args:
            rows: Square nested sequence of positive ratios.

        Returns:
            New PairwiseMatrix holding a copy of the rows.

        Raises:
            InvalidJudgmentError: If the rows are not square, the diagonal is
                not 1, an entry is outside the importance domain, or
                reciprocity is violated.
        """
        size = len(rows)
        copied: list[list[float]] = []
        for i, row in enumerate(rows):
            if len(row) != size:
                raise InvalidJudgmentError(
                    f"Matrix must be square: row {i} has {len(row)} entries, expected {size}"
                )
            copied.append([float(value) for value in row])

        for i in range(size):
            if not math.isclose(copied[i][i], 1.0, abs_tol=RECIPROCITY_TOLERANCE):
                raise InvalidJudgmentError(f"Diagonal entry M[{i}][{i}] must be 1")
            for j in range(i + 1, size):
                upper, lower = copied[i][j], copied[j][i]
                if not _in_domain(upper):
                    raise InvalidJudgmentError(
                        f"Entry M[{i}][{j}]={upper} is not a recognised importance ratio"
                    )
                if lower <= 0 or not math.isclose(
                    upper * lower, 1.0, abs_tol=RECIPROCITY_TOLERANCE
                ):
                    raise InvalidJudgmentError(
                        f"Entries M[{i}][{j}]={upper} and M[{j}][{i}]={lower} are not reciprocal"
                    )

        matrix = cls(0)
        matrix._rows = copied
        return matrix

    @property
    def size(self) -> int:
        return len(self._rows)

    def get(self, i: int, j: int) -> float:
        self._check_index(i)
        self._check_index(j)
        return self._rows[i][j]

    def rows(self) -> list[list[float]]:
        """Return a deep copy of the matrix rows."""
        return [list(row) for row in self._rows]

    def set_judgment(self, i: int, j: int, slider_position: int) -> None:
        """Record how much more important attribute i is than attribute j.

        Writes both halves so reciprocity holds. A diagonal request (i == j)
        leaves the matrix unchanged.

        Args:
            i: Left attribute position.
            j: Right attribute position.
            slider_position: One of -5, -3, -1, 1, 3, 5.

        Raises:
            InvalidJudgmentError: If the slider position or an index is invalid.
        """
        ratio = ratio_for_slider(slider_position)
        self._check_index(i)
        self._check_index(j)
        if i == j:
            return
        self._set_pair(i, j, ratio)

    def set_ratio(self, i: int, j: int, ratio: float) -> None:
        """Set M[i][j] to a raw ratio from the importance domain.

        Unlike set_judgment this accepts 1 (equal importance), which the
        slider cannot express but stored or imported matrices may contain.

        Raises:
            InvalidJudgmentError: If the ratio is outside the domain or an
                index is invalid.
        """
        if not _in_domain(ratio):
            raise InvalidJudgmentError(f"Ratio {ratio} is not a recognised importance ratio")
        self._check_index(i)
        self._check_index(j)
        if i == j:
            return
        self._set_pair(i, j, float(ratio))

    def slider_position(self, i: int, j: int) -> int:
        """Return the slider position that displays the judgment M[i][j]."""
        return slider_for_ratio(self.get(i, j))

    def comparison_pairs(self) -> list[tuple[int, int]]:
        """Return every (i, j) with i < j, in row-major order."""
        return [(i, j) for i in range(self.size) for j in range(i + 1, self.size)]

    def repair_equal_judgments(self, threshold: float = 0.1) -> list[tuple[int, int]]:
        """Replace near-equal judgments with "left slightly more important".

        Any upper-triangle entry within ``threshold`` of 1 becomes 1.5 and its
        mirror becomes 1/1.5. All-equal matrices would otherwise produce tied
        weights and a meaningless ranking.

        Returns:
            The (i, j) pairs that were repaired.
        """
        repaired: list[tuple[int, int]] = []
        for i, j in self.comparison_pairs():
            if abs(self._rows[i][j] - 1) < threshold:
                self._set_pair(i, j, DEFAULT_UPPER_RATIO)
                repaired.append((i, j))
        return repaired

    def is_reciprocal(self) -> bool:
        """Check the diagonal and reciprocity invariants."""
        for i in range(self.size):
            if self._rows[i][i] != 1.0:
                return False
            for j in range(i + 1, self.size):
                if not math.isclose(
                    self._rows[i][j] * self._rows[j][i], 1.0, abs_tol=RECIPROCITY_TOLERANCE
                ):
                    return False
        return True

    def copy(self) -> PairwiseMatrix:
        return PairwiseMatrix.from_rows(self._rows)

    def _set_pair(self, i: int, j: int, ratio: float) -> None:
        self._rows[i][j] = ratio
        self._rows[j][i] = 1 / ratio

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < self.size:
            raise InvalidJudgmentError(
                f"Invalid attribute position {index!r} for {self.size} attributes"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PairwiseMatrix):
            return NotImplemented
        return self._rows == other._rows

    def __repr__(self) -> str:
        return f"PairwiseMatrix(size={self.size})"
