"""Tests for PairwiseMatrix and the slider mapping.

Tests cover:
1. Default matrix: unit diagonal, 1.5 above, 1/1.5 below
2. set_judgment writes both halves and rejects bad sliders and positions
3. from_rows validation (squareness, diagonal, domain, reciprocity)
4. Slider inverse mapping and comparison pairs
"""

from __future__ import annotations

import pytest

from mfa.scoring.pairwise import (
    SLIDER_POSITIONS,
    SLIDER_TO_RATIO,
    InvalidJudgmentError,
    PairwiseMatrix,
    ratio_for_slider,
    slider_for_ratio,
)


class TestDefaultMatrix:
    """Construction of the default matrix."""

    def test_default_entries(self) -> None:
        """Diagonal is 1, upper triangle 1.5, lower triangle 1/1.5."""
        matrix = PairwiseMatrix(3)

        assert matrix.rows() == [
            [1.0, 1.5, 1.5],
            [1 / 1.5, 1.0, 1.5],
            [1 / 1.5, 1 / 1.5, 1.0],
        ]

    def test_upper_triangle_is_one_point_five(self) -> None:
        """Every i < j entry defaults to 1.5 and its mirror to 1/1.5."""
        matrix = PairwiseMatrix(4)

        for i, j in matrix.comparison_pairs():
            assert matrix.get(i, j) == 1.5
            assert matrix.get(j, i) == 1 / 1.5

    def test_default_matrix_is_reciprocal(self) -> None:
        """The default matrix satisfies the invariants."""
        assert PairwiseMatrix(6).is_reciprocal()

    def test_empty_matrix(self) -> None:
        """A zero-size matrix has no rows and no pairs."""
        matrix = PairwiseMatrix(0)

        assert matrix.size == 0
        assert matrix.rows() == []
        assert matrix.comparison_pairs() == []

    def test_negative_size_rejected(self) -> None:
        """Negative sizes raise ValueError."""
        with pytest.raises(ValueError):
            PairwiseMatrix(-1)


class TestSetJudgment:
    """Recording judgments through the slider."""

    @pytest.mark.parametrize("slider", SLIDER_POSITIONS)
    def test_writes_reciprocal_pair(self, slider: int) -> None:
        """M[i][j] is the slider ratio and M[j][i] its reciprocal."""
        matrix = PairwiseMatrix(3)

        matrix.set_judgment(0, 2, slider)

        assert matrix.get(0, 2) == SLIDER_TO_RATIO[slider]
        assert matrix.get(2, 0) == 1 / SLIDER_TO_RATIO[slider]
        assert matrix.is_reciprocal()

    def test_negative_slider_favours_left_attribute(self) -> None:
        """Slider -5 means attribute i is much more important (ratio 5)."""
        matrix = PairwiseMatrix(2)

        matrix.set_judgment(0, 1, -5)

        assert matrix.get(0, 1) == 5.0
        assert matrix.get(1, 0) == pytest.approx(0.2)

    def test_diagonal_is_noop(self) -> None:
        """i == j leaves the matrix unchanged."""
        matrix = PairwiseMatrix(3)
        before = matrix.rows()

        matrix.set_judgment(1, 1, -5)

        assert matrix.rows() == before

    @pytest.mark.parametrize("slider", [0, 2, -2, 4, 6, -6, True])
    def test_invalid_slider_rejected(self, slider: int) -> None:
        """Positions outside {-5,-3,-1,1,3,5} raise InvalidJudgmentError."""
        matrix = PairwiseMatrix(3)

        with pytest.raises(InvalidJudgmentError):
            matrix.set_judgment(0, 1, slider)

    def test_out_of_range_position_rejected(self) -> None:
        """Attribute positions outside the matrix raise InvalidJudgmentError."""
        matrix = PairwiseMatrix(3)

        with pytest.raises(InvalidJudgmentError):
            matrix.set_judgment(0, 3, 1)
        with pytest.raises(InvalidJudgmentError):
            matrix.set_judgment(-1, 0, 1)

    def test_invalid_judgment_is_a_value_error(self) -> None:
        """InvalidJudgmentError is catchable as ValueError."""
        assert issubclass(InvalidJudgmentError, ValueError)


class TestSetRatio:
    """Raw ratio writes."""

    def test_accepts_equal_importance(self) -> None:
        """Ratio 1 is accepted even though no slider position expresses it."""
        matrix = PairwiseMatrix(2)

        matrix.set_ratio(0, 1, 1.0)

        assert matrix.get(0, 1) == 1.0
        assert matrix.get(1, 0) == 1.0

    def test_rejects_unknown_ratio(self) -> None:
        """Ratios outside the importance domain are rejected."""
        matrix = PairwiseMatrix(2)

        with pytest.raises(InvalidJudgmentError):
            matrix.set_ratio(0, 1, 2.0)


class TestRepairEqualJudgments:
    """Near-equal judgments are replaced before derivation."""

    def test_repairs_only_near_equal_entries(self) -> None:
        """Entries within 0.1 of 1 become 1.5 and 1/1.5; others are kept."""
        matrix = PairwiseMatrix(3)
        matrix.set_ratio(0, 1, 1.0)
        matrix.set_judgment(0, 2, 5)

        repaired = matrix.repair_equal_judgments()

        assert repaired == [(0, 1)]
        assert matrix.get(0, 1) == 1.5
        assert matrix.get(1, 0) == 1 / 1.5
        assert matrix.get(0, 2) == pytest.approx(0.2)


class TestFromRows:
    """Building a matrix from nested lists."""

    def test_round_trips_rows(self) -> None:
        """from_rows(rows()) reproduces an equal matrix."""
        matrix = PairwiseMatrix(4)
        matrix.set_judgment(1, 3, -3)

        assert PairwiseMatrix.from_rows(matrix.rows()) == matrix

    def test_rejects_non_square(self) -> None:
        """A row of the wrong length is rejected."""
        with pytest.raises(InvalidJudgmentError, match="square"):
            PairwiseMatrix.from_rows([[1.0, 1.5], [1 / 1.5]])

    def test_rejects_bad_diagonal(self) -> None:
        """A diagonal entry other than 1 is rejected."""
        with pytest.raises(InvalidJudgmentError, match="Diagonal"):
            PairwiseMatrix.from_rows([[2.0, 1.5], [1 / 1.5, 1.0]])

    def test_rejects_non_reciprocal(self) -> None:
        """M[i][j] * M[j][i] must be 1."""
        with pytest.raises(InvalidJudgmentError, match="reciprocal"):
            PairwiseMatrix.from_rows([[1.0, 3.0], [1 / 1.5, 1.0]])

    def test_rejects_ratio_outside_domain(self) -> None:
        """Upper-triangle entries must be importance ratios."""
        with pytest.raises(InvalidJudgmentError, match="importance ratio"):
            PairwiseMatrix.from_rows([[1.0, 2.0], [0.5, 1.0]])

    def test_copy_is_independent(self) -> None:
        """Editing a copy does not affect the original."""
        matrix = PairwiseMatrix(2)
        copied = matrix.copy()

        copied.set_judgment(0, 1, 5)

        assert matrix.get(0, 1) == 1.5


class TestSliderMapping:
    """Slider position to ratio and back."""

    @pytest.mark.parametrize("slider", SLIDER_POSITIONS)
    def test_inverse_of_each_position(self, slider: int) -> None:
        """slider_for_ratio inverts ratio_for_slider for every position."""
        assert slider_for_ratio(ratio_for_slider(slider)) == slider

    def test_equal_ratio_maps_to_left_slightly(self) -> None:
        """Ratio 1 sits between -1 and 1 and resolves to -1."""
        assert slider_for_ratio(1.0) == -1

    def test_nearest_in_log_space(self) -> None:
        """A ratio of 4 is nearer to 5 than to 3 in log space."""
        assert slider_for_ratio(4.0) == -5

    def test_non_positive_ratio_rejected(self) -> None:
        """Ratios must be positive."""
        with pytest.raises(InvalidJudgmentError):
            slider_for_ratio(0.0)

    def test_slider_position_reads_matrix(self) -> None:
        """slider_position displays the stored judgment."""
        matrix = PairwiseMatrix(3)
        matrix.set_judgment(0, 1, 3)

        assert matrix.slider_position(0, 1) == 3
        assert matrix.slider_position(1, 0) == -3
        assert matrix.slider_position(0, 2) == -1


class TestComparisonPairs:
    """Pairs a user must judge."""

    def test_row_major_upper_triangle(self) -> None:
        """All (i, j) with i < j, in row-major order."""
        assert PairwiseMatrix(4).comparison_pairs() == [
            (0, 1),
            (0, 2),
            (0, 3),
            (1, 2),
            (1, 3),
            (2, 3),
        ]
