"""
Unit Tests for ordering validation.
"""

import pytest

from slate.backend.core.exceptions import ValidationError
from slate.backend.services.page import validate_order


class TestValidateOrder:
    """A reorder must name every live sibling exactly once."""

    def test_accepts_permutation(self):
        validate_order(["b", "a", "c"], ["a", "b", "c"], "page")

    def test_rejects_missing_id(self):
        with pytest.raises(ValidationError):
            validate_order(["a", "b"], ["a", "b", "c"], "page")

    def test_rejects_unknown_id(self):
        with pytest.raises(ValidationError):
            validate_order(["a", "b", "x"], ["a", "b"], "section")

    def test_rejects_duplicates(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_order(["a", "a", "b"], ["a", "b"], "page")

        assert exc_info.value.details["expected"] == ["a", "b"]

    def test_empty_matches_empty(self):
        validate_order([], [], "page")
