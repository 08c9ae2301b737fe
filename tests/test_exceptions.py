"""
Tests for the lending exception hierarchy
"""

import pytest

from coop_lending.exceptions import (
    LendingError, ValidationError, StateError, MemberEligibilityError, NotFoundError
)


class TestExceptionHierarchy:

    @pytest.mark.parametrize("error_class", [
        ValidationError, StateError, MemberEligibilityError, NotFoundError
    ])
    def test_all_are_lending_errors(self, error_class):
        assert issubclass(error_class, LendingError)
        assert issubclass(error_class, ValueError)

    def test_eligibility_is_a_state_error(self):
        with pytest.raises(StateError):
            raise MemberEligibilityError("member is resigned")

    def test_message_preserved(self):
        error = NotFoundError("Loan abc not found")
        assert str(error) == "Loan abc not found"
