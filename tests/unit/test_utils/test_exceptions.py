"""
Unit tests for exceptions and error helpers
"""

import pytest

from utils.exceptions import (
    QuoteAppError, ValidationError, NotFoundError, DatabaseError, ErrorCodes,
    create_error_response, handle_exception
)


@pytest.mark.unit
class TestExceptions:

    def test_error_string_includes_code(self):
        error = NotFoundError("Quote not found", ErrorCodes.QUOTE_NOT_FOUND, {"quote_id": 3})
        assert str(error) == f"[{ErrorCodes.QUOTE_NOT_FOUND}] Quote not found"
        assert error.context == {"quote_id": 3}

    def test_default_error_code_is_class_name(self):
        assert ValidationError("bad").error_code == "ValidationError"

    def test_create_error_response(self):
        error = ValidationError("Rating must be an integer between 1 and 5",
                                ErrorCodes.VALIDATION_INVALID_RATING, {"rating": 9})
        assert create_error_response(error) == {
            "error": "ValidationError",
            "error_code": ErrorCodes.VALIDATION_INVALID_RATING,
            "message": "Rating must be an integer between 1 and 5",
            "details": {"rating": 9}
        }


@pytest.mark.unit
class TestHandleException:

    def test_sync_passthrough_and_wrap(self):
        @handle_exception
        def fails(kind):
            if kind == "app":
                raise NotFoundError("missing")
            raise KeyError("boom")

        with pytest.raises(NotFoundError):
            fails("app")
        with pytest.raises(DatabaseError) as exc_info:
            fails("other")
        assert exc_info.value.error_code == ErrorCodes.UNEXPECTED_ERROR
        assert isinstance(exc_info.value.__cause__, KeyError)

    async def test_async_passthrough_and_wrap(self):
        @handle_exception
        async def fails(kind):
            if kind == "app":
                raise ValidationError("bad")
            raise RuntimeError("boom")

        with pytest.raises(ValidationError):
            await fails("app")
        with pytest.raises(DatabaseError):
            await fails("other")

    async def test_async_return_value(self):
        @handle_exception
        async def ok():
            return 42

        assert await ok() == 42
        assert issubclass(DatabaseError, QuoteAppError)
