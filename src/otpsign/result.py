"""
Success/error result container returned by every pipeline operation.
"""

from typing import Generic, Optional, TypeVar

from .errors import ErrorCode, ResultError

T = TypeVar('T')


class Result(Generic[T]):
    """
    Tagged union: a success value XOR an error code with a message.

    Instances are created through `success()` and `error()` only.
    """

    __slots__ = ('_value', '_error_code', '_error_message')

    def __init__(self, value: Optional[T], error_code: ErrorCode, error_message: str):
        self._value = value
        self._error_code = error_code
        self._error_message = error_message

    @classmethod
    def success(cls, value: Optional[T] = None) -> 'Result[T]':
        """Create a successful result carrying `value`."""
        return cls(value, ErrorCode.SUCCESS, "")

    @classmethod
    def error(cls, error_code: ErrorCode, error_message: str = "") -> 'Result[T]':
        """
        Create an error result.

        Raises:
            ValueError: If error_code is ErrorCode.SUCCESS
        """
        if error_code is ErrorCode.SUCCESS:
            raise ValueError("An error result needs a non-success error code")
        return cls(None, error_code, error_message)

    @property
    def is_success(self) -> bool:
        return self._error_code is ErrorCode.SUCCESS

    @property
    def is_error(self) -> bool:
        return not self.is_success

    @property
    def value(self) -> T:
        """
        Get the success value.

        Raises:
            ResultError: If this is an error result
        """
        if not self.is_success:
            raise ResultError(
                f"Cannot read the value of an error result: {self._error_message}"
            )
        return self._value

    @property
    def error_code(self) -> ErrorCode:
        return self._error_code

    @property
    def error_message(self) -> str:
        return self._error_message

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.success({self._value!r})"
        return f"Result.error({self._error_code.name}, {self._error_message!r})"
