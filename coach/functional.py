from abc import ABC, abstractmethod
from typing import Callable, Generic, Iterable, Optional, TypeVar

from coach.categories import CATEGORIES
from coach.domain import EXPENSE, INCOME, TRANSACTION_TYPES

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @staticmethod
    def of(value: Optional[T]) -> 'Maybe[T]':
        return Nothing() if value is None else Some(value)

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> Maybe[U]:
        return Some(f(self._value))

    def bind(self, f: Callable[[T], Maybe[U]]) -> Maybe[U]:
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> Maybe[U]:
        return Nothing()

    def bind(self, f: Callable[[T], Maybe[U]]) -> Maybe[U]:
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()

    @abstractmethod
    def get_error(self) -> E:
        pass


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    @property
    def value(self) -> T:
        return self._value

    def map(self, f: Callable[[T], U]) -> Either[E, U]:
        return Right(f(self._value))

    def bind(self, f: Callable[[T], Either[E, U]]) -> Either[E, U]:
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> Either[E, U]:
        return Left(self._error)

    def bind(self, f: Callable[[T], Either[E, U]]) -> Either[E, U]:
        return Left(self._error)

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def first_some(candidates: Iterable[Maybe[T]]) -> Maybe[T]:
    for candidate in candidates:
        if candidate.is_some():
            return candidate
    return Nothing()


def validate_transaction(tx_type: str, amount, category: str) -> Either[dict, float]:
    """Check a transaction draft before anything is written.

    Returns the amount coerced to float on success.
    """
    if tx_type not in TRANSACTION_TYPES:
        return Left({
            "error": "invalid_type",
            "message": f"Transaction type must be one of {', '.join(TRANSACTION_TYPES)}",
            "type": tx_type,
        })

    try:
        value = float(amount)
    except (TypeError, ValueError):
        return Left({"error": "invalid_amount", "message": "Please enter a valid amount", "amount": amount})
    if not value > 0 or value == float("inf"):
        return Left({"error": "invalid_amount", "message": "Please enter a valid amount", "amount": amount})

    if category not in CATEGORIES:
        return Left({
            "error": "category_not_found",
            "message": f"Category {category} does not exist",
            "category": category,
        })

    if tx_type == INCOME and category != INCOME:
        return Left({
            "error": "category_type_mismatch",
            "message": f"Income cannot be filed under {category}",
            "category": category,
        })
    if tx_type == EXPENSE and category == INCOME:
        return Left({
            "error": "category_type_mismatch",
            "message": "Expenses cannot be filed under income",
            "category": category,
        })

    return Right(value)


def validate_goal(name: str, target) -> Either[dict, float]:
    if not name or not name.strip():
        return Left({"error": "missing_name", "message": "Please fill in all goal details"})
    try:
        value = float(target)
    except (TypeError, ValueError):
        return Left({"error": "invalid_amount", "message": "Please fill in all goal details", "amount": target})
    if not value > 0 or value == float("inf"):
        return Left({"error": "invalid_amount", "message": "Please fill in all goal details", "amount": target})
    return Right(value)
