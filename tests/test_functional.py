from coach.functional import (
    Maybe, Some, Nothing, Either, Left, Right,
    first_some, validate_goal, validate_transaction
)


def test_maybe_map():
    maybe_value = Some(5)
    doubled = maybe_value.map(lambda x: x * 2)

    assert doubled.is_some()
    assert doubled.get_or_else(0) == 10

    nothing = Nothing()
    mapped_nothing = nothing.map(lambda x: x * 2)
    assert mapped_nothing.is_none()
    assert mapped_nothing.get_or_else(0) == 0


def test_maybe_of():
    assert Maybe.of(None).is_none()
    assert Maybe.of(0).is_some()
    assert Maybe.of("key").get_or_else("") == "key"


def test_maybe_bind():
    def safe_divide(x: int) -> Maybe[int]:
        if x == 0:
            return Nothing()
        return Some(10 // x)

    assert Some(2).bind(safe_divide).get_or_else(0) == 5
    assert Some(0).bind(safe_divide).is_none()
    assert Nothing().bind(safe_divide).is_none()


def test_either_map_and_bind():
    def safe_divide(x: int) -> Either[str, int]:
        if x == 0:
            return Left("Division by zero")
        return Right(10 // x)

    assert Right(5).map(lambda x: x * 2).get_or_else(0) == 10
    assert Right(2).bind(safe_divide) == Right(5)
    assert Right(0).bind(safe_divide).get_error() == "Division by zero"

    left_value = Left("original error")
    assert left_value.map(lambda x: x * 2).get_error() == "original error"
    assert left_value.bind(safe_divide).get_error() == "original error"
    assert left_value.get_or_else(0) == 0


def test_first_some():
    assert first_some([Nothing(), Some(1), Some(2)]) == Some(1)
    assert first_some([Nothing(), Nothing()]).is_none()
    assert first_some([]).is_none()


def test_validate_transaction_ok():
    result = validate_transaction("expense", "250.5", "food")
    assert result.is_right()
    assert result.get_or_else(0) == 250.5

    assert validate_transaction("income", 1000, "income").is_right()


def test_validate_transaction_amounts():
    for amount in (0, -5, "abc", None, float("nan"), float("inf")):
        result = validate_transaction("expense", amount, "food")
        assert result.is_left()
        assert result.get_error()["error"] == "invalid_amount"


def test_validate_transaction_type_and_category():
    assert validate_transaction("transfer", 10, "food").get_error()["error"] == "invalid_type"
    assert validate_transaction("expense", 10, "pets").get_error()["error"] == "category_not_found"
    assert validate_transaction("income", 10, "food").get_error()["error"] == "category_type_mismatch"
    assert validate_transaction("expense", 10, "income").get_error()["error"] == "category_type_mismatch"


def test_validate_goal():
    assert validate_goal("Laptop", 50000).get_or_else(0) == 50000
    assert validate_goal("   ", 100).get_error()["error"] == "missing_name"
    assert validate_goal("Trip", 0).get_error()["error"] == "invalid_amount"
    assert validate_goal("Trip", "lots").get_error()["error"] == "invalid_amount"
