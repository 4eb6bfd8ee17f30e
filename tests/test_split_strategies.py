from decimal import Decimal

import pytest

from expense_sharing import (
    EqualSplitStrategy,
    ExactSplitStrategy,
    PercentSplitStrategy,
    SplitStrategyFactory,
    SplitType,
    User,
    ValidationError,
)


def test_equal_split_even_amount(users):
    splits = EqualSplitStrategy().split(1000, users)
    assert list(splits) == users
    assert all(amount == Decimal("250") for amount in splits.values())


def test_equal_split_remainder_goes_to_first_participant(users):
    a, b, c = users[:3]
    splits = EqualSplitStrategy().split(10, [a, b, c])
    assert splits == {a: Decimal("3.34"), b: Decimal("3.33"), c: Decimal("3.33")}


def test_equal_split_participant_order_decides_who_absorbs_remainder(users):
    a, b, c = users[:3]
    splits = EqualSplitStrategy().split(10, [c, b, a])
    assert splits[c] == Decimal("3.34")
    assert splits[a] == Decimal("3.33")


@pytest.mark.parametrize("amount", ["0.01", "0.05", "1", "10", "99.99", "100.01", "1234.57"])
@pytest.mark.parametrize("count", [1, 2, 3, 4, 7])
def test_equal_split_sums_exactly_to_amount(amount, count):
    participants = [User(f"p{i}", f"P{i}", f"p{i}@example.com", str(i)) for i in range(count)]
    splits = EqualSplitStrategy().split(amount, participants)
    assert sum(splits.values()) == Decimal(amount)


def test_equal_split_ignores_shares(users):
    splits = EqualSplitStrategy().split(100, users[:2], [1, 99])
    assert list(splits.values()) == [Decimal("50"), Decimal("50")]


def test_exact_split_returns_shares_verbatim(users):
    b, c = users[1:3]
    splits = ExactSplitStrategy().split(1250, [b, c], [370, 880])
    assert splits == {b: Decimal("370"), c: Decimal("880")}


def test_exact_split_accepts_float_cents_without_drift(users):
    a, b = users[:2]
    splits = ExactSplitStrategy().split(0.3, [a, b], [0.1, 0.2])
    assert splits == {a: Decimal("0.1"), b: Decimal("0.2")}


def test_exact_split_rejects_mismatched_sum(users):
    with pytest.raises(ValidationError, match="do not sum up to the total"):
        ExactSplitStrategy().split(1250, users[1:3], [370, 770])


def test_exact_split_has_no_tolerance(users):
    with pytest.raises(ValidationError):
        ExactSplitStrategy().split("100.00", users[:2], ["50.00", "49.99"])


def test_percent_split(users):
    splits = PercentSplitStrategy().split(1200, users, [40, 20, 20, 20])
    assert list(splits.values()) == [Decimal("480"), Decimal("240"), Decimal("240"), Decimal("240")]


def test_percent_split_rejects_total_other_than_100(users):
    with pytest.raises(ValidationError, match="100%"):
        PercentSplitStrategy().split(1200, users, [40, 20, 20, 10])


def test_percent_split_rounding_is_not_redistributed(users):
    a, b, c = users[:3]
    splits = PercentSplitStrategy().split(100, [a, b, c], ["33.33", "33.33", "33.34"])
    assert splits == {a: Decimal("33.33"), b: Decimal("33.33"), c: Decimal("33.34")}

    # 0.01 split three ways rounds every share to zero; the cent is lost
    splits = PercentSplitStrategy().split("0.01", [a, b, c], ["33.33", "33.33", "33.34"])
    total = sum(splits.values())
    assert total == Decimal("0")
    assert abs(total - Decimal("0.01")) <= Decimal("0.01") * 3


@pytest.mark.parametrize("strategy", [ExactSplitStrategy(), PercentSplitStrategy()])
def test_shares_are_required(users, strategy):
    with pytest.raises(ValidationError, match="Shares are required"):
        strategy.split(100, users)


@pytest.mark.parametrize("strategy", [ExactSplitStrategy(), PercentSplitStrategy()])
def test_shares_must_align_with_participants(users, strategy):
    with pytest.raises(ValidationError, match="Expected 4 shares, got 2"):
        strategy.split(100, users, [50, 50])


@pytest.mark.parametrize(
    "strategy", [EqualSplitStrategy(), ExactSplitStrategy(), PercentSplitStrategy()]
)
def test_duplicate_or_missing_participants_rejected(users, strategy):
    a = users[0]
    with pytest.raises(ValidationError, match="Duplicate participants"):
        strategy.split(100, [a, a], [50, 50])
    with pytest.raises(ValidationError, match="At least one participant"):
        strategy.split(100, [], [])


def test_factory_creates_each_variant():
    assert isinstance(SplitStrategyFactory.create(SplitType.EQUAL), EqualSplitStrategy)
    assert isinstance(SplitStrategyFactory.create(SplitType.EXACT), ExactSplitStrategy)
    assert isinstance(SplitStrategyFactory.create(SplitType.PERCENT), PercentSplitStrategy)
