from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.pricing import (
    combine_date_time,
    days_late,
    final_price,
    late_fee,
    money,
    rental_duration,
    service_price,
    tier_discount,
    tier_from_spend,
    to_naive_utc,
    validate_and_round_amount,
)
from app.models.service import RentalService


class TestRentalDuration:
    def test_same_day_is_one_day_regardless_of_times(self):
        assert rental_duration(datetime(2023, 10, 1, 10, 0), datetime(2023, 10, 1, 10, 0)) == 1
        assert rental_duration(datetime(2023, 10, 1, 0, 0), datetime(2023, 10, 1, 23, 59)) == 1
        assert rental_duration(datetime(2023, 10, 1, 18, 0), datetime(2023, 10, 1, 8, 0)) == 1

    def test_return_before_pickup_hour(self):
        assert rental_duration(datetime(2023, 10, 1, 10, 0), datetime(2023, 10, 2, 9, 0)) == 1

    def test_return_after_pickup_hour_adds_a_day(self):
        assert rental_duration(datetime(2023, 10, 1, 10, 0), datetime(2023, 10, 2, 12, 0)) == 2

    def test_return_at_pickup_hour_is_not_late(self):
        assert rental_duration(datetime(2023, 10, 1, 10, 0), datetime(2023, 10, 2, 10, 0)) == 1

    def test_multi_day(self):
        assert rental_duration(datetime(2023, 10, 1, 10, 0), datetime(2023, 10, 5, 10, 0)) == 4
        assert rental_duration(datetime(2023, 10, 1, 10, 0), datetime(2023, 10, 5, 10, 1)) == 5

    def test_across_month_end(self):
        assert rental_duration(datetime(2023, 1, 30, 9, 0), datetime(2023, 2, 2, 8, 0)) == 3


class TestCombineDateTime:
    def test_overwrites_hour_and_minute(self):
        assert combine_date_time(datetime(2023, 10, 1, 0, 0, 30), "14:45") == datetime(2023, 10, 1, 14, 45)

    def test_plain_date(self):
        assert combine_date_time(date(2023, 10, 1), "08:05") == datetime(2023, 10, 1, 8, 5)
        assert combine_date_time(date(2023, 10, 1), None) == datetime(2023, 10, 1, 0, 0)

    @pytest.mark.parametrize("value", [None, "", "noon", "25:00", "10", "10:61", "aa:bb"])
    def test_missing_or_malformed_time_leaves_date_untouched(self, value):
        original = datetime(2023, 10, 1, 9, 30)
        assert combine_date_time(original, value) == original


class TestTierDiscount:
    @pytest.mark.parametrize("tier,expected", [(0, 0), (1, 5), (2, 10), (3, 15), (4, 20)])
    def test_table(self, tier, expected):
        assert tier_discount(tier, 80, 20) == pytest.approx(expected)

    @pytest.mark.parametrize("tier", [-1, 5, 10, 100])
    def test_out_of_range_tier_gives_zero(self, tier):
        assert tier_discount(tier, 1000, 500) == 0
        assert tier_discount(tier, 1000, 500, explicit_discount=50) == 0

    def test_explicit_discount_is_returned_unchanged(self):
        assert tier_discount(3, 1000, 0, explicit_discount=12.345) == 12.345
        assert tier_discount(0, 1000, 0, explicit_discount=0) == 0

    def test_non_finite_result_gives_zero(self):
        assert tier_discount(2, float("inf"), 0) == 0
        assert tier_discount(2, float("nan"), 0) == 0


class TestLateFee:
    def test_formula(self):
        assert late_fee(0, 1) == 500
        assert late_fee(2, 3) == 4500

    def test_not_late(self):
        assert late_fee(4, 0) == 0

    def test_days_late_rounds_up(self):
        due = datetime(2023, 10, 2, 10, 0)
        assert days_late(due - timedelta(hours=1), due) == 0
        assert days_late(due, due) == 0
        assert days_late(due + timedelta(minutes=1), due) == 1
        assert days_late(due + timedelta(days=1), due) == 1
        assert days_late(due + timedelta(days=1, seconds=1), due) == 2


def test_service_price_daily_and_one_off():
    services = [RentalService(rate=10, daily=True), RentalService(rate=25, daily=False)]
    assert service_price(services, 3) == 55
    assert service_price([], 3) == 0


def test_final_price():
    assert final_price(300, 55, 35.5) == pytest.approx(319.5)
    assert final_price(300, 55, 35.5, late_fee=1000) == pytest.approx(1319.5)


@pytest.mark.parametrize(
    "spend,tier",
    [(0, 0), (9999.99, 0), (10000, 1), (25000, 2), (39999, 3), (40000, 4), (1_000_000, 4), (-5, 0)],
)
def test_tier_from_spend(spend, tier):
    assert tier_from_spend(spend) == tier


class TestValidateAndRoundAmount:
    @pytest.mark.parametrize("value,expected", [(10, 10.0), ("10.126", 10.13), (0.01, 0.01), ("5", 5.0)])
    def test_valid(self, value, expected):
        assert validate_and_round_amount(value) == expected

    @pytest.mark.parametrize("value", [0, -1, "abc", None, "", float("nan"), float("inf"), "0.001", True])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            validate_and_round_amount(value)


def test_money_rounds_to_cents():
    assert money(0.1 + 0.2) == 0.3
    assert money(None) == 0.0


def test_to_naive_utc():
    aware = datetime(2023, 10, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_naive_utc(aware) == datetime(2023, 10, 1, 10, 0)
    naive = datetime(2023, 10, 1, 12, 0)
    assert to_naive_utc(naive) is naive
