"""Tests for the tiered platform fee schedule."""

import pytest
from marketplace.pricing.fees import FeeSchedule, FeeTier, compute_fee, default_schedule, describe_tier, tier_for
from protean.exceptions import ValidationError
from shared.errors import FeeTableError


class TestDefaultSchedule:
    @pytest.mark.parametrize(
        "subtotal, fee",
        [
            (0, 50),
            (1_000, 50),
            (1_500, 50),
            (1_500.01, 100),
            (2_500, 100),
            (4_999, 150),
            (9_000, 350),
            (49_999.99, 500),
            (75_000, 1_500),
            (250_000, 4_500),
            (500_000, 4_500),
            (750_000, 9_500),
            (10_000_000, 9_500),
        ],
    )
    def test_fee_for_subtotal(self, subtotal, fee):
        assert compute_fee(subtotal) == fee

    def test_boundary_belongs_to_lower_tier(self):
        tier = tier_for(2_500)
        assert tier.min_amount == 1_500
        assert tier.max_amount == 2_500

    def test_fee_never_decreases_as_subtotal_grows(self):
        subtotals = [x * 250.0 for x in range(0, 4_000)]
        fees = [compute_fee(s) for s in subtotals]
        assert all(a <= b for a, b in zip(fees, fees[1:], strict=False))

    def test_every_non_negative_subtotal_has_exactly_one_tier(self):
        schedule = default_schedule()
        for subtotal in (0, 0.01, 1_499.99, 1_500, 1_500.5, 99_999, 100_000, 10**9):
            matching = [t for t in schedule.tiers if t.contains(subtotal)]
            # A shared boundary matches both neighbours; the lower one wins
            assert matching
            assert schedule.tier_for(subtotal) == matching[0]

    def test_negative_subtotal_rejected(self):
        with pytest.raises(ValidationError):
            compute_fee(-1)


class TestTableValidation:
    def test_well_formed_table(self):
        schedule = FeeSchedule(
            [
                {"min_amount": 0, "max_amount": 100, "fee": 1},
                {"min_amount": 100, "max_amount": None, "fee": 2},
            ]
        )
        assert schedule.compute_fee(100) == 1
        assert schedule.compute_fee(100.5) == 2

    def test_empty_table(self):
        with pytest.raises(FeeTableError):
            FeeSchedule([])

    def test_must_start_at_zero(self):
        with pytest.raises(FeeTableError, match="start at 0"):
            FeeSchedule([FeeTier(10, None, 5)])

    def test_gap_between_tiers(self):
        with pytest.raises(FeeTableError, match="Gap"):
            FeeSchedule([FeeTier(0, 100, 1), FeeTier(150, None, 2)])

    def test_overlapping_tiers(self):
        with pytest.raises(FeeTableError, match="overlap"):
            FeeSchedule([FeeTier(0, 100, 1), FeeTier(50, None, 2)])

    def test_last_tier_must_be_unbounded(self):
        with pytest.raises(FeeTableError, match="unbounded"):
            FeeSchedule([FeeTier(0, 100, 1), FeeTier(100, 200, 2)])

    def test_only_last_tier_unbounded(self):
        with pytest.raises(FeeTableError):
            FeeSchedule([FeeTier(0, None, 1), FeeTier(100, None, 2)])

    def test_negative_fee(self):
        with pytest.raises(FeeTableError, match="negative"):
            FeeSchedule([FeeTier(0, None, -1)])

    def test_fee_table_error_is_a_configuration_error(self):
        from shared.errors import ConfigurationError

        assert issubclass(FeeTableError, ConfigurationError)


class TestDescribeTier:
    def test_bounded(self):
        assert describe_tier(FeeTier(1_500, 2_500, 100)) == "1,500 - 2,500 RWF: 100 RWF"

    def test_open_ended(self):
        assert describe_tier(FeeTier(500_000, None, 9_500)) == "above 500,000 RWF: 9,500 RWF"


class TestConfiguredTable:
    def test_gapped_table_from_environment_fails_settings_load(self, monkeypatch):
        import pydantic
        from shared.settings import Settings

        monkeypatch.setenv(
            "DROPRUN_FEE_TIERS",
            '[{"min_amount": 0, "max_amount": 1000, "fee": 50},'
            ' {"min_amount": 1200, "max_amount": null, "fee": 100}]',
        )

        with pytest.raises(pydantic.ValidationError, match="Gap between fee tiers 0 and 1"):
            Settings()

    def test_well_formed_table_from_environment_loads(self, monkeypatch):
        from shared.settings import Settings

        monkeypatch.setenv(
            "DROPRUN_FEE_TIERS",
            '[{"min_amount": 0, "max_amount": 1000, "fee": 50},'
            ' {"min_amount": 1000, "max_amount": null, "fee": 100}]',
        )

        settings = Settings()
        assert FeeSchedule(settings.fee_tiers).compute_fee(1000) == 50
