"""
Tests for the flip order model and quote parameters.
"""
import pytest

from stableflip.core.errors import FlipConstraintViolation, InvalidTickError
from stableflip.core.flip import FlipOrder, Side, assert_flip_constraints, build_quote_params
from stableflip.core.ticks import DEFAULT_GRID
from stableflip.core.units import format_units, parse_units


class TestSide:

    def test_opposite(self):
        assert Side.BID.opposite is Side.ASK
        assert Side.ASK.opposite is Side.BID

    def test_string_value(self):
        assert Side("bid") is Side.BID
        assert Side.ASK.value == "ask"


class TestFlipConstraints:

    def test_bid_flip_must_be_above(self):
        assert_flip_constraints(Side.BID, -50, 50)
        with pytest.raises(FlipConstraintViolation):
            assert_flip_constraints(Side.BID, -50, -50)
        with pytest.raises(FlipConstraintViolation):
            assert_flip_constraints(Side.BID, -50, -60)

    def test_ask_flip_must_be_below(self):
        assert_flip_constraints(Side.ASK, 50, -50)
        with pytest.raises(FlipConstraintViolation):
            assert_flip_constraints(Side.ASK, 50, 50)
        with pytest.raises(FlipConstraintViolation):
            assert_flip_constraints(Side.ASK, 50, 60)

    def test_violation_message_names_relation(self):
        with pytest.raises(FlipConstraintViolation, match="ask flip tick must be < tick"):
            assert_flip_constraints(Side.ASK, 0, 10)


class TestFlipOrder:

    def test_valid_order(self):
        order = FlipOrder(base="AlphaUSD", side=Side.BID, amount=100, tick=-50, flip_tick=50, grid=DEFAULT_GRID)
        assert order.is_bid

    def test_rejects_non_positive_amount(self):
        with pytest.raises(ValueError):
            FlipOrder(base="AlphaUSD", side=Side.BID, amount=0, tick=-50, flip_tick=50)

    def test_rejects_off_grid_tick(self):
        with pytest.raises(InvalidTickError):
            FlipOrder(base="AlphaUSD", side=Side.BID, amount=1, tick=-55, flip_tick=50, grid=DEFAULT_GRID)

    def test_rejects_wrong_side_flip(self):
        with pytest.raises(FlipConstraintViolation):
            FlipOrder(base="AlphaUSD", side=Side.ASK, amount=1, tick=-50, flip_tick=50)


class TestQuoteParams:

    def test_flip_ticks_cross_the_spread(self):
        params = build_quote_params(DEFAULT_GRID, "AlphaUSD", "pathUSD", 10, 100_000_000, 6)
        assert params.bid_tick == -50
        assert params.ask_tick == 50
        assert params.bid_flip_tick == params.ask_tick
        assert params.ask_flip_tick == params.bid_tick

    def test_flip_order_per_side(self):
        params = build_quote_params(DEFAULT_GRID, "AlphaUSD", "pathUSD", 10, 100_000_000, 6)
        bid = params.flip_order(Side.BID)
        ask = params.flip_order(Side.ASK)
        assert (bid.tick, bid.flip_tick, bid.is_bid) == (-50, 50, True)
        assert (ask.tick, ask.flip_tick, ask.is_bid) == (50, -50, False)
        assert bid.amount == ask.amount == 100_000_000

    def test_collapsed_spread_rejected(self):
        # 1 bp -> 5 ticks half-spread -> rounds to 0
        with pytest.raises(FlipConstraintViolation):
            build_quote_params(DEFAULT_GRID, "AlphaUSD", "pathUSD", 1, 100, 6)


class TestUnits:

    def test_parse_units(self):
        assert parse_units("100", 6) == 100_000_000
        assert parse_units("0.5", 6) == 500_000
        assert parse_units("1.0000009", 6) == 1_000_000

    def test_parse_units_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_units("abc", 6)

    def test_format_units(self):
        assert format_units(1_234_567_890, 6) == "1,234.57"
