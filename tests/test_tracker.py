from conftest import UNIT, make_state, sample_orders, sample_positions, sample_triggers
from engine.tracker import DEFAULT_LEDGER_FEE, build_tracker
from spot_client.models import Side, TokenInfo


def test_build_tracker_maps_locked_input_by_side():
    tracker = build_tracker(make_state(orders=sample_orders(2)))

    buy, sell = tracker.orders
    assert buy.side is Side.BUY
    assert buy.amount == 7 * UNIT
    assert sell.side is Side.SELL
    assert sell.amount == 5 * UNIT


def test_build_tracker_copies_triggers_and_positions():
    tracker = build_tracker(
        make_state(triggers=sample_triggers(1), positions=sample_positions(2))
    )

    assert tracker.triggers[0].trigger_id == 20
    assert tracker.triggers[0].amount == 3 * UNIT
    assert [p.position_id for p in tracker.positions] == [30, 31]
    assert tracker.positions[0].liquidity == 1_000_000


def test_build_tracker_defaults_missing_token_fee():
    state = make_state(
        base_token=TokenInfo(symbol="ABC", decimals=8),
        quote_token=TokenInfo(symbol="USDC", decimals=6, fee=0),
    )

    tracker = build_tracker(state)

    assert tracker.base_fee == DEFAULT_LEDGER_FEE
    assert tracker.quote_fee == 0
    assert tracker.quote_decimals == 6


def test_build_tracker_derives_tick_spacing_from_fee_tier():
    assert build_tracker(make_state(fee_pips=500)).tick_spacing == 10
    assert build_tracker(make_state(fee_pips=500, tick_spacing=5)).tick_spacing == 5


def test_tracker_flags():
    tracker = build_tracker(
        make_state(last_trade_tick=None, available_base=0, available_quote=0)
    )

    assert not tracker.has_reference_tick
    assert tracker.is_unfunded
    assert tracker.symbol == "ABC/USDC"
    assert tracker.market_id == "mkt-1"
