from __future__ import annotations

from procrastination.engine.instance import PlayedCard
from procrastination.engine.rounds import RoundManager
from procrastination.paths import get_paths
from procrastination.services.content import ContentService


def _load_cards():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_catalog()


def test_round_limit() -> None:
    rm = RoundManager(player_count=2, max_rounds=5)
    for _ in range(4):
        rm.advance_round()
    assert not rm.has_reached_round_limit()
    rm.advance_round()
    assert rm.has_reached_round_limit()


def test_ledger_lookup_out_of_range() -> None:
    rm = RoundManager(player_count=3)
    assert rm.ledger(-1) is None
    assert rm.ledger(3) is None
    assert rm.cards_in_play(7) == []
    assert rm.card_count_in_play(7) == 0


def test_add_card_respects_slots() -> None:
    cards = _load_cards()
    rm = RoundManager(player_count=2, slots_per_player=2)
    a = PlayedCard.create(1, cards.get("on_the_clock"), 0)
    b = PlayedCard.create(2, cards.get("on_the_clock"), 0)
    c = PlayedCard.create(3, cards.get("on_the_clock"), 0)

    assert rm.add_card_to_play(0, a) == 0
    assert rm.add_card_to_play(0, b, 0) is None
    assert rm.add_card_to_play(0, b) == 1
    assert rm.add_card_to_play(0, c) is None
    assert rm.card_count_in_play(0) == 2

    assert rm.remove_card_from_play(0, a) == 0
    assert rm.find_card(1) is None
    assert rm.find_card(2) is b


def test_gains_reach_balance_only_on_settlement() -> None:
    cards = _load_cards()
    rm = RoundManager(player_count=2, starting_hours=10)
    card = PlayedCard.create(1, cards.get("on_the_clock"), 0)
    rm.add_card_to_play(0, card)

    for _ in range(4):
        report = rm.advance_round()
        assert report.gains == [(0, 1, 1)]
        assert rm.ledgers[0].hour_balance == 10

    report = rm.advance_round()
    assert report.expired == [card]
    assert report.balance_deltas == {0: 5}
    assert rm.ledgers[0].hour_balance == 15
    assert rm.ledgers[0].pending_round_hours == 0
    assert rm.card_count_in_play(0) == 0


def test_negative_settlement_is_clamped() -> None:
    cards = _load_cards()
    rm = RoundManager(player_count=2, starting_hours=2)
    card = PlayedCard.create(1, cards.get("stock_market"), 0)
    card.force_expire()
    rm.add_card_to_play(0, card)

    report = rm.advance_round()
    assert report.balance_deltas == {0: -2}
    assert rm.ledgers[0].hour_balance == 0


def test_sharing_mirrors_linked_gains_then_voids() -> None:
    cards = _load_cards()
    rm = RoundManager(player_count=2)
    linked = [PlayedCard.create(uid, cards.get("on_the_clock"), 1) for uid in (10, 11, 12)]
    for c in linked:
        rm.add_card_to_play(1, c)
    sharing = PlayedCard.create(1, cards.get("sharing_is_caring"), 0)
    sharing.linked_player_index = 1
    sharing.linked_card_uid = 10
    rm.add_card_to_play(0, sharing)

    report = rm.advance_round()
    assert report.shared == [(0, 1, 3)]
    assert sharing.current_hour_value == 3

    for _ in range(3):
        rm.advance_round()
    assert sharing.current_hour_value == 12

    # round 5: the linked cards expire, the sharing card is voided
    report = rm.advance_round()
    assert sharing in report.voided
    assert sharing.current_hour_value == 0
    assert rm.card_count_in_play(0) == 0
    assert rm.ledgers[0].hour_balance == 0
    assert rm.ledgers[1].hour_balance == 15


def test_sharing_ignores_cards_played_on_other_rounds() -> None:
    cards = _load_cards()
    rm = RoundManager(player_count=2)
    old = PlayedCard.create(10, cards.get("on_the_clock"), 1)
    old.process_round()
    rm.add_card_to_play(1, old)
    sharing = PlayedCard.create(1, cards.get("sharing_is_caring"), 0)
    sharing.linked_player_index = 1
    rm.add_card_to_play(0, sharing)

    report = rm.advance_round()
    assert report.shared == []
    assert sharing.current_hour_value == 0


def test_expire_all_cards_settles_everything() -> None:
    cards = _load_cards()
    rm = RoundManager(player_count=2)
    a = PlayedCard.create(1, cards.get("on_the_clock"), 0)
    b = PlayedCard.create(2, cards.get("on_the_clock"), 1)
    rm.add_card_to_play(0, a)
    rm.add_card_to_play(1, b)
    rm.advance_round()
    rm.advance_round()

    settled = rm.expire_all_cards()
    assert [(c.uid, v) for c, v in settled] == [(1, 2), (2, 2)]
    assert [lg.hour_balance for lg in rm.ledgers] == [2, 2]
    assert rm.card_count_in_play(0) == rm.card_count_in_play(1) == 0


def test_reset_all_cards() -> None:
    cards = _load_cards()
    rm = RoundManager(player_count=1)
    a = PlayedCard.create(1, cards.get("risky"), 0)
    rm.add_card_to_play(0, a)
    rm.advance_round()
    rm.advance_round()

    assert rm.reset_all_cards() == [a]
    assert a.rounds_in_play == 0
    assert a.current_hour_value == -5
