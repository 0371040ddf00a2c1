import random
from collections import Counter
from decimal import Decimal

import pytest

from roulette_be.utils.bet_validator import validate_bets, BetSpec
from roulette_be.utils.board import BOARD_CELLS, WHEEL_ORDER, BetType
from roulette_be.utils.roulette_helper import (
    determine_color, determine_parity, spin_wheel, classify, draw_outcome,
    is_winning_bet, evaluate_bets, apply_bet_multiplier, calculate_payout
)


def single(raw_bet, bet_multiplier=None):
    raw_bet.setdefault('key', 'field')
    return validate_bets([raw_bet], bet_multiplier).bets[0]


def test_color_of_cells():
    assert determine_color('0') == 'green'
    assert determine_color('00') == 'green'
    assert determine_color('1') == 'red'
    assert determine_color('2') == 'black'
    assert determine_color('36') == 'red'
    with pytest.raises(ValueError):
        determine_color('37')


def test_parity_of_cells():
    assert determine_parity('0') == 'zero'
    assert determine_parity('00') == 'zero'
    assert determine_parity('17') == 'odd'
    assert determine_parity('18') == 'even'


def test_board_has_38_cells_and_wheel_is_a_permutation():
    assert len(BOARD_CELLS) == 38
    assert sorted(WHEEL_ORDER) == sorted(BOARD_CELLS)


def test_straight_up_win():
    bet = single({'type': 'straight', 'targets': ['7'], 'tokens': 1, 'multiplier': 10})
    assert evaluate_bets([bet], classify('7')) == Decimal('360.00')
    assert evaluate_bets([bet], classify('8')) == Decimal('0.00')


def test_sector_pays_on_per_cell_share():
    bet = single({'type': 'sector', 'targets': ['1', '2'], 'tokens': 2, 'multiplier': 5})
    assert bet.stake == 10
    assert evaluate_bets([bet], classify('1')) == Decimal('180.00')
    assert evaluate_bets([bet], classify('3')) == Decimal('0.00')


def test_basket_pays_six_to_one():
    bet = single({'type': 'basket', 'targets': ['0', '00', '1', '2', '3'], 'tokens': 1, 'multiplier': 1})
    assert evaluate_bets([bet], classify('00')) == Decimal('7.00')


@pytest.mark.parametrize('raw_bet,cell,expected', [
    ({'type': 'split', 'targets': ['8', '9']}, '9', Decimal('18.00')),
    ({'type': 'street', 'targets': ['10', '11', '12']}, '12', Decimal('12.00')),
    ({'type': 'corner', 'targets': ['1', '2', '4', '5']}, '5', Decimal('9.00')),
    ({'type': 'line', 'targets': ['1', '2', '3', '4', '5', '6']}, '6', Decimal('6.00')),
    ({'type': 'column', 'value': 'col1'}, '34', Decimal('3.00')),
    ({'type': 'dozen', 'value': '2nd12'}, '13', Decimal('3.00')),
    ({'type': 'color', 'value': 'black'}, '2', Decimal('2.00')),
    ({'type': 'parity', 'value': 'odd'}, '17', Decimal('2.00')),
    ({'type': 'range', 'value': 'low'}, '18', Decimal('2.00')),
    ({'type': 'range', 'value': 'high'}, '19', Decimal('2.00')),
])
def test_each_bet_type_payout(raw_bet, cell, expected):
    raw_bet.update({'tokens': 1, 'multiplier': 1})
    assert evaluate_bets([single(raw_bet)], classify(cell)) == expected


@pytest.mark.parametrize('value', ['red', 'black', 'odd', 'even', 'low', 'high', 'col1', '1st12'])
@pytest.mark.parametrize('zero', ['0', '00'])
def test_outside_bets_lose_on_zeros(value, zero):
    type_ = {
        'red': 'color', 'black': 'color', 'odd': 'parity', 'even': 'parity',
        'low': 'range', 'high': 'range', 'col1': 'column', '1st12': 'dozen',
    }[value]
    bet = single({'type': type_, 'value': value, 'tokens': 1, 'multiplier': 1})
    assert not is_winning_bet(bet, classify(zero))


def test_several_winning_bets_are_summed():
    bets = validate_bets([
        {'type': 'straight', 'targets': ['1'], 'tokens': 1, 'multiplier': 1, 'key': 'n1'},
        {'type': 'color', 'value': 'red', 'tokens': 2, 'multiplier': 10, 'key': 'red'},
        {'type': 'parity', 'value': 'even', 'tokens': 1, 'multiplier': 1, 'key': 'even'},
    ]).bets
    # 36 for the straight, 40 for red, even loses
    assert evaluate_bets(bets, classify('1')) == Decimal('76.00')


def test_bet_multiplier_scales_payout():
    assert apply_bet_multiplier(Decimal('76.00'), 3) == Decimal('228.00')
    assert apply_bet_multiplier(Decimal('0'), 5) == Decimal('0.00')
    assert calculate_payout(Decimal('5'), 35) == Decimal('180')


def test_evaluate_rejects_unvalidated_bets():
    with pytest.raises(TypeError):
        evaluate_bets([{'type': 'straight', 'targets': ['7']}], classify('7'))


def test_bet_spec_is_immutable():
    bet = single({'type': 'straight', 'targets': ['7'], 'tokens': 1, 'multiplier': 1})
    assert isinstance(bet, BetSpec)
    assert bet.type == BetType.STRAIGHT
    with pytest.raises(AttributeError):
        bet.tokens = 5


def test_draw_is_uniform_over_board_cells():
    rng = random.Random(20240611)
    draws = 10_000
    tally = Counter(spin_wheel(rng) for _ in range(draws))

    assert set(tally) == set(BOARD_CELLS)
    expected = draws / len(BOARD_CELLS)
    chi_square = sum((tally[cell] - expected) ** 2 / expected for cell in BOARD_CELLS)
    # df=37; anything under 80 is comfortably consistent with a fair wheel
    assert chi_square < 80
    assert all(abs(tally[cell] - expected) < 100 for cell in BOARD_CELLS)


def test_draw_picks_from_board_cells_not_wheel_order():
    class RecordingRng:
        def choice(self, seq):
            self.seq = seq
            return seq[-1]

    rng = RecordingRng()
    outcome = draw_outcome(rng)
    assert list(rng.seq) == list(BOARD_CELLS)
    assert outcome.cell == BOARD_CELLS[-1]


def test_default_draw_uses_system_random():
    outcome = draw_outcome()
    assert outcome.cell in BOARD_CELLS
    assert outcome.color == determine_color(outcome.cell)
