import secrets
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP

from roulette_be.utils.board import (
    BetType, PAYOUTS, BOARD_CELLS, ZERO_CELLS, RED_CELLS,
    COLUMN_MAP, DOZEN_MAP, RANGE_MAP, TARGET_BET_TYPES
)
from roulette_be.utils.bet_validator import BetSpec

CENT = Decimal('0.01')

Outcome = namedtuple('Outcome', ['cell', 'color', 'parity'])


def _check_cell(cell):
    if cell not in BOARD_CELLS:
        raise ValueError(f"Invalid board cell: {cell!r}")


def determine_color(cell: str) -> str:
    """'green' for 0 and 00, otherwise 'red' or 'black'."""
    _check_cell(cell)
    if cell in ZERO_CELLS:
        return 'green'
    return 'red' if cell in RED_CELLS else 'black'


def determine_parity(cell: str) -> str:
    """'zero' for 0 and 00, otherwise 'odd' or 'even'."""
    _check_cell(cell)
    if cell in ZERO_CELLS:
        return 'zero'
    return 'even' if int(cell) % 2 == 0 else 'odd'


def spin_wheel(rng=None):
    """
    Simulates spinning the roulette wheel.
    Every one of the 38 cells is equally likely; the display order of the wheel plays no part.
    """
    rng = rng or secrets.SystemRandom()
    return rng.choice(BOARD_CELLS)


def classify(cell: str) -> Outcome:
    return Outcome(cell=cell, color=determine_color(cell), parity=determine_parity(cell))


def draw_outcome(rng=None) -> Outcome:
    return classify(spin_wheel(rng))


def is_winning_bet(bet: BetSpec, outcome: Outcome) -> bool:
    if bet.type in TARGET_BET_TYPES:
        return outcome.cell in bet.targets

    # Outside bets never win on 0 / 00
    if outcome.cell in ZERO_CELLS:
        return False

    if bet.type == BetType.COLUMN:
        return outcome.cell in COLUMN_MAP.get(bet.value, ())
    if bet.type == BetType.DOZEN:
        return outcome.cell in DOZEN_MAP.get(bet.value, ())
    if bet.type == BetType.COLOR:
        return outcome.color == bet.value
    if bet.type == BetType.PARITY:
        return outcome.parity == bet.value
    if bet.type == BetType.RANGE:
        return outcome.cell in RANGE_MAP.get(bet.value, ())
    return False


def payout_stake(bet: BetSpec) -> Decimal:
    """
    The stake a winning bet is paid on.
    Sector bets spread their stake over `tokens` cells and are paid on the per-cell share only.
    """
    stake = Decimal(bet.stake)
    if bet.type == BetType.SECTOR:
        return stake / Decimal(bet.tokens)
    return stake


def calculate_payout(stake: Decimal, multiplier: int) -> Decimal:
    """Calculates the total payout (including stake)."""
    return stake * (multiplier + 1)


def evaluate_bets(bets, outcome: Outcome) -> Decimal:
    """
    Sums the payouts of every winning bet against `outcome`, before the request-wide bet multiplier.
    Only validated BetSpec values are accepted.
    """
    total = Decimal('0')
    for bet in bets:
        if not isinstance(bet, BetSpec):
            raise TypeError(f"evaluate_bets expects BetSpec values, got {type(bet).__name__}")
        if is_winning_bet(bet, outcome):
            total += calculate_payout(payout_stake(bet), PAYOUTS[bet.type])
    return total.quantize(CENT, rounding=ROUND_HALF_UP)


def apply_bet_multiplier(amount: Decimal, bet_multiplier: int) -> Decimal:
    return (Decimal(amount) * bet_multiplier).quantize(CENT, rounding=ROUND_HALF_UP)
