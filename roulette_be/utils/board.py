# roulette_be/utils/board.py

# Static reference data for the American (double zero) roulette table.

from enum import Enum


class BetType(str, Enum):
    STRAIGHT = 'straight'
    SPLIT = 'split'
    STREET = 'street'
    CORNER = 'corner'
    LINE = 'line'
    BASKET = 'basket'
    COLUMN = 'column'
    DOZEN = 'dozen'
    COLOR = 'color'
    PARITY = 'parity'
    RANGE = 'range'
    SECTOR = 'sector'


# Net units returned per unit staked on a win
PAYOUTS = {
    BetType.STRAIGHT: 35,
    BetType.SPLIT: 17,
    BetType.STREET: 11,
    BetType.CORNER: 8,
    BetType.LINE: 5,
    BetType.BASKET: 6,
    BetType.COLUMN: 2,
    BetType.DOZEN: 2,
    BetType.COLOR: 1,
    BetType.PARITY: 1,
    BetType.RANGE: 1,
    BetType.SECTOR: 35,
}

ZERO_CELLS = frozenset({'0', '00'})

# 0 to 36 plus 00
BOARD_CELLS = ('0', '00') + tuple(str(n) for n in range(1, 37))

# American wheel order, used for rendering only
WHEEL_ORDER = (
    '0',
    '28', '9', '26', '30', '11', '7', '20', '32', '17', '5', '22', '34', '15',
    '3', '24', '36', '13', '1', '00',
    '27', '10', '25', '29', '12', '8', '19', '31', '18', '6', '21', '33', '16',
    '4', '23', '35', '14', '2',
)

RED_CELLS = frozenset({'1', '3', '5', '7', '9', '12', '14', '16', '18', '19', '21', '23', '25', '27', '30', '32', '34', '36'})

COLUMN_MAP = {
    'col1': frozenset(str(n) for n in range(1, 37, 3)),
    'col2': frozenset(str(n) for n in range(2, 37, 3)),
    'col3': frozenset(str(n) for n in range(3, 37, 3)),
}

DOZEN_MAP = {
    '1st12': frozenset(str(n) for n in range(1, 13)),
    '2nd12': frozenset(str(n) for n in range(13, 25)),
    '3rd12': frozenset(str(n) for n in range(25, 37)),
}

RANGE_MAP = {
    'low': frozenset(str(n) for n in range(1, 19)),
    'high': frozenset(str(n) for n in range(19, 37)),
}

COLOR_VALUES = frozenset({'red', 'black'})
PARITY_VALUES = frozenset({'odd', 'even'})

BASKET_CELLS = frozenset({'0', '00', '1', '2', '3'})

# Exact target counts for the fixed-shape inside bets
TARGET_COUNTS = {
    BetType.STRAIGHT: 1,
    BetType.SPLIT: 2,
    BetType.STREET: 3,
    BetType.CORNER: 4,
    BetType.LINE: 6,
}

TARGET_BET_TYPES = frozenset(TARGET_COUNTS) | {BetType.BASKET, BetType.SECTOR}

# Allowed values for the value-keyed outside bets
VALUE_CHOICES = {
    BetType.COLUMN: frozenset(COLUMN_MAP),
    BetType.DOZEN: frozenset(DOZEN_MAP),
    BetType.COLOR: COLOR_VALUES,
    BetType.PARITY: PARITY_VALUES,
    BetType.RANGE: frozenset(RANGE_MAP),
}

CHIP_MULTIPLIERS = (1, 2, 5, 10, 20, 30, 50, 100, 200, 500)
BET_MULTIPLIERS = (1, 2, 3, 4, 5)
MAX_TOKENS_PER_FIELD = 16
