# roulette_be/utils/bet_validator.py

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from roulette_be.exceptions import BetValidationError
from roulette_be.utils.board import (
    BetType, BOARD_CELLS, BASKET_CELLS, TARGET_COUNTS, TARGET_BET_TYPES, VALUE_CHOICES,
    CHIP_MULTIPLIERS, BET_MULTIPLIERS, MAX_TOKENS_PER_FIELD
)

logger = logging.getLogger(__name__)

_BOARD_CELL_SET = frozenset(BOARD_CELLS)
_BET_TYPES = {bet_type.value: bet_type for bet_type in BetType}


@dataclass(frozen=True)
class BetSpec:
    """A single wager that passed validation. Built only by `validate_bets`."""
    type: BetType
    targets: frozenset
    value: Optional[str]
    tokens: int
    multiplier: int
    field_key: str

    @property
    def stake(self) -> int:
        return self.tokens * self.multiplier

    def to_dict(self):
        return {
            'type': self.type.value,
            'targets': sorted(self.targets, key=_cell_sort_key),
            'value': self.value,
            'tokens': self.tokens,
            'multiplier': self.multiplier,
            'stake': self.stake,
            'key': self.field_key,
        }


@dataclass(frozen=True)
class RoundRequest:
    bets: tuple
    bet_multiplier: int
    base_stake: int
    total_stake: Decimal

    def to_dict(self):
        return {
            'bets': [bet.to_dict() for bet in self.bets],
            'bet_multiplier': self.bet_multiplier,
            'base_total': self.base_stake,
            'total': self.total_stake,
        }


def _cell_sort_key(cell):
    # '0' before '00' before 1..36
    return (-1, len(cell)) if cell in ('0', '00') else (int(cell), 0)


def _as_int(raw):
    """Coerces ints and numeric strings. Anything else (bools included) becomes 0."""
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return 0
    return 0


def _as_key(raw):
    if raw is None:
        return ''
    return str(raw).strip().lower()


def resolve_bet_multiplier(raw_bet_multiplier, strict=False):
    """
    Returns the request-wide bet multiplier.
    Values outside BET_MULTIPLIERS fall back to 1 unless `strict` is set.
    """
    if raw_bet_multiplier is None:
        return 1
    bet_multiplier = _as_int(raw_bet_multiplier)
    if bet_multiplier in BET_MULTIPLIERS:
        return bet_multiplier
    if strict:
        raise BetValidationError(
            f"Invalid bet multiplier '{raw_bet_multiplier}'. Allowed: {list(BET_MULTIPLIERS)}."
        )
    logger.warning(f"Bet multiplier {raw_bet_multiplier!r} not allowed, defaulting to 1x")
    return 1


def _parse_targets(raw_targets, index):
    if raw_targets is None:
        return []
    if not isinstance(raw_targets, (list, tuple)):
        raise BetValidationError("Targets must be an array.", bet_index=index)

    targets = []
    for target in raw_targets:
        target = str(target).strip()
        if target not in _BOARD_CELL_SET:
            raise BetValidationError(f"Invalid target number '{target}' selected.", bet_index=index)
        targets.append(target)
    return targets


def _check_shape(bet_type, targets, value, tokens, index):
    if bet_type in TARGET_COUNTS:
        expected = TARGET_COUNTS[bet_type]
        if len(targets) != expected or len(set(targets)) != expected:
            raise BetValidationError(
                f"{bet_type.value.capitalize()} bets require exactly {expected} distinct number(s).",
                bet_index=index
            )
    elif bet_type == BetType.BASKET:
        if len(targets) != len(BASKET_CELLS) or set(targets) != BASKET_CELLS:
            raise BetValidationError("Basket bet must include 0, 00, 1, 2, 3.", bet_index=index)
    elif bet_type == BetType.SECTOR:
        # One chip per sector cell
        if not targets or len(set(targets)) != len(targets) or len(targets) != tokens:
            raise BetValidationError(
                "Sector bets require one distinct number per token.", bet_index=index
            )
    elif value not in VALUE_CHOICES[bet_type]:
        raise BetValidationError(f"Invalid {bet_type.value} selection.", bet_index=index)


def _parse_bet(raw_bet, index):
    if not isinstance(raw_bet, dict):
        raise BetValidationError("Each bet must be an object.", bet_index=index)

    type_name = _as_key(raw_bet.get('type'))
    tokens = _as_int(raw_bet.get('tokens'))
    multiplier = _as_int(raw_bet.get('multiplier'))
    field_key = _as_key(raw_bet.get('key'))
    value = raw_bet.get('value')
    value = _as_key(value) if value is not None else None

    if not type_name or tokens <= 0 or multiplier <= 0:
        raise BetValidationError("Bet is missing required fields.", bet_index=index)
    if not field_key:
        raise BetValidationError("Invalid bet key received.", bet_index=index)
    if type_name not in _BET_TYPES:
        raise BetValidationError(f"Unsupported bet type '{type_name}'.", bet_index=index)
    if multiplier not in CHIP_MULTIPLIERS:
        raise BetValidationError(f"Invalid multiplier {multiplier} selected.", bet_index=index)

    return _BET_TYPES[type_name], tokens, multiplier, field_key, value


def validate_bets(raw_bets, raw_bet_multiplier=None, strict_bet_multiplier=False):
    """
    Parses a raw wager submission into a RoundRequest.

    raw_bets: list of dicts as sent by the table widget, e.g.
        {"type": "straight", "targets": ["7"], "tokens": 1, "multiplier": 10, "key": "n7"}
    raw_bet_multiplier: the request-wide 1x-5x amplifier.

    Any failure rejects the whole submission with BetValidationError; no
    partial bet list is ever returned.
    """
    if not isinstance(raw_bets, (list, tuple)):
        raise BetValidationError("Invalid bets payload.")

    bet_multiplier = resolve_bet_multiplier(raw_bet_multiplier, strict=strict_bet_multiplier)

    field_tokens = {}
    bets = []
    for index, raw_bet in enumerate(raw_bets):
        bet_type, tokens, multiplier, field_key, value = _parse_bet(raw_bet, index)

        field_tokens[field_key] = field_tokens.get(field_key, 0) + tokens
        if field_tokens[field_key] > MAX_TOKENS_PER_FIELD:
            raise BetValidationError(
                f"Maximum of {MAX_TOKENS_PER_FIELD} chips reached for field '{field_key}'.",
                bet_index=index
            )

        targets = _parse_targets(raw_bet.get('targets'), index)
        _check_shape(bet_type, targets, value, tokens, index)

        bets.append(BetSpec(
            type=bet_type,
            targets=frozenset(targets) if bet_type in TARGET_BET_TYPES else frozenset(),
            value=value if bet_type in VALUE_CHOICES else None,
            tokens=tokens,
            multiplier=multiplier,
            field_key=field_key,
        ))

    if not bets:
        raise BetValidationError("At least one bet is required.")

    base_stake = sum(bet.stake for bet in bets)
    return RoundRequest(
        bets=tuple(bets),
        bet_multiplier=bet_multiplier,
        base_stake=base_stake,
        total_stake=Decimal(base_stake * bet_multiplier).quantize(Decimal('0.01')),
    )
