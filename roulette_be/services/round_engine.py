"""
Roulette round engine.

Orchestrates one wagering round: validate, check funds, debit, draw, evaluate,
credit and record history. Settlement for a given player is serialized by a
per-player lock; the ledger's conditional debit re-checks funds in storage so
that separate processes cannot double-spend either.

If anything fails after the stake has been debited, the engine refunds the
stake (and takes back winnings already credited) before re-raising. When that
reversal cannot be completed a SettlementInconsistencyException is raised so
the round can be reconciled out of band.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from roulette_be.exceptions import InsufficientFundsException, SettlementInconsistencyException
from roulette_be.services.history_service import HistoryRecord, DEFAULT_PAGE_SIZE
from roulette_be.utils.audit_logger import AuditLogger
from roulette_be.utils.bet_validator import validate_bets
from roulette_be.utils.board import CHIP_MULTIPLIERS, MAX_TOKENS_PER_FIELD
from roulette_be.utils.roulette_helper import draw_outcome, evaluate_bets, apply_bet_multiplier, Outcome

logger = logging.getLogger(__name__)


class PlayerLockRegistry:
    """One lock per player id; players never block each other."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def lock_for(self, player_id):
        with self._guard:
            lock = self._locks.get(player_id)
            if lock is None:
                lock = self._locks[player_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, player_id):
        lock = self.lock_for(player_id)
        with lock:
            yield


@dataclass(frozen=True)
class RoundResult:
    outcome: Outcome
    payout: Decimal
    total_stake: Decimal
    new_balance: Decimal
    bet_multiplier: int
    bets: tuple
    history_id: Optional[int] = None


class RoundEngine:
    def __init__(self, ledger, history, drawer=draw_outcome, locks=None, strict_bet_multiplier=False):
        self.ledger = ledger
        self.history = history
        self.drawer = drawer
        self.locks = locks or PlayerLockRegistry()
        self.strict_bet_multiplier = strict_bet_multiplier

    def _validate(self, raw_bets, raw_bet_multiplier):
        return validate_bets(raw_bets, raw_bet_multiplier, strict_bet_multiplier=self.strict_bet_multiplier)

    def quote_round(self, player_id, raw_bets, raw_bet_multiplier=None) -> dict:
        """Validates a submission against the current balance without touching it."""
        round_request = self._validate(raw_bets, raw_bet_multiplier)
        credits = self.ledger.get_balance(player_id)
        if round_request.total_stake > credits:
            raise InsufficientFundsException(
                status_message='Not enough credits for this bet.',
                details={'credits': str(credits), 'required': str(round_request.total_stake)}
            )
        quote = round_request.to_dict()
        quote.update({
            'bets': round_request.bets,
            'credits': credits,
            'max_tokens': MAX_TOKENS_PER_FIELD,
            'chip_multipliers': list(CHIP_MULTIPLIERS),
        })
        return quote

    def play_round(self, player_id, raw_bets, raw_bet_multiplier=None) -> RoundResult:
        round_request = self._validate(raw_bets, raw_bet_multiplier)
        with self.locks.hold(player_id):
            return self._settle(player_id, round_request)

    def _settle(self, player_id, round_request) -> RoundResult:
        stake = round_request.total_stake

        balance = self.ledger.get_balance(player_id)
        if stake > balance or not self.ledger.debit_if_sufficient(player_id, stake):
            logger.info(f"Player {player_id} cannot cover stake {stake} (balance {balance})")
            raise InsufficientFundsException(
                status_message='Not enough credits to spin.',
                details={'credits': str(balance), 'required': str(stake)}
            )

        credited = Decimal('0')
        try:
            outcome = self.drawer()
            payout = apply_bet_multiplier(evaluate_bets(round_request.bets, outcome), round_request.bet_multiplier)
            new_balance = self.ledger.credit(player_id, payout)
            credited = payout
            history_id = self.history.append(HistoryRecord(
                player_id=player_id,
                outcome=outcome,
                stake=stake,
                payout=payout,
                bets=round_request.bets,
                bet_multiplier=round_request.bet_multiplier
            ))
        except Exception as exc:
            logger.error(f"Round for player {player_id} failed after debit of {stake}: {exc}", exc_info=True)
            self._reverse(player_id, stake, credited, exc)
            raise

        AuditLogger.log_game_event(
            'round_settled', player_id, stake=stake, payout=payout, outcome=outcome._asdict(),
            details={'bet_multiplier': round_request.bet_multiplier, 'bets': len(round_request.bets),
                     'history_id': history_id}
        )
        return RoundResult(
            outcome=outcome,
            payout=payout,
            total_stake=stake,
            new_balance=new_balance,
            bet_multiplier=round_request.bet_multiplier,
            bets=round_request.bets,
            history_id=history_id
        )

    def _reverse(self, player_id, stake, credited, cause):
        """Undoes the debit (and any winnings already paid) of a failed round."""
        try:
            self.ledger.credit(player_id, stake, entry_type='roulette_refund')
            if credited > 0 and not self.ledger.debit_if_sufficient(player_id, credited, entry_type='roulette_reversal'):
                raise RuntimeError(f"could not take back {credited} credited winnings")
        except Exception as reversal_error:
            details = {
                'player_id': player_id,
                'stake': str(stake),
                'credited': str(credited),
                'cause': str(cause),
                'reversal_error': str(reversal_error),
            }
            AuditLogger.log_game_event('settlement_inconsistency', player_id, stake=stake, payout=credited,
                                       details=details, level=logging.CRITICAL)
            raise SettlementInconsistencyException(details=details) from reversal_error

        AuditLogger.log_game_event('round_reversed', player_id, stake=stake, payout=credited,
                                   details={'cause': str(cause)}, level=logging.WARNING)

    def get_history(self, player_id, page=1, page_size=DEFAULT_PAGE_SIZE) -> dict:
        return self.history.query(player_id, page, page_size)
