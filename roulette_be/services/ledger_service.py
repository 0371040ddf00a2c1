"""
Credit ledger backed by SQLAlchemy.

Owns the only mutable per-player state of the game: the credit balance.
Every mutation is a single conditional UPDATE committed together with its
LedgerEntry audit row, so concurrent requests (even from other processes)
can never drive a balance negative.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from roulette_be.exceptions import LedgerFailure
from roulette_be.models import db, CreditAccount, LedgerEntry
from roulette_be.utils.audit_logger import AuditLogger

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
DEFAULT_STARTING_CREDITS = Decimal('1000.00')


def sanitize_amount(amount) -> Decimal:
    """Rounds to the cent and clamps negatives to zero."""
    try:
        value = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Invalid credit amount: {amount!r}")
    return max(Decimal('0.00'), value)


class LedgerService:
    """
    Ledger collaborator of the round engine.

    get_balance(player_id) -> Decimal
    debit_if_sufficient(player_id, amount) -> bool
    credit(player_id, amount) -> Decimal (new balance)
    """

    def __init__(self, starting_credits=DEFAULT_STARTING_CREDITS):
        self.starting_credits = sanitize_amount(starting_credits)

    def _ensure_account(self, player_id):
        exists = db.session.scalar(select(CreditAccount.id).filter_by(player_id=player_id))
        if exists is not None:
            return
        db.session.add(CreditAccount(player_id=player_id, credits=self.starting_credits))
        try:
            db.session.commit()
            logger.info(f"Opened credit account for player {player_id} with {self.starting_credits} credits")
        except IntegrityError:
            # Another request opened it first
            db.session.rollback()

    def _read_balance(self, player_id) -> Decimal:
        credits = db.session.scalar(select(CreditAccount.credits).filter_by(player_id=player_id))
        return sanitize_amount(credits)

    def get_balance(self, player_id) -> Decimal:
        try:
            self._ensure_account(player_id)
            return self._read_balance(player_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to read balance for player {player_id}: {e}", exc_info=True)
            raise LedgerFailure(details={'player_id': player_id}) from e

    def debit_if_sufficient(self, player_id, amount, entry_type='roulette_bet') -> bool:
        amount = sanitize_amount(amount)
        if amount <= 0:
            return True

        try:
            self._ensure_account(player_id)
            result = db.session.execute(
                update(CreditAccount)
                .where(CreditAccount.player_id == player_id, CreditAccount.credits >= amount)
                .values(credits=CreditAccount.credits - amount, updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.session.rollback()
                logger.info(f"Debit of {amount} refused for player {player_id}: insufficient credits")
                return False

            balance_after = self._read_balance(player_id)
            db.session.add(LedgerEntry(
                player_id=player_id,
                amount=-amount,
                entry_type=entry_type,
                balance_after=balance_after
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Debit of {amount} failed for player {player_id}: {e}", exc_info=True)
            raise LedgerFailure(details={'player_id': player_id, 'amount': str(amount)}) from e

        AuditLogger.log_financial_event(entry_type, player_id, amount=-amount, balance_after=balance_after)
        return True

    def credit(self, player_id, amount, entry_type='roulette_win') -> Decimal:
        amount = sanitize_amount(amount)
        if amount <= 0:
            return self.get_balance(player_id)

        try:
            self._ensure_account(player_id)
            db.session.execute(
                update(CreditAccount)
                .where(CreditAccount.player_id == player_id)
                .values(credits=CreditAccount.credits + amount, updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            balance_after = self._read_balance(player_id)
            db.session.add(LedgerEntry(
                player_id=player_id,
                amount=amount,
                entry_type=entry_type,
                balance_after=balance_after
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Credit of {amount} failed for player {player_id}: {e}", exc_info=True)
            raise LedgerFailure(details={'player_id': player_id, 'amount': str(amount)}) from e

        AuditLogger.log_financial_event(entry_type, player_id, amount=amount, balance_after=balance_after)
        return balance_after
