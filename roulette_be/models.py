from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import BigInteger, Index, JSON, Numeric

db = SQLAlchemy()

# Credits are kept to the cent
CREDITS = Numeric(12, 2, asdecimal=True)

class CreditAccount(db.Model):
    __tablename__ = 'roulette_credit_account'
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(BigInteger, unique=True, nullable=False, index=True)
    credits = db.Column(CREDITS, default=Decimal('0.00'), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        db.CheckConstraint('credits >= 0', name='ck_roulette_credit_account_non_negative'),
    )

    def __repr__(self):
        return f"<CreditAccount player={self.player_id} credits={self.credits}>"

class LedgerEntry(db.Model):
    __tablename__ = 'roulette_ledger_entry'
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(BigInteger, nullable=False, index=True)
    amount = db.Column(CREDITS, nullable=False)  # Signed: debits are negative
    entry_type = db.Column(db.String(50), nullable=False, index=True)  # roulette_bet, roulette_win, roulette_refund, roulette_reversal
    balance_after = db.Column(CREDITS, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<LedgerEntry {self.id} (Player: {self.player_id}, Type: {self.entry_type}, Amount: {self.amount})>"

class RoundHistory(db.Model):
    __tablename__ = 'roulette_round_history'
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(BigInteger, nullable=False)
    event_type = db.Column(db.String(20), nullable=False, default='game')
    result_number = db.Column(db.String(3), nullable=False)
    result_color = db.Column(db.String(10), nullable=False)
    result_parity = db.Column(db.String(10), nullable=False)
    total_stake = db.Column(CREDITS, nullable=False, default=Decimal('0.00'))
    payout = db.Column(CREDITS, nullable=False, default=Decimal('0.00'))
    bet_multiplier = db.Column(db.Integer, nullable=False, default=1)
    bets_json = db.Column(JSON, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        Index('idx_roulette_history_player_created', 'player_id', 'created_at'),
    )

    def __repr__(self):
        return f'<RoundHistory {self.id} by Player {self.player_id} - Result: {self.result_number}, Payout: {self.payout}>'
