import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from roulette_be.exceptions import HistoryFailure
from roulette_be.models import db, RoundHistory
from roulette_be.schemas import RoundHistorySchema

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 16


@dataclass(frozen=True)
class HistoryRecord:
    """Snapshot of one settled round. Written once, never updated."""
    player_id: int
    outcome: object  # roulette_helper.Outcome
    stake: Decimal
    payout: Decimal
    bets: tuple  # BetSpec values
    bet_multiplier: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def total_pages_for(total_count, page_size):
    return max(1, math.ceil(total_count / page_size))


class HistoryService:
    """
    History collaborator of the round engine.

    append(record) -> id
    query(player_id, page, page_size) -> {rows, total_count, page, total_pages}
    """

    def append(self, record: HistoryRecord) -> int:
        row = RoundHistory(
            player_id=record.player_id,
            event_type='game',
            result_number=record.outcome.cell,
            result_color=record.outcome.color,
            result_parity=record.outcome.parity,
            total_stake=record.stake,
            payout=record.payout,
            bet_multiplier=record.bet_multiplier,
            bets_json={'bets': [bet.to_dict() for bet in record.bets],
                       'meta': {'bet_multiplier': record.bet_multiplier}},
            created_at=record.timestamp
        )
        try:
            db.session.add(row)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to write round history for player {record.player_id}: {e}", exc_info=True)
            raise HistoryFailure(details={'player_id': record.player_id}) from e
        return row.id

    def query(self, player_id, page=1, page_size=DEFAULT_PAGE_SIZE) -> dict:
        page = max(1, int(page or 1))
        page_size = max(1, int(page_size or DEFAULT_PAGE_SIZE))

        try:
            total_count = db.session.scalar(
                select(func.count(RoundHistory.id)).filter_by(player_id=player_id)
            ) or 0
            rows = db.session.scalars(
                select(RoundHistory)
                .filter_by(player_id=player_id)
                .order_by(RoundHistory.created_at.desc(), RoundHistory.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to read round history for player {player_id}: {e}", exc_info=True)
            raise HistoryFailure(details={'player_id': player_id}) from e

        return {
            'rows': RoundHistorySchema(many=True).dump(rows),
            'total_count': total_count,
            'page': page,
            'total_pages': total_pages_for(total_count, page_size),
        }
