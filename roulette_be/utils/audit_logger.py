"""
Audit Event Logging
Structured JSON audit lines for every credit movement and every settled roulette round
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from flask import g, has_request_context, request

logger = logging.getLogger('roulette_be.audit')


def _request_info():
    """Request id and client address, or placeholders when called outside a request."""
    if not has_request_context():
        return 'N/A', None
    return g.get('request_id', 'N/A'), request.remote_addr


def _json_default(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


class AuditLogger:
    """Centralized audit event logging"""

    @staticmethod
    def log_financial_event(event_type: str, player_id: int, amount=None,
                            balance_after=None, details: dict = None):
        """Log ledger movements (debit, credit, refund, reversal)"""
        request_id, ip_address = _request_info()

        event_data = {
            'event_type': 'financial',
            'sub_type': event_type,
            'player_id': player_id,
            'amount': amount,
            'balance_after': balance_after,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        logger.info(f"FINANCIAL_EVENT: {json.dumps(event_data, default=_json_default)}")

    @staticmethod
    def log_game_event(event_type: str, player_id: int, stake=None, payout=None,
                       outcome=None, details: dict = None, level=logging.INFO):
        """Log round lifecycle events"""
        request_id, ip_address = _request_info()

        event_data = {
            'event_type': 'game',
            'sub_type': event_type,
            'player_id': player_id,
            'game_type': 'roulette',
            'stake': stake,
            'payout': payout,
            'outcome': outcome,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        logger.log(level, f"GAME_EVENT: {json.dumps(event_data, default=_json_default)}")
