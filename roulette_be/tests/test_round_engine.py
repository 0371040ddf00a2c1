import threading
import time
import unittest
from decimal import Decimal
from unittest.mock import MagicMock

from roulette_be.exceptions import (
    BetValidationError, InsufficientFundsException, HistoryFailure,
    LedgerFailure, SettlementInconsistencyException
)
from roulette_be.services.round_engine import RoundEngine, RoundResult, PlayerLockRegistry
from roulette_be.utils.roulette_helper import classify


class InMemoryLedger:
    """Ledger double with the same contract as LedgerService."""

    def __init__(self, starting_credits=Decimal('1000.00'), read_delay=0):
        self.starting_credits = starting_credits
        self.read_delay = read_delay
        self.balances = {}
        self.entries = []
        self._lock = threading.Lock()

    def get_balance(self, player_id):
        if self.read_delay:
            time.sleep(self.read_delay)
        with self._lock:
            return self.balances.setdefault(player_id, self.starting_credits)

    def debit_if_sufficient(self, player_id, amount, entry_type='roulette_bet'):
        with self._lock:
            balance = self.balances.setdefault(player_id, self.starting_credits)
            if amount > balance:
                return False
            self.balances[player_id] = balance - amount
            self.entries.append((player_id, entry_type, -amount))
            return True

    def credit(self, player_id, amount, entry_type='roulette_win'):
        with self._lock:
            balance = self.balances.setdefault(player_id, self.starting_credits)
            if amount > 0:
                balance = self.balances[player_id] = balance + amount
                self.entries.append((player_id, entry_type, amount))
            return balance


class InMemoryHistory:
    def __init__(self):
        self.records = []

    def append(self, record):
        self.records.append(record)
        return len(self.records)

    def query(self, player_id, page=1, page_size=16):
        rows = [r for r in reversed(self.records) if r.player_id == player_id]
        start = (page - 1) * page_size
        return {'rows': rows[start:start + page_size], 'total_count': len(rows), 'page': page,
                'total_pages': max(1, -(-len(rows) // page_size))}


def fixed_drawer(cell):
    return lambda: classify(cell)


STRAIGHT_7 = {'type': 'straight', 'targets': ['7'], 'tokens': 1, 'multiplier': 10, 'key': 'n7'}


class RoundEngineTestCase(unittest.TestCase):

    def setUp(self):
        self.ledger = InMemoryLedger()
        self.history = InMemoryHistory()
        self.engine = RoundEngine(self.ledger, self.history, drawer=fixed_drawer('7'))

    def test_winning_round(self):
        result = self.engine.play_round(1, [STRAIGHT_7])

        self.assertIsInstance(result, RoundResult)
        self.assertEqual(result.outcome.cell, '7')
        self.assertEqual(result.outcome.color, 'red')
        self.assertEqual(result.total_stake, Decimal('10'))
        self.assertEqual(result.payout, Decimal('360'))
        self.assertEqual(result.new_balance, Decimal('1350'))
        self.assertEqual(result.history_id, 1)
        self.assertEqual(self.ledger.get_balance(1), Decimal('1350'))
        self.assertEqual([e[1] for e in self.ledger.entries], ['roulette_bet', 'roulette_win'])

    def test_losing_round_records_zero_payout(self):
        self.engine.drawer = fixed_drawer('00')
        result = self.engine.play_round(1, [STRAIGHT_7, {'type': 'color', 'value': 'red', 'tokens': 1,
                                                         'multiplier': 5, 'key': 'red'}])
        self.assertEqual(result.payout, Decimal('0'))
        self.assertEqual(result.new_balance, Decimal('985'))
        record = self.history.records[0]
        self.assertEqual(record.outcome.cell, '00')
        self.assertEqual(record.stake, Decimal('15'))
        self.assertEqual(record.payout, Decimal('0'))
        self.assertEqual(len(record.bets), 2)

    def test_bet_multiplier_scales_stake_and_payout(self):
        result = self.engine.play_round(1, [STRAIGHT_7], 3)
        self.assertEqual(result.bet_multiplier, 3)
        self.assertEqual(result.total_stake, Decimal('30'))
        self.assertEqual(result.payout, Decimal('1080'))
        self.assertEqual(result.new_balance, Decimal('2050'))

    def test_insufficient_funds_mutates_nothing(self):
        self.ledger.balances[1] = Decimal('5')
        with self.assertRaises(InsufficientFundsException) as ctx:
            self.engine.play_round(1, [STRAIGHT_7])
        self.assertEqual(ctx.exception.details['required'], '10.00')
        self.assertEqual(self.ledger.balances[1], Decimal('5'))
        self.assertEqual(self.ledger.entries, [])
        self.assertEqual(self.history.records, [])

    def test_stake_equal_to_balance_is_allowed(self):
        self.ledger.balances[1] = Decimal('10')
        self.engine.drawer = fixed_drawer('8')
        result = self.engine.play_round(1, [STRAIGHT_7])
        self.assertEqual(result.new_balance, Decimal('0'))

    def test_invalid_bets_never_touch_the_ledger(self):
        drawer = MagicMock()
        self.engine.drawer = drawer
        with self.assertRaises(BetValidationError):
            self.engine.play_round(1, [STRAIGHT_7, {'type': 'split', 'targets': ['1'], 'tokens': 1,
                                                    'multiplier': 1, 'key': 's'}])
        drawer.assert_not_called()
        self.assertEqual(self.ledger.entries, [])

    def test_quote_round_is_read_only(self):
        quote = self.engine.quote_round(1, [STRAIGHT_7], 2)
        self.assertEqual(quote['total'], Decimal('20'))
        self.assertEqual(quote['base_total'], 10)
        self.assertEqual(quote['credits'], Decimal('1000.00'))
        self.assertEqual(quote['max_tokens'], 16)
        self.assertEqual(self.ledger.entries, [])
        self.assertEqual(self.history.records, [])

    def test_quote_round_checks_balance(self):
        self.ledger.balances[1] = Decimal('15')
        with self.assertRaises(InsufficientFundsException):
            self.engine.quote_round(1, [STRAIGHT_7], 2)

    def test_history_is_read_through_collaborator(self):
        self.engine.play_round(1, [STRAIGHT_7])
        self.engine.play_round(2, [STRAIGHT_7])
        page = self.engine.get_history(1)
        self.assertEqual(page['total_count'], 1)
        self.assertEqual(page['rows'][0].player_id, 1)


class RoundEngineFailureTestCase(unittest.TestCase):

    def setUp(self):
        self.ledger = InMemoryLedger()
        self.history = MagicMock()
        self.engine = RoundEngine(self.ledger, self.history, drawer=fixed_drawer('7'))

    def test_history_failure_reverses_debit_and_winnings(self):
        self.history.append.side_effect = HistoryFailure()
        with self.assertRaises(HistoryFailure):
            self.engine.play_round(1, [STRAIGHT_7])

        self.assertEqual(self.ledger.get_balance(1), Decimal('1000.00'))
        self.assertEqual(
            [e[1] for e in self.ledger.entries],
            ['roulette_bet', 'roulette_win', 'roulette_refund', 'roulette_reversal']
        )

    def test_draw_failure_refunds_stake(self):
        self.engine.drawer = MagicMock(side_effect=RuntimeError('entropy source unavailable'))
        with self.assertRaises(RuntimeError):
            self.engine.play_round(1, [STRAIGHT_7])
        self.assertEqual(self.ledger.get_balance(1), Decimal('1000.00'))
        self.history.append.assert_not_called()

    def test_failed_reversal_is_reported_as_inconsistency(self):
        self.history.append.side_effect = HistoryFailure()
        original_credit = self.ledger.credit

        def credit(player_id, amount, entry_type='roulette_win'):
            if entry_type == 'roulette_refund':
                raise LedgerFailure()
            return original_credit(player_id, amount, entry_type)

        self.ledger.credit = credit
        with self.assertRaises(SettlementInconsistencyException) as ctx:
            self.engine.play_round(1, [STRAIGHT_7])
        self.assertEqual(ctx.exception.details['stake'], '10.00')
        self.assertEqual(ctx.exception.status_code, 500)


class RoundEngineConcurrencyTestCase(unittest.TestCase):

    def test_same_player_cannot_overdraw(self):
        # Balance covers exactly one of the two rounds; the wheel never pays
        ledger = InMemoryLedger(read_delay=0.01)
        engine = RoundEngine(ledger, InMemoryHistory(), drawer=fixed_drawer('8'))
        big_bet = {'type': 'straight', 'targets': ['7'], 'tokens': 12, 'multiplier': 50, 'key': 'n7'}
        outcomes = []

        def play():
            try:
                outcomes.append(engine.play_round(1, [big_bet]))
            except InsufficientFundsException as e:
                outcomes.append(e)

        threads = [threading.Thread(target=play) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        settled = [o for o in outcomes if isinstance(o, RoundResult)]
        refused = [o for o in outcomes if isinstance(o, InsufficientFundsException)]
        self.assertEqual(len(settled), 1)
        self.assertEqual(len(refused), 1)
        self.assertEqual(ledger.get_balance(1), Decimal('400.00'))

    def test_rounds_for_one_player_are_serialized(self):
        active = {'now': 0, 'max': 0}
        guard = threading.Lock()

        def slow_drawer():
            with guard:
                active['now'] += 1
                active['max'] = max(active['max'], active['now'])
            time.sleep(0.02)
            with guard:
                active['now'] -= 1
            return classify('8')

        engine = RoundEngine(InMemoryLedger(), InMemoryHistory(), drawer=slow_drawer)
        threads = [threading.Thread(target=engine.play_round, args=(1, [STRAIGHT_7])) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(active['max'], 1)

    def test_lock_registry_reuses_lock_per_player(self):
        registry = PlayerLockRegistry()
        self.assertIs(registry.lock_for(1), registry.lock_for(1))
        self.assertIsNot(registry.lock_for(1), registry.lock_for(2))


if __name__ == '__main__':
    unittest.main()
