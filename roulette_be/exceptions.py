from roulette_be.error_codes import ErrorCodes

class AppException(Exception):
    def __init__(self, error_code, status_message, status_code, details=None, action_button=None):
        super().__init__(status_message)
        self.error_code = error_code
        self.status_message = status_message
        self.status_code = status_code
        self.details = details if details is not None else {}
        self.action_button = action_button if action_button is not None else {}

class ValidationException(AppException):
    def __init__(self, status_message="Validation failed", details=None, action_button=None, error_code=ErrorCodes.VALIDATION_ERROR):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=422,
            details=details,
            action_button=action_button
        )

class BetValidationError(ValidationException):
    """A wager submission was rejected as a whole. `bet_index` points at the offending entry, if any."""
    def __init__(self, status_message="Invalid bets", bet_index=None, details=None):
        details = dict(details or {})
        if bet_index is not None:
            details.setdefault('bet_index', bet_index)
        super().__init__(
            status_message=status_message,
            details=details,
            error_code=ErrorCodes.BET_VALIDATION_ERROR
        )
        self.bet_index = bet_index

    def __eq__(self, other):
        if not isinstance(other, BetValidationError):
            return NotImplemented
        return (self.status_message, self.bet_index) == (other.status_message, other.bet_index)

    def __hash__(self):
        return hash((self.status_message, self.bet_index))

class AuthenticationException(AppException):
    def __init__(self, status_message="Authentication required", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.UNAUTHENTICATED,
            status_message=status_message,
            status_code=401,
            details=details,
            action_button=action_button
        )

class InsufficientFundsException(AppException):
    def __init__(self, status_message="Insufficient funds", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.INSUFFICIENT_FUNDS,
            status_message=status_message,
            status_code=400,
            details=details,
            action_button=action_button
        )

class LedgerFailure(AppException):
    def __init__(self, status_message="Credit ledger unavailable", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.LEDGER_FAILURE,
            status_message=status_message,
            status_code=500,
            details=details,
            action_button=action_button
        )

class HistoryFailure(AppException):
    def __init__(self, status_message="Round history unavailable", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.HISTORY_FAILURE,
            status_message=status_message,
            status_code=500,
            details=details,
            action_button=action_button
        )

class SettlementInconsistencyException(AppException):
    """Raised when a round failed after the debit and the compensating reversal also failed."""
    def __init__(self, status_message="Round settlement requires reconciliation", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.SETTLEMENT_INCONSISTENCY,
            status_message=status_message,
            status_code=500,
            details=details,
            action_button=action_button
        )

