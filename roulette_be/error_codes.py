class ErrorCodes:
    GENERIC_ERROR = "GENERIC_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BET_VALIDATION_ERROR = "BET_VALIDATION_ERROR"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    GAME_LOGIC_ERROR = "GAME_LOGIC_ERROR"
    LEDGER_FAILURE = "LEDGER_FAILURE"
    HISTORY_FAILURE = "HISTORY_FAILURE"
    SETTLEMENT_INCONSISTENCY = "SETTLEMENT_INCONSISTENCY"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
