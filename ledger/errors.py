from common.errors import LoyaltyError, NotFoundError


class LedgerError(LoyaltyError):
    code = "ledger_error"


class AlreadyUsedError(LedgerError):
    code = "already_used"

    def default_message(self) -> str:
        return "This coupon has already been used"


class ExpiredError(LedgerError):
    code = "expired"

    def default_message(self) -> str:
        return "This coupon has expired"


class EntryNotFoundError(NotFoundError, LedgerError):
    code = "entry_not_found"


class DuplicateCodeError(LedgerError):
    code = "duplicate_code"


class DuplicateTransactionError(LedgerError):
    """An order for this payment transaction has already been stored."""

    code = "duplicate_transaction"
    status_code = 409
