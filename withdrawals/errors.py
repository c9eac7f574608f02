from common.errors import LoyaltyError


class WithdrawalError(LoyaltyError):
    code = "withdrawal_error"


class BelowMinimumError(WithdrawalError):
    code = "below_minimum"


class NotAStepMultipleError(WithdrawalError):
    code = "not_a_step_multiple"


class InsufficientBalanceError(WithdrawalError):
    code = "insufficient_balance"

    def __init__(self, message: str | None = None, available: int = 0) -> None:
        self.available = available
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "available": self.available}


class NoExactCombinationError(InsufficientBalanceError):
    """Balance is large enough but no set of whole coupons adds up to the amount."""

    code = "no_exact_combination"
