from common.errors import LoyaltyError, NotFoundError


class PricingError(LoyaltyError):
    code = "pricing_error"


class NegativeTotalError(PricingError):
    code = "negative_total"

    def default_message(self) -> str:
        return "The payable amount cannot be negative"


class DiscountExceedsBalanceError(PricingError):
    code = "discount_exceeds_balance"

    def default_message(self) -> str:
        return "Not enough points for this discount"


class DiscountNotCoverableError(PricingError):
    """The requested points cannot be paid with whole coupons."""

    code = "discount_not_coverable"

    def __init__(self, message: str | None = None, achievable: int = 0) -> None:
        self.achievable = achievable
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "achievable": self.achievable}


class PriceMismatchError(PricingError):
    code = "price_mismatch"

    def default_message(self) -> str:
        return "The order amount has changed, please review it again"


class ProductUnavailableError(PricingError):
    code = "product_unavailable"

    def default_message(self) -> str:
        return "This product is not available"


class StoreUnavailableError(PricingError):
    code = "store_unavailable"

    def default_message(self) -> str:
        return "The selected store cannot deliver this order"


class StoreNotFoundError(NotFoundError):
    code = "store_not_found"


class ConfirmError(LoyaltyError):
    code = "confirm_failed"

    def default_message(self) -> str:
        return "The order could not be confirmed, please try again"
