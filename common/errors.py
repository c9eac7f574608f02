class LoyaltyError(Exception):
    """Base for every policy failure raised by the ledger services.

    ``code`` is stable and machine-readable; ``message`` is shown to the user.
    """

    code = "loyalty_error"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self) -> str:
        return self.code.replace("_", " ")

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFoundError(LoyaltyError):
    code = "not_found"
    status_code = 404


class InvalidPhoneError(LoyaltyError):
    code = "invalid_phone"
