from .models import BankInfo, WithdrawalRequest, WithdrawalStatus, WithdrawableAmount

__all__ = ["BankInfo", "WithdrawalRequest", "WithdrawalStatus", "WithdrawableAmount"]
