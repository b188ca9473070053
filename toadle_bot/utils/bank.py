"""Bank subledger: wallet <-> bank transfers and interest accrual."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass

from toadle_bot.utils.ledger import UserLedger

logger = logging.getLogger("toadle.bank")


@dataclass
class BankResult:
    success: bool
    message: str
    new_wallet: int
    new_bank: int


@dataclass
class InterestResult:
    total_interest: int = 0
    accounts_touched: int = 0


class BankLedger:
    def __init__(self, ledger: UserLedger):
        self.ledger = ledger

    def deposit(self, user_id, amount: int) -> BankResult:
        account = self.ledger.get_or_create_account(user_id)
        if amount <= 0:
            return BankResult(False, "Amount must be positive", account.balance, account.bank_balance)
        if account.balance < amount:
            return BankResult(
                False,
                f"Insufficient wallet balance. You have {account.balance} coins.",
                account.balance,
                account.bank_balance,
            )
        account.balance -= amount
        account.bank_balance += amount
        account.last_bank_activity = time.time()
        return BankResult(True, f"Deposited {amount} coins.", account.balance, account.bank_balance)

    def withdraw(self, user_id, amount: int) -> BankResult:
        account = self.ledger.get_or_create_account(user_id)
        if amount <= 0:
            return BankResult(False, "Amount must be positive", account.balance, account.bank_balance)
        if account.bank_balance < amount:
            return BankResult(
                False,
                f"Insufficient bank balance. You have {account.bank_balance} coins in bank.",
                account.balance,
                account.bank_balance,
            )
        account.bank_balance -= amount
        account.balance += amount
        account.last_bank_activity = time.time()
        return BankResult(True, f"Withdrew {amount} coins.", account.balance, account.bank_balance)

    def apply_interest(self, rate: float, guild_id=None) -> InterestResult:
        """Credit `floor(bank * rate)` to every eligible account.

        With `guild_id`, only accounts homed in that guild are considered.
        Accounts whose interest rounds down to zero are not counted.
        """
        if not 0 <= rate <= 1:
            raise ValueError(f"interest rate must be within [0, 1], got {rate}")
        result = InterestResult()
        gid = str(guild_id) if guild_id is not None else None
        for account in self.ledger.store.users.values():
            if gid is not None and account.guild_id != gid:
                continue
            interest = math.floor(account.bank_balance * rate)
            if interest <= 0:
                continue
            account.bank_balance += interest
            account.total_earned += interest
            result.total_interest += interest
            result.accounts_touched += 1
        logger.info(
            "Interest %.4f applied (guild=%s): %s coins over %s accounts",
            rate, gid, result.total_interest, result.accounts_touched,
        )
        return result
