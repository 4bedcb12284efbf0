"""
Economy system for consumer funds and transactions.
"""
from config import STARTING_FUNDS
from game.systems.collaborators import Ledger


class EconomySystem(Ledger):
    """In-memory ledger for the headless runner and tests."""

    def __init__(self, starting_funds: int = STARTING_FUNDS):
        self.starting_funds = int(starting_funds)
        self.balances: dict[int, int] = {}
        self.total_charged = 0
        self.total_refunded = 0
        self.transaction_log = []

    def balance(self, consumer_id: int) -> int:
        """Current funds (accounts open lazily with the starting amount)."""
        return self.balances.setdefault(int(consumer_id), self.starting_funds)

    def set_balance(self, consumer_id: int, amount: int):
        self.balances[int(consumer_id)] = int(amount)

    def can_afford(self, consumer_id: int, amount: int) -> bool:
        return self.balance(consumer_id) >= int(amount)

    def charge(self, consumer_id: int, amount: int) -> bool:
        """Attempt to take funds. Returns True if successful."""
        amount = int(amount)
        if not self.can_afford(consumer_id, amount):
            return False
        self.balances[int(consumer_id)] -= amount
        self.total_charged += amount
        self.transaction_log.append({
            "type": "charge",
            "consumer": int(consumer_id),
            "amount": amount,
        })
        return True

    def credit(self, consumer_id: int, amount: int):
        """Return funds to a consumer."""
        amount = int(amount)
        self.balances[int(consumer_id)] = self.balance(consumer_id) + amount
        self.total_refunded += amount
        self.transaction_log.append({
            "type": "credit",
            "consumer": int(consumer_id),
            "amount": amount,
        })

    def get_recent_transactions(self, count: int = 5) -> list:
        """Get the most recent transactions."""
        return self.transaction_log[-count:]
