"""Equal-split balance computation for a trip's wallet."""

import math
from collections import deque
from collections.abc import Iterable

from pydantic import Field

from travelflow.documents import DocumentModel, Expense


def round_half_up(value: float) -> int:
    """Match JavaScript Math.round(): halves go towards +infinity."""
    return math.floor(value + 0.5)


def total_spent(expenses: Iterable[Expense]) -> float:
    return sum(e.amount for e in expenses)


def compute_balances(expenses: list[Expense], travelers: list[str]) -> dict[str, int]:
    """Net balance per traveler, assuming every expense is shared by everyone.

    Positive means the traveler is owed money, negative means they owe.
    Expenses paid by someone outside ``travelers`` still raise the
    per-person share but are credited to nobody.
    """
    if not travelers:
        return {}

    per_person = total_spent(expenses) / len(travelers)

    paid: dict[str, float] = {name: 0.0 for name in travelers}
    for expense in expenses:
        if expense.payer in paid:
            paid[expense.payer] += expense.amount

    return {name: round_half_up(amount - per_person) for name, amount in paid.items()}


class Transfer(DocumentModel):
    """One settle-up payment, dumped as ``{"from", "to", "amount"}``."""

    debtor: str = Field(alias="from")
    creditor: str = Field(alias="to")
    amount: int = Field(gt=0)


def suggest_transfers(balances: dict[str, int]) -> list[Transfer]:
    """Settle-up plan: the traveler owing most pays whoever is owed most, repeatedly.

    Ties keep traveler order. At most ``len(balances) - 1`` transfers.
    """
    owed = deque([name, amount] for name, amount in sorted(balances.items(), key=lambda kv: -kv[1]) if amount > 0)
    owing = deque([name, -amount] for name, amount in sorted(balances.items(), key=lambda kv: kv[1]) if amount < 0)

    transfers = []
    while owed and owing:
        creditor, debtor = owed[0], owing[0]
        amount = min(creditor[1], debtor[1])
        transfers.append(Transfer(debtor=debtor[0], creditor=creditor[0], amount=amount))
        creditor[1] -= amount
        debtor[1] -= amount
        if not creditor[1]:
            owed.popleft()
        if not debtor[1]:
            owing.popleft()
    return transfers


def convert_total(amount: float, rate: float) -> int:
    return round_half_up(amount * rate)
