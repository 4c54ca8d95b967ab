# Overview: Service-layer operations for carry-over; advisory stock still on the vehicle.

"""
Carry-over is what is still on an agent's vehicle: the ledger's remaining
quantity. It is shown next to a new load request as a hint and is never
subtracted from the requested quantity.
"""

from __future__ import annotations

from datetime import date

from fieldstock.time_utils import today
from .ledger_service import LedgerEntry, get_agent_ledger, get_ledger


def get_carry_over(agent_id: int, product_id: int, day: date | None = None) -> int:
    return get_ledger(agent_id, product_id, day or today()).remaining


def get_carry_over_for_agent(agent_id: int, day: date | None = None) -> list[LedgerEntry]:
    """Ledger entries of the day with stock left on the vehicle."""
    return [entry for entry in get_agent_ledger(agent_id, day or today()) if entry.remaining > 0]
