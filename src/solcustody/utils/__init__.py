"""Utility modules for solcustody."""

from solcustody.utils.amounts import from_base_units, lamports_to_sol, sol_to_lamports, to_base_units
from solcustody.utils.locks import LockTimeoutError, get_user_lock, user_lock

__all__ = [
    "LockTimeoutError",
    "get_user_lock",
    "user_lock",
    "to_base_units",
    "from_base_units",
    "sol_to_lamports",
    "lamports_to_sol",
]
