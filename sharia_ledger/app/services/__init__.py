from .accounts import AccountService
from .ledger import LedgerService
from .repository import LedgerRepository
from .users import UserService

__all__ = ["AccountService", "LedgerRepository", "LedgerService", "UserService"]
