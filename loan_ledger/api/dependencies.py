"""
Ledger system wiring and request dependencies
"""

from fastapi import Request

from ..config import LedgerConfig
from ..customers import CustomerManager
from ..gateway import LedgerGateway
from ..loans import LoanLedger
from ..storage import StorageInterface, create_storage


class LedgerSystem:
    """Ledger components built around one storage backend"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.gateway = LedgerGateway(self.storage)
        self.ledger = LoanLedger(self.gateway)
        self.customer_manager = CustomerManager(self.gateway)

    @classmethod
    def from_config(cls, config: LedgerConfig) -> 'LedgerSystem':
        return cls(create_storage(config.storage_backend, config.database_path))

    def close(self) -> None:
        self.storage.close()


def get_ledger_system(request: Request) -> LedgerSystem:
    return request.app.state.ledger_system
