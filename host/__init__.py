from .server import HostServer
from .service import Outcome, TableService, TimerRequest
from .store import CommitConflict, GameStore, Transaction

__all__ = ["HostServer", "Outcome", "TableService", "TimerRequest", "CommitConflict", "GameStore", "Transaction"]
