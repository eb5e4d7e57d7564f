from .lifecycle import LoanLifecycleManager
from .overdue import OverdueSweep, SweepReport
from .registry import RegistryService
from .review import RequestReviewService, ReviewOutcome
from .settlement import FineSettlementService

__all__ = [
    "LoanLifecycleManager",
    "OverdueSweep",
    "SweepReport",
    "RegistryService",
    "RequestReviewService",
    "ReviewOutcome",
    "FineSettlementService",
]
