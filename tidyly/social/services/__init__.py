"""Services coordinating requests, membership and live updates."""

from .ledger import RequestLedger
from .membership import MembershipCoordinator
from .notifications import ChangeNotifier

__all__ = ["ChangeNotifier", "MembershipCoordinator", "RequestLedger"]
