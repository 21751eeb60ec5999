"""Protocol interfaces for the risk monitor."""
from .notifier import Notifier
from .subscriber import RiskSubscriber

__all__ = ["Notifier", "RiskSubscriber"]
