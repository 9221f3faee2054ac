"""Discovery orchestration for the shows panel."""

from .orchestrator import (
    DiscoveryOutcome,
    DiscoverySession,
    ShowsDiscovery,
    ShowsView,
    Status,
)

__all__ = [
    "DiscoveryOutcome",
    "DiscoverySession",
    "ShowsDiscovery",
    "ShowsView",
    "Status",
]
