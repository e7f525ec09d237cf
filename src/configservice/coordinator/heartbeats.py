"""Per-client heartbeat counting between publish cycles."""

import logging
import threading
from typing import Dict

logger = logging.getLogger(__name__)


class HeartbeatAggregator:
    """
    Accumulates heartbeat counts per client for the current window.
    
    record() may be called from any thread or coroutine. drain() swaps the
    live counter map for an empty one under the same lock, so every
    heartbeat lands in exactly one window.
    """
    
    def __init__(self):
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()
    
    def record(self, client_id: str, count: int = 1):
        """Add heartbeats for a client in the current window."""
        with self._lock:
            self._counts[client_id] = self._counts.get(client_id, 0) + count
    
    def drain(self) -> Dict[str, int]:
        """
        Take the counts of the current window and open a new one.
        
        Returns:
            Mapping of client id to heartbeat count for the closed window
        """
        with self._lock:
            snapshot, self._counts = self._counts, {}
        
        logger.debug(f"Drained heartbeats for {len(snapshot)} clients")
        return snapshot
    
    def peek(self, client_id: str) -> int:
        """Current count for a client without closing the window."""
        with self._lock:
            return self._counts.get(client_id, 0)
    
    @property
    def client_count(self) -> int:
        """Number of clients seen in the current window."""
        with self._lock:
            return len(self._counts)
