"""Periodic publishing of heartbeat metrics to a metrics sink."""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from configservice.coordinator.heartbeats import HeartbeatAggregator
from configservice.coordinator.sinks import MetricsSink, HttpMetricsSink, LoggingMetricsSink
from configservice.protocol.messages import MetricRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

HEARTBEAT_METRIC_NAME = "Heartbeats"
CLIENT_DIMENSION = "Client"


@dataclass
class PublisherConfig:
    """Configuration for heartbeat metrics publishing."""
    
    enabled: bool = False
    namespace: str = "ConfigService"
    interval_seconds: float = 60.0
    batch_size: int = 20  # records per request accepted by the sink
    publish_timeout_seconds: float = 10.0
    sink_url: Optional[str] = None
    
    def __post_init__(self):
        if self.interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {self.interval_seconds}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.publish_timeout_seconds <= 0:
            raise ValueError(
                f"publish_timeout_seconds must be positive, got {self.publish_timeout_seconds}"
            )
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PublisherConfig":
        """Create config from dictionary."""
        return cls(
            enabled=data.get("enabled", False),
            namespace=data.get("namespace", "ConfigService"),
            interval_seconds=data.get("interval_seconds", 60.0),
            batch_size=data.get("batch_size", 20),
            publish_timeout_seconds=data.get("publish_timeout_seconds", 10.0),
            sink_url=data.get("sink_url"),
        )


class PublisherState(str, Enum):
    """Lifecycle state of the publisher."""
    DORMANT = "dormant"  # publishing disabled
    IDLE = "idle"  # enabled, loop not running
    COLLECTING = "collecting"
    FLUSHING = "flushing"


def partition(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive chunks of at most size elements."""
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def create_sink(config: PublisherConfig) -> MetricsSink:
    """Build the sink described by the config."""
    if config.sink_url:
        return HttpMetricsSink(config.sink_url, timeout_seconds=config.publish_timeout_seconds)
    return LoggingMetricsSink()


class MetricsPublisher:
    """
    Publishes per-client heartbeat counts on a fixed delay.
    
    Responsibilities:
    - Count heartbeats per client while publishing is enabled
    - Every interval, drain the counts into metric records
    - Submit the records to the sink in bounded batches
    - Contain sink failures to the batch they happened in
    
    Ticks never overlap: the loop sleeps only after a tick has finished, and
    an on-demand flush() while a tick is running is skipped.
    """
    
    def __init__(
        self,
        config: PublisherConfig,
        sink: Optional[MetricsSink] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize MetricsPublisher.
        
        Args:
            config: Publisher configuration
            sink: Metrics sink (built from config if not given)
            clock: Time source for record timestamps
        """
        self.config = config
        self.sink = sink if sink is not None else create_sink(config)
        self._clock = clock
        
        self.heartbeats = HeartbeatAggregator()
        
        self._tick_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._running = False
        
        # Stats
        self._ticks = 0
        self._batches_published = 0
        self._batches_failed = 0
        self._last_tick_at: Optional[float] = None
        
        if config.enabled:
            logger.info(
                f"Metrics publisher enabled, namespace {config.namespace}, "
                f"every {config.interval_seconds}s via {type(self.sink).__name__}"
            )
        else:
            logger.info("Metrics publishing disabled")
    
    @property
    def enabled(self) -> bool:
        return self.config.enabled
    
    @property
    def state(self) -> PublisherState:
        if not self.config.enabled:
            return PublisherState.DORMANT
        if self._tick_lock.locked():
            return PublisherState.FLUSHING
        if self._running:
            return PublisherState.COLLECTING
        return PublisherState.IDLE
    
    def record_heartbeat(self, client_id: str):
        """
        Count a heartbeat from a client. Does nothing if publishing is disabled.
        
        Never blocks on the sink and never raises because of publishing.
        """
        if self.config.enabled:
            self.heartbeats.record(client_id)
    
    async def start(self):
        """Start the publish loop. No-op when publishing is disabled."""
        if not self.config.enabled:
            return
        if self._running:
            logger.warning("Metrics publisher already running")
            return
        
        self._running = True
        self._task = asyncio.create_task(self._publish_loop())
        logger.info("Metrics publisher started")
    
    async def stop(self):
        """Stop the publish loop, cancelling any publish in flight."""
        self._running = False
        
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        
        await self.sink.close()
        
        if self.config.enabled:
            logger.info("Metrics publisher stopped")
    
    async def _publish_loop(self):
        """Main publish loop."""
        while self._running:
            try:
                await asyncio.sleep(self.config.interval_seconds)
                await self.flush()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Metrics publish tick error: {e}")
    
    def build_records(self, counts: Dict[str, int]) -> List[MetricRecord]:
        """Turn drained heartbeat counts into metric records, ordered by client id."""
        now = self._clock()
        return [
            MetricRecord(
                metric_name=HEARTBEAT_METRIC_NAME,
                value=float(counts[client_id]),
                dimensions={CLIENT_DIMENSION: client_id},
                timestamp=now,
                unit="Count",
            )
            for client_id in sorted(counts)
        ]
    
    async def flush(self) -> int:
        """
        Run one publish tick.
        
        Returns:
            Number of batches delivered to the sink (0 if the tick was skipped)
        """
        if self._tick_lock.locked():
            logger.debug("Publish tick already running, skipping")
            return 0
        
        async with self._tick_lock:
            counts = self.heartbeats.drain()
            records = self.build_records(counts)
            batches = partition(records, self.config.batch_size)
            
            published = 0
            for index, batch in enumerate(batches):
                try:
                    await asyncio.wait_for(
                        self.sink.publish_batch(self.config.namespace, batch),
                        timeout=self.config.publish_timeout_seconds,
                    )
                    published += 1
                except asyncio.TimeoutError:
                    self._batches_failed += 1
                    logger.error(
                        f"Failed to publish metrics batch {index + 1}/{len(batches)}: "
                        f"timed out after {self.config.publish_timeout_seconds}s"
                    )
                except Exception as e:
                    self._batches_failed += 1
                    logger.error(
                        f"Failed to publish metrics batch {index + 1}/{len(batches)}: {e}"
                    )
            
            self._ticks += 1
            self._batches_published += published
            self._last_tick_at = self._clock()
        
        logger.debug(
            f"Publish tick: {len(records)} records, "
            f"{published}/{len(batches)} batches delivered"
        )
        return published
    
    def get_stats(self) -> Dict[str, Any]:
        """Get publisher statistics."""
        return {
            "enabled": self.config.enabled,
            "state": self.state.value,
            "ticks": self._ticks,
            "batches_published": self._batches_published,
            "batches_failed": self._batches_failed,
            "last_tick_at": self._last_tick_at,
            "pending_clients": self.heartbeats.client_count,
        }
