"""Metrics sinks that receive published metric batches."""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import aiohttp

from configservice.protocol.messages import MetricRecord

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """A metrics batch could not be delivered to the sink."""


class MetricsSink(ABC):
    """Destination for batches of metric records."""
    
    @abstractmethod
    async def publish_batch(self, namespace: str, records: Sequence[MetricRecord]) -> None:
        """Deliver one batch. Raises PublishError (or anything else) on failure."""
    
    async def close(self):
        """Release any resources held by the sink."""


class LoggingMetricsSink(MetricsSink):
    """Writes batches to the log. Used when no ingestion endpoint is configured."""
    
    async def publish_batch(self, namespace: str, records: Sequence[MetricRecord]) -> None:
        for record in records:
            logger.info(
                f"[{namespace}] {record.metric_name} {record.dimensions} "
                f"= {record.value:g} {record.unit}"
            )


class HttpMetricsSink(MetricsSink):
    """
    Posts batches as JSON to an HTTP metrics ingestion endpoint.
    
    Body: {"namespace": ..., "metric_data": [record, ...]}. Any non-2xx
    response or network error is raised as PublishError.
    """
    
    def __init__(self, endpoint_url: str, timeout_seconds: float = 10.0):
        """
        Initialize HttpMetricsSink.
        
        Args:
            endpoint_url: URL batches are POSTed to
            timeout_seconds: Total timeout for one POST
        """
        self.endpoint_url = endpoint_url
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None
    
    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session
    
    async def publish_batch(self, namespace: str, records: Sequence[MetricRecord]) -> None:
        session = await self._get_session()
        payload = {
            "namespace": namespace,
            "metric_data": [r.to_dict() for r in records],
        }
        
        try:
            async with session.post(
                self.endpoint_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status >= 300:
                    body = await response.text()
                    raise PublishError(
                        f"Metrics endpoint returned {response.status}: {body[:200]}"
                    )
        except aiohttp.ClientError as e:
            raise PublishError(f"Metrics endpoint unreachable: {e}") from e
    
    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None
