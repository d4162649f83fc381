# ============================================================================
# EXTERNAL DEPENDENCY HEALTH CHECKS
# ============================================================================
# STATUS: Infrastructure - HTTP reachability checks
# PURPOSE: Optional external services (log aggregation)
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
External Dependency Health Checks

UrlReachabilityCheck issues a GET against a configured URL. Any 2xx is
Healthy; anything else, a transport error or a request that outlives
timeout_seconds in total is Unhealthy. The registry
maps Unhealthy to the registration's failure status (Degraded for loki).
"""

import asyncio
import logging
from typing import Optional

import httpx

from core.logging import ComponentType, get_logger
from health.core import HealthCheckPlugin, HealthCheckResult


class UrlReachabilityCheck(HealthCheckPlugin):
    """HTTP GET reachability check."""

    def __init__(
        self,
        name: str,
        url: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.LoggerAdapter] = None,
    ):
        self.name = name
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self.logger = logger or get_logger(__name__, ComponentType.HEALTH)

    async def check(self) -> HealthCheckResult:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                # httpx times each phase separately; bound the whole request
                response = await asyncio.wait_for(
                    client.get(self.url),
                    timeout=self.timeout_seconds,
                )

        except (httpx.TimeoutException, asyncio.TimeoutError):
            self.logger.warning(f"{self.name} did not respond within {self.timeout_seconds}s")
            return HealthCheckResult.unhealthy(
                f"{self.name} health check timed out",
                url=self.url,
            )

        except httpx.HTTPError as e:
            self.logger.warning(f"Cannot reach {self.name} at {self.url}: {e!r}")
            return HealthCheckResult.from_exception(
                e,
                description=f"Cannot reach {self.name}",
                url=self.url,
            )

        if not response.is_success:
            return HealthCheckResult.unhealthy(
                f"{self.name} returned status {response.status_code}",
                url=self.url,
                status_code=response.status_code,
            )

        return HealthCheckResult.healthy(
            f"{self.name} is reachable",
            url=self.url,
            status_code=response.status_code,
        )


__all__ = [
    "UrlReachabilityCheck",
]
