"""
Handshake Rate Limiting

Token bucket rate limiting for the public VR handshake endpoints.
Those endpoints authenticate only by session token, so they are the
surface exposed to token guessing; doctor endpoints sit behind
bearer auth and are not limited here.
"""

import asyncio
import ipaddress
import math
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from vrtherapy.config import get_settings
from vrtherapy.config.logging_config import get_correlation_id, get_logger
from vrtherapy.infrastructure.metrics import track_rate_limit_exceeded

logger = get_logger(__name__)


@dataclass
class RateLimitConfig:
    """Per-client budget on the handshake endpoints."""
    
    enabled: bool = True
    requests_per_minute: int = 60
    # Extra requests allowed on top of one minute's budget
    burst_size: int = 10
    # Peer addresses or networks whose X-Forwarded-For header is honoured
    trusted_proxies: tuple[str, ...] = ()
    
    @classmethod
    def from_settings(cls) -> "RateLimitConfig":
        settings = get_settings().rate_limit
        return cls(
            enabled=settings.enabled,
            requests_per_minute=settings.handshake_requests_per_minute,
            burst_size=settings.burst_size,
            trusted_proxies=tuple(settings.trusted_proxies),
        )


class TokenBucket:
    """Refills at `rate` tokens per second up to `capacity`."""
    
    def __init__(self, rate: float, capacity: int) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = float(capacity)
        self.last_update = time.monotonic()
        self._lock = asyncio.Lock()
    
    async def acquire(self, tokens: int = 1) -> bool:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.last_update
            
            self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
            self.last_update = now
            
            if self.tokens >= tokens:
                self.tokens -= tokens
                return True
            
            return False
    
    @property
    def available_tokens(self) -> int:
        return int(self.tokens)
    
    def seconds_until(self, tokens: int = 1) -> float:
        """Time until `tokens` can be acquired at the current fill level."""
        return max(0.0, (tokens - self.tokens) / self.rate)


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class RateLimiter:
    """One token bucket per client, dropped after ten idle minutes."""
    
    # Buckets idle for longer than this are dropped
    INACTIVE_SECONDS = 600
    
    def __init__(self, config: Optional[RateLimitConfig] = None) -> None:
        self.config = config or RateLimitConfig()
        self._buckets: dict[str, TokenBucket] = defaultdict(self._create_bucket)
    
    def _create_bucket(self) -> TokenBucket:
        rate = self.config.requests_per_minute / 60.0
        capacity = self.config.requests_per_minute + self.config.burst_size
        return TokenBucket(rate=rate, capacity=capacity)
    
    async def check_rate_limit(self, client_id: str, path: str) -> RateDecision:
        """Take one token from the client's bucket."""
        self._cleanup_inactive_buckets()
        bucket = self._buckets[client_id]
        
        if await bucket.acquire():
            return RateDecision(allowed=True, remaining=bucket.available_tokens)
        
        retry_after = max(1, math.ceil(bucket.seconds_until()))
        track_rate_limit_exceeded(path)
        logger.warning(
            "Rate limit exceeded",
            client_id=client_id[:8] + "...",
            path=path,
            retry_after=retry_after,
        )
        return RateDecision(allowed=False, remaining=0, retry_after=retry_after)
    
    def _cleanup_inactive_buckets(self) -> None:
        now = time.monotonic()
        inactive_keys = [
            key for key, bucket in self._buckets.items()
            if now - bucket.last_update > self.INACTIVE_SECONDS
        ]
        for key in inactive_keys:
            del self._buckets[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware limiting the token-authenticated VR endpoints.
    
    The metric label is the route prefix, never the concrete path,
    so session tokens do not leak into metrics.
    """
    
    def __init__(
        self,
        app,
        config: Optional[RateLimitConfig] = None,
        api_prefix: Optional[str] = None,
    ) -> None:
        super().__init__(app)
        self.config = config or RateLimitConfig.from_settings()
        self.limiter = RateLimiter(self.config)
        self._trusted_networks = [
            ipaddress.ip_network(proxy, strict=False) for proxy in self.config.trusted_proxies
        ]
        prefix = api_prefix or f"/api/{get_settings().api_version}"
        self.limited_prefixes = (
            f"{prefix}/sessions/vr-config/",
            f"{prefix}/vr-data/submit",
            f"{prefix}/ratings/submit",
        )
    
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = request.url.path
        matched = next((p for p in self.limited_prefixes if path.startswith(p)), None)
        if not self.config.enabled or matched is None:
            return await call_next(request)
        
        client_id = self._get_client_id(request)
        decision = await self.limiter.check_rate_limit(client_id, matched)
        
        if not decision.allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "message": "Rate limit exceeded. Please try again later.",
                    "correlation_id": get_correlation_id(),
                },
                headers={
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(decision.retry_after),
                },
            )
        
        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
    
    def _is_trusted_proxy(self, host: str) -> bool:
        try:
            address = ipaddress.ip_address(host)
        except ValueError:
            return False
        return any(address in network for network in self._trusted_networks)
    
    def _get_client_id(self, request: Request) -> str:
        """
        Client IP used as the bucket key.
        
        X-Forwarded-For is only read when the direct peer is a trusted
        proxy. The client is then the right-most hop that is not itself
        a trusted proxy, so hops prepended by the client are ignored.
        """
        client_ip = request.client.host if request.client else "unknown"
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded and self._is_trusted_proxy(client_ip):
            hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
            for hop in reversed(hops):
                client_ip = hop
                if not self._is_trusted_proxy(hop):
                    break
        
        return f"ip:{client_ip}"
