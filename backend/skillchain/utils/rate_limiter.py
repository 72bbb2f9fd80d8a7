"""
Simple memory-based rate limiter.
Guards endpoints that spend money (ledger lookups, AI generation) per client IP.
"""
import time
from fastapi import Request, HTTPException
from typing import Dict, Tuple

# In-memory storage: {(scope, ip): (timestamp, count)}
_rate_limit_store: Dict[Tuple[str, str], Tuple[float, int]] = {}


def rate_limit(requests: int, window: int, scope: str = "default"):
    """
    Dependency for rate limiting.
    Example: Depends(rate_limit(requests=5, window=60, scope="generate"))
    """
    def limiter(request: Request):
        ip = request.client.host if request.client else "unknown"
        key = (scope, ip)
        now = time.time()

        if key not in _rate_limit_store:
            _rate_limit_store[key] = (now, 1)
            return True

        last_ts, count = _rate_limit_store[key]

        # Reset window if expired
        if now - last_ts > window:
            _rate_limit_store[key] = (now, 1)
            return True

        if count >= requests:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded. Try again in {int(window - (now - last_ts))} seconds."
            )

        _rate_limit_store[key] = (last_ts, count + 1)
        return True

    return limiter


def reset_rate_limits():
    """Forget all recorded requests."""
    _rate_limit_store.clear()
