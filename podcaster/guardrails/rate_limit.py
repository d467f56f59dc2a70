import time
from collections import defaultdict
from fastapi import HTTPException
from starlette.requests import Request


class SimpleRateLimiter:
    """Sliding-window rate limiter; in-memory (per process). Caps podcast submissions per caller.
    Why available: Each submission fans out into paid text and speech generation calls, so one client must not be able to flood the pipeline."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.storage = defaultdict(list)  # key -> [timestamps]

    def check(self, request: Request, key: str = None):
        """Raise 429 if key (default: client IP) has exceeded the limit; otherwise record the request."""
        now = time.time()
        if key is None:
            key = request.client.host if request.client else "unknown"

        # Remove expired timestamps
        self.storage[key] = [
            t for t in self.storage[key] if now - t < self.window_seconds
        ]

        if len(self.storage[key]) >= self.max_requests:
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded. Please retry later.",
            )

        self.storage[key].append(now)
