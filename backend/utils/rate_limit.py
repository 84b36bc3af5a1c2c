"""
Rate limiting for generation service calls

Every call to the generation service passes through a RateLimiter first.
The limiter enforces two rules at once:
- At most `limit` admissions inside any trailing window of `window_seconds`
- At least `min_interval_seconds` between consecutive admissions

Features:
- Window state persisted after every admission, so limits survive restarts
- State reloaded on every decision, so independent processes sharing the
  same store cooperatively respect one budget
- File store (default, keyed by working directory) or Redis store (shared
  across hosts, guarded by a Redis lock)
- In-process callers admitted one at a time, in arrival order
"""
import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

import redis

from config import (
    RATE_LIMIT_MAX_CALLS,
    RATE_LIMIT_WINDOW_SECONDS,
    RATE_LIMIT_MIN_INTERVAL_SECONDS,
    RATE_LIMIT_SAFETY_MARGIN_SECONDS,
    RATE_LIMIT_STATE_FILE,
    RATE_LIMIT_REDIS_URL,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Window State
# =============================================================================
@dataclass
class WindowState:
    """Admission timestamps (epoch seconds) inside the trailing window"""
    queue: List[float] = field(default_factory=list)
    last_request_time: float = 0.0

    def to_payload(self) -> Dict[str, object]:
        """Persisted form: epoch milliseconds, camelCase keys"""
        return {
            "queue": [int(round(t * 1000)) for t in self.queue],
            "lastRequestTime": int(round(self.last_request_time * 1000)),
        }

    @classmethod
    def from_payload(cls, data: Dict[str, object]) -> "WindowState":
        state = cls()
        queue = data.get("queue") if isinstance(data, dict) else None
        if isinstance(queue, list):
            state.queue = sorted(float(t) / 1000 for t in queue if isinstance(t, (int, float)))
        last = data.get("lastRequestTime") if isinstance(data, dict) else None
        if isinstance(last, (int, float)):
            state.last_request_time = float(last) / 1000
        return state


def default_state_path(cwd: Optional[str] = None) -> Path:
    """Persistence path derived from the working directory of the invoking process"""
    digest = hashlib.sha1((cwd or os.getcwd()).encode("utf-8")).hexdigest()[:12]
    return Path(tempfile.gettempdir()) / f"page-agent-ratelimit-{digest}.json"


# =============================================================================
# File Store (default)
# =============================================================================
_path_locks: Dict[str, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _path_locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _path_locks[key] = lock
        return lock


class FileWindowStore:
    """
    Window state in a JSON file

    Writes go to a temp file in the same directory and are swapped in with
    os.replace, so a reader never sees a half-written file. Limiters in the
    same process that point at the same path share one lock.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_state_path()
        self._lock = _lock_for(self.path)

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    def load(self) -> WindowState:
        if not self.path.exists():
            return WindowState()
        try:
            return WindowState.from_payload(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            logger.warning(f"[RateLimiter] Unreadable state file {self.path}: {e}. Starting with an empty window.")
            return WindowState()

    def save(self, state: WindowState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=str(self.path.parent),
                prefix=self.path.name,
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(state.to_payload(), f)
            os.replace(tmp_name, self.path)
            tmp_name = None
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)


# =============================================================================
# Redis Store (shared across hosts)
# =============================================================================
class RedisWindowStore:
    """
    Window state under a Redis key

    Read-modify-write is wrapped in a Redis lock so every process on every
    host that shares the key sees one budget.

    Local fallback when Redis is unavailable: lock, load and save switch to
    a FileWindowStore so admissions keep being rate limited per host.
    """

    def __init__(
        self,
        client: "redis.Redis",
        key: str = "page-agent:ratelimit",
        lock_timeout: float = 10.0,
        fallback: Optional[FileWindowStore] = None,
    ):
        self.client = client
        self.key = key
        self.lock_timeout = lock_timeout
        self.fallback = fallback if fallback is not None else FileWindowStore()
        self._failure_logged = False

    def _redis_failed(self, operation: str, error: Exception) -> None:
        # Log once per outage
        if not self._failure_logged:
            logger.warning(
                f"[RateLimiter] Redis {operation} failed: {error}. "
                f"Using local fallback at {self.fallback.path}"
            )
            self._failure_logged = True

    def _redis_ok(self) -> None:
        if self._failure_logged:
            logger.info("[RateLimiter] Redis available again")
            self._failure_logged = False

    @contextmanager
    def locked(self) -> Iterator[None]:
        lock = self.client.lock(f"{self.key}:lock", timeout=self.lock_timeout, blocking_timeout=self.lock_timeout)
        try:
            acquired = lock.acquire()
        except redis.exceptions.RedisError as e:
            self._redis_failed("lock", e)
            acquired = False
        else:
            if not acquired:
                self._redis_failed("lock", TimeoutError(f"not acquired within {self.lock_timeout}s"))

        if not acquired:
            with self.fallback.locked():
                yield
            return

        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.RedisError as e:
                self._redis_failed("unlock", e)

    def load(self) -> WindowState:
        try:
            raw = self.client.get(self.key)
        except redis.exceptions.RedisError as e:
            self._redis_failed("read", e)
            return self.fallback.load()
        self._redis_ok()
        if not raw:
            return WindowState()
        try:
            return WindowState.from_payload(json.loads(raw))
        except ValueError as e:
            logger.warning(f"[RateLimiter] Corrupt window state at {self.key}: {e}. Starting with an empty window.")
            return WindowState()

    def save(self, state: WindowState) -> None:
        try:
            self.client.set(self.key, json.dumps(state.to_payload()))
        except redis.exceptions.RedisError as e:
            self._redis_failed("write", e)
            self.fallback.save(state)


# =============================================================================
# Rate Limiter
# =============================================================================
class RateLimiter:
    """
    Sliding-window limiter with minimum spacing between admissions

    Example:
        limiter = RateLimiter(limit=4, window_seconds=60, min_interval_seconds=3)
        limiter.acquire()  # blocks until a slot is free
        model.invoke(...)
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        min_interval_seconds: float = 0.0,
        store=None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        safety_margin_seconds: float = 1.0,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self.min_interval_seconds = max(0.0, min_interval_seconds)
        self.safety_margin_seconds = max(0.0, safety_margin_seconds)
        self.store = store if store is not None else FileWindowStore()
        self._clock = clock
        self._sleep = sleep
        # Held across waits so in-process callers are admitted in arrival order
        self._turnstile = threading.Lock()

        logger.info(
            f"[RateLimiter] Initialized with limit {limit}/{window_seconds}s, "
            f"min interval {self.min_interval_seconds}s, store: {getattr(self.store, 'path', None) or type(self.store).__name__}"
        )

    def acquire(self) -> float:
        """
        Block until a call slot is free

        Returns:
            Admission timestamp (epoch seconds)
        """
        with self._turnstile:
            while True:
                with self.store.locked():
                    state = self.store.load()
                    now = self._clock()
                    state.queue = [t for t in state.queue if now - t < self.window_seconds]

                    effective_last = max(state.last_request_time, state.queue[-1] if state.queue else 0.0)
                    since_last = now - effective_last

                    if since_last < self.min_interval_seconds:
                        wait = self.min_interval_seconds - since_last
                        logger.debug(f"[RateLimiter] Smoothing interval: waiting {wait:.2f}s")
                    elif len(state.queue) < self.limit:
                        state.queue.append(now)
                        state.last_request_time = now
                        self.store.save(state)
                        logger.info(f"[RateLimiter] Token acquired. Queue size: {len(state.queue)}/{self.limit}")
                        return now
                    else:
                        oldest = state.queue[0]
                        wait = self.window_seconds - (now - oldest) + self.safety_margin_seconds
                        logger.info(
                            f"[RateLimiter] Limit reached ({self.limit}/{self.window_seconds}s). "
                            f"Waiting {wait:.1f}s (queue: {len(state.queue)})"
                        )

                self._sleep(max(wait, 0.0))


def create_rate_limiter() -> RateLimiter:
    """Build the process-wide generation rate limiter from configuration"""
    if RATE_LIMIT_REDIS_URL:
        client = redis.from_url(RATE_LIMIT_REDIS_URL, decode_responses=True, socket_timeout=2.0)
        store = RedisWindowStore(client)
    else:
        store = FileWindowStore(Path(RATE_LIMIT_STATE_FILE) if RATE_LIMIT_STATE_FILE else None)

    return RateLimiter(
        limit=RATE_LIMIT_MAX_CALLS,
        window_seconds=RATE_LIMIT_WINDOW_SECONDS,
        min_interval_seconds=RATE_LIMIT_MIN_INTERVAL_SECONDS,
        store=store,
        safety_margin_seconds=RATE_LIMIT_SAFETY_MARGIN_SECONDS,
    )


__all__ = [
    "RateLimiter",
    "WindowState",
    "FileWindowStore",
    "RedisWindowStore",
    "default_state_path",
    "create_rate_limiter",
]
