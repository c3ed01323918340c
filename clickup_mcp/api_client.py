"""
Centralized ClickUp API Client for the Time Reports MCP Server

1. requests.Session with HTTP keep-alive & connection pooling
2. Thread-safe token-bucket rate limiter
3. In-memory TTL cache (workspace members, list lookups)
4. Automatic retry with exponential backoff for transient errors

Every call returns (data, error_or_None) and never raises.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from time_reports.config import BASE_URL, CLICKUP_API_TOKEN, CLICKUP_TEAM_ID

logger = logging.getLogger("clickup-api")


# ============================================================================
# RATE LIMITER
# ============================================================================


class RateLimiter:
    """
    Token bucket shared by every request thread.

    ClickUp allows 100 requests per minute per token; the bucket refills at
    that rate and holds a small burst so paged fetches start quickly.
    """

    def __init__(self, requests_per_minute: int = 100, burst: int = 15):
        self.per_second = requests_per_minute / 60.0
        self.burst = max(1, burst)
        self.tokens = float(self.burst)
        self.last = time.time()
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Take one token, sleeping if the bucket is empty. Returns seconds waited."""
        with self._lock:
            now = time.time()
            self.tokens = min(
                self.burst, self.tokens + (now - self.last) * self.per_second
            )
            self.last = now

            if self.tokens >= 1:
                self.tokens -= 1
                return 0.0

            wait = (1 - self.tokens) / self.per_second
            self.tokens = 0.0

        # Sleep outside the lock so other threads can refill/check
        time.sleep(wait)
        return wait


# ============================================================================
# TTL CACHE
# ============================================================================


class TTLCache:
    """Thread-safe in-memory TTL cache for API responses."""

    def __init__(self):
        self._data: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry and time.time() < entry[1]:
                return entry[0]
            if entry:
                del self._data[key]
            return None

    def set(self, key: str, val: Any, ttl: int):
        with self._lock:
            self._data[key] = (val, time.time() + ttl)


# ============================================================================
# CLICKUP API CLIENT
# ============================================================================


def _error_message(r: requests.Response) -> str:
    try:
        body = r.json()
        detail = body.get("err") or body.get("error") if isinstance(body, dict) else None
    except ValueError:
        detail = None
    return f"API {r.status_code}: {detail or r.text[:200]}"


class ClickUpClient:
    """
    ClickUp REST client.

    - Connection pooling via requests.Session
    - Rate limiting shared across threads
    - Automatic retries with backoff on 429 / 5xx
    """

    def __init__(
        self,
        api_token: Optional[str] = CLICKUP_API_TOKEN,
        team_id: Optional[str] = CLICKUP_TEAM_ID,
        base_url: str = BASE_URL,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": api_token or "",
                "Content-Type": "application/json",
            }
        )

        retry_strategy = Retry(
            total=5,
            connect=5,
            read=3,
            backoff_factor=1.0,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST", "PUT", "DELETE"],
            raise_on_status=False,
            raise_on_redirect=False,
        )
        adapter = HTTPAdapter(
            pool_connections=10,
            pool_maxsize=10,
            max_retries=retry_strategy,
        )
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

        self.limiter = RateLimiter()
        self.cache = TTLCache()
        self._team_id = team_id

    # ------------------------------------------------------------------
    # Core HTTP Methods
    # ------------------------------------------------------------------

    def get(
        self,
        endpoint: str,
        params=None,
        timeout: int = 30,
        cache_ttl: int = 0,
    ) -> Tuple[Optional[Dict], Optional[str]]:
        """GET with optional TTL caching. Returns (data, error_or_None)."""
        cache_key = None
        if cache_ttl > 0:
            cache_key = f"G:{endpoint}:{params}"
            hit = self.cache.get(cache_key)
            if hit is not None:
                return hit, None

        self.limiter.acquire()
        try:
            r = self.session.get(
                f"{self.base_url}{endpoint}", params=params, timeout=timeout
            )
            if r.status_code == 200:
                d = r.json()
                if cache_key:
                    self.cache.set(cache_key, d, cache_ttl)
                return d, None
            return None, _error_message(r)
        except Exception as e:
            logger.warning(f"⚠️ GET {endpoint} failed: {e}")
            return None, str(e)

    def post(
        self, endpoint: str, payload=None, params=None, timeout: int = 30
    ) -> Tuple[Optional[Dict], Optional[str]]:
        self.limiter.acquire()
        try:
            r = self.session.post(
                f"{self.base_url}{endpoint}",
                json=payload,
                params=params,
                timeout=timeout,
            )
            return (
                (r.json(), None)
                if r.status_code in (200, 201)
                else (None, _error_message(r))
            )
        except Exception as e:
            logger.warning(f"⚠️ POST {endpoint} failed: {e}")
            return None, str(e)

    def delete(
        self, endpoint: str, timeout: int = 30
    ) -> Tuple[Optional[Dict], Optional[str]]:
        self.limiter.acquire()
        try:
            r = self.session.delete(f"{self.base_url}{endpoint}", timeout=timeout)
            return (
                ({}, None)
                if r.status_code in (200, 204)
                else (None, _error_message(r))
            )
        except Exception as e:
            logger.warning(f"⚠️ DELETE {endpoint} failed: {e}")
            return None, str(e)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get_team_id(self) -> Tuple[Optional[str], Optional[str]]:
        """Returns (workspace/team ID, error). Cached after first call."""
        if self._team_id:
            return str(self._team_id), None
        d, err = self.get("/team", cache_ttl=3600)
        if err:
            return None, err
        if d and d.get("teams"):
            self._team_id = str(d["teams"][0]["id"])
            return self._team_id, None
        return None, "No teams found"


# ============================================================================
# MODULE-LEVEL SINGLETON (created on first use)
# ============================================================================

_client: Optional[ClickUpClient] = None
_client_lock = threading.Lock()


def get_client() -> ClickUpClient:
    global _client
    with _client_lock:
        if _client is None:
            _client = ClickUpClient()
        return _client
