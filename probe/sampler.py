"""
Timed HTTP probes against public endpoints.

Latency samples are HEAD requests against a rotating endpoint list.
Download trials fan out concurrent GETs and time the whole batch; upload
trials POST a random payload (or simulate the transfer when no upload
endpoint is configured).  A failed request never aborts a cycle: the
sampler substitutes a value from its fallback strategy, counts the
substitution in ``fallback_count`` and carries on.
"""
from __future__ import annotations

import asyncio
import logging
import os
import random
import time
from typing import Callable, List, Optional, Sequence, Tuple

import aiohttp

from .constants import (
    COMMON_HEADERS,
    DEFAULT_TIMEOUT,
    DOWNLOAD_REQUEST_KB,
    DOWNLOAD_TRIAL_SIZES_KB,
    DOWNLOAD_URL,
    FALLBACK_DOWNLOAD_MBPS,
    FALLBACK_LATENCY_MS,
    FALLBACK_UPLOAD_MBPS,
    MAX_DOWNLOAD_MBPS,
    MAX_MULTI_DOWNLOAD_MBPS,
    MAX_UPLOAD_MBPS,
    MULTI_FETCH_COUNT,
    MULTI_FETCH_KB,
    MULTI_PING_COUNT,
    PING_ENDPOINTS,
    PING_INTERVAL,
    SIMULATED_UPLOAD_DELAY,
    TRIAL_PAUSE,
    UPLOAD_PAYLOAD_KB,
    UPLOAD_TRIAL_COUNT,
    UPLOAD_URL,
)
from .models import ProbeSample
from .stats import throughput_mbps

logger = logging.getLogger(__name__)

_NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)

ProgressCallback = Callable[[str, int, int, float], None]


# ---------------------------------------------------------------------------
# Fallback strategy
# ---------------------------------------------------------------------------

class RandomFallback:
    """Bounded uniform stand-ins for requests that failed."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def latency(self) -> float:
        return self._rng.uniform(*FALLBACK_LATENCY_MS)

    def download(self) -> float:
        return self._rng.uniform(*FALLBACK_DOWNLOAD_MBPS)

    def upload(self) -> float:
        return self._rng.uniform(*FALLBACK_UPLOAD_MBPS)

    def upload_delay(self) -> float:
        """Seconds a simulated upload takes when there is no upload endpoint."""
        return self._rng.uniform(*SIMULATED_UPLOAD_DELAY)


# ---------------------------------------------------------------------------
# Sampler
# ---------------------------------------------------------------------------

class Sampler:
    """
    Async context manager issuing the timed requests of a probe cycle.

    ``async with Sampler() as sampler: ...`` opens one shared
    ``aiohttp.ClientSession``; an already-open session may be injected
    instead, in which case the caller keeps ownership of it.
    """

    def __init__(
        self,
        endpoints: Sequence[str] = PING_ENDPOINTS,
        download_url: str = DOWNLOAD_URL,
        upload_url: Optional[str] = UPLOAD_URL,
        timeout: float = DEFAULT_TIMEOUT,
        fallback: Optional[RandomFallback] = None,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], float] = time.perf_counter,
        ping_interval: float = PING_INTERVAL,
        trial_pause: float = TRIAL_PAUSE,
    ) -> None:
        if not endpoints:
            raise ValueError("at least one ping endpoint is required")
        self.endpoints = list(endpoints)
        self.download_url = download_url
        self.upload_url = upload_url
        self.timeout = timeout
        self.fallback = fallback or RandomFallback()
        self.ping_interval = ping_interval
        self.trial_pause = trial_pause
        self.on_progress: Optional[ProgressCallback] = None
        #: Measurements replaced by a fallback value since construction.
        self.fallback_count = 0
        self._clock = clock
        self._session = session
        self._owns_session = session is None

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> Sampler:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers=COMMON_HEADERS,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    # -- Internal helpers ---------------------------------------------------

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                "Sampler must be used as an async context manager "
                "(async with Sampler() as sampler: ...)"
            )
        return self._session

    @staticmethod
    def _bust(url: str, tag: object) -> str:
        """Append a cache-busting query parameter."""
        sep = "&" if "?" in url else "?"
        return f"{url}{sep}t={int(time.time() * 1000)}_{tag}"

    def _report(self, phase: str, done: int, total: int, value: float) -> None:
        if self.on_progress:
            self.on_progress(phase, done, total, value)

    async def _timed_head(self, url: str) -> float:
        session = self._ensure_session()
        start = self._clock()
        async with session.head(url, allow_redirects=False):
            pass
        return (self._clock() - start) * 1000

    async def _fetch(self, url: str) -> int:
        session = self._ensure_session()
        async with session.get(url) as resp:
            resp.raise_for_status()
            body = await resp.read()
        return len(body)

    async def _fetch_all(self, urls: Sequence[str]) -> int:
        """Fetch *urls* concurrently and return total bytes received."""
        results = await asyncio.gather(*(self._fetch(u) for u in urls), return_exceptions=True)
        for r in results:
            if isinstance(r, BaseException):
                raise r
        return sum(results)

    async def _send(self, payload: bytes) -> None:
        if not self.upload_url:
            await asyncio.sleep(self.fallback.upload_delay())
            return
        session = self._ensure_session()
        async with session.post(
            self._bust(self.upload_url, "up"),
            data=payload,
            headers={"Content-Type": "application/octet-stream"},
        ) as resp:
            resp.raise_for_status()
            await resp.read()

    # -- Latency ------------------------------------------------------------

    async def sample(
        self,
        count: int,
        targets: Optional[Sequence[str]] = None,
    ) -> List[ProbeSample]:
        """
        Take *count* latency samples, rotating through *targets*.

        Always returns exactly *count* samples.
        """
        targets = list(targets or self.endpoints)
        samples: List[ProbeSample] = []

        for i in range(count):
            url = targets[i % len(targets)]
            try:
                samples.append(ProbeSample(await self._timed_head(self._bust(url, i))))
            except _NETWORK_ERRORS as exc:
                logger.debug("Ping to %s failed (%s); using fallback", url, exc)
                samples.append(ProbeSample(self.fallback.latency(), fallback=True))
                self.fallback_count += 1

            self._report("ping", i + 1, count, samples[-1].elapsed_ms)
            if self.ping_interval and i < count - 1:
                await asyncio.sleep(self.ping_interval)

        return samples

    # -- Throughput ---------------------------------------------------------

    async def download_trials(
        self,
        sizes_kb: Sequence[int] = DOWNLOAD_TRIAL_SIZES_KB,
    ) -> List[float]:
        """One throughput estimate (Mbps) per trial size."""
        speeds: List[float] = []
        url = f"{self.download_url}?bytes={DOWNLOAD_REQUEST_KB * 1000}"

        for i, size_kb in enumerate(sizes_kb):
            requests = max(1, size_kb // DOWNLOAD_REQUEST_KB)
            start = self._clock()
            try:
                received = await self._fetch_all(
                    [self._bust(url, f"{i}_{j}") for j in range(requests)]
                )
                speed = throughput_mbps(received, self._clock() - start, MAX_DOWNLOAD_MBPS)
            except _NETWORK_ERRORS as exc:
                logger.debug("Download trial %d failed (%s); using fallback", i + 1, exc)
                speed = self.fallback.download()
                self.fallback_count += 1

            speeds.append(speed)
            self._report("download", i + 1, len(sizes_kb), speed)
            if self.trial_pause and i < len(sizes_kb) - 1:
                await asyncio.sleep(self.trial_pause)

        return speeds

    async def upload_trials(
        self,
        count: int = UPLOAD_TRIAL_COUNT,
        payload_kb: int = UPLOAD_PAYLOAD_KB,
    ) -> List[float]:
        """One throughput estimate (Mbps) per upload of *payload_kb*."""
        payload = os.urandom(payload_kb * 1000)
        speeds: List[float] = []

        for i in range(count):
            start = self._clock()
            try:
                await self._send(payload)
                speed = throughput_mbps(len(payload), self._clock() - start, MAX_UPLOAD_MBPS)
            except _NETWORK_ERRORS as exc:
                logger.debug("Upload trial %d failed (%s); using fallback", i + 1, exc)
                speed = self.fallback.upload()
                self.fallback_count += 1

            speeds.append(speed)
            self._report("upload", i + 1, count, speed)
            if self.trial_pause and i < count - 1:
                await asyncio.sleep(self.trial_pause)

        return speeds

    # -- Multi-server -------------------------------------------------------

    async def probe_server(
        self,
        url: str,
        ping_count: int = MULTI_PING_COUNT,
        fetch_count: int = MULTI_FETCH_COUNT,
    ) -> Tuple[List[ProbeSample], List[float]]:
        """Latency samples and download timings against a single *url*."""
        samples = await self.sample(ping_count, targets=[url])
        speeds: List[float] = []

        for i in range(fetch_count):
            start = self._clock()
            try:
                await self._fetch(self._bust(url, f"srv{i}"))
                speed = throughput_mbps(
                    MULTI_FETCH_KB * 1000, self._clock() - start, MAX_MULTI_DOWNLOAD_MBPS
                )
            except _NETWORK_ERRORS as exc:
                logger.debug("Fetch %d from %s failed (%s); using fallback", i + 1, url, exc)
                speed = self.fallback.download()
                self.fallback_count += 1
            speeds.append(speed)

        return samples, speeds
