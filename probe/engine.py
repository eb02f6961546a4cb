"""
Probe-cycle orchestration.

A :class:`ProbeEngine` owns nothing global: it is built around an injected
:class:`~probe.history.HistoryStore` and :class:`~probe.sampler.Sampler`
(or any object with the same coroutine methods and a ``fallback_count``),
so tests can swap in doubles for both.  Listeners registered with
:meth:`ProbeEngine.subscribe` receive progress events and notifications
while a cycle runs.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from .analytics import Window, best_of, summarize
from .constants import CONSISTENCY_WINDOW, DEFAULT_PING_COUNT, MULTI_SERVERS, MULTI_UPLOAD_RATIO
from .estimator import estimate_latency, estimate_throughput
from .events import ERROR, SUCCESS, WARNING, Event, Listener, Notification, ProgressEvent
from .exceptions import CycleCancelled, PersistenceError, ProbeError
from .history import HistoryStore
from .models import AnalyticsSummary, ProbeResult, ServerResult, now_local
from .sampler import Sampler
from .scoring import consistency, score, signal_quality

logger = logging.getLogger(__name__)

# phase -> (start percent, span, label) for per-sample progress
_PHASES = {
    "ping": (10.0, 20.0, "Testing ping..."),
    "download": (30.0, 40.0, "Testing download..."),
    "upload": (70.0, 20.0, "Testing upload..."),
}


class ProbeEngine:
    """Runs probe cycles one at a time and records their results."""

    def __init__(
        self,
        store: HistoryStore,
        sampler: Sampler,
        ping_count: int = DEFAULT_PING_COUNT,
        servers: Sequence[Dict[str, str]] = MULTI_SERVERS,
    ) -> None:
        self.store = store
        self.sampler = sampler
        self.ping_count = ping_count
        self.servers = list(servers)
        self._listeners: List[Listener] = []
        self._running = False
        self._stop: Optional[asyncio.Event] = None
        self._per_sample_progress = True
        self.sampler.on_progress = self._on_sample

    # -- Events -------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: Event) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _progress(self, phase: str, percent: float, message: str) -> None:
        self._emit(ProgressEvent(phase=phase, percent=percent, message=message))

    def _notify(self, message: str, level: str) -> None:
        self._emit(Notification(message=message, level=level))

    def _report_estimates(self, before: int, total: int) -> None:
        """Warn when fallback values stood in for failed requests this cycle."""
        estimated = self.sampler.fallback_count - before
        if estimated <= 0:
            return
        logger.info("%d of %d measurements used fallback values", estimated, total)
        self._notify(
            f"Network requests failed: {estimated} of {total} measurements were estimated",
            WARNING,
        )

    def _on_sample(self, phase: str, done: int, total: int, value: float) -> None:
        if not self._per_sample_progress or phase not in _PHASES:
            return
        start, span, label = _PHASES[phase]
        self._progress(phase, start + span * done / total, f"{label} {done}/{total}")

    # -- Control ------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self) -> bool:
        """Ask the running cycle to stop.  Returns False when idle."""
        if not self._running or self._stop is None:
            return False
        self._stop.set()
        return True

    async def start_test(self) -> Optional[ProbeResult]:
        """
        Run ping, download and upload sampling and record the result.

        Returns None when a cycle is already running, when it was stopped,
        or when it failed; the reason is reported as a notification.
        """
        return await self._guarded(self._run_cycle, "Speed test completed successfully!")

    async def start_multi_server_test(self) -> Optional[ProbeResult]:
        """Probe every configured server and record the best of each metric."""
        return await self._guarded(self._run_multi_server, "Multi-server test completed!")

    async def _guarded(
        self,
        runner: Callable[[], Awaitable[ProbeResult]],
        success_message: str,
    ) -> Optional[ProbeResult]:
        if self._running:
            logger.debug("Ignoring start request: a cycle is already running")
            return None

        self._running = True
        self._stop = asyncio.Event()
        try:
            self._progress("init", 0.0, "Initializing test...")
            result = await self._until_stopped(runner())
        except CycleCancelled:
            logger.info("Probe cycle stopped by user")
            self._notify("Speed test stopped", WARNING)
            return None
        except Exception:
            logger.exception("Probe cycle failed")
            self._notify("Speed test failed. Please try again.", ERROR)
            return None
        finally:
            self._running = False
            self._stop = None
            self._per_sample_progress = True

        self._record(result)
        self._progress("complete", 100.0, "Test completed!")
        self._notify(success_message, SUCCESS)
        return result

    async def _until_stopped(self, coro: Awaitable[ProbeResult]) -> ProbeResult:
        """Await *coro* unless stop() is called first; then abandon it."""
        task = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
        if task not in done:
            raise CycleCancelled()
        return task.result()

    def _record(self, result: ProbeResult) -> None:
        try:
            self.store.append(result)
        except PersistenceError as exc:
            logger.warning("Result kept in memory only: %s", exc)
            self._notify("Could not save test history; results kept for this session", WARNING)

    # -- Cycles -------------------------------------------------------------

    async def _run_cycle(self) -> ProbeResult:
        before = self.sampler.fallback_count
        self._progress("ping", 10.0, "Testing ping and latency...")
        samples = await self.sampler.sample(self.ping_count)
        latency = estimate_latency(samples)

        self._progress("download", 30.0, "Testing download speed...")
        downloads = await self.sampler.download_trials()

        self._progress("upload", 70.0, "Testing upload speed...")
        uploads = await self.sampler.upload_trials()
        self._report_estimates(before, len(samples) + len(downloads) + len(uploads))

        quality, steadiness = score(latency, self.store.all())
        return ProbeResult(
            timestamp=now_local(),
            ping=latency.ping,
            jitter=latency.jitter,
            packet_loss=latency.packet_loss,
            download_speed=estimate_throughput(downloads),
            upload_speed=estimate_throughput(uploads),
            signal_quality=quality,
            consistency=steadiness,
        )

    async def _run_multi_server(self) -> ProbeResult:
        if not self.servers:
            raise ProbeError("No servers configured for a multi-server test")

        self._per_sample_progress = False
        results: List[ServerResult] = []
        before = self.sampler.fallback_count
        measured = 0
        step = 90.0 / len(self.servers)

        for i, server in enumerate(self.servers):
            name, url = server["name"], server["url"]
            self._progress("multi", i * step, f"Testing {name}...")
            samples, speeds = await self.sampler.probe_server(url)
            measured += len(samples) + len(speeds)
            latency = estimate_latency(samples)
            download = estimate_throughput(speeds)
            results.append(ServerResult(
                name=name,
                url=url,
                ping=latency.ping,
                jitter=latency.jitter,
                packet_loss=latency.packet_loss,
                download_speed=download,
                upload_speed=download * MULTI_UPLOAD_RATIO,
                signal_quality=signal_quality(latency.ping, latency.jitter, latency.packet_loss),
            ))

        self._report_estimates(before, measured)
        self._progress("multi", 90.0, "Analyzing results...")
        recent = [r.download_speed for r in self.store.recent(CONSISTENCY_WINDOW)]
        return best_of(results, consistency=consistency(recent))

    # -- Analytics ----------------------------------------------------------

    def summary(self, window: Window = Window.ALL) -> AnalyticsSummary:
        return summarize(self.store.all(), window)
