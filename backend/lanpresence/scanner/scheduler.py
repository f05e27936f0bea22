import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from .errors import ScanError
from .fingerprint import HASH_ITERATIONS, DeviceFingerprint, match_fingerprints
from .orchestrator import COLLECT_GRACE, scan
from .presence import PresenceCache
from .resolver import Resolver

logger = logging.getLogger(__name__)

FingerprintSource = Callable[[], Awaitable[Sequence[DeviceFingerprint]]]


@dataclass
class CycleResult:
    """Outcome of one scan cycle."""
    finished_at: datetime
    success: bool
    addresses_found: int = 0
    users_present: int = 0
    error: Optional[str] = None


class PresenceScanner:
    """Runs scan cycles and keeps the presence cache up to date."""

    def __init__(
        self,
        resolver: Resolver,
        fingerprint_source: FingerprintSource,
        cache: Optional[PresenceCache] = None,
        grace: float = COLLECT_GRACE,
        hash_iterations: int = HASH_ITERATIONS,
    ):
        self.resolver = resolver
        self.fingerprint_source = fingerprint_source
        self.cache = cache if cache is not None else PresenceCache()
        self.grace = grace
        self.hash_iterations = hash_iterations
        self.last_cycle: Optional[CycleResult] = None
        self._scan_task: Optional[asyncio.Task] = None
        self._cycle_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._scan_task is not None and not self._scan_task.done()

    def is_user_present(self, user_id: int) -> bool:
        return self.cache.is_present(user_id)

    async def run_cycle(self, interface: str, cidr: str) -> bool:
        """
        One full cycle: probe, match, replace the cache.

        A failed cycle is logged, recorded in ``last_cycle`` and leaves the
        cache untouched. No exception leaves a cycle.
        """
        async with self._cycle_lock:
            try:
                macs = await scan(self.resolver, interface, cidr, grace=self.grace)
                fingerprints = await self.fingerprint_source()
                # CPU bound
                present = await asyncio.to_thread(
                    match_fingerprints, macs, fingerprints, self.hash_iterations
                )
            except (ScanError, SQLAlchemyError) as e:
                logger.error("Scan cycle on %s (%s) failed: %s", interface, cidr, e)
                self._record_failure(e)
                return False
            except Exception as e:
                logger.exception("Unexpected error in scan cycle on %s (%s)", interface, cidr)
                self._record_failure(e)
                return False

            self.cache.replace(present)
            self.last_cycle = CycleResult(
                finished_at=datetime.now(timezone.utc),
                success=True,
                addresses_found=len(macs),
                users_present=len(present),
            )
            logger.info(
                "Scan cycle done: %d addresses answered, %d users present (%d registered devices)",
                len(macs), len(present), len(fingerprints),
            )
            return True

    def _record_failure(self, error: Exception) -> None:
        self.last_cycle = CycleResult(
            finished_at=datetime.now(timezone.utc), success=False, error=str(error) or type(error).__name__
        )

    async def start(self, interface: str, cidr: str, interval: float) -> None:
        """Run one cycle now, then keep scanning every ``interval`` seconds."""
        if self.running:
            return
        await self.run_cycle(interface, cidr)
        self._scan_task = asyncio.create_task(self._scan_loop(interface, cidr, interval))

    async def stop(self) -> None:
        if self._scan_task:
            self._scan_task.cancel()
            try:
                await self._scan_task
            except asyncio.CancelledError:
                pass
            self._scan_task = None

    async def _scan_loop(self, interface: str, cidr: str, interval: float) -> None:
        loop = asyncio.get_running_loop()
        next_run = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_run - loop.time()))
            next_run += interval
            try:
                await self.run_cycle(interface, cidr)
            except Exception:
                logger.exception("Unexpected error in scan cycle")
            # A cycle longer than the interval starts the next one right away
            next_run = max(next_run, loop.time())
