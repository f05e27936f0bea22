import asyncio
import logging
import time
from typing import Optional

from .errors import InterfaceNotFoundError
from .hosts import hosts_from_cidr
from .resolver import Resolver, ResolverSession

logger = logging.getLogger(__name__)

COLLECT_GRACE = 2.0  # seconds


def _discard_result(task: asyncio.Task) -> None:
    # Results of abandoned probes are never read
    if not task.cancelled():
        task.exception()


async def _resolve_or_none(session: ResolverSession, host) -> Optional[str]:
    try:
        return await session.resolve(host)
    except Exception as e:
        logger.debug("ARP lookup of %s failed: %s", host, e)
        return None


async def scan(
    resolver: Resolver,
    interface: str,
    cidr: str,
    grace: float = COLLECT_GRACE,
) -> list[str]:
    """
    Probe every host of ``cidr`` on ``interface`` and return the hardware
    addresses that answered, in arrival order.

    Probes run concurrently, each with the resolver's own timeout. A probe
    that fails counts as no reply. Collection stops at
    ``hosts * probe_timeout + grace`` seconds; probes still running then are
    abandoned and their results ignored.

    A resolver with fixed ``static_addresses`` is not probed; once the
    interface and range are validated those addresses are returned as they
    are, whatever the size of the range.

    Raises:
        InterfaceNotFoundError: ``interface`` does not exist
        InvalidRangeError: ``cidr`` cannot be enumerated
        ResolverUnavailableError: the resolver cannot open the interface
    """
    if not resolver.interface_exists(interface):
        raise InterfaceNotFoundError(f"Failed to get interface {interface!r}")

    hosts = hosts_from_cidr(cidr)
    if resolver.static_addresses is not None:
        return list(resolver.static_addresses)

    deadline = len(hosts) * resolver.probe_timeout + grace
    found: list[str] = []
    started = time.monotonic()

    async with resolver.open(interface) as session:
        tasks = [asyncio.create_task(_resolve_or_none(session, host)) for host in hosts]
        try:
            for next_result in asyncio.as_completed(tasks, timeout=deadline):
                mac = await next_result
                if mac is not None:
                    found.append(mac)
        except asyncio.TimeoutError:
            unfinished = [t for t in tasks if not t.done()]
            logger.warning(
                "Collection deadline of %.1fs reached with %d probes outstanding",
                deadline, len(unfinished),
            )
            for task in unfinished:
                task.add_done_callback(_discard_result)

    logger.debug(
        "Probed %d hosts on %s in %.2fs, %d replied",
        len(hosts), interface, time.monotonic() - started, len(found),
    )
    return found
