import asyncio
import logging
import platform
from abc import ABC, abstractmethod
from ipaddress import IPv4Address
from typing import Optional, Sequence, Union

from scapy.all import ARP, AsyncSniffer, Ether, conf, get_if_addr, get_if_hwaddr, get_if_list
from scapy.error import Scapy_Exception

from .errors import ResolverUnavailableError
from .fingerprint import canonical_mac

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 0.5  # seconds
SNIFFER_START_TIMEOUT = 2.0
BROADCAST = "ff:ff:ff:ff:ff:ff"
ARP_IS_AT = 2

# Reported by StaticResolver where raw sockets are not available
STATIC_ADDRESSES = ("de:ad:be:ef:de:ad", "ab:cd:ef:01:23:45")

Host = Union[IPv4Address, str]


class ResolverSession(ABC):
    """One open resolution context on an interface."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @abstractmethod
    async def resolve(self, host: Host) -> Optional[str]:
        """Return the hardware address answering for ``host``, or None."""

    async def close(self) -> None:
        pass


class Resolver(ABC):
    """Capability to check interfaces and open resolution sessions on them."""

    # Addresses reported for every scan without probing, if set
    static_addresses: Optional[tuple[str, ...]] = None

    def __init__(self, probe_timeout: float = PROBE_TIMEOUT):
        self.probe_timeout = probe_timeout

    @abstractmethod
    def interface_exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def open(self, interface: str) -> ResolverSession:
        ...


class ArpSession(ResolverSession):
    """
    ARP resolution over one layer-2 socket and one reply sniffer.

    Every probe owns a future registered under its target address. The sniffer
    thread hands replies to the event loop, which completes the futures still
    waiting for that address. Replies nobody waits for are dropped.
    """

    def __init__(self, interface: str, timeout: float):
        self.interface = interface
        self.timeout = timeout
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._socket = None
        self._sniffer: Optional[AsyncSniffer] = None
        self._hwaddr: Optional[str] = None
        self._ipaddr: Optional[str] = None
        self._slots: dict[str, list[asyncio.Future]] = {}

    async def __aenter__(self):
        self._loop = asyncio.get_running_loop()
        try:
            self._hwaddr = get_if_hwaddr(self.interface)
            self._ipaddr = get_if_addr(self.interface)
            self._socket = conf.L2socket(iface=self.interface)
        except (OSError, Scapy_Exception) as e:
            await self.close()
            raise ResolverUnavailableError(
                f"Failed to open ARP socket on {self.interface}: {e}"
            ) from e

        ready = asyncio.Event()
        self._sniffer = AsyncSniffer(
            iface=self.interface,
            lfilter=lambda pkt: pkt.haslayer(ARP) and pkt[ARP].op == ARP_IS_AT,
            prn=self._on_reply,
            store=False,
            started_callback=lambda: self._loop.call_soon_threadsafe(ready.set),
        )
        self._sniffer.start()
        try:
            await asyncio.wait_for(ready.wait(), timeout=SNIFFER_START_TIMEOUT)
        except asyncio.TimeoutError:
            await self.close()
            raise ResolverUnavailableError(
                f"ARP listener did not start on {self.interface}"
            )
        logger.debug("ARP session opened on %s (%s, %s)", self.interface, self._ipaddr, self._hwaddr)
        return self

    def _on_reply(self, pkt) -> None:
        # Runs in the sniffer thread
        arp = pkt[ARP]
        self._loop.call_soon_threadsafe(self._deliver, arp.psrc, arp.hwsrc)

    def _deliver(self, host: str, mac: str) -> None:
        for slot in self._slots.get(host, ()):
            if not slot.done():
                slot.set_result(mac)

    async def resolve(self, host: Host) -> Optional[str]:
        target = str(host)
        slot = self._loop.create_future()
        self._slots.setdefault(target, []).append(slot)
        try:
            request = Ether(src=self._hwaddr, dst=BROADCAST) / ARP(
                hwsrc=self._hwaddr, psrc=self._ipaddr, pdst=target
            )
            try:
                self._socket.send(request)
            except OSError as e:
                logger.debug("ARP request to %s failed: %s", target, e)
                return None

            try:
                mac = await asyncio.wait_for(slot, timeout=self.timeout)
            except asyncio.TimeoutError:
                return None
            return canonical_mac(mac)
        finally:
            waiting = self._slots.get(target, [])
            if slot in waiting:
                waiting.remove(slot)
            if not waiting:
                self._slots.pop(target, None)

    async def close(self) -> None:
        if self._sniffer is not None:
            if self._sniffer.running:
                await asyncio.to_thread(self._sniffer.stop)
            self._sniffer = None
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._slots.clear()


class ArpResolver(Resolver):
    """Resolves addresses with real ARP traffic (needs CAP_NET_RAW)."""

    def interface_exists(self, name: str) -> bool:
        return name in get_if_list()

    def open(self, interface: str) -> ArpSession:
        return ArpSession(interface, self.probe_timeout)


class StaticSession(ResolverSession):
    """No traffic, no replies."""

    async def resolve(self, host: Host) -> Optional[str]:
        return None


class StaticResolver(Resolver):
    """
    Stand-in for platforms without raw layer-2 access.

    Every scan reports all of ``addresses``, however many hosts the range
    holds. Individual lookups never answer.
    """

    def __init__(self, addresses: Sequence[str] = STATIC_ADDRESSES, probe_timeout: float = PROBE_TIMEOUT):
        super().__init__(probe_timeout)
        self.static_addresses = tuple(canonical_mac(a) for a in addresses)

    def interface_exists(self, name: str) -> bool:
        return True

    def open(self, interface: str) -> StaticSession:
        return StaticSession()


def select_resolver(settings) -> Resolver:
    """Pick the resolver implementation once, at startup."""
    if settings.STATIC_RESOLVER or platform.system() == "Windows":
        logger.warning("ARP probing unavailable, reporting static addresses %s", ", ".join(STATIC_ADDRESSES))
        return StaticResolver(probe_timeout=settings.PROBE_TIMEOUT)
    return ArpResolver(probe_timeout=settings.PROBE_TIMEOUT)
