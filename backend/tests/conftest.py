import asyncio
import os
import tempfile

import pytest

# Must be set before lanpresence reads its settings
_tmpdir = tempfile.mkdtemp(prefix="lanpresence-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmpdir}/lanpresence.db"
os.environ["STATIC_RESOLVER"] = "true"
os.environ["SCAN_INTERVAL"] = "3600"

from lanpresence.scanner.resolver import Resolver, ResolverSession  # noqa: E402


class FakeSession(ResolverSession):
    def __init__(self, resolver):
        self.resolver = resolver

    async def __aenter__(self):
        self.resolver.opened += 1
        return self

    async def resolve(self, host):
        self.resolver.probed.append(str(host))
        if str(host) in self.resolver.failures:
            raise RuntimeError(f"lookup of {host} failed")
        reply = self.resolver.replies.get(str(host))
        if reply is None:
            await asyncio.sleep(0)
            return None
        delay, mac = reply
        await asyncio.sleep(delay)
        return mac

    async def close(self):
        self.resolver.closed += 1


class FakeResolver(Resolver):
    """
    Resolver answering from a table of ``host -> (delay, mac)``.

    Delays ignore the probe timeout, so a long delay simulates a probe that
    is still running when collection ends.
    """

    def __init__(self, replies=None, interfaces=("eth0",), failures=(), probe_timeout=0.01):
        super().__init__(probe_timeout)
        self.replies = dict(replies or {})
        self.interfaces = set(interfaces)
        self.failures = set(failures)
        self.opened = 0
        self.closed = 0
        self.probed = []

    def interface_exists(self, name):
        return name in self.interfaces

    def open(self, interface):
        return FakeSession(self)


@pytest.fixture
def fake_resolver():
    """Factory for FakeResolver instances."""
    return FakeResolver
