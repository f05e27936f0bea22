# Scanner module
from .errors import ScanError, InvalidRangeError, InterfaceNotFoundError, ResolverUnavailableError
from .fingerprint import DeviceFingerprint, canonical_mac, hash_mac, generate_salt, match_fingerprints
from .hosts import hosts_from_cidr
from .orchestrator import scan
from .presence import PresenceCache
from .resolver import Resolver, ArpResolver, StaticResolver, select_resolver
from .scheduler import PresenceScanner

__all__ = [
    "ScanError", "InvalidRangeError", "InterfaceNotFoundError", "ResolverUnavailableError",
    "DeviceFingerprint", "canonical_mac", "hash_mac", "generate_salt", "match_fingerprints",
    "hosts_from_cidr", "scan", "PresenceCache",
    "Resolver", "ArpResolver", "StaticResolver", "select_resolver",
    "PresenceScanner",
]
