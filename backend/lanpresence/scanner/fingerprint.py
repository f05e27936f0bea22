import hashlib
import re
import secrets
from dataclasses import dataclass
from typing import Iterable, Sequence, Union

HASH_ITERATIONS = 1000
SALT_SIZE = 16

_SEPARATED = re.compile(r"^([0-9a-f]{1,2}[:-]){5}[0-9a-f]{1,2}$")
_DOTTED = re.compile(r"^[0-9a-f]{4}\.[0-9a-f]{4}\.[0-9a-f]{4}$")
_HEX_ONLY = re.compile(r"^[0-9a-f]{12}$")


class InvalidMacError(ValueError):
    """Raised when a string is not a 48-bit hardware address."""


@dataclass(frozen=True)
class DeviceFingerprint:
    """A registered device as stored: owner, salted hash and its salt."""
    owner_user_id: int
    salted_hash: str
    salt: str


def canonical_mac(mac: Union[str, bytes]) -> str:
    """
    Normalize a hardware address to lowercase, colon-separated octets.

    Registration and scanning must hash the exact same text, so every address
    goes through here first.
    """
    if isinstance(mac, (bytes, bytearray)):
        if len(mac) != 6:
            raise InvalidMacError(f"Expected 6 bytes, got {len(mac)}")
        return ":".join(f"{b:02x}" for b in mac)

    if not isinstance(mac, str):
        raise InvalidMacError(f"Unsupported MAC type: {type(mac).__name__}")

    value = mac.strip().lower()
    if _SEPARATED.match(value):
        octets = re.split(r"[:-]", value)
        return ":".join(octet.zfill(2) for octet in octets)

    # aabb.ccdd.eeff and aabbccddeeff
    if _DOTTED.match(value) or _HEX_ONLY.match(value):
        digits = value.replace(".", "")
        return ":".join(digits[i:i + 2] for i in range(0, 12, 2))

    raise InvalidMacError(f"Invalid MAC address: {mac!r}")


def hash_mac(mac: Union[str, bytes], salt: str, iterations: int = HASH_ITERATIONS) -> str:
    """
    Salted, iterated SHA-256 of a hardware address.

    The first round hashes ``salt + canonical_mac(mac)``; every following
    round hashes the lowercase hex digest of the previous one.
    """
    digest = salt + canonical_mac(mac)
    for _ in range(iterations):
        digest = hashlib.sha256(digest.encode("utf-8")).hexdigest()
    return digest


def generate_salt(size: int = SALT_SIZE) -> str:
    """Random salt of ``size`` hex characters."""
    return secrets.token_hex((size + 1) // 2)[:size]


def match_fingerprints(
    macs: Iterable[Union[str, bytes]],
    fingerprints: Sequence[DeviceFingerprint],
    iterations: int = HASH_ITERATIONS,
) -> set[int]:
    """
    Return the owners of all fingerprints matched by the discovered addresses.

    A matched fingerprint is dropped from the candidates, so it can never be
    matched a second time in the same cycle and each address claims at most
    one fingerprint.
    """
    remaining = list(fingerprints)
    present: set[int] = set()

    for mac in macs:
        if not remaining:
            break
        for index, fingerprint in enumerate(remaining):
            if hash_mac(mac, fingerprint.salt, iterations) == fingerprint.salted_hash:
                present.add(fingerprint.owner_user_id)
                del remaining[index]
                break

    return present
