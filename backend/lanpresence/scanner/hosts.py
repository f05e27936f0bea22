import ipaddress

from .errors import InvalidRangeError


def hosts_from_cidr(cidr: str) -> list[ipaddress.IPv4Address]:
    """
    Expand an address block into the addresses worth probing.

    The network and broadcast addresses are dropped when the block holds at
    least two addresses; a single-address block is returned as is.

    Raises:
        InvalidRangeError: the block is not a valid IPv4 CIDR
    """
    try:
        network = ipaddress.ip_network(cidr.strip(), strict=False)
    except (ValueError, AttributeError) as e:
        raise InvalidRangeError(f"Invalid address block {cidr!r}: {e}") from e

    if network.version != 4:
        raise InvalidRangeError(f"ARP needs an IPv4 block, got {cidr!r}")

    addresses = list(network)
    if len(addresses) >= 2:
        addresses = addresses[1:-1]
    return addresses
