"""
Device registry: persists devices as salted MAC hashes and hands the scanner
one fingerprint snapshot per cycle.

Only hashes are stored, so every lookup by MAC address re-hashes the address
with each candidate's salt.
"""
import asyncio
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import settings
from ..scanner.fingerprint import DeviceFingerprint, canonical_mac, generate_salt, hash_mac
from .models import Device, User


class DeviceAlreadyRegisteredError(Exception):
    """The MAC address is already registered to another user."""


async def list_fingerprints(session_factory: async_sessionmaker) -> list[DeviceFingerprint]:
    """Snapshot of every registered device."""
    async with session_factory() as session:
        result = await session.execute(select(Device.user_id, Device.salted_hash, Device.salt))
        return [
            DeviceFingerprint(owner_user_id=user_id, salted_hash=salted_hash, salt=salt)
            for user_id, salted_hash, salt in result.all()
        ]


async def find_device(
    session: AsyncSession,
    mac: str,
    user_id: Optional[int] = None,
    iterations: int = settings.HASH_ITERATIONS,
) -> Optional[Device]:
    """Find the device registered for ``mac``, optionally limited to one user."""
    query = select(Device)
    if user_id is not None:
        query = query.where(Device.user_id == user_id)
    result = await session.execute(query)
    devices = result.scalars().all()
    # CPU bound
    return await asyncio.to_thread(_first_match, devices, mac, iterations)


def _first_match(devices: Sequence[Device], mac: str, iterations: int) -> Optional[Device]:
    for device in devices:
        if hash_mac(mac, device.salt, iterations) == device.salted_hash:
            return device
    return None


async def add_or_update_device(
    session: AsyncSession,
    user: User,
    mac: str,
    name: Optional[str] = None,
    iterations: int = settings.HASH_ITERATIONS,
) -> Device:
    """
    Register ``mac`` for ``user`` under a fresh salt, or rename the device if
    the user already registered it.

    Raises:
        InvalidMacError: ``mac`` is not a hardware address
        DeviceAlreadyRegisteredError: another user owns the address
    """
    mac = canonical_mac(mac)
    existing = await find_device(session, mac, iterations=iterations)
    if existing is not None:
        if existing.user_id != user.id:
            raise DeviceAlreadyRegisteredError("Device is registered to another user")
        existing.name = name
        await session.commit()
        return existing

    salt = generate_salt(settings.SALT_SIZE)
    device = Device(
        user_id=user.id,
        salted_hash=await asyncio.to_thread(hash_mac, mac, salt, iterations),
        salt=salt,
        name=name,
    )
    session.add(device)
    await session.commit()
    await session.refresh(device)
    return device


async def delete_device(
    session: AsyncSession,
    user: User,
    mac: str,
    iterations: int = settings.HASH_ITERATIONS,
) -> bool:
    """Remove the user's device registered for ``mac``. Returns False if none."""
    device = await find_device(session, canonical_mac(mac), user_id=user.id, iterations=iterations)
    if device is None:
        return False
    await session.delete(device)
    await session.commit()
    return True
