from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..core.config import settings
from ..db.database import get_db
from ..db.models import Device, User
from ..db.registry import DeviceAlreadyRegisteredError, add_or_update_device, delete_device
from ..scanner.fingerprint import InvalidMacError
from ..scanner.scheduler import PresenceScanner
from .schemas import (
    DeviceCreate,
    DeviceResponse,
    ScanTriggerResponse,
    UserCreate,
    UserDetailResponse,
    UserResponse,
)

router = APIRouter()


def get_scanner() -> PresenceScanner:
    from ..main import scanner
    return scanner


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _user_response(user: User, scanner: PresenceScanner) -> UserResponse:
    return UserResponse(id=user.id, name=user.shown_name, online=scanner.is_user_present(user.id))


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    db: AsyncSession = Depends(get_db),
    scanner: PresenceScanner = Depends(get_scanner),
):
    """List all users with their online flag."""
    result = await db.execute(select(User).order_by(User.id))
    return [_user_response(u, scanner) for u in result.scalars().all()]


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    scanner: PresenceScanner = Depends(get_scanner),
):
    """Create a user."""
    username = user_in.username.strip()
    if not username:
        raise HTTPException(status_code=400, detail="Username must not be empty")
    existing = await db.scalar(select(User).where(User.username == username))
    if existing:
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(username=username, display_name=user_in.display_name)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return _user_response(user, scanner)


@router.get("/users/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    scanner: PresenceScanner = Depends(get_scanner),
):
    """Get one user with the names of their devices."""
    user = await _get_user(db, user_id)
    result = await db.execute(
        select(Device).where(Device.user_id == user_id).order_by(Device.id)
    )
    return UserDetailResponse(
        id=user.id,
        name=user.shown_name,
        username=user.username,
        online=scanner.is_user_present(user.id),
        devices=[DeviceResponse.model_validate(d) for d in result.scalars().all()],
    )


@router.post("/users/{user_id}/devices", response_model=DeviceResponse, status_code=201)
async def register_device(
    user_id: int,
    device_in: DeviceCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a device; only a salted hash of the MAC is stored."""
    user = await _get_user(db, user_id)
    name = device_in.name.strip() if device_in.name else None
    try:
        device = await add_or_update_device(db, user, device_in.mac, name)
    except InvalidMacError:
        raise HTTPException(status_code=400, detail="Invalid MAC address")
    except DeviceAlreadyRegisteredError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return DeviceResponse.model_validate(device)


@router.delete("/users/{user_id}/devices")
async def unregister_device(
    user_id: int,
    mac: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Delete the user's device with the given MAC address."""
    user = await _get_user(db, user_id)
    try:
        deleted = await delete_device(db, user, mac)
    except InvalidMacError:
        raise HTTPException(status_code=400, detail="Invalid MAC address")
    if not deleted:
        raise HTTPException(status_code=404, detail="Device not found")
    return {"message": "Device deleted successfully"}


@router.post("/scan/trigger", response_model=ScanTriggerResponse)
async def trigger_scan(scanner: PresenceScanner = Depends(get_scanner)):
    """Run one scan cycle now on the configured interface and range."""
    success = await scanner.run_cycle(settings.SCAN_INTERFACE, settings.SCAN_RANGE)
    cycle = scanner.last_cycle
    if not success:
        return ScanTriggerResponse(success=False, message=f"Scan failed: {cycle.error}")
    return ScanTriggerResponse(
        success=True,
        message="Scan completed successfully",
        addresses_found=cycle.addresses_found,
        users_present=cycle.users_present,
    )
