from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class UserCreate(BaseModel):
    """User creation schema."""
    username: str = Field(min_length=1, max_length=64)
    display_name: Optional[str] = None


class DeviceCreate(BaseModel):
    """Device registration schema; the MAC is hashed, never stored."""
    mac: str
    name: Optional[str] = None


class DeviceResponse(BaseModel):
    """Registered device as shown to its owner."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    created_at: datetime


class UserResponse(BaseModel):
    """User with the presence flag from the latest scan."""
    id: int
    name: str
    online: bool


class UserDetailResponse(UserResponse):
    username: str
    devices: list[DeviceResponse]


class ScanTriggerResponse(BaseModel):
    """Scan trigger response schema."""
    success: bool
    message: str
    addresses_found: Optional[int] = None
    users_present: Optional[int] = None


class CycleStatus(BaseModel):
    finished_at: datetime
    success: bool
    addresses_found: int
    users_present: int
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    scanner_running: bool
    last_cycle: Optional[CycleStatus] = None
