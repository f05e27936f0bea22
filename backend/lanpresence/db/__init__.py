# Database module
from .database import get_db, init_db, engine, AsyncSessionLocal
from .models import User, Device, Base

__all__ = ["get_db", "init_db", "engine", "AsyncSessionLocal", "User", "Device", "Base"]
