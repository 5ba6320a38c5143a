"""Environment configuration"""
import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Auth
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-keep-it-secret")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Booking engine behaviour
ENFORCE_STATUS_TRANSITIONS = _flag("ENFORCE_STATUS_TRANSITIONS", True)
RELEASE_BLOCKS_ON_CANCEL = _flag("RELEASE_BLOCKS_ON_CANCEL", False)
REVALIDATE_ON_APPROVE = _flag("REVALIDATE_ON_APPROVE", False)


class EngineSettings(BaseModel):
    """Switches for the booking lifecycle"""
    enforce_status_transitions: bool = True
    release_blocks_on_cancel: bool = False
    revalidate_on_approve: bool = False

    class Config:
        frozen = True

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            enforce_status_transitions=ENFORCE_STATUS_TRANSITIONS,
            release_blocks_on_cancel=RELEASE_BLOCKS_ON_CANCEL,
            revalidate_on_approve=REVALIDATE_ON_APPROVE
        )
