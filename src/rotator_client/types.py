"""Data models shared between the tracker, the rotation client and the interceptors."""

import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PoolStatus(BaseModel):
    """Key pool counters reported by the rotation service."""

    total_keys: int
    available_keys: int
    exhausted_keys: int
    current_index: int


class RotationResult(BaseModel):
    """Outcome of a single rotate call. Never persisted."""

    # The service may add fields; keep them rather than failing validation
    model_config = ConfigDict(extra="allow")

    success: bool
    new_value: Optional[str] = None
    pool_status: Optional[PoolStatus] = None
    message: Optional[str] = None


class RotationInfo(BaseModel):
    """In-memory record of one rotation attempt made by an interceptor."""

    secret_name: str
    timestamp: float = Field(default_factory=time.time)
    success: bool


class TrackedAssociation(BaseModel):
    """Destination host mapped to the env var believed to hold its credential."""

    host_key: str
    secret_name: str
    last_observed_credential: str
