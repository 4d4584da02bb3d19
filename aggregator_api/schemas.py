from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthOut(BaseModel):
    status: str


class StateCounts(BaseModel):
    blue: int = 0
    green: int = 0
    yellow: int = 0
    red: int = 0


class DeviceStatusOut(BaseModel):
    device_id: str
    state: str
    age_sec: int = Field(..., alias="ageSec", ge=0)
    last_rssi: Optional[int] = Field(default=None, alias="lastRssi")

    model_config = ConfigDict(populate_by_name=True)


class StatsOut(BaseModel):
    counts: StateCounts
    online: int = Field(..., ge=0)
    devices: List[DeviceStatusOut] = Field(default_factory=list)
    ts: int
