"""Health probe and API index responses."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(description="ok or error")
    timestamp: datetime
    environment: str
    version: str
    uptime_seconds: float = Field(description="Seconds since service started")


class DependencyHealth(BaseModel):
    status: str
    database: Optional[str] = None
    storage: Optional[str] = None
    backend: Optional[str] = None
    bucket: Optional[str] = None
    timestamp: Optional[datetime] = None


class ApiIndexResponse(BaseModel):
    message: str
    version: str
    endpoints: Dict[str, str]
