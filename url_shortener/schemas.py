from pydantic import BaseModel, Field, StrictInt, StrictStr
from typing import Optional, List

class CreateShortURLReq(BaseModel):
    url: Optional[StrictStr] = Field(None, description="Original long URL")
    validity: Optional[StrictInt] = Field(None, description="Minutes (default 30)")
    shortcode: Optional[StrictStr] = Field(None, description="Custom shortcode")

class CreateShortURLResp(BaseModel):
    shortLink: str
    expiry: str

class LocationItem(BaseModel):
    country: str
    region: str
    city: str

class ClickItem(BaseModel):
    timestamp: str
    referrer: str
    location: LocationItem

class StatsResp(BaseModel):
    shortcode: str
    originalUrl: str
    createdAt: str
    expiresAt: str
    totalClicks: int
    isExpired: bool
    shortLink: str
    clicks: List[ClickItem]

class DeleteResp(BaseModel):
    success: bool
    message: str

class HealthResp(BaseModel):
    status: str
    timestamp: str
