from pydantic import BaseModel, Field, computed_field, ConfigDict
from typing import List, Optional
from datetime import datetime


class MappingBase(BaseModel):
    # Plain str: the destination is validated by the allocator and stored
    # exactly as submitted, so no HttpUrl re-serialization here
    destination: str = Field(..., description="The http(s) URL to redirect to")


class MappingCreate(MappingBase):
    partition: Optional[str] = Field(None, description="Subdomain label, omit for the global namespace")
    custom_identifier: Optional[str] = Field(None, description="Custom shortcode, omit to generate one")


class AnonymousMappingCreate(MappingBase):
    pass


class MappingResponse(MappingBase):
    """Serializes a Mapping row (from_attributes reads ORM attributes).

    short_url is filled in by the route, which knows the root domain.
    """
    id: int
    identifier: str
    partition: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    short_url: str = ""

    @computed_field
    @property
    def is_global(self) -> bool:
        return self.partition == ""

    model_config = ConfigDict(from_attributes=True)


class ShortestMappingResponse(MappingResponse):
    created: bool = Field(..., description="False when an existing global mapping was reused")


class AnonymousMappingResponse(MappingResponse):
    remaining: int = Field(..., description="Anonymous creations left today for this source")


class TimelinePoint(BaseModel):
    date: str
    clicks: int
    unique_visitors: int


class HeatmapCell(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday (UTC)")
    hour: int = Field(..., ge=0, le=23, description="Hour of day (UTC)")
    clicks: int


class ReferrerCount(BaseModel):
    source: str
    clicks: int
    percentage: int


class DeviceCount(BaseModel):
    device: str
    clicks: int
    percentage: int


class CountryCount(BaseModel):
    country: str
    clicks: int
    percentage: int


class MappingStats(BaseModel):
    id: int
    identifier: str
    total_clicks: int
    unique_visitors: int
    last_click: Optional[datetime] = None
    owner_total_clicks: int = Field(0, description="Clicks across all of the owner's mappings")
    timeline: List[TimelinePoint] = []
    heatmap: List[HeatmapCell] = []
    referrers: List[ReferrerCount] = []
    devices: List[DeviceCount] = []
    countries: List[CountryCount] = []
