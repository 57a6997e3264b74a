"""
Pydantic schemas for route and place lookups.
"""
from typing import Optional
from pydantic import BaseModel, Field


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RouteRequest(BaseModel):
    origin: LatLng
    destination: str = Field(..., min_length=1)


class RouteInfo(BaseModel):
    duration_minutes: int
    distance_km: float
    duration_text: str
    distance_text: str
    suggested_question_count: Optional[int] = None


class PlacePrediction(BaseModel):
    place_id: str
    description: str
    main_text: str
    secondary_text: str = ""
