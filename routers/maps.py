"""
Router for commute route and destination lookups.
"""
from typing import List
from fastapi import APIRouter, Depends, Query

from core.security import get_current_user_id
from schemas.maps import RouteRequest, RouteInfo, PlacePrediction
from services.maps_service import MapsClient, get_maps_client
from services.session_service import recommended_question_count

router = APIRouter(prefix="/maps", tags=["Maps"])


@router.post("/route", response_model=RouteInfo)
async def calculate_route(
    request: RouteRequest,
    user_id: str = Depends(get_current_user_id),
    maps: MapsClient = Depends(get_maps_client)
):
    """Driving time and distance, with how many questions fit the drive."""
    route = await maps.calculate_route(request.origin, request.destination)
    route.suggested_question_count = recommended_question_count(route.duration_minutes)
    return route


@router.get("/places", response_model=List[PlacePrediction])
async def search_places(
    query: str = Query(..., description="Partial destination text"),
    user_id: str = Depends(get_current_user_id),
    maps: MapsClient = Depends(get_maps_client)
):
    return await maps.search_places(query)
