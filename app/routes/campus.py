from fastapi import APIRouter, Depends, Query

from app.dependencies.services import get_campus_boundary
from app.utils.geo import CampusBoundary

router = APIRouter()


@router.get("/campus/boundary")
async def get_boundary(boundary: CampusBoundary = Depends(get_campus_boundary)):
    return boundary.feature_collection


@router.get("/campus/contains")
async def contains(
    lat: float = Query(...),
    lng: float = Query(...),
    boundary: CampusBoundary = Depends(get_campus_boundary),
):
    """Whether a new report may be dropped at this point."""
    return {"lat": lat, "lng": lng, "inside": boundary.contains(lat, lng)}
