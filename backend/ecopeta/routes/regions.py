from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ecopeta.services.regions import RegionsUpstreamError, fetch_cities, fetch_provinces

router = APIRouter(prefix="/api", tags=["Regions"])


@router.get("/provinces")
def provinces():
    try:
        return fetch_provinces()
    except RegionsUpstreamError:
        return JSONResponse(status_code=500, content={"error": "Failed to fetch provinces"})


@router.get("/cities/{province_id}")
def cities(province_id: str):
    try:
        return fetch_cities(province_id)
    except RegionsUpstreamError:
        return JSONResponse(status_code=500, content={"error": "Failed to fetch cities"})
