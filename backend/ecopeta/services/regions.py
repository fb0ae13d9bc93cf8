import logging
from typing import Any

import requests

from ecopeta.core.config import REGIONS_API_BASE_URL, REGIONS_TIMEOUT

logger = logging.getLogger("uvicorn.error")


class RegionsUpstreamError(Exception):
    pass


def _fetch(path: str) -> Any:
    url = f"{REGIONS_API_BASE_URL}/{path.lstrip('/')}"
    try:
        response = requests.get(url, timeout=REGIONS_TIMEOUT)
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Regions upstream request failed (%s): %s", url, exc)
        raise RegionsUpstreamError(str(exc)) from exc


def fetch_provinces() -> Any:
    return _fetch("provinces.json")


def fetch_cities(province_id: str) -> Any:
    return _fetch(f"regencies/{province_id}.json")
