from pydantic import BaseModel


class MitraLocationCounts(BaseModel):
    total: int = 0
    active: int = 0
    verified: int = 0
    pending: int = 0


class MitraPickupCounts(BaseModel):
    total: int = 0
    pending: int = 0
    today: int = 0
    completed: int = 0


class MitraPerformance(BaseModel):
    totalWasteCollected: float = 0
    averageRating: float = 0
    totalTransactions: int = 0


class MitraOverviewOut(BaseModel):
    locations: MitraLocationCounts
    pickups: MitraPickupCounts
    performance: MitraPerformance


class AdminStatsOut(BaseModel):
    totalUsers: int = 0
    totalMitra: int = 0
    totalPickupsThisMonth: int = 0


class LocationStatsOut(BaseModel):
    byStatus: dict[str, int]
    byType: dict[str, int]
    topRated: list[dict]
