from pydantic import BaseModel


class CategoryCount(BaseModel):
    name: str
    count: int


class TrendPoint(BaseModel):
    date: str
    day: str
    created: int
    resolved: int


class AnalyticsSummary(BaseModel):
    total: int
    resolved: int
    pending: int
    resolution_rate: float
    avg_resolution_hours: float | None
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_category: list[CategoryCount]
    by_sla_status: dict[str, int]
    daily_trend: list[TrendPoint]
