from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from clicks.schemas import ClickEvent


class DashboardStats(BaseModel):
    total_urls: int = 0
    total_clicks: int = 0
    today_clicks: int = 0
    unique_visitors: int = 0


class URLLog(BaseModel):
    code: str
    long_url: str
    clicks: int = 0
    created_at: datetime
    last_click: Optional[datetime] = None


class Dashboard(BaseModel):
    stats: DashboardStats
    url_logs: list[URLLog]
    click_logs: list[ClickEvent]
