from datetime import datetime

from pydantic import BaseModel


class ClickEvent(BaseModel):
    code: str
    ip: str
    user_agent: str = ""
    referer: str = ""
    timestamp: datetime
