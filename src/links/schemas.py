from pydantic import BaseModel, field_validator


class ShortenRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def url_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("url must not be empty")
        return value


class ShortenResponse(BaseModel):
    short_url: str
