from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    code: str
    message: str
    retryable: bool = False
    details: list[dict] = Field(default_factory=list)


class HealthOut(BaseModel):
    status: str
