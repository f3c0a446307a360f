"""
Pydantic schemas for the syslog ingest endpoint.
"""
from pydantic import BaseModel, Field, field_validator


class LogEvent(BaseModel):
    """One syslog event forwarded by a collector."""
    host: str = Field(..., max_length=255, description="Originating host name")
    program: str = Field(..., max_length=255, description="Program / tag")
    severity: int = Field(..., ge=0, le=7, description="Syslog severity 0 (emerg) .. 7 (debug)")
    facility: int = Field(..., ge=0, le=23, description="Syslog facility 0..23")
    message: str = Field(..., max_length=2048, description="Log message")

    @field_validator("host", "program", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "host": "web-01",
                "program": "nginx",
                "severity": 6,
                "facility": 16,
                "message": "GET /health 200"
            }
        }
