"""Shared Pydantic schemas for RWA Ledger."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "rwa-ledger"


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: str = ""


class SuccessResponse(BaseModel):
    success: bool = True
