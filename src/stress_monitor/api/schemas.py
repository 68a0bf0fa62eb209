"""Request / response models for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SampleRequest(BaseModel):
    bpm: float


class SampleBatchRequest(BaseModel):
    values: list[float] = Field(default_factory=list)


class RecordResponse(BaseModel):
    id: int
    time: str
    label: str
    display: str
    color: str
    avg_bpm: int
    raw_data: list[float]
