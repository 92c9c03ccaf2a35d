from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Market = Literal["sh", "sz"]


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    market: Market
    name: str
    price: float
    prev_close: float
    change: float
    # fraction, 0.0575 means +5.75%
    percent: float
    high: float
    low: float
    # unix millis
    timestamp: int
    source: str


class SourceSwitchedEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_source: str = Field(alias="from")
    to_source: str = Field(alias="to")


class ErrorEvent(BaseModel):
    code: str
    message: str
