import os
from functools import lru_cache

from pydantic import BaseModel, Field

from stockwatch.schemas.config import DEFAULT_DATA_SOURCES, DEFAULT_REFRESH_INTERVAL_MS


def _split_csv(raw: str) -> list[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


class Settings(BaseModel):
    STOCKWATCH_SYMBOLS: list[str]
    STOCKWATCH_DATA_SOURCES: list[str]
    STOCKWATCH_REFRESH_INTERVAL_MS: int = Field(gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        symbols = _split_csv(os.getenv("STOCKWATCH_SYMBOLS", "sh600519"))
        if not symbols:
            symbols = ["sh600519"]

        data_sources = _split_csv(
            os.getenv("STOCKWATCH_DATA_SOURCES", ",".join(DEFAULT_DATA_SOURCES))
        )

        return cls.model_validate(
            {
                "STOCKWATCH_SYMBOLS": symbols,
                "STOCKWATCH_DATA_SOURCES": data_sources,
                "STOCKWATCH_REFRESH_INTERVAL_MS": os.getenv(
                    "STOCKWATCH_REFRESH_INTERVAL_MS", str(DEFAULT_REFRESH_INTERVAL_MS)
                ),
            }
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
