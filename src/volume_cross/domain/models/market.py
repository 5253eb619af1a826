"""
Market Models - Volume time series structures
=============================================
Pure data models for sampled quote volume and derived moving averages.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional


class VolumeSample(BaseModel):
    """One stored quote-volume sample"""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., description="Sample time (epoch ms)")
    quote_volume: float = Field(..., description="Traded volume in the quote currency")


class MovingAveragePoint(BaseModel):
    """Read-only projection of a sample with its fast/slow moving averages"""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., description="Sample time (epoch ms)")
    value: float = Field(..., description="Quote volume of the sample")
    ma_fast: Optional[float] = Field(None, description="Fast MA, None until enough samples exist")
    ma_slow: Optional[float] = Field(None, description="Slow MA, None until enough samples exist")

    @property
    def is_complete(self) -> bool:
        return self.ma_fast is not None and self.ma_slow is not None


class VolumeTick(BaseModel):
    """Quote volume reading from a data source, not yet stored"""

    exchange: str = Field(..., description="Exchange name (e.g., bybit)")
    symbol: str = Field(..., description="Signal symbol (e.g., BTC)")
    quote_volume: float = Field(..., description="Traded volume in the quote currency")
    timestamp: Optional[int] = Field(None, description="Reading time (epoch ms), None means now")

    @property
    def symbol_key(self) -> str:
        return f"{self.exchange}:{self.symbol}"
