"""
Signal Models - Moving-average cross events
===========================================
Pure data models for detected volume MA crossings.
"""

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict
from enum import Enum

# API payloads are camelCase; constructors still accept field names
CAMEL_CASE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CrossType(str, Enum):
    """Direction of a moving-average crossing"""
    GOLDEN = "golden"  # fast MA moves above slow MA
    DEATH = "death"    # fast MA moves below slow MA


class CrossEvent(BaseModel):
    """A single detected crossing. Immutable once created."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    symbol: str = Field(..., description="Signal symbol")
    exchange: str = Field(..., description="Exchange name")
    type: CrossType = Field(..., description="golden or death")
    timestamp: int = Field(..., description="Time of the MA point that crossed (epoch ms)")

    fast_value: float = Field(..., description="Fast MA at the crossing point")
    slow_value: float = Field(..., description="Slow MA at the crossing point")
    prev_fast_value: float = Field(..., description="Fast MA at the previous point")
    prev_slow_value: float = Field(..., description="Slow MA at the previous point")

    @property
    def symbol_key(self) -> str:
        """Unique identifier for the detector key"""
        return f"{self.exchange}:{self.symbol}"

    @property
    def is_golden(self) -> bool:
        return self.type == CrossType.GOLDEN

    def to_event_data(self) -> Dict[str, Any]:
        """Payload for the cross_detected event topic"""
        return self.model_dump(mode="json")
