import math
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


def is_truthy(value: Any) -> bool:
    """JavaScript truthiness, so `{}` and `[]` count as present like the web dashboard does."""
    if isinstance(value, (dict, list)):
        return True
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


class TimeSummary(BaseModel):
    """
    Response of `GET /api/time/summary`.

    Every field is optional so partial payloads still parse; unknown fields are kept.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    hours_this_week: Optional[float] = Field(default=None, alias="hoursThisWeek")
    target_hours: Optional[float] = Field(default=None, alias="targetHours")
    active_entry: Optional[Any] = Field(default=None, alias="activeEntry")
    pto_balance_days: Optional[float] = None
    sick_balance_days: Optional[float] = None

    @property
    def is_clocked_in(self) -> bool:
        return is_truthy(self.active_entry)
