from pydantic import BaseModel, Field
from typing import Optional, List


# 1. POST /session/analyze - Response
class AnalysisLimits(BaseModel):
    records_total: int
    records_returned: int
    truncated: bool


class SessionAnalysisResponse(BaseModel):
    device: dict
    session: dict
    env: dict
    power_zones: dict
    hr_zones: dict
    power_profile: dict
    decoupling: dict
    efficiency: dict
    records: List[dict] = Field(default_factory=list, description="Echantillons tries (RawSample)")
    sessions: List[dict] = Field(default_factory=list)
    devices: List[dict] = Field(default_factory=list)
    limits: Optional[AnalysisLimits] = None


# 2. POST /session/report - Response
class SessionReportResponse(BaseModel):
    report: str
