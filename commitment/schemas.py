from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List

class AutoCreateRequest(BaseModel):
    yesterdayDate: Optional[str] = None  # YYYY-MM-DD in the member's timezone

class PenaltyRespondRequest(BaseModel):
    penalty_id: int
    action: str  # accept, dispute
    reason_category: Optional[str] = None  # sick, work, family, training_rest, other
    reason_message: Optional[str] = Field(None, max_length=1000)

class PenaltyRespondResponse(BaseModel):
    success: bool
    action: str
    message: str

class PendingPenaltyResponse(BaseModel):
    id: int
    user_id: int
    group_id: int
    date: date
    target_points: int
    actual_points: int
    penalty_amount: int
    status: str
    reason_category: Optional[str] = None
    reason_message: Optional[str] = None
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    deadline: datetime
    auto_accepted_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class EnrichedPenaltyResponse(PendingPenaltyResponse):
    hours_remaining: float
    is_expired: bool

class MyPendingResponse(BaseModel):
    penalties: List[EnrichedPenaltyResponse]

class RecoveryProgressUpdate(BaseModel):
    minutes: int = Field(..., ge=0)

class RecoveryDayResponse(BaseModel):
    id: int
    user_id: int
    used_date: date
    week_start_date: date
    recovery_minutes: int
    is_complete: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProgressResponse(BaseModel):
    date: date
    target: int
    effectivePoints: int
    regularPoints: int
    recoveryPoints: int
    recoveryCap: int
    isRecoveryDay: bool
    metTarget: bool
