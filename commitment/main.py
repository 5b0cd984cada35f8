from fastapi import FastAPI, Depends, HTTPException, Request, Body
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date, datetime
import logging
from pathlib import Path

from commitment import config
from commitment.database import engine, get_db, Base
from commitment import models  # Import all models to register them with Base
from commitment.models import Member
from commitment.schemas import (
    AutoCreateRequest,
    PenaltyRespondRequest, PenaltyRespondResponse,
    PendingPenaltyResponse, MyPendingResponse,
    RecoveryProgressUpdate, RecoveryDayResponse,
    ProgressResponse,
)
from commitment.auth import verify_cron_secret, get_current_member
from commitment.scheduler import start_scheduler, stop_scheduler
from commitment.services.date_service import DateService
from commitment.services.daily_recap_service import DailyRecapService
from commitment.services.penalty_service import PenaltyService
from commitment.services.points_service import PointsService
from commitment.services.recovery_day_service import RecoveryDayService
from commitment.services.notification_service import NotificationService
from commitment.exceptions import (
    CommitmentException,
    GroupNotFoundException,
    MemberNotInGroupException,
    PenaltyNotFoundException,
    PenaltyAlreadyRespondedException,
    DisputeDeadlinePassedException,
    RecoveryDayUnavailableException,
    RecoveryDayNotFoundException,
    ValidationException,
)
from commitment.constants import DEFAULT_LOG_DIRECTORY_DEV

LOG_DIR = config.LOG_DIR

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / config.LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / config.LOG_FILE

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("commitment")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Commitment Penalty Engine",
    description="Daily targets, penalty lifecycle and payment ledger for fitness accountability groups",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Domain errors that map to a client error status
ERROR_STATUS_CODES = {
    MemberNotInGroupException: 400,
    PenaltyAlreadyRespondedException: 400,
    DisputeDeadlinePassedException: 400,
    RecoveryDayUnavailableException: 400,
    ValidationException: 400,
    GroupNotFoundException: 404,
    PenaltyNotFoundException: 404,
    RecoveryDayNotFoundException: 404,
}


def _raise_http(e: CommitmentException):
    """Translate a domain error into an HTTPException; unmapped errors propagate as 500"""
    for exc_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(e, exc_type):
            raise HTTPException(status_code=status_code, detail=str(e))
    raise e


def _parse_date(value: Optional[str]) -> date:
    """Parse an optional YYYY-MM-DD query parameter, defaulting to today"""
    if not value:
        return datetime.now().date()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": str(exc)}
    )

# Startup event
@app.on_event("startup")
async def startup_event():
    logger.info(f"Commitment Penalty Engine started. Logging to: {log_path}")
    start_scheduler()

# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Commitment Penalty Engine")
    stop_scheduler()

# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Commitment Penalty Engine", "status": "active"}


# Cron endpoint (shared secret)
@app.get("/api/cron/daily-recap", dependencies=[Depends(verify_cron_secret)])
async def daily_recap(db: Session = Depends(get_db)):
    """Evaluate yesterday for every group, sweep expired penalties and post summaries"""
    logger.info("Starting daily recap cron job")
    try:
        return DailyRecapService(db).run()
    except Exception as e:
        logger.error(f"Daily recap failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Daily recap failed", "details": str(e)}
        )


# Member endpoints (session token)
@app.post("/api/penalties/auto-create")
async def auto_create_penalty(
    body: Optional[AutoCreateRequest] = Body(None),
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Create a penalty for the calling member if they missed yesterday's target"""
    try:
        target_date = DateService.resolve_evaluation_date(body.yesterdayDate if body else None)
        result = DailyRecapService(db).check_member(member, target_date)
    except CommitmentException as e:
        _raise_http(e)

    if result.penalty_exists:
        return {"penaltyExists": True, "message": "Penalty already exists for this date"}

    if not result.penalty_created:
        return {"noPenalty": True, "reason": result.outcome.reason}

    NotificationService(db).notify_penalty_created(result.penalty)

    return {
        "penaltyCreated": True,
        "penalty": PendingPenaltyResponse.model_validate(result.penalty).model_dump(mode="json"),
        "message": "Penalty created successfully"
    }


@app.get("/api/penalties/my-pending", response_model=MyPendingResponse)
async def get_my_pending_penalties(member: Member = Depends(get_current_member), db: Session = Depends(get_db)):
    """Get the calling member's pending penalties with time remaining"""
    return {"penalties": PenaltyService(db).get_pending_for_member(member.id)}


@app.post("/api/penalties/respond", response_model=PenaltyRespondResponse)
async def respond_to_penalty(
    request: PenaltyRespondRequest,
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Accept or dispute a pending penalty"""
    try:
        return PenaltyService(db).respond(
            member,
            request.penalty_id,
            request.action,
            request.reason_category,
            request.reason_message
        )
    except CommitmentException as e:
        _raise_http(e)


@app.post("/api/recovery-day/activate", response_model=RecoveryDayResponse)
async def activate_recovery_day(
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Activate today as this week's recovery day"""
    try:
        return RecoveryDayService(db).activate(member)
    except CommitmentException as e:
        _raise_http(e)


@app.put("/api/recovery-day/progress", response_model=RecoveryDayResponse)
async def update_recovery_day_progress(
    request: RecoveryProgressUpdate,
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Record recovery minutes for today's recovery day"""
    try:
        return RecoveryDayService(db).update_progress(member, request.minutes)
    except CommitmentException as e:
        _raise_http(e)


@app.delete("/api/recovery-day")
async def cancel_recovery_day(
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Cancel today's recovery day"""
    try:
        RecoveryDayService(db).cancel(member)
    except CommitmentException as e:
        _raise_http(e)
    return {"message": "Recovery day cancelled"}


@app.get("/api/progress", response_model=ProgressResponse)
async def get_progress(
    target_date: Optional[str] = None,
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Get the calling member's target and effective points (format: YYYY-MM-DD, today by default)"""
    day = _parse_date(target_date)
    try:
        progress = PointsService(db).get_daily_progress(member, day)
    except CommitmentException as e:
        _raise_http(e)
    return {"date": day, **progress.to_dict()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("commitment.main:app", host="0.0.0.0", port=8000, reload=False)
