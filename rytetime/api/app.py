"""FastAPI web application for rytetime."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rytetime.auth.dependencies import get_current_user
from rytetime.cache import ITaskCache, get_task_cache
from rytetime.channels.registry import DispatcherRegistry, get_dispatcher_registry
from rytetime.database.database import get_db
from rytetime.database.user_repository import UserRepository
from rytetime.engine.notification_worker import NotificationWorker, WorkerCycleResult
from rytetime.engine.reconciliation import ReconciliationResult, reconcile_unqueued_reminders
from rytetime.engine.task_export import ExportFormat, export_tasks
from rytetime.engine.task_service import TaskService
from rytetime.engine.timezones import format_utc_offset, is_dst, to_instant, to_zoned_time, utc_now, validate_timezone
from rytetime.errors import (
    ConcurrentModification,
    InvalidOffset,
    InvalidTimeZone,
    NotFound,
    QueueUnavailable,
    StoreUnavailable,
)
from rytetime.models.constants import WORKER_TRIGGER_TOKEN
from rytetime.models.task import Reminder, ReminderRequest, Task, TaskPriority
from rytetime.models.user import User
from rytetime.queue import INotificationQueue, get_notification_queue

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="rytetime API",
    description="Time-zone aware tasks with scheduled reminders",
    version="0.1.0",
)


# Error mapping

@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidTimeZone)
@app.exception_handler(InvalidOffset)
async def invalid_input_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    if isinstance(exc, ConcurrentModification):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Task store unavailable, retry later"},
        headers={"Retry-After": "5"},
    )


@app.exception_handler(QueueUnavailable)
async def queue_unavailable_handler(request: Request, exc: QueueUnavailable):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Notification queue unavailable, retry later"},
    )


# Dependencies

def get_cache() -> ITaskCache:
    return get_task_cache()


def get_queue() -> INotificationQueue:
    return get_notification_queue()


def get_dispatchers() -> DispatcherRegistry:
    return get_dispatcher_registry()


def get_task_service(
    db: Session = Depends(get_db),
    cache: ITaskCache = Depends(get_cache),
    queue: INotificationQueue = Depends(get_queue),
) -> TaskService:
    return TaskService(db, cache, queue)


def verify_worker_token(x_worker_token: str = Header(default="", alias="X-Worker-Token")) -> None:
    """Worker endpoints require X-Worker-Token when WORKER_TRIGGER_TOKEN is set."""
    if WORKER_TRIGGER_TOKEN and x_worker_token != WORKER_TRIGGER_TOKEN:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid worker token")


# Request/response models

class TaskCreateRequest(BaseModel):
    """Request model for creating a task.

    A naive ``origin_datetime`` is a wall-clock time in ``origin_timezone``.
    """
    title: str = Field(..., min_length=1, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    priority: Optional[TaskPriority] = Field(None, description="Task priority")
    tags: Optional[List[str]] = Field(None, description="Tags")
    recurrence_rule: Optional[str] = Field(None, description="Opaque recurrence rule")
    origin_datetime: datetime = Field(..., description="Due time as entered")
    origin_timezone: str = Field(..., description="IANA zone of origin_datetime")
    local_timezone: Optional[str] = Field(None, description="Viewer zone (defaults to the user's zone)")
    reminders: Optional[List[ReminderRequest]] = Field(None, description="Reminders to attach")


class TaskUpdateRequest(BaseModel):
    """Request model for updating a task (all fields optional)."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    tags: Optional[List[str]] = None
    recurrence_rule: Optional[str] = None
    origin_datetime: Optional[datetime] = None
    origin_timezone: Optional[str] = None
    local_timezone: Optional[str] = None
    reminders: Optional[List[ReminderRequest]] = Field(None, description="Replaces every reminder when given")
    version: Optional[int] = Field(None, description="Expected current version")


class TaskResponse(BaseModel):
    task: Task


class TaskListResponse(BaseModel):
    tasks: List[Task]
    count: int


class CreateRemindersRequest(BaseModel):
    task_id: str
    reminders: List[ReminderRequest] = Field(..., min_length=1)


class ReminderListResponse(BaseModel):
    reminders: List[Reminder]
    count: int


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    push_token: Optional[str] = None
    timezone: Optional[str] = None


class TimeConversionRequest(BaseModel):
    value: datetime = Field(..., alias="datetime", description="Naive wall-clock time in from_zone, or an aware instant")
    from_zone: str
    to_zone: str


class TimeConversionResponse(BaseModel):
    instant: datetime
    converted: datetime
    to_zone: str
    utc_offset: str
    is_dst: bool


class WorkerStatusResponse(BaseModel):
    status: str
    running: bool
    queue_depth: int
    batch_size: int
    dispatch_timeout_sec: float
    checked_at: datetime


# Endpoints

@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/users/me", response_model=User)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@app.put("/users/me", response_model=User)
def update_me(
    request: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the caller's contact details and preferred zone."""
    changes = request.model_dump(exclude_unset=True)
    if changes.get("timezone"):
        validate_timezone(changes["timezone"])
    updated = current_user.model_copy(update={**changes, "updated_at": utc_now()})
    return UserRepository(db).create_or_update(updated)


@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """List the caller's tasks, earliest due first."""
    tasks = service.list_tasks(current_user.id)
    return TaskListResponse(tasks=tasks, count=len(tasks))


@app.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    request: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = service.create_task(
        user_id=current_user.id,
        title=request.title,
        origin_datetime=request.origin_datetime,
        origin_timezone=request.origin_timezone,
        description=request.description,
        priority=request.priority,
        tags=request.tags,
        recurrence_rule=request.recurrence_rule,
        local_timezone=request.local_timezone or current_user.timezone,
        reminders=request.reminders,
    )
    return TaskResponse(task=task)


@app.get("/tasks/export")
def export_task_list(
    format: ExportFormat = Query(ExportFormat.MARKDOWN),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Export the caller's tasks as Markdown or CSV."""
    content = export_tasks(service.list_tasks(current_user.id), format)
    if format == ExportFormat.CSV:
        media_type, extension = "text/csv", "csv"
    else:
        media_type, extension = "text/markdown", "md"
    return PlainTextResponse(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="tasks.{extension}"'},
    )


@app.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse(task=service.get_task(current_user.id, task_id))


@app.put("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    changes = request.model_dump(exclude_unset=True, exclude={"reminders", "version"})
    changes = {k: v for k, v in changes.items() if v is not None or k in ("description", "recurrence_rule")}
    task = service.update_task(
        current_user.id,
        task_id,
        changes,
        reminders=request.reminders,
        expected_version=request.version,
    )
    return TaskResponse(task=task)


@app.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(current_user.id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/tasks/{task_id}/reminders", response_model=ReminderListResponse)
def list_task_reminders(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    reminders = service.list_reminders(current_user.id, task_id)
    return ReminderListResponse(reminders=reminders, count=len(reminders))


@app.post("/reminders", response_model=ReminderListResponse, status_code=status.HTTP_201_CREATED)
def create_reminders(
    request: CreateRemindersRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    reminders = service.add_reminders(current_user.id, request.task_id, request.reminders)
    return ReminderListResponse(reminders=reminders, count=len(reminders))


@app.delete("/reminders/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reminder(
    reminder_id: str,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    service.delete_reminder(current_user.id, reminder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/timezones/convert", response_model=TimeConversionResponse)
def convert_time(request: TimeConversionRequest):
    """Convert a time between two IANA zones."""
    instant = to_instant(request.value, request.from_zone)
    converted = to_zoned_time(instant, request.to_zone)
    return TimeConversionResponse(
        instant=instant,
        converted=converted,
        to_zone=request.to_zone,
        utc_offset=format_utc_offset(converted),
        is_dst=is_dst(converted),
    )


@app.post("/worker/run", response_model=WorkerCycleResult, dependencies=[Depends(verify_worker_token)])
def run_worker_cycle(
    db: Session = Depends(get_db),
    queue: INotificationQueue = Depends(get_queue),
    dispatchers: DispatcherRegistry = Depends(get_dispatchers),
    cache: ITaskCache = Depends(get_cache),
):
    """Run one delivery cycle (for schedulers that trigger over HTTP)."""
    return NotificationWorker(db, queue, dispatchers, cache).run_cycle()


@app.get("/worker", response_model=WorkerStatusResponse, dependencies=[Depends(verify_worker_token)])
def worker_status(
    db: Session = Depends(get_db),
    queue: INotificationQueue = Depends(get_queue),
    dispatchers: DispatcherRegistry = Depends(get_dispatchers),
):
    info = NotificationWorker(db, queue, dispatchers).status()
    return WorkerStatusResponse(status="ok", checked_at=utc_now(), **info)


@app.post("/worker/reconcile", response_model=ReconciliationResult, dependencies=[Depends(verify_worker_token)])
def reconcile(
    db: Session = Depends(get_db),
    queue: INotificationQueue = Depends(get_queue),
):
    """Re-enqueue due reminders that have no queued job."""
    return reconcile_unqueued_reminders(db, queue)
