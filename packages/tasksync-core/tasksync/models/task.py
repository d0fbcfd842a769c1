"""
Task model for Tasksync.

A task is one user-owned to-do item. Besides the fields the server stores,
each task carries local reconciliation state (sync_status, is_temp) that
never leaves the client.
"""

from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4


# Valid status values
TASK_STATUSES = ("pending", "in_progress", "completed")

# Local reconciliation states
SYNC_STATUSES = ("synced", "pending", "error")

# Sort preferences: manual uses `order`, asc/desc use creation order
SORT_MODES = ("manual", "asc", "desc")

# Wire (server) field name -> model attribute
_WIRE_FIELDS = {
    "_id": "id",
    "createBy": "created_by",
    "dueDate": "due_date",
    "isTemp": "is_temp",
    "syncStatus": "sync_status",
}

# Attributes a partial update may touch
UPDATABLE_FIELDS = ("title", "description", "completed", "status", "due_date", "order")


def to_model_key(key: str) -> str:
    """Translate a wire field name to the model attribute name."""
    return _WIRE_FIELDS.get(key, key)


def to_wire_fields(fields: dict) -> dict:
    """Translate model attribute names in a partial update to wire names."""
    reverse = {v: k for k, v in _WIRE_FIELDS.items()}
    return {reverse.get(k, k): v for k, v in fields.items()}


@dataclass
class Task:
    """
    A to-do item, either confirmed by the server or created locally.

    Attributes:
        id: Server id once synced, a client-generated temp id before that
        title: Task title
        description: Task description
        completed: Completion flag
        status: pending, in_progress or completed (None when the server omitted it)
        created_by: Owner user id
        due_date: Optional due date (ISO string, passed through as-is)
        order: Manual sort key
        sync_status: synced, pending or error (local only)
        is_temp: True until the create that produced the task is confirmed
    """

    title: str
    id: str = field(default_factory=lambda: str(uuid4()))
    description: str = ""
    completed: bool = False
    status: Optional[str] = None
    created_by: str = ""
    due_date: Optional[str] = None
    order: int = 0
    sync_status: str = "synced"
    is_temp: bool = False

    @property
    def is_pending(self) -> bool:
        """Check if the task has local changes the server has not confirmed."""
        return self.sync_status == "pending"

    def apply(self, fields: dict) -> "Task":
        """Merge a partial field dict into this task; unknown keys are ignored."""
        for key, value in fields.items():
            attr = to_model_key(key)
            if attr in UPDATABLE_FIELDS or attr in ("created_by", "sync_status", "is_temp"):
                setattr(self, attr, value)
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary for cache storage."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "status": self.status,
            "created_by": self.created_by,
            "due_date": self.due_date,
            "order": self.order,
            "sync_status": self.sync_status,
            "is_temp": self.is_temp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create Task from a server response or a cache entry."""
        data = {to_model_key(k): v for k, v in data.items()}

        # Admin listings may populate the owner reference
        if isinstance(data.get("created_by"), dict):
            owner = data["created_by"]
            data["created_by"] = owner.get("_id") or owner.get("id")

        return cls(
            id=data.get("id") or str(uuid4()),
            title=data.get("title", ""),
            description=data.get("description") or "",
            completed=bool(data.get("completed", False)),
            status=data.get("status"),
            created_by=data.get("created_by") or "",
            due_date=data.get("due_date"),
            order=int(data.get("order") or 0),
            sync_status=data.get("sync_status", "synced"),
            is_temp=bool(data.get("is_temp", False)),
        )


def normalize_status(task: Task) -> Task:
    """Fill in a missing status from the completion flag."""
    if not task.status:
        task.status = "completed" if task.completed else "pending"
    return task
