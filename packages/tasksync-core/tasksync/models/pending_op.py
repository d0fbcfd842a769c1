"""
Pending operation model for Tasksync.

A pending operation is one mutation intent the server has not confirmed yet.
Operations are replayed strictly in the order they were queued.
"""

from dataclasses import dataclass
from typing import Any, Optional


# Valid operation kinds
OPERATION_KINDS = ("create", "update", "delete", "reorder")


@dataclass
class PendingOperation:
    """
    A queued mutation.

    Attributes:
        kind: create, update, delete or reorder
        temp_id: Client-generated id of the task a create produces
        task_id: Target task id (temp or real) for update and delete
        payload: Create fields, partial update fields, or reorder entries
            ([{"id": ..., "order": ...}, ...])
        retries: Non-network failures observed for this entry
    """

    kind: str
    temp_id: Optional[str] = None
    task_id: Optional[str] = None
    payload: Any = None
    retries: int = 0

    def __post_init__(self):
        if self.kind not in OPERATION_KINDS:
            raise ValueError(f"Invalid operation kind. Must be one of: {', '.join(OPERATION_KINDS)}")

    @classmethod
    def create(cls, temp_id: str, title: str, description: str = "", due_date: Optional[str] = None) -> "PendingOperation":
        return cls(
            kind="create",
            temp_id=temp_id,
            payload={"title": title, "description": description, "due_date": due_date},
        )

    @classmethod
    def update(cls, task_id: str, fields: dict) -> "PendingOperation":
        return cls(kind="update", task_id=task_id, payload=dict(fields))

    @classmethod
    def delete(cls, task_id: str) -> "PendingOperation":
        return cls(kind="delete", task_id=task_id)

    @classmethod
    def reorder(cls, items: list[dict]) -> "PendingOperation":
        return cls(kind="reorder", payload=[{"id": i["id"], "order": i["order"]} for i in items])

    @property
    def reorder_ids(self) -> list[str]:
        """Task ids named in a reorder payload."""
        if self.kind != "reorder" or not isinstance(self.payload, list):
            return []
        return [item["id"] for item in self.payload]

    def references(self, task_id: str) -> bool:
        """Check if this operation targets the given task id."""
        return self.task_id == task_id or task_id in self.reorder_ids

    def remap(self, old_id: str, new_id: str) -> bool:
        """
        Rewrite references to old_id as new_id.

        Returns:
            True if anything was rewritten
        """
        changed = False

        if self.task_id == old_id:
            self.task_id = new_id
            changed = True

        if self.kind == "reorder" and isinstance(self.payload, list):
            remapped = []
            for item in self.payload:
                if item["id"] == old_id:
                    item = {**item, "id": new_id}
                    changed = True
                remapped.append(item)
            self.payload = remapped

        return changed

    def describe(self) -> str:
        """Short human-readable label for logs."""
        target = self.temp_id or self.task_id
        if self.kind == "reorder":
            target = f"{len(self.reorder_ids)} tasks"
        return f"{self.kind}({target})"

    def to_dict(self) -> dict:
        """Convert to dictionary for cache storage."""
        return {
            "kind": self.kind,
            "temp_id": self.temp_id,
            "task_id": self.task_id,
            "payload": self.payload,
            "retries": self.retries,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PendingOperation":
        """Create PendingOperation from a cache entry."""
        return cls(
            kind=data.get("kind") or data.get("type"),
            temp_id=data.get("temp_id"),
            task_id=data.get("task_id"),
            payload=data.get("payload"),
            retries=int(data.get("retries") or 0),
        )
