"""Workflow store - file-based persistence for workflows, executions, usage and audit log."""

import logging
import secrets
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from src.domain.entities.workflow import ExecutionStatus
from src.domain.ports.repository import (
    AuditLogEntry,
    ExecutionRecord,
    ImageGenerationRecord,
    WorkflowRecord,
    WorkflowShareRecord,
)

logger = logging.getLogger(__name__)

STORE_FILENAME = "workflows.json"

_WORKFLOW_FIELDS = frozenset({"title", "description", "steps", "tags", "is_public"})
_EXECUTION_FIELDS = frozenset({"status", "output", "error", "completed_at"})
_IMAGE_FIELDS = frozenset({"status", "image_urls", "error_message"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _period(moment: datetime) -> str:
    """Usage counter bucket: one per calendar month."""
    return moment.strftime("%Y-%m")


class WorkflowUsage(BaseModel):
    """Per-run usage statistic."""

    workflow_id: int
    user_id: int
    execution_time: int
    status: str  # "success" | "failed"
    created_at: datetime


class _StoreData(BaseModel):
    """On-disk document."""

    workflows: list[WorkflowRecord] = Field(default_factory=list)
    executions: list[ExecutionRecord] = Field(default_factory=list)
    workflow_usage: list[WorkflowUsage] = Field(default_factory=list)
    usage_counters: dict[str, int] = Field(default_factory=dict)  # "user:resource:YYYY-MM" -> count
    audit_logs: list[AuditLogEntry] = Field(default_factory=list)
    image_generations: list[ImageGenerationRecord] = Field(default_factory=list)
    shares: list[WorkflowShareRecord] = Field(default_factory=list)
    next_ids: dict[str, int] = Field(default_factory=dict)


class JsonWorkflowStore:
    """Simple file-based implementation of WorkflowRepository.

    All reads and writes go through one reentrant lock; the document is rewritten
    atomically (temp file + rename) after every mutation.
    """

    def __init__(self, output_dir: str = "output", store_file: Path | None = None) -> None:
        """Initialize store; load from file if present."""
        self._file = store_file or Path(output_dir) / STORE_FILENAME
        self._lock = threading.RLock()
        self._data = _StoreData()
        self._load()

    def _load(self) -> None:
        """Load document from disk."""
        if not self._file.exists():
            return
        try:
            raw = self._file.read_text(encoding="utf-8")
            self._data = _StoreData.model_validate_json(raw)
        except ValueError as e:
            logger.warning("Corrupted workflow store %s: %s", self._file, e)
        except OSError as e:
            logger.warning("Cannot read workflow store %s: %s", self._file, e)

    def _save(self) -> None:
        """Persist document to disk (caller holds the lock)."""
        self._file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self._file.with_suffix(".tmp")
        try:
            tmp_file.write_text(self._data.model_dump_json(indent=2), encoding="utf-8")
            tmp_file.replace(self._file)
        except OSError:
            logger.warning("Failed to save workflow store to %s", self._file, exc_info=True)
            tmp_file.unlink(missing_ok=True)

    def _next_id(self, kind: str) -> int:
        next_id = self._data.next_ids.get(kind, 1)
        self._data.next_ids[kind] = next_id + 1
        return next_id

    # Workflows

    def create_workflow(self, user_id: int, **fields: Any) -> WorkflowRecord:
        """Create a workflow owned by user_id."""
        with self._lock:
            now = _now()
            record = WorkflowRecord(
                id=self._next_id("workflow"),
                user_id=user_id,
                created_at=now,
                updated_at=now,
                **{k: v for k, v in fields.items() if k in _WORKFLOW_FIELDS},
            )
            self._data.workflows.append(record)
            self._save()
            return record

    def get_workflow(self, workflow_id: int, user_id: int) -> WorkflowRecord | None:
        """Get workflow by id if owned by user_id."""
        with self._lock:
            for wf in self._data.workflows:
                if wf.id == workflow_id and wf.user_id == user_id:
                    return wf.model_copy()
        return None

    def get_workflow_by_id(self, workflow_id: int) -> WorkflowRecord | None:
        """Workflow regardless of owner."""
        with self._lock:
            for wf in self._data.workflows:
                if wf.id == workflow_id:
                    return wf.model_copy()
        return None

    def list_workflows(self, user_id: int) -> list[WorkflowRecord]:
        """Workflows owned by user_id, newest first."""
        with self._lock:
            owned = [wf.model_copy() for wf in self._data.workflows if wf.user_id == user_id]
        return sorted(owned, key=lambda wf: wf.updated_at, reverse=True)

    def update_workflow(self, workflow_id: int, user_id: int, **fields: Any) -> WorkflowRecord | None:
        """Update workflow fields; None values are ignored."""
        with self._lock:
            for i, wf in enumerate(self._data.workflows):
                if wf.id == workflow_id and wf.user_id == user_id:
                    changes = {k: v for k, v in fields.items() if k in _WORKFLOW_FIELDS and v is not None}
                    updated = wf.model_copy(update={**changes, "updated_at": _now()})
                    self._data.workflows[i] = updated
                    self._save()
                    return updated.model_copy()
        return None

    def delete_workflow(self, workflow_id: int, user_id: int) -> bool:
        """Delete workflow and its executions."""
        with self._lock:
            before = len(self._data.workflows)
            self._data.workflows = [
                wf for wf in self._data.workflows if not (wf.id == workflow_id and wf.user_id == user_id)
            ]
            if len(self._data.workflows) == before:
                return False
            self._data.executions = [e for e in self._data.executions if e.workflow_id != workflow_id]
            self._data.shares = [s for s in self._data.shares if s.workflow_id != workflow_id]
            self._save()
            return True

    def count_workflows(self, user_id: int) -> int:
        """Number of workflows owned by user_id."""
        with self._lock:
            return sum(1 for wf in self._data.workflows if wf.user_id == user_id)

    # Executions

    def create_execution(self, workflow_id: int, user_id: int, input: str | None) -> ExecutionRecord:
        """Create a running execution record."""
        with self._lock:
            record = ExecutionRecord(
                id=self._next_id("execution"),
                workflow_id=workflow_id,
                user_id=user_id,
                status=ExecutionStatus.RUNNING,
                input=input,
                started_at=_now(),
            )
            self._data.executions.append(record)
            self._save()
            return record

    def update_execution(self, execution_id: int, **fields: Any) -> ExecutionRecord | None:
        """Update execution status/output/error/completed_at."""
        with self._lock:
            for i, ex in enumerate(self._data.executions):
                if ex.id == execution_id:
                    changes = {k: v for k, v in fields.items() if k in _EXECUTION_FIELDS}
                    updated = ex.model_copy(update=changes)
                    self._data.executions[i] = updated
                    self._save()
                    return updated.model_copy()
        return None

    def get_execution(self, execution_id: int) -> ExecutionRecord | None:
        """Get execution by id."""
        with self._lock:
            for ex in self._data.executions:
                if ex.id == execution_id:
                    return ex.model_copy()
        return None

    def list_executions(self, workflow_id: int, user_id: int) -> list[ExecutionRecord]:
        """Executions of a workflow owned by user_id, newest first."""
        with self._lock:
            found = [
                ex.model_copy()
                for ex in self._data.executions
                if ex.workflow_id == workflow_id and ex.user_id == user_id
            ]
        return sorted(found, key=lambda ex: ex.id, reverse=True)

    # Usage

    def record_workflow_usage(self, workflow_id: int, user_id: int, execution_time: int, status: str) -> None:
        """Append a workflow usage statistic."""
        with self._lock:
            self._data.workflow_usage.append(
                WorkflowUsage(
                    workflow_id=workflow_id,
                    user_id=user_id,
                    execution_time=execution_time,
                    status=status,
                    created_at=_now(),
                )
            )
            self._save()

    def get_usage_count(self, user_id: int, resource_type: str) -> int:
        """Usage count for the current calendar month."""
        key = f"{user_id}:{resource_type}:{_period(_now())}"
        with self._lock:
            return self._data.usage_counters.get(key, 0)

    def increment_usage_count(self, user_id: int, resource_type: str) -> int:
        """Increment this month's counter and return the new value."""
        key = f"{user_id}:{resource_type}:{_period(_now())}"
        with self._lock:
            count = self._data.usage_counters.get(key, 0) + 1
            self._data.usage_counters[key] = count
            self._save()
            return count

    # Audit log

    def create_audit_log(
        self,
        user_id: int,
        action: str,
        resource_type: str,
        resource_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        """Append an audit entry."""
        with self._lock:
            entry = AuditLogEntry(
                id=self._next_id("audit"),
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details or {},
                created_at=_now(),
            )
            self._data.audit_logs.append(entry)
            self._save()
            return entry

    def list_audit_logs(self, user_id: int | None = None, limit: int = 50) -> list[AuditLogEntry]:
        """Most recent audit entries, optionally for one user."""
        with self._lock:
            entries = [e for e in self._data.audit_logs if user_id is None or e.user_id == user_id]
        return list(reversed(entries))[:limit]

    # Image generations

    def create_image_generation(
        self,
        user_id: int,
        prompt: str,
        model: str,
        parameters: dict[str, Any],
    ) -> ImageGenerationRecord:
        """Create a pending generation record."""
        with self._lock:
            record = ImageGenerationRecord(
                id=self._next_id("image"),
                user_id=user_id,
                prompt=prompt,
                model=model,
                parameters=parameters,
                created_at=_now(),
            )
            self._data.image_generations.append(record)
            self._save()
            return record

    def update_image_generation(self, generation_id: int, **fields: Any) -> ImageGenerationRecord | None:
        """Update status/image_urls/error_message."""
        with self._lock:
            for i, gen in enumerate(self._data.image_generations):
                if gen.id == generation_id:
                    changes = {k: v for k, v in fields.items() if k in _IMAGE_FIELDS}
                    updated = gen.model_copy(update=changes)
                    self._data.image_generations[i] = updated
                    self._save()
                    return updated.model_copy()
        return None

    def list_image_generations(self, user_id: int, limit: int = 20, offset: int = 0) -> list[ImageGenerationRecord]:
        """Generations of user_id, newest first."""
        with self._lock:
            owned = [g.model_copy() for g in self._data.image_generations if g.user_id == user_id]
        owned.sort(key=lambda g: g.id, reverse=True)
        return owned[offset : offset + limit]

    # Shares

    def create_share(
        self,
        workflow_id: int,
        user_id: int,
        permission: str,
        is_public: bool,
        expires_at: datetime | None,
    ) -> WorkflowShareRecord:
        """Create a share link with a fresh random token."""
        with self._lock:
            record = WorkflowShareRecord(
                id=self._next_id("share"),
                workflow_id=workflow_id,
                user_id=user_id,
                token=secrets.token_hex(32),
                permission=permission,
                is_public=is_public,
                expires_at=expires_at,
                created_at=_now(),
            )
            self._data.shares.append(record)
            self._save()
            return record

    def get_share_by_token(self, token: str) -> WorkflowShareRecord | None:
        with self._lock:
            for share in self._data.shares:
                if share.token == token:
                    return share.model_copy()
        return None

    def delete_share(self, share_id: int, user_id: int) -> bool:
        """Delete a share created by user_id."""
        with self._lock:
            before = len(self._data.shares)
            self._data.shares = [s for s in self._data.shares if not (s.id == share_id and s.user_id == user_id)]
            if len(self._data.shares) == before:
                return False
            self._save()
            return True
