"""Summary: Task board state machine with optimistic status changes.

Importance: Keeps the local task list consistent with the remote store for one user.
Alternatives: Re-fetch the whole board after every mutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Sequence

from meetingpilot.errors import MeetingPilotError, NotFound, ValidationError
from meetingpilot.gateway import RemoteStoreGateway
from meetingpilot.metrics import MetricsAggregator
from meetingpilot.models import PRIORITIES, TASK_STATUSES, ActionItem, Task, TaskDraft

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "status", "priority", "assigned_to", "due_date")


@dataclass(frozen=True)
class StatusChange:
    """Summary: Reversible status change applied to the local task list.

    Importance: Gives the optimistic drag a single compensating action on failure.
    Alternatives: Snapshot and restore the whole task list.
    """

    task_id: str
    previous: str
    target: str

    def apply(self, tasks: list[Task]) -> list[Task]:
        return [
            replace(task, status=self.target) if task.id == self.task_id else task
            for task in tasks
        ]

    def compensate(self, tasks: list[Task]) -> list[Task]:
        """Summary: Undo the change unless a later change already moved the task."""

        return [
            replace(task, status=self.previous)
            if task.id == self.task_id and task.status == self.target
            else task
            for task in tasks
        ]


class TaskBoard:
    """Summary: Tasks of one user grouped into status columns.

    Importance: Status drags are optimistic; every other mutation waits for the store.
    Alternatives: Make every mutation optimistic.
    """

    def __init__(
        self, user_id: str, gateway: RemoteStoreGateway, metrics: MetricsAggregator
    ) -> None:
        self.user_id = user_id
        self._gateway = gateway
        self._metrics = metrics
        self._tasks: list[Task] = []

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def get(self, task_id: str) -> Task | None:
        return next((task for task in self._tasks if task.id == task_id), None)

    async def load(self) -> list[Task]:
        """Summary: Replace the local tasks with the remote list.

        Importance: A failed load keeps the previous tasks instead of an empty board.
        Alternatives: Clear the board before fetching.
        """

        tasks = await self._gateway.list_tasks_for_user(self.user_id)
        self._tasks = list(tasks)
        return self.tasks

    async def add_task(
        self,
        title: str,
        *,
        description: str = "",
        priority: str = "medium",
        status: str = "todo",
        assigned_to: str | None = None,
        due_date: str | None = None,
    ) -> Task:
        """Summary: Create a task and append it once the store assigns its id."""

        if not title or not title.strip():
            raise ValidationError("Task title is required")
        _check_status(status)
        _check_priority(priority)
        draft = TaskDraft(
            title=title.strip(),
            user_id=self.user_id,
            description=description,
            status=status,
            priority=priority,
            assigned_to=assigned_to,
            due_date=due_date,
        )
        task = await self._gateway.create_task(draft)
        self._tasks.append(task)
        logger.info("Created task %s for %s.", task.id, self.user_id)
        await self._count_created(1)
        return task

    async def add_tasks_bulk(
        self, action_items: Sequence[ActionItem], today: date | None = None
    ) -> list[Task]:
        """Summary: Promote action items to tasks in one batched call.

        Importance: tasks_created grows by the number created on success and by 0 on failure.
        Alternatives: Create tasks one by one and count each.
        """

        if not action_items:
            return []
        drafts = [item.to_task_draft(self.user_id, today) for item in action_items]
        created = await self._gateway.create_tasks_bulk(drafts, self.user_id)
        self._tasks.extend(created)
        logger.info("Created %s tasks from action items for %s.", len(created), self.user_id)
        await self._count_created(len(created))
        return created

    async def update_status(self, task_id: str, status: str) -> Task:
        """Summary: Move a task to another status, rolling back if the store refuses.

        Importance: The board reflects a drag immediately and stays truthful on failure.
        Alternatives: Wait for the store before moving the card.
        """

        _check_status(status)
        task = self._require(task_id)
        if task.status == status:
            return task
        change = StatusChange(task_id=task_id, previous=task.status, target=status)
        self._tasks = change.apply(self._tasks)
        try:
            updated = await self._gateway.update_task_status(task_id, status)
        except MeetingPilotError as exc:
            self._tasks = change.compensate(self._tasks)
            logger.warning("Rolled back status of %s to %s: %s", task_id, task.status, exc)
            raise
        self._replace(updated)
        return updated

    async def edit_task(self, task_id: str, **fields: Any) -> Task:
        """Summary: Apply a partial edit after the store confirms it."""

        unknown = sorted(set(fields) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Cannot edit task fields: {', '.join(unknown)}")
        if not fields:
            raise ValidationError("Nothing to update")
        if "title" in fields and not (fields["title"] or "").strip():
            raise ValidationError("Task title is required")
        updated = await self._gateway.update_task(task_id, fields)
        self._replace(updated)
        return updated

    async def delete_task(self, task_id: str) -> bool:
        """Summary: Delete a task; returns False when the store no longer had it.

        Importance: A task missing remotely is dropped locally so the board heals itself.
        Alternatives: Surface NotFound and leave the stale card in place.
        """

        try:
            await self._gateway.delete_task(task_id)
        except NotFound:
            logger.info("Task %s was already gone; removing it from the board.", task_id)
            self._remove(task_id)
            return False
        self._remove(task_id)
        logger.info("Deleted task %s.", task_id)
        return True

    async def move(self, task_id: str, target: str) -> bool:
        """Summary: Resolve a drop target and change the task's column.

        Importance: Dropping on a card means dropping into that card's column; order within
        a column is not persisted.
        Alternatives: Persist a position field per task.
        """

        task = self._require(task_id)
        if target in TASK_STATUSES:
            column = target
        else:
            other = self.get(target)
            if other is None:
                raise ValidationError(f"Unknown drop target: {target}")
            column = other.column
        if task.column == column:
            return False
        await self.update_status(task_id, column)
        return True

    def columns(self) -> dict[str, list[Task]]:
        grouped: dict[str, list[Task]] = {status: [] for status in TASK_STATUSES}
        for task in self._tasks:
            grouped.setdefault(task.column, []).append(task)
        return grouped

    def counts(self) -> dict[str, int]:
        return {status: len(tasks) for status, tasks in self.columns().items()}

    async def _count_created(self, amount: int) -> None:
        if amount <= 0:
            return
        try:
            await self._metrics.increment(self.user_id, "tasks_created", amount)
        except MeetingPilotError as exc:
            logger.warning("Could not record %s created tasks for %s: %s", amount, self.user_id, exc)

    def _require(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise NotFound(f"Task {task_id} is not on the board")
        return task

    def _replace(self, updated: Task) -> None:
        self._tasks = [updated if task.id == updated.id else task for task in self._tasks]

    def _remove(self, task_id: str) -> None:
        self._tasks = [task for task in self._tasks if task.id != task_id]


def _check_status(status: str) -> None:
    if status not in TASK_STATUSES:
        raise ValidationError(f"Unknown task status: {status}")


def _check_priority(priority: str) -> None:
    if priority not in PRIORITIES:
        raise ValidationError(f"Unknown task priority: {priority}")
