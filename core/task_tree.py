"""
Hierarchical task list for the Pomodoro Tasks application.

Tasks live in one flat ordered list with parent links. Sibling order
and display order both come from list order; the tree shape is always
re-derived from the parent links, never cached.
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from PySide6.QtCore import QObject, Signal

from .models import DropPosition, Task, TaskIdGenerator, ValidationError

logger = logging.getLogger(__name__)


def children_map(tasks: List[Task]) -> Dict[Optional[str], List[Task]]:
    """Group tasks by parent id, keeping list order inside each group."""
    children: Dict[Optional[str], List[Task]] = {}
    for task in tasks:
        children.setdefault(task.parent_id, []).append(task)
    return children


def collect_descendants(tasks: List[Task], task_id: str) -> Set[str]:
    """Return the ids of every task below task_id, following current parent links."""
    children = children_map(tasks)
    found: Set[str] = set()
    pending = [task_id]
    while pending:
        current = pending.pop()
        for child in children.get(current, []):
            if child.id not in found:
                found.add(child.id)
                pending.append(child.id)
    return found


def sanitize_tasks(tasks: List[Task]) -> List[Task]:
    """
    Repair a task list loaded from outside.

    Duplicate ids keep their first occurrence. Parent links that point at
    a missing task, or that close a cycle, are cut so the task becomes
    top-level.
    """
    seen: Set[str] = set()
    unique: List[Task] = []
    for task in tasks:
        if task.id in seen:
            logger.warning("Dropping duplicate task id %s", task.id)
            continue
        seen.add(task.id)
        unique.append(task)

    parents = {task.id: task.parent_id for task in unique}
    for task_id in parents:
        if parents[task_id] is not None and parents[task_id] not in parents:
            logger.warning("Task %s had a missing parent; moved to top level", task_id)
            parents[task_id] = None

    for task_id in parents:
        visited = {task_id}
        current = parents[task_id]
        while current is not None:
            if current in visited:
                logger.warning("Task %s was part of a parent cycle; moved to top level", task_id)
                parents[task_id] = None
                break
            visited.add(current)
            current = parents[current]

    return [
        task if task.parent_id == parents[task.id] else replace(task, parent_id=None)
        for task in unique
    ]


class TaskTree(QObject):
    """
    Ordered task collection enforcing the tree invariants.

    Every mutation reads the whole list, computes the new list and commits
    it under a lock, so two mutations never interleave.

    Signals:
        changed: Emitted with the new task tuple after every mutation
        task_completed: Emitted when a task goes from not-done to done
        tasks_removed: Emitted with the ids a delete removed
    """

    changed = Signal(object)
    task_completed = Signal(str)
    tasks_removed = Signal(object)

    def __init__(
        self,
        id_generator: Optional[TaskIdGenerator] = None,
        tasks: Optional[List[Task]] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self._ids = id_generator or TaskIdGenerator()
        self._lock = threading.RLock()
        self._tasks: List[Task] = sanitize_tasks(list(tasks or []))

    @property
    def tasks(self) -> Tuple[Task, ...]:
        """Immutable snapshot of the ordered task list."""
        with self._lock:
            return tuple(self._tasks)

    @property
    def pending_count(self) -> int:
        """Number of tasks not done yet."""
        with self._lock:
            return sum(1 for task in self._tasks if not task.done)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def get(self, task_id: Optional[str]) -> Optional[Task]:
        with self._lock:
            return self._find(task_id)[1]

    def descendants(self, task_id: str) -> Set[str]:
        with self._lock:
            return collect_descendants(self._tasks, task_id)

    # ==================== Commands ====================

    def add(self, text: str, parent_id: Optional[str] = None) -> Task:
        """
        Append a new task.

        Raises:
            ValidationError: if the text is blank or the parent is unknown.
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Task text must not be empty")

        with self._lock:
            if parent_id is not None and self._find(parent_id)[1] is None:
                raise ValidationError(f"Unknown parent task {parent_id!r}")

            task_id = self._ids.next_id()
            while self._find(task_id)[1] is not None:
                task_id = self._ids.next_id()

            task = Task(id=task_id, text=text, parent_id=parent_id)
            self._commit(self._tasks + [task])

        logger.debug("Added task %s under %s", task.id, parent_id)
        return task

    def toggle(self, task_id: str) -> Optional[Task]:
        """Flip a task's done flag. Unknown ids are ignored."""
        with self._lock:
            index, task = self._find(task_id)
            if task is None:
                return None

            updated = replace(task, done=not task.done)
            new_tasks = list(self._tasks)
            new_tasks[index] = updated
            self._commit(new_tasks)

        if updated.done:
            self.task_completed.emit(updated.id)
        return updated

    def delete(self, task_id: str) -> List[str]:
        """
        Remove a task together with all of its descendants.

        Returns:
            Ids of the removed tasks, empty when task_id is unknown.
        """
        with self._lock:
            if self._find(task_id)[1] is None:
                return []

            doomed = collect_descendants(self._tasks, task_id)
            doomed.add(task_id)
            removed = [task.id for task in self._tasks if task.id in doomed]
            self._commit([task for task in self._tasks if task.id not in doomed])

        logger.debug("Deleted %d task(s) rooted at %s", len(removed), task_id)
        self.tasks_removed.emit(removed)
        return removed

    def reorder(
        self,
        dragged_id: str,
        target_id: Optional[str],
        position: Union[DropPosition, str] = DropPosition.BELOW
    ) -> bool:
        """
        Move a task next to, or into, another task.

        A target of None detaches the task to the top level and moves it
        to the end. ABOVE and BELOW make the task a sibling of the target;
        INSIDE makes it the target's first child. Moves that would put a
        task under itself are refused.

        Returns:
            True if the list changed.
        """
        try:
            position = DropPosition(position)
        except ValueError:
            logger.warning("Ignoring reorder with unknown position %r", position)
            return False

        with self._lock:
            dragged_index, dragged = self._find(dragged_id)
            if dragged is None:
                return False

            remaining = self._tasks[:dragged_index] + self._tasks[dragged_index + 1:]

            if target_id is None:
                new_tasks = remaining + [replace(dragged, parent_id=None)]
                return self._commit_if_changed(new_tasks)

            if target_id == dragged_id:
                return False

            target_index, target = self._find(target_id, remaining)
            if target is None:
                return False

            if position == DropPosition.INSIDE:
                new_parent = target.id
            else:
                new_parent = target.parent_id

            if new_parent is not None:
                if new_parent == dragged.id or new_parent in collect_descendants(self._tasks, dragged.id):
                    logger.debug("Refused to move %s below itself", dragged_id)
                    return False

            insert_at = target_index if position == DropPosition.ABOVE else target_index + 1
            moved = replace(dragged, parent_id=new_parent)
            new_tasks = remaining[:insert_at] + [moved] + remaining[insert_at:]
            return self._commit_if_changed(new_tasks)

    # ==================== Display ====================

    def walk(self) -> Iterator[Tuple[Task, int]]:
        """
        Yield (task, depth) in display order.

        Depth-first from the top-level tasks, children in list order.
        """
        tasks = self.tasks
        children = children_map(list(tasks))
        visited: Set[str] = set()
        stack = [(task, 0) for task in reversed(children.get(None, []))]
        while stack:
            task, depth = stack.pop()
            if task.id in visited:
                continue
            visited.add(task.id)
            yield task, depth
            for child in reversed(children.get(task.id, [])):
                stack.append((child, depth + 1))

    # ==================== Internals ====================

    def _find(
        self, task_id: Optional[str], tasks: Optional[List[Task]] = None
    ) -> Tuple[int, Optional[Task]]:
        tasks = self._tasks if tasks is None else tasks
        for index, task in enumerate(tasks):
            if task.id == task_id:
                return index, task
        return -1, None

    def _commit_if_changed(self, new_tasks: List[Task]) -> bool:
        if new_tasks == self._tasks:
            return False
        self._commit(new_tasks)
        return True

    def _commit(self, new_tasks: List[Task]):
        self._tasks = new_tasks
        self.changed.emit(tuple(new_tasks))
