"""
Tasks page widget for the Pomodoro Tasks application.
Shows the task tree and turns clicks, menus and drops into task commands.
"""

import logging
from typing import Dict, Optional

from PySide6.QtCore import QPoint, Qt, QTimer, Signal, Slot
from PySide6.QtGui import QBrush, QColor, QDropEvent, QFont, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QAbstractItemView, QHBoxLayout, QInputDialog, QLabel, QLineEdit, QMenu,
    QMessageBox, QPushButton, QTreeWidget, QTreeWidgetItem, QVBoxLayout, QWidget
)

from core.context import AppContext
from core.models import MAX_TASK_TEXT_LENGTH, DropPosition, ValidationError

logger = logging.getLogger(__name__)

TASK_ID_ROLE = Qt.ItemDataRole.UserRole

# Fraction of a row's height at the top and bottom that means above/below
EDGE_FRACTION = 0.15


def drop_position_for(offset_y: float, row_height: float) -> DropPosition:
    """Map a pointer offset inside a row to where the drop lands."""
    if offset_y < row_height * EDGE_FRACTION:
        return DropPosition.ABOVE
    if offset_y > row_height * (1 - EDGE_FRACTION):
        return DropPosition.BELOW
    return DropPosition.INSIDE


class TaskTreeWidget(QTreeWidget):
    """
    Tree view that reports drops instead of moving items itself.
    The page rebuilds the tree from the task list after every change.

    Signals:
        task_dropped: (dragged_id, target_id or None, DropPosition)
    """

    task_dropped = Signal(str, object, object)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setHeaderHidden(True)
        self.setDragEnabled(True)
        self.setAcceptDrops(True)
        self.setDropIndicatorShown(True)
        self.setDragDropMode(QAbstractItemView.DragDropMode.InternalMove)
        self.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)

    def dropEvent(self, event: QDropEvent):
        dragged = self.currentItem()
        if event.source() is not self or dragged is None:
            event.ignore()
            return

        self.report_drop(dragged.data(0, TASK_ID_ROLE), event.position().toPoint())

        # The model owns the order; never let Qt move the item
        event.setDropAction(Qt.DropAction.IgnoreAction)
        event.accept()

    def report_drop(self, dragged_id: str, pos: QPoint):
        """Emit task_dropped for a drop at pos, in viewport coordinates."""
        target = self.itemAt(pos)
        if target is None:
            # Background drop detaches to the top level
            self.task_dropped.emit(dragged_id, None, DropPosition.BELOW)
            return

        target_id = target.data(0, TASK_ID_ROLE)
        if target_id != dragged_id:
            rect = self.visualItemRect(target)
            position = drop_position_for(pos.y() - rect.top(), rect.height())
            self.task_dropped.emit(dragged_id, target_id, position)


class TasksPage(QWidget):
    """
    Task list page: add, complete, nest, reorder and delete tasks.
    """

    def __init__(self, context: AppContext, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self.context = context
        self.task_tree = context.task_tree
        self._items: Dict[str, QTreeWidgetItem] = {}
        self._refresh_pending = False

        self._setup_ui()
        self._connect_signals()
        self.refresh()

    def _setup_ui(self):
        """Set up the UI components."""
        layout = QVBoxLayout(self)
        layout.setSpacing(12)
        layout.setContentsMargins(20, 20, 20, 20)

        header_layout = QHBoxLayout()
        title = QLabel("Tasks")
        title.setStyleSheet("font-size: 18px; font-weight: bold;")
        header_layout.addWidget(title)
        header_layout.addStretch()
        self.remaining_label = QLabel("")
        self.remaining_label.setStyleSheet("color: #a0a0b4;")
        header_layout.addWidget(self.remaining_label)
        layout.addLayout(header_layout)

        add_layout = QHBoxLayout()
        self.task_input = QLineEdit()
        self.task_input.setPlaceholderText("Add a task...")
        self.task_input.setMaxLength(MAX_TASK_TEXT_LENGTH)
        add_layout.addWidget(self.task_input)
        self.add_btn = QPushButton("+")
        self.add_btn.setToolTip("Add task")
        self.add_btn.setFixedWidth(44)
        add_layout.addWidget(self.add_btn)
        layout.addLayout(add_layout)

        self.tree = TaskTreeWidget()
        layout.addWidget(self.tree)

        self.empty_label = QLabel("Add a task to get started")
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.empty_label.setStyleSheet("color: #707084; padding: 30px;")
        layout.addWidget(self.empty_label)

        hint = QLabel(
            "Drag onto a task to nest it, near its edge to place it above or "
            "below, or onto empty space to move it to the top level."
        )
        hint.setWordWrap(True)
        hint.setStyleSheet("color: #707084; font-size: 11px;")
        layout.addWidget(hint)

        self.delete_shortcut = QShortcut(QKeySequence(QKeySequence.StandardKey.Delete), self.tree)

    def _connect_signals(self):
        """Connect widget and model signals."""
        self.task_tree.changed.connect(self._on_tasks_changed)
        self.context.active_task_changed.connect(self._on_active_task_changed)

        self.add_btn.clicked.connect(self._on_add_clicked)
        self.task_input.returnPressed.connect(self._on_add_clicked)
        self.tree.itemChanged.connect(self._on_item_changed)
        self.tree.itemDoubleClicked.connect(self._on_item_double_clicked)
        self.tree.customContextMenuRequested.connect(self._on_context_menu)
        self.tree.task_dropped.connect(self._on_task_dropped)
        self.delete_shortcut.activated.connect(self._on_delete_shortcut)

    # ==================== Rendering ====================

    def refresh(self):
        """Rebuild the tree widget from the task list."""
        active_id = self.context.active_task_id
        self.tree.blockSignals(True)
        self.tree.clear()
        self._items.clear()

        for task, _depth in self.task_tree.walk():
            parent_item = self._items.get(task.parent_id)
            if parent_item is not None:
                item = QTreeWidgetItem(parent_item)
            else:
                item = QTreeWidgetItem(self.tree)
            item.setData(0, TASK_ID_ROLE, task.id)
            item.setFlags(
                item.flags()
                | Qt.ItemFlag.ItemIsUserCheckable
                | Qt.ItemFlag.ItemIsDragEnabled
                | Qt.ItemFlag.ItemIsDropEnabled
            )
            item.setCheckState(0, Qt.CheckState.Checked if task.done else Qt.CheckState.Unchecked)

            font = QFont()
            font.setStrikeOut(task.done)
            font.setBold(task.id == active_id)
            item.setFont(0, font)

            text = task.text
            if task.id == active_id:
                text += "  · Active"
                item.setForeground(0, QBrush(QColor("#8b84ff")))
            elif task.done:
                item.setForeground(0, QBrush(QColor("#707084")))
            item.setText(0, text)

            self._items[task.id] = item

        self.tree.expandAll()
        self.tree.blockSignals(False)

        has_tasks = bool(self._items)
        self.tree.setVisible(has_tasks)
        self.empty_label.setVisible(not has_tasks)
        self.remaining_label.setText(f"{self.task_tree.pending_count} remaining")

    @Slot(object)
    def _on_tasks_changed(self, tasks: tuple):
        self._schedule_refresh()

    @Slot(object)
    def _on_active_task_changed(self, task_id: Optional[str]):
        self._schedule_refresh()

    def _schedule_refresh(self):
        """
        Rebuild on the next event loop pass.
        Model changes often arrive from inside the tree widget's own signals
        (item checked, item double-clicked, drop), where clearing it is unsafe.
        """
        if self._refresh_pending:
            return
        self._refresh_pending = True
        QTimer.singleShot(0, self._run_scheduled_refresh)

    @Slot()
    def _run_scheduled_refresh(self):
        self._refresh_pending = False
        self.refresh()

    # ==================== Commands ====================

    def _add_task(self, text: str, parent_id: Optional[str] = None):
        text = text.strip()[:MAX_TASK_TEXT_LENGTH]
        if not text:
            return
        try:
            self.task_tree.add(text, parent_id)
        except ValidationError as e:
            QMessageBox.warning(self, "Cannot Add Task", str(e))

    @Slot()
    def _on_add_clicked(self):
        """Handle add button / return key."""
        self._add_task(self.task_input.text())
        self.task_input.clear()

    @Slot(QTreeWidgetItem, int)
    def _on_item_changed(self, item: QTreeWidgetItem, column: int):
        """Checkbox clicks toggle the task."""
        task = self.task_tree.get(item.data(0, TASK_ID_ROLE))
        if task is None:
            return
        checked = item.checkState(0) == Qt.CheckState.Checked
        if checked != task.done:
            self.task_tree.toggle(task.id)

    @Slot(QTreeWidgetItem, int)
    def _on_item_double_clicked(self, item: QTreeWidgetItem, column: int):
        self.context.set_active(item.data(0, TASK_ID_ROLE))

    @Slot(str, object, object)
    def _on_task_dropped(self, dragged_id: str, target_id: Optional[str], position: DropPosition):
        if not self.task_tree.reorder(dragged_id, target_id, position):
            logger.debug("Drop of %s on %s (%s) left the list unchanged",
                         dragged_id, target_id, position.value)

    @Slot()
    def _on_delete_shortcut(self):
        item = self.tree.currentItem()
        if item is not None:
            self.task_tree.delete(item.data(0, TASK_ID_ROLE))

    @Slot(QPoint)
    def _on_context_menu(self, pos: QPoint):
        """Show the per-task menu."""
        item = self.tree.itemAt(pos)
        if item is None:
            return
        task_id = item.data(0, TASK_ID_ROLE)

        menu = QMenu(self)
        subtask_action = menu.addAction("↳ Add Subtask")
        active_label = "Clear Active" if task_id == self.context.active_task_id else "Set Active"
        active_action = menu.addAction(active_label)
        menu.addSeparator()
        delete_action = menu.addAction("Delete")

        chosen = menu.exec(self.tree.viewport().mapToGlobal(pos))
        if chosen is subtask_action:
            text, ok = QInputDialog.getText(self, "Add Subtask", "Subtask:")
            if ok:
                self._add_task(text, task_id)
        elif chosen is active_action:
            self.context.set_active(task_id)
        elif chosen is delete_action:
            self.task_tree.delete(task_id)
