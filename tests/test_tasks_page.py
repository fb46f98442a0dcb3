# tests/test_tasks_page.py

import pytest
from PySide6.QtCore import QPoint, Qt

from core.context import AppContext
from core.models import DropPosition
from ui.tasks_page import TASK_ID_ROLE, TasksPage, drop_position_for


@pytest.mark.parametrize("offset, expected", [
    (0, DropPosition.ABOVE),
    (1, DropPosition.ABOVE),
    (5, DropPosition.INSIDE),
    (10, DropPosition.INSIDE),
    (15, DropPosition.INSIDE),
    (19, DropPosition.BELOW),
    (20, DropPosition.BELOW),
])
def test_drop_zones_of_a_row(offset, expected):
    # 20 px row: the top and bottom 15% are edge zones
    assert drop_position_for(offset, 20) == expected


@pytest.fixture()
def context(storage, notifier):
    context = AppContext(storage, notifier=notifier, clock=lambda: 1000)
    yield context
    context.cleanup()


@pytest.fixture()
def page(qapp, context):
    page = TasksPage(context)
    page.resize(400, 600)
    page.show()
    qapp.processEvents()
    yield page
    page.close()
    page.deleteLater()
    qapp.processEvents()


def settle(qapp):
    """Let the page run its deferred rebuild."""
    qapp.processEvents()


def parent_id_of(page: TasksPage, task_id: str):
    parent = page._items[task_id].parent()
    return None if parent is None else parent.data(0, TASK_ID_ROLE)


def test_empty_list_shows_placeholder(page: TasksPage):
    assert page.tree.isHidden()
    assert not page.empty_label.isHidden()
    assert page.remaining_label.text() == "0 remaining"


def test_rows_nest_under_their_parents(qapp, page: TasksPage, context: AppContext):
    tree = context.task_tree
    a = tree.add("Write report")
    b = tree.add("Review")
    a1 = tree.add("Outline", a.id)
    a1a = tree.add("Find sources", a1.id)
    settle(qapp)

    assert page.tree.topLevelItemCount() == 2
    assert [page.tree.topLevelItem(i).data(0, TASK_ID_ROLE) for i in range(2)] == [a.id, b.id]
    assert parent_id_of(page, a1.id) == a.id
    assert parent_id_of(page, a1a.id) == a1.id
    assert parent_id_of(page, b.id) is None
    assert page.remaining_label.text() == "4 remaining"
    assert not page.tree.isHidden()


def test_checking_a_row_completes_the_task(qapp, page: TasksPage, context: AppContext):
    task = context.task_tree.add("Email")
    settle(qapp)

    page._items[task.id].setCheckState(0, Qt.CheckState.Checked)
    settle(qapp)

    assert context.task_tree.get(task.id).done is True
    assert page._items[task.id].font(0).strikeOut()
    assert page.remaining_label.text() == "0 remaining"


def test_active_task_is_marked(qapp, page: TasksPage, context: AppContext):
    task = context.task_tree.add("Deep work")
    context.set_active(task.id)
    settle(qapp)

    item = page._items[task.id]
    assert "Active" in item.text(0)
    assert item.font(0).bold()


def test_drops_map_to_reorder(qapp, page: TasksPage, context: AppContext, recorder):
    tree = context.task_tree
    a = tree.add("A")
    b = tree.add("B")
    settle(qapp)
    recorder.watch(page.tree.task_dropped, "dropped")

    rect = page.tree.visualItemRect(page._items[a.id])
    page.tree.report_drop(b.id, QPoint(5, rect.center().y()))
    settle(qapp)

    assert recorder.of("dropped") == [(b.id, a.id, DropPosition.INSIDE)]
    assert tree.get(b.id).parent_id == a.id
    assert parent_id_of(page, b.id) == a.id

    rect = page.tree.visualItemRect(page._items[a.id])
    page.tree.report_drop(b.id, QPoint(5, rect.top() + 1))
    settle(qapp)

    assert [task.id for task in tree.tasks] == [b.id, a.id]
    assert tree.get(b.id).parent_id is None


def test_drop_on_empty_space_moves_to_top_level(qapp, page: TasksPage, context: AppContext):
    tree = context.task_tree
    a = tree.add("A")
    a1 = tree.add("A1", a.id)
    b = tree.add("B")
    settle(qapp)

    page.tree.report_drop(a1.id, QPoint(5, page.tree.viewport().height() - 2))
    settle(qapp)

    assert [task.id for task in tree.tasks] == [a.id, b.id, a1.id]
    assert parent_id_of(page, a1.id) is None


def test_drop_on_itself_does_nothing(qapp, page: TasksPage, context: AppContext, recorder):
    task = context.task_tree.add("Alone")
    settle(qapp)
    recorder.watch(page.tree.task_dropped, "dropped")

    rect = page.tree.visualItemRect(page._items[task.id])
    page.tree.report_drop(task.id, QPoint(5, rect.center().y()))

    assert recorder.of("dropped") == []
