from __future__ import annotations

import pytest

from researchquest.application.services.project_service import ProjectRegistry
from researchquest.application.services.request_guard import RequestGuard
from researchquest.application.services.task_service import TASKS, TaskTracker
from researchquest.domain.errors import InvalidTaskStatusError, NotFoundError
from researchquest.domain.task import TaskPriority, TaskStatus


def _project(store, session):
    return ProjectRegistry(store).create_project(session, title="Urban heat islands")


def test_new_project_is_seeded_with_the_topic_task(store, alice):
    project = _project(store, alice)
    tasks = TaskTracker(store).list_tasks(alice, project.id)

    assert project.phase.value == "discovery"
    assert project.progress == 0
    assert [t.key for t in tasks] == ["select-topic"]
    assert tasks[0].status == TaskStatus.TODO


def test_add_task_defaults_and_validation(store, alice):
    project = _project(store, alice)
    tracker = TaskTracker(store)

    task = tracker.add_task(alice, project.id, title="  Read five papers  ")
    assert task.title == "Read five papers"
    assert task.status == TaskStatus.TODO
    assert task.priority == TaskPriority.MEDIUM

    with pytest.raises(ValueError):
        tracker.add_task(alice, project.id, title="   ")
    with pytest.raises(ValueError):
        tracker.add_task(alice, project.id, title="x", priority="urgent")
    with pytest.raises(NotFoundError):
        tracker.add_task(alice, "missing", title="x")


def test_tasks_are_owner_scoped(store, alice, bob):
    project = _project(store, alice)
    tracker = TaskTracker(store)
    task = tracker.add_task(alice, project.id, title="Mine")

    with pytest.raises(NotFoundError):
        tracker.add_task(bob, project.id, title="Theirs")
    with pytest.raises(NotFoundError):
        tracker.update_task_status(bob, task.id, "completed")
    assert tracker.list_tasks(bob, project.id) == []


def test_update_status_is_idempotent(store, alice):
    project = _project(store, alice)
    tracker = TaskTracker(store)
    task = tracker.add_task(alice, project.id, title="Survey")

    done = tracker.update_task_status(alice, task.id, "completed")
    assert done.status == TaskStatus.COMPLETED
    assert done.completed_at

    again = tracker.update_task_status(alice, task.id, TaskStatus.COMPLETED)
    assert again.updated_at == done.updated_at
    assert again.completed_at == done.completed_at

    reopened = tracker.update_task_status(alice, task.id, "in_progress")
    assert reopened.status == TaskStatus.IN_PROGRESS
    assert reopened.completed_at is None


def test_unknown_status_is_rejected(store, alice):
    project = _project(store, alice)
    tracker = TaskTracker(store)
    task = tracker.add_task(alice, project.id, title="Survey")

    with pytest.raises(InvalidTaskStatusError):
        tracker.update_task_status(alice, task.id, "archived")
    with pytest.raises(InvalidTaskStatusError):
        tracker.list_tasks(alice, project.id, status="archived")


def test_update_and_delete_task(store, alice):
    project = _project(store, alice)
    tracker = TaskTracker(store)
    task = tracker.add_task(alice, project.id, title="Survey")

    edited = tracker.update_task(
        alice, task.id, {"priority": "high", "due_date": "2026-11-01", "status": "completed"}
    )
    assert edited.priority == TaskPriority.HIGH
    assert edited.due_date == "2026-11-01"
    assert edited.status == TaskStatus.TODO

    assert tracker.delete_task(alice, task.id) is True
    with pytest.raises(NotFoundError):
        tracker.delete_task(alice, task.id)


def test_group_tasks_by_status(store, alice):
    project = _project(store, alice)
    tracker = TaskTracker(store)
    a = tracker.add_task(alice, project.id, title="A")
    b = tracker.add_task(alice, project.id, title="B")
    tracker.update_task_status(alice, a.id, "in_progress")
    tracker.update_task_status(alice, b.id, "completed")

    groups = tracker.group_tasks(alice, project.id)

    assert set(groups) == {"todo", "in_progress", "completed"}
    assert [t.key for t in groups["todo"]] == ["select-topic"]
    assert [t.title for t in groups["in_progress"]] == ["A"]
    assert [t.title for t in groups["completed"]] == ["B"]


def test_add_task_with_request_id_runs_once(store, alice):
    project = _project(store, alice)
    tracker = TaskTracker(store, guard=RequestGuard(store))

    first = tracker.add_task(alice, project.id, title="Once", request_id="req-1")
    second = tracker.add_task(alice, project.id, title="Once", request_id="req-1")
    third = tracker.add_task(alice, project.id, title="Once", request_id="req-2")

    assert first.id == second.id
    assert third.id != first.id
    titles = [r["title"] for r in store.query(TASKS, where={"project_id": project.id})]
    assert titles.count("Once") == 2


def test_request_id_is_scoped_to_the_project(store, alice):
    registry = ProjectRegistry(store)
    first_project = registry.create_project(alice, title="Glacier melt")
    second_project = registry.create_project(alice, title="Coral bleaching")
    tracker = TaskTracker(store, guard=RequestGuard(store))

    first = tracker.add_task(alice, first_project.id, title="Field trip", request_id="req-1")
    second = tracker.add_task(alice, second_project.id, title="Field trip", request_id="req-1")

    assert second.id != first.id
    assert second.project_id == second_project.id
    assert [t.title for t in tracker.list_tasks(alice, second_project.id) if t.key is None] == ["Field trip"]
