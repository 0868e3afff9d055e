"""Tests for dashboard and list-page queries."""
import pytest

from taskboard.errors import ValidationError
from taskboard.queries import (
    comments_for, dashboard_stats, documents_for_project, projects_for_member,
    recent_projects, recent_tasks_for, search_projects, tasks_for_project,
)
from taskboard.schema import Actor, EntityKind, ParentRef


@pytest.fixture
def seeded(store):
    web = store.create(EntityKind.PROJECT, {
        "name": "Website", "description": "Marketing relaunch",
        "created_by": "u-1", "members": ["u-1", "u-2"],
    })
    app = store.create(EntityKind.PROJECT, {
        "name": "Mobile app", "description": "iOS first",
        "status": "on-hold", "created_by": "u-2", "members": ["u-2"],
    })
    tasks = [
        store.create(EntityKind.TASK, {"project_id": web.id, "title": "Copy", "created_by": "u-1", "assigned_to": "u-1"}),
        store.create(EntityKind.TASK, {"project_id": web.id, "title": "Design", "created_by": "u-1", "assigned_to": "u-1", "status": "done"}),
        store.create(EntityKind.TASK, {"project_id": app.id, "title": "Login", "created_by": "u-2", "assigned_to": "u-1", "status": "in-review"}),
        store.create(EntityKind.TASK, {"project_id": app.id, "title": "Push", "created_by": "u-2"}),
    ]
    store.create(EntityKind.DOCUMENT, {"project_id": web.id, "title": "Brief", "created_by": "u-1"})
    return web, app, tasks


def test_search_projects_by_term_and_status(store, seeded):
    web, app, _ = seeded

    assert search_projects(store, "RELAUNCH") == [web]
    assert search_projects(store, "mobile") == [app]
    assert search_projects(store, "", "on-hold") == [app]
    assert search_projects(store, "website", "on-hold") == []
    assert len(search_projects(store)) == 2


def test_search_projects_rejects_bad_status(store, seeded):
    with pytest.raises(ValidationError):
        search_projects(store, status="archived")


def test_projects_for_member(store, seeded):
    web, app, _ = seeded
    assert projects_for_member(store, "u-1") == [web]
    assert projects_for_member(store, "u-2") == [web, app]


def test_per_project_lists(store, seeded):
    web, app, tasks = seeded
    assert [t.title for t in tasks_for_project(store, app.id)] == ["Login", "Push"]
    assert [d.title for d in documents_for_project(store, web.id)] == ["Brief"]
    assert documents_for_project(store, app.id) == []


def test_comments_for_parent_oldest_first(store, seeded):
    web, _, tasks = seeded
    first = store.create(EntityKind.COMMENT, {"parent": ParentRef.task(tasks[0].id), "content": "1", "author_id": "u-1"})
    store.create(EntityKind.COMMENT, {"parent": ParentRef.project(web.id), "content": "x", "author_id": "u-1"})
    second = store.create(EntityKind.COMMENT, {"parent": ParentRef.task(tasks[0].id), "content": "2", "author_id": "u-2"})

    assert comments_for(store, ParentRef.task(tasks[0].id)) == [first, second]


def test_recent_projects_and_tasks(store, seeded):
    web, app, tasks = seeded
    store.update(EntityKind.PROJECT, web.id, {"description": "Touched"})
    store.update(EntityKind.TASK, tasks[0].id, {"priority": "high"})

    assert [p.id for p in recent_projects(store)] == [web.id, app.id]
    assert [t.id for t in recent_tasks_for(store, "u-1")] == [tasks[0].id, tasks[2].id, tasks[1].id]
    assert len(recent_tasks_for(store, "u-1", limit=1)) == 1
    assert recent_tasks_for(store, "nobody") == []


def test_dashboard_stats(store, seeded):
    stats = dashboard_stats(store, Actor("u-1"))

    assert stats.total_projects == 2
    assert stats.documents == 1
    assert stats.active_tasks == 3
    assert stats.completed_tasks == 1
    assert stats.my_open_tasks == 2
    assert stats.tasks_by_status == {"todo": 2, "in-progress": 0, "in-review": 1, "done": 1}
    assert stats.to_dict()["my_open_tasks"] == 2


def test_dashboard_stats_without_actor(store, seeded):
    assert dashboard_stats(store).my_open_tasks == 0
