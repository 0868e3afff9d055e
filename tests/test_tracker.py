"""Tests for the Tracker service facade."""
import pytest

from taskboard.errors import OrphanedReference
from taskboard.schema import DocumentStatus, EntityKind, ParentRef, TaskStatus


def test_creator_is_always_a_member(tracker, actor):
    project = tracker.create_project(actor, {"name": "Website", "members": ["u-2", actor.id]})
    assert project.created_by == actor.id
    assert project.members == frozenset({actor.id, "u-2"})

    solo = tracker.create_project(actor, {"name": "Solo"})
    assert solo.members == frozenset({actor.id})


def test_full_lifecycle(tracker, actor):
    project = tracker.create_project(actor, {"name": "Website"})
    task = tracker.board.create_task_in_column(project.id, "todo", {"title": "Copy"}, actor)
    doc = tracker.create_document(actor, project.id, {"title": "Brief", "content": "..."})
    comment = tracker.add_comment(actor, ParentRef.task(task.id), "On it")

    assert comment.author_id == actor.id
    assert doc.created_by == actor.id

    published = tracker.publish_document(doc.id)
    assert published.status == DocumentStatus.PUBLISHED
    assert published.version == 2

    assert tracker.board.move_task(task.id, "done").status == TaskStatus.DONE
    assert tracker.dashboard(actor).completed_tasks == 1

    result = tracker.delete_project(project.id)
    assert result.ok
    assert tracker.list_projects() == []
    for kind in (EntityKind.TASK, EntityKind.DOCUMENT, EntityKind.COMMENT):
        assert tracker.store.list(kind) == []


def test_comment_on_missing_document(tracker, actor):
    with pytest.raises(OrphanedReference):
        tracker.add_comment(actor, ParentRef.document("missing"), "Hello")


def test_update_and_delete_helpers(tracker, actor):
    project = tracker.create_project(actor, {"name": "Website"})
    doc = tracker.create_document(actor, project.id, {"title": "Brief"})
    comment = tracker.add_comment(actor, ParentRef.document(doc.id), "Typo in intro")

    assert tracker.update_project(project.id, {"status": "completed"}).status.value == "completed"
    assert tracker.update_comment(comment.id, {"content": "Fixed"}).content == "Fixed"
    assert tracker.update_document(doc.id, {"title": "Brief v2"}).version == 1
    assert tracker.get_project(project.id).status.value == "completed"

    result = tracker.delete_documents([doc.id])
    assert result.comments_removed == 1
    assert tracker.delete_comments([comment.id]) == 0
