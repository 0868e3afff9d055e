#!/usr/bin/env python3
"""
Taskboard HTTP adapter
----------------------
A JSON API over the Tracker for a browser UI.

Usage:
    python -m taskboard.server --port 3000 --db ~/.local/share/taskboard/taskboard.db

Identity:
    Every /api request carries X-User-Id (and optionally X-User-Role:
    admin|user). The header is trusted as-is; authentication happens upstream.

API:
    GET    /api/projects                 ?q=&status=&member=
    POST   /api/projects
    GET    /api/projects/<id>
    PUT    /api/projects/<id>
    DELETE /api/projects/<id>            → cascade result
    GET    /api/projects/<id>/board      → four columns
    POST   /api/projects/<id>/tasks      { column, title, ... }
    PUT    /api/tasks/<id>
    POST   /api/tasks/<id>/move          { status }
    DELETE /api/tasks/<id>
    GET    /api/tasks/mine               ?limit=
    GET    /api/projects/<id>/documents
    POST   /api/projects/<id>/documents
    PUT    /api/documents/<id>
    DELETE /api/documents/<id>
    GET    /api/comments                 ?parent_type=&parent_id=
    POST   /api/comments                 { parent_type, parent_id, content }
    PUT    /api/comments/<id>
    DELETE /api/comments/<id>
    GET    /api/dashboard
    GET    /health
"""
import argparse
import logging
import os
import sys
from functools import wraps

from flask import Flask, g, jsonify, request

from .board import COLUMNS
from .config import TrackerConfig
from .errors import (
    CascadeIncomplete, NotFound, OrphanedReference, SubstrateError, TrackerError,
    ValidationError,
)
from .queries import (
    comments_for, documents_for_project, projects_for_member, recent_projects,
    recent_tasks_for, search_projects,
)
from .schema import Actor, EntityKind, ParentRef, Role, coerce_enum
from .tracker import Tracker

logger = logging.getLogger(__name__)


def _body() -> dict:
    data = request.get_json(force=True, silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("body", "must be a JSON object")
    return data


def _found(record, kind: EntityKind, record_id: str):
    if record is None:
        raise NotFound(kind.value, record_id)
    return record


def create_app(tracker: Tracker) -> Flask:
    app = Flask(__name__)
    app.config["TRACKER"] = tracker

    # ── Identity ─────────────────────────────────────────────────────────────

    def require_actor(f):
        """Decorator: reject requests without an X-User-Id header."""
        @wraps(f)
        def decorated(*args, **kwargs):
            user_id = request.headers.get("X-User-Id", "").strip()
            if not user_id:
                return jsonify({"error": "Unauthorized"}), 401
            role = request.headers.get("X-User-Role", Role.USER.value).strip().lower()
            g.actor = Actor(user_id, coerce_enum(Role, role, "role"))
            return f(*args, **kwargs)
        return decorated

    # ── Errors ───────────────────────────────────────────────────────────────

    @app.errorhandler(TrackerError)
    def handle_tracker_error(e):
        if isinstance(e, ValidationError):
            return jsonify({"error": str(e), "field": e.field}), 400
        if isinstance(e, NotFound):
            return jsonify({"error": str(e)}), 404
        if isinstance(e, OrphanedReference):
            return jsonify({"error": str(e)}), 409
        if isinstance(e, CascadeIncomplete):
            logger.error(f"Cascade incomplete: {e}")
            return jsonify({"error": str(e), "completed": e.completed, "retry": True}), 500
        if isinstance(e, SubstrateError):
            logger.error(f"Storage failure: {e}")
            return jsonify({"error": "storage unavailable"}), 503
        return jsonify({"error": str(e)}), 500

    # ── Projects ─────────────────────────────────────────────────────────────

    @app.route("/api/projects", methods=["GET"])
    @require_actor
    def api_projects():
        projects = search_projects(
            tracker.store,
            term=request.args.get("q", ""),
            status=request.args.get("status") or None,
        )
        member = request.args.get("member")
        if member:
            ids = {p.id for p in projects_for_member(tracker.store, member)}
            projects = [p for p in projects if p.id in ids]
        return jsonify({"projects": [p.to_dict() for p in projects], "count": len(projects)})

    @app.route("/api/projects", methods=["POST"])
    @require_actor
    def api_create_project():
        project = tracker.create_project(g.actor, _body())
        return jsonify({"project": project.to_dict()}), 201

    @app.route("/api/projects/<project_id>", methods=["GET"])
    @require_actor
    def api_get_project(project_id):
        project = tracker.store.require(EntityKind.PROJECT, project_id)
        return jsonify({"project": project.to_dict()})

    @app.route("/api/projects/<project_id>", methods=["PUT"])
    @require_actor
    def api_update_project(project_id):
        project = _found(tracker.update_project(project_id, _body()), EntityKind.PROJECT, project_id)
        return jsonify({"project": project.to_dict()})

    @app.route("/api/projects/<project_id>", methods=["DELETE"])
    @require_actor
    def api_delete_project(project_id):
        result = tracker.delete_project(project_id)
        return jsonify(result.to_dict()), (200 if result.ok else 404)

    # ── Board ────────────────────────────────────────────────────────────────

    @app.route("/api/projects/<project_id>/board", methods=["GET"])
    @require_actor
    def api_board(project_id):
        tracker.store.require(EntityKind.PROJECT, project_id)
        board = tracker.board.columns(project_id)
        return jsonify({
            "project_id": project_id,
            "columns": [
                {
                    "status": col.status.value,
                    "label": col.label,
                    "tasks": [t.to_dict() for t in board[col.status]],
                }
                for col in COLUMNS
            ],
        })

    @app.route("/api/projects/<project_id>/tasks", methods=["POST"])
    @require_actor
    def api_create_task(project_id):
        data = _body()
        column = data.pop("column", None) or data.pop("status", None) or "todo"
        task = tracker.board.create_task_in_column(project_id, column, data, g.actor)
        return jsonify({"task": task.to_dict()}), 201

    @app.route("/api/tasks/<task_id>", methods=["PUT"])
    @require_actor
    def api_update_task(task_id):
        task = _found(tracker.board.update_task(task_id, _body()), EntityKind.TASK, task_id)
        return jsonify({"task": task.to_dict()})

    @app.route("/api/tasks/<task_id>/move", methods=["POST"])
    @require_actor
    def api_move_task(task_id):
        status = _body().get("status", "")
        if not status:
            return jsonify({"error": "status is required"}), 400
        task = _found(tracker.board.move_task(task_id, status), EntityKind.TASK, task_id)
        return jsonify({"task": task.to_dict()})

    @app.route("/api/tasks/<task_id>", methods=["DELETE"])
    @require_actor
    def api_delete_task(task_id):
        result = tracker.board.remove_task(task_id)
        return jsonify(result.to_dict()), (200 if result.ok else 404)

    @app.route("/api/tasks/mine", methods=["GET"])
    @require_actor
    def api_my_tasks():
        limit = request.args.get("limit", 4, type=int)
        tasks = recent_tasks_for(tracker.store, g.actor.id, limit=limit)
        return jsonify({"tasks": [t.to_dict() for t in tasks]})

    # ── Documents ────────────────────────────────────────────────────────────

    @app.route("/api/projects/<project_id>/documents", methods=["GET"])
    @require_actor
    def api_documents(project_id):
        documents = documents_for_project(tracker.store, project_id)
        return jsonify({"documents": [d.to_dict() for d in documents]})

    @app.route("/api/projects/<project_id>/documents", methods=["POST"])
    @require_actor
    def api_create_document(project_id):
        document = tracker.create_document(g.actor, project_id, _body())
        return jsonify({"document": document.to_dict()}), 201

    @app.route("/api/documents/<document_id>", methods=["PUT"])
    @require_actor
    def api_update_document(document_id):
        document = _found(
            tracker.update_document(document_id, _body()), EntityKind.DOCUMENT, document_id
        )
        return jsonify({"document": document.to_dict()})

    @app.route("/api/documents/<document_id>", methods=["DELETE"])
    @require_actor
    def api_delete_document(document_id):
        result = tracker.delete_documents({document_id})
        return jsonify(result.to_dict()), (200 if result.ok else 404)

    # ── Comments ─────────────────────────────────────────────────────────────

    @app.route("/api/comments", methods=["GET"])
    @require_actor
    def api_comments():
        parent = ParentRef.of(request.args.get("parent_type", ""), request.args.get("parent_id", ""))
        return jsonify({"comments": [c.to_dict() for c in comments_for(tracker.store, parent)]})

    @app.route("/api/comments", methods=["POST"])
    @require_actor
    def api_create_comment():
        data = _body()
        parent = ParentRef.of(data.get("parent_type", ""), data.get("parent_id", ""))
        comment = tracker.add_comment(g.actor, parent, data.get("content", ""))
        return jsonify({"comment": comment.to_dict()}), 201

    @app.route("/api/comments/<comment_id>", methods=["PUT"])
    @require_actor
    def api_update_comment(comment_id):
        comment = _found(
            tracker.update_comment(comment_id, _body()), EntityKind.COMMENT, comment_id
        )
        return jsonify({"comment": comment.to_dict()})

    @app.route("/api/comments/<comment_id>", methods=["DELETE"])
    @require_actor
    def api_delete_comment(comment_id):
        removed = tracker.delete_comments({comment_id})
        if not removed:
            raise NotFound(EntityKind.COMMENT.value, comment_id)
        return jsonify({"deleted": [comment_id]})

    # ── Dashboard ────────────────────────────────────────────────────────────

    @app.route("/api/dashboard", methods=["GET"])
    @require_actor
    def api_dashboard():
        return jsonify({
            "stats": tracker.dashboard(g.actor).to_dict(),
            "recent_projects": [p.to_dict() for p in recent_projects(tracker.store)],
            "my_tasks": [t.to_dict() for t in recent_tasks_for(tracker.store, g.actor.id)],
        })

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "substrate": type(tracker.substrate).__name__})

    return app


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(description="Taskboard JSON API server")
    parser.add_argument("--config", help="Path to taskboard.yaml")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="SQLite file (switches storage to sqlite)")
    args = parser.parse_args(argv)

    config = TrackerConfig.load(args.config)
    if args.db:
        config.db_path = os.path.expanduser(args.db)
        config.storage = "sqlite"
    host = args.host or config.host
    port = args.port or config.port

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    tracker = Tracker.from_config(config)
    app = create_app(tracker)
    logger.info(f"Serving taskboard on http://{host}:{port} (storage={config.storage})")
    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
