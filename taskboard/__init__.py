# Taskboard: projects, tasks, documents and comments with cascading deletes
# and a four-column kanban board.
#
# Components:
#   schema.py     - Record model (Project, Task, Comment, Document, ParentRef, Actor)
#   substrate.py  - Key -> serialized collection storage (memory, SQLite)
#   store.py      - EntityStore: typed CRUD per record kind
#   cascade.py    - Relationships: reference checks and cascading deletes
#   board.py      - KanbanBoard: columns, moves, task creation/removal
#   events.py     - BoardEvents: change notifications for the UI
#   queries.py    - Dashboard and list-page queries
#   tracker.py    - Tracker: service wiring used by presentation layers
#   config.py     - YAML/env configuration
#   server.py     - Flask JSON API
