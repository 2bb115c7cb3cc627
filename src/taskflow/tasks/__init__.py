"""
Task subsystem.

Components:
- models.py: data structures (Task, Project, Priority, TaskStatus)
- store.py: Store owning both collections, write-through persistence, change notifications
"""
