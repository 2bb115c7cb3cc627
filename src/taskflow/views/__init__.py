"""
Derived views (pure functions over Store snapshots).

Components:
- pipeline.py: filter -> sort -> group list view
- calendar.py: daily/weekly/monthly projection and navigation
- project_tree.py: project forest and expand/collapse state
- labels.py: due-date labels, overdue flag, title truncation
"""
