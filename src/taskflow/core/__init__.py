"""
Core plumbing.

Components:
- errors.py: error kinds raised by the Store and views
- ports.py: Protocols the Store depends on (storage, clock)
- state.py: AppState (one Store + per-session view state)
"""
