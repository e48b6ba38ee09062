"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskBuilder, TodoFile)
- task_store.py: JSON file engine (advisory lock, load, atomic write)
- task_api.py: add / complete / remove / list and the other task operations
"""
