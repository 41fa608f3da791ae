"""
teamtasks - team task management service with role-based access control
and an append-only change history.
"""

__version__ = "0.1.0"
