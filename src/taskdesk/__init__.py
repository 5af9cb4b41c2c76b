"""
Taskdesk: a personal task manager.

The FastAPI service lives in ``taskdesk.main`` (``taskdesk.main.app``); the
Python client that talks to it lives in ``taskdesk.client``.
"""

__version__ = "0.1.0"
