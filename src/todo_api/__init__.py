"""
Todo API package.

A FastAPI CRUD service for todo items stored in MongoDB (or in memory).
The ASGI application lives in `todo_api.main:app`.
"""

__version__ = "1.0.0"
