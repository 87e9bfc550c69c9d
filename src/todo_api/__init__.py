"""
Owner-scoped Todo API package.

The FastAPI application is built by ``todo_api.main.create_app``; the
module-level ``todo_api.main.app`` is what ASGI servers load.
"""

__version__ = "0.1.0"
