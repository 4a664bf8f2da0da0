"""
Inbox module - durable in-app messages from admins to users.
"""

from app.inbox.router import router as inbox_router

__all__ = ["inbox_router"]
