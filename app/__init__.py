"""
Teekoob Messaging Application.

A FastAPI backend for device push notifications, the periodic random book
broadcast and the in-app message inbox.
"""

__version__ = "0.1.0"
