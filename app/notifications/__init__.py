"""
Notifications module - device tokens, preferences and the random book broadcast.

The router lives in app.notifications.router and is not re-exported here:
app.core.dependencies imports from this package.
"""
