"""
FastAPI dependencies for dependency injection.
"""

from typing import Annotated

from fastapi import Depends, Request

from app.notifications.push import PushProvider
from app.notifications.scheduler import BroadcastScheduler
from app.notifications.token_cache import TokenCache


def get_token_cache(request: Request) -> TokenCache:
    """The application-wide last-known-token cache."""
    return request.app.state.token_cache


def get_push_provider(request: Request) -> PushProvider:
    """The push provider shared by the scheduler and ad-hoc sends."""
    return request.app.state.push_provider


def get_broadcast_scheduler(request: Request) -> BroadcastScheduler:
    """The random book broadcast scheduler."""
    return request.app.state.broadcast_scheduler


TokenCacheDep = Annotated[TokenCache, Depends(get_token_cache)]
PushProviderDep = Annotated[PushProvider, Depends(get_push_provider)]
BroadcastSchedulerDep = Annotated[BroadcastScheduler, Depends(get_broadcast_scheduler)]
