"""
Routers Package
===============

Routers are like the reception desk - they direct incoming requests
to the right place.

- steps_router: the server's /api/steps endpoints
- sync_router: the agent's /api/sync endpoints
"""

from .steps import router as steps_router, set_step_store
from .sync import router as sync_router, set_sync_agent

__all__ = [
    "steps_router",
    "set_step_store",
    "sync_router",
    "set_sync_agent",
]
