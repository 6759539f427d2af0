"""
Request dependencies.

The store is created once in the application lifespan (api/main.py) and kept
on ``app.state``; routes receive it through ``Depends(get_store)``.
"""

from fastapi import Request

from repositories.store import LandStore


def get_store(request: Request) -> LandStore:
    return request.app.state.store
