"""
Supabase client construction.

This module only builds the supabase-py client from explicit credentials; it
does not create a module-level client. The Supabase backend
(repositories/supabase_store.py) receives the client it should use.

Credentials come from repositories/config.py:
- SUPABASE_URL: your Supabase project URL
- SUPABASE_KEY: your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]


def create_supabase_client(url: str, key: str) -> Client:
    """Build a supabase-py client, failing early on obviously bad input."""

    if not url:
        raise RuntimeError(
            "Missing Supabase URL. Set SUPABASE_URL to your Supabase project URL."
        )
    if not key:
        raise RuntimeError(
            "Missing Supabase key. Set SUPABASE_KEY to your Supabase API key."
        )
    return create_client(url, key)


__all__ = ["create_supabase_client"]
