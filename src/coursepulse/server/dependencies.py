"""FastAPI dependencies shared by the routers."""

import httpx
import ibis
import numpy as np
from fastapi import Depends, Request

from coursepulse.config import Settings, load_settings
from coursepulse.db import connect, is_in_memory
from coursepulse.forwarders.meta import MetaConversionsForwarder
from coursepulse.forwarders.posthog import PostHogForwarder


def get_settings() -> Settings:
    return load_settings()


def get_db_connection(
    request: Request, settings: Settings = Depends(get_settings)
) -> ibis.BaseBackend:
    """
    A connection to the configured database.

    An in-memory database only lives as long as its connection, so it is
    served from the one opened in the application lifespan.
    """
    if is_in_memory(settings.db_path):
        return request.app.state.db
    return connect(settings.db_path)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """The process-scoped HTTP client created in the application lifespan."""
    return request.app.state.http_client


def get_meta_forwarder(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> MetaConversionsForwarder:
    return MetaConversionsForwarder.from_settings(settings, client)


def get_posthog_forwarder(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> PostHogForwarder:
    return PostHogForwarder.from_settings(settings, client)


def get_rng() -> np.random.Generator:
    return np.random.default_rng()
