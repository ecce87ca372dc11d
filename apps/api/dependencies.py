from __future__ import annotations

from fastapi import Request

from packages.core.dispatcher import Dispatcher
from packages.core.job_store import JobStore


def get_job_store(request: Request) -> JobStore:
    """Job store created by the application lifespan."""

    return request.app.state.job_store


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher
