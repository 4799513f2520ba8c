"""
Request dependencies: services, clock and the authenticated user.

Identity comes from the fronting proxy: it authenticates the browser session
and forwards the user's email in ``config.identity_header``.
"""

from __future__ import annotations

from fastapi import Request

from ..errors import Unauthorized
from ..store.directory import User


def get_services(request: Request) -> dict:
    return request.app.state.services


def get_now(request: Request) -> float:
    return request.app.state.clock()


def current_user(request: Request) -> User:
    header = request.app.state.config.identity_header
    email = request.headers.get(header, "")
    user = request.app.state.services["directory"].find_by_email(email)
    if user is None:
        raise Unauthorized("Unauthorized")
    return user
