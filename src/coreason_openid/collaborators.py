# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_identity

"""
Interfaces the host application implements and injects into the OpenID manager.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CallbackRequest(Protocol):
    """The incoming HTTP request. Starlette's `Request` satisfies this protocol."""

    @property
    def query_params(self) -> Mapping[str, str]: ...


class LoginService(Protocol):
    """Resolves or creates the local user record for an authenticated identity."""

    def login(self, email: str, name: str, administrator: bool) -> Any:
        """
        Returns the local user.

        Raises:
            StorageError: If the user store fails.
        """
        ...


class SessionManager(Protocol):
    """Binds the current HTTP session (cookie) to a user."""

    def establish(self, request: Any, user: Any) -> None: ...


class ActionLogger(Protocol):
    """Records audit events."""

    def login(self, request: Any, user: Any) -> None: ...
