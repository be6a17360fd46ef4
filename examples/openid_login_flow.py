import contextlib
import os
import sys
from types import SimpleNamespace
from typing import Any

# Add src to path for running directly
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

import anyio
from pydantic import SecretStr

from coreason_openid import LoginError, OpenIdManagerAsync, ProviderConfig


class InMemoryUsers:
    """Stand-in for the application's user store."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}

    def login(self, email: str, name: str, administrator: bool) -> dict[str, Any]:
        user = self.users.setdefault(email, {"email": email, "name": name})
        user["administrator"] = administrator
        return user


class PrintingSessions:
    def establish(self, request: Any, user: Any) -> None:
        print(f">>> Session established for {user['name']}")


class PrintingAudit:
    def login(self, request: Any, user: Any) -> None:
        print(">>> Audit: login")


async def main() -> None:
    """
    Walks through one authorization code login:
    - builds the redirect to the IdP
    - handles the callback for a code passed on the command line
    """
    config = ProviderConfig(
        client_id="my-app",
        client_secret=SecretStr("my-app-secret"),
        callback_url="http://localhost:8082/api/session/openid/callback",
        authorization_endpoint="https://auth.example.com/authorize",
        token_endpoint="https://auth.example.com/oauth/token",
        userinfo_endpoint="https://auth.example.com/userinfo",
        base_url="http://localhost:8082",
        admin_group="admins",
        http_timeout=5.0,
    )

    async with OpenIdManagerAsync(config, InMemoryUsers(), PrintingSessions(), PrintingAudit()) as manager:
        auth = manager.create_authorization_request()
        print(f">>> Redirect the browser to:\n{auth.url}")

        if len(sys.argv) < 2:
            print(">>> Pass the code from the callback URL to finish the login.")
            return

        request = SimpleNamespace(query_params={})
        try:
            redirect = await manager.handle_callback(f"code={sys.argv[1]}", request)
            print(f">>> Login complete, redirecting to {redirect}")
        except LoginError as e:
            # Without a real IdP the token exchange fails here
            print(f">>> Login failed: {e}")


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        anyio.run(main)
