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
IdentityMapper component for mapping user-info claims to a `UserIdentity`
and applying the group authorization rules.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from coreason_openid.exceptions import GroupAuthorizationDeniedError, UserInfoFetchError
from coreason_openid.models import UserIdentity
from coreason_openid.utils.logger import logger


class RawUserInfoClaims(BaseModel):
    """
    Internal model to parse and normalize the user-info claims before business logic.

    Attributes:
        email (str): The email address exactly as the IdP sent it.
        name (Optional[str]): The user's display name.
        groups (List[str]): Groups read from the configured groups claim.
    """

    email: str = Field(..., min_length=1)
    name: Optional[str] = None
    groups: List[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def non_blank_email(cls, v: str) -> str:
        # The value is passed to the login service unchanged
        if not v.strip():
            raise ValueError("email must not be blank")
        return v

    @field_validator("groups", mode="before")
    @classmethod
    def ensure_list_of_strings(cls, v: Any) -> List[str]:
        """Ensures the value is a list of strings, filtering out None values."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, (list, tuple)):
            return [str(item) for item in v if item is not None]
        return []

    @field_validator("name", mode="before")
    @classmethod
    def blank_name(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None


class IdentityMapper:
    """
    Maps user-info claims to a `UserIdentity` and decides access by group membership.

    Attributes:
        admin_group (str | None): Membership makes the user an administrator.
        allow_group (str | None): Membership is required to log in, unless the user is an administrator.
        groups_claim_name (str): Name of the claim carrying the groups.
    """

    def __init__(self, admin_group: str | None, allow_group: str | None, groups_claim_name: str = "groups") -> None:
        self.admin_group = admin_group
        self.allow_group = allow_group
        self.groups_claim_name = groups_claim_name

    def map_claims(self, claims: dict[str, Any]) -> UserIdentity:
        """
        Transform raw user-info claims into an authorized `UserIdentity`.

        Args:
            claims: The user-info response.

        Returns:
            The identity, with `is_administrator` resolved.

        Raises:
            UserInfoFetchError: If the email claim is missing or blank.
            GroupAuthorizationDeniedError: If the groups do not permit access.
        """
        try:
            raw_claims = RawUserInfoClaims(
                email=claims.get("email"),
                name=claims.get("name"),
                groups=claims.get(self.groups_claim_name),
            )
        except ValidationError as e:
            raise UserInfoFetchError("OpenID Connect user info does not contain an email address") from e

        groups = raw_claims.groups
        administrator = self.admin_group is not None and self.admin_group in groups

        if not (administrator or self.allow_group is None or self.allow_group in groups):
            logger.warning(f"OpenID login denied: none of {len(groups)} groups permit access")
            raise GroupAuthorizationDeniedError("Your OpenID Groups do not permit access")

        identity = UserIdentity(
            email=raw_claims.email,
            display_name=raw_claims.name or raw_claims.email,
            groups=groups,
            is_administrator=administrator,
        )
        logger.debug(f"Mapped OpenID identity (administrator={administrator})")
        return identity
