# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_identity

from typing import Any

import pytest

from coreason_openid.exceptions import GroupAuthorizationDeniedError, UserInfoFetchError
from coreason_openid.identity_mapper import IdentityMapper


def claims(groups: Any = None, **extra: Any) -> dict[str, Any]:
    data: dict[str, Any] = {"email": "a@b.com", "name": "A B"}
    if groups is not None:
        data["groups"] = groups
    data.update(extra)
    return data


@pytest.mark.parametrize(
    "admin_group, allow_group, groups, administrator",
    [
        (None, None, [], False),
        (None, None, ["anything"], False),
        ("admins", None, ["admins"], True),
        ("admins", None, ["users"], False),
        ("admins", None, [], False),
        (None, "staff", ["staff"], False),
        ("admins", "staff", ["staff"], False),
        ("admins", "staff", ["admins"], True),
        ("admins", "staff", ["admins", "staff"], True),
        ("admins", "admins", ["admins"], True),
    ],
)
def test_access_granted(admin_group: Any, allow_group: Any, groups: list[str], administrator: bool) -> None:
    identity = IdentityMapper(admin_group, allow_group).map_claims(claims(groups))
    assert identity.is_administrator is administrator
    assert identity.groups == groups


@pytest.mark.parametrize(
    "admin_group, allow_group, groups",
    [
        (None, "staff", []),
        (None, "staff", ["users"]),
        ("admins", "staff", ["users"]),
        ("admins", "staff", []),
    ],
)
def test_access_denied(admin_group: Any, allow_group: Any, groups: list[str]) -> None:
    with pytest.raises(GroupAuthorizationDeniedError) as exc_info:
        IdentityMapper(admin_group, allow_group).map_claims(claims(groups))
    assert str(exc_info.value) == "Your OpenID Groups do not permit access"


def test_group_names_are_exact() -> None:
    mapper = IdentityMapper("admins", "staff")
    with pytest.raises(GroupAuthorizationDeniedError):
        mapper.map_claims(claims(["Admins", "staff-readonly"]))


def test_missing_groups_claim_is_empty() -> None:
    identity = IdentityMapper("admins", None).map_claims(claims())
    assert identity.groups == []
    assert identity.is_administrator is False


def test_custom_claim_name() -> None:
    mapper = IdentityMapper("admins", None, groups_claim_name="roles")
    identity = mapper.map_claims(claims(groups=["users"], roles=["admins"]))
    assert identity.is_administrator is True
    assert identity.groups == ["admins"]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("admins", ["admins"]),
        (["admins", None, "staff"], ["admins", "staff"]),
        (("admins",), ["admins"]),
        ({"not": "a list"}, []),
        (42, []),
    ],
)
def test_groups_claim_shapes(raw: Any, expected: list[str]) -> None:
    identity = IdentityMapper(None, None).map_claims(claims(groups=raw))
    assert identity.groups == expected


def test_group_order_preserved() -> None:
    identity = IdentityMapper(None, None).map_claims(claims(["b", "a", "c"]))
    assert identity.groups == ["b", "a", "c"]


def test_display_name() -> None:
    identity = IdentityMapper(None, None).map_claims(claims())
    assert identity.email == "a@b.com"
    assert identity.display_name == "A B"


@pytest.mark.parametrize("name", [None, "", "   "])
def test_display_name_falls_back_to_email(name: Any) -> None:
    data = claims()
    data["name"] = name
    identity = IdentityMapper(None, None).map_claims(data)
    assert identity.display_name == "a@b.com"


@pytest.mark.parametrize("email", [None, "", "   ", 42])
def test_missing_email(email: Any) -> None:
    data = claims()
    data["email"] = email
    with pytest.raises(UserInfoFetchError, match="does not contain an email address"):
        IdentityMapper(None, None).map_claims(data)


def test_identity_repr_redacts_pii() -> None:
    identity = IdentityMapper("admins", None).map_claims(claims(["admins"]))
    assert "a@b.com" not in repr(identity)
    assert "A B" not in repr(identity)
    assert "admins" in repr(identity)


@pytest.mark.parametrize("email", ["alice@corp.local", "Alice@Corp.COM", "svc-account"])
def test_email_passed_through_unchanged(email: str) -> None:
    identity = IdentityMapper(None, None).map_claims(claims(email=email, name=None))
    assert identity.email == email
    assert identity.display_name == email
