# tests/test_policy.py

from __future__ import annotations

import pytest

from tasktracker.errors import ErrorKind, UnauthorizedError
from tasktracker.models import Role, Task, User
from tasktracker.policy import AccessPolicy, Action


def _user(user_id: int, *role_names: str) -> User:
    role_ids = {"USER": 1, "ADMIN": 2}
    return User(
        id=user_id,
        username=f"user{user_id}",
        email=f"user{user_id}@x.com",
        password="hash",
        roles=[Role(id=role_ids[name], name=name) for name in role_names],
    )


@pytest.fixture()
def policy() -> AccessPolicy:
    return AccessPolicy()


@pytest.fixture()
def alice() -> User:
    return _user(1, "USER")


@pytest.fixture()
def bob() -> User:
    return _user(2, "USER")


@pytest.fixture()
def admin() -> User:
    return _user(3, "USER", "ADMIN")


def test_registration_is_open(policy: AccessPolicy) -> None:
    assert policy.is_allowed(None, Action.REGISTER)


@pytest.mark.parametrize("action", [Action.LIST_USERS, Action.DELETE_USER, Action.MANAGE_ROLES])
def test_admin_only_actions(policy: AccessPolicy, alice: User, admin: User, action: Action) -> None:
    assert policy.is_allowed(admin, action)
    assert not policy.is_allowed(alice, action)
    assert not policy.is_allowed(None, action)


def test_view_user_is_self_or_admin(policy: AccessPolicy, alice: User, bob: User, admin: User) -> None:
    assert policy.is_allowed(alice, Action.VIEW_USER, alice)
    assert policy.is_allowed(alice, Action.VIEW_USER, alice.id)
    assert policy.is_allowed(admin, Action.VIEW_USER, bob)
    assert not policy.is_allowed(alice, Action.VIEW_USER, bob)
    assert not policy.is_allowed(alice, Action.VIEW_USER, bob.id)


@pytest.mark.parametrize("action", [Action.READ_TASK, Action.UPDATE_TASK, Action.DELETE_TASK])
def test_tasks_are_owner_only_without_admin_override(
    policy: AccessPolicy, alice: User, bob: User, admin: User, action: Action
) -> None:
    task = Task(id=10, description="write spec", owner_id=alice.id)

    assert policy.is_allowed(alice, action, task)
    assert not policy.is_allowed(bob, action, task)
    assert not policy.is_allowed(admin, action, task)


def test_authenticated_actions_need_a_principal(policy: AccessPolicy, alice: User) -> None:
    for action in (Action.UPDATE_SELF, Action.CREATE_TASK, Action.LIST_TASKS):
        assert policy.is_allowed(alice, action)
        assert not policy.is_allowed(None, action)


def test_enforce_raises_unauthorized(policy: AccessPolicy, alice: User, bob: User) -> None:
    task = Task(id=10, description="write spec", owner_id=alice.id)

    policy.enforce(alice, Action.READ_TASK, task)
    with pytest.raises(UnauthorizedError) as exc_info:
        policy.enforce(bob, Action.READ_TASK, task)
    assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
