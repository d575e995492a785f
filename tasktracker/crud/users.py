import logging
from typing import List, Optional
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from ..catalogs import ADMIN, USER, RoleCatalog
from ..errors import (
    AlreadyExistsError,
    DuplicateRoleError,
    InvalidArgumentError,
    InvalidPasswordError,
    LastRoleViolationError,
    RoleNotHeldError,
    UserNotFoundError,
)
from ..models import Role, Task, User, user_roles
from ..passwords import DEFAULT_ROUNDS, hash_password, password_length_error, verify_password

logger = logging.getLogger(__name__)


def user_query(user_id: int, for_update: bool = False):
    query = select(User).filter(User.id == user_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    return query


async def get_user(db: AsyncSession, user_id: int, for_update: bool = False) -> User:
    """Get a user by ID, optionally locking the row for a read-then-write sequence"""
    result = await db.execute(user_query(user_id, for_update))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(f"User with ID {user_id} not found")
    return user


async def find_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.username == username))
    return result.scalar_one_or_none()


async def find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User:
    user = await find_user_by_username(db, username)
    if user is None:
        raise UserNotFoundError(f"Username \"{username}\" not found")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User:
    user = await find_user_by_email(db, email)
    if user is None:
        raise UserNotFoundError(f"Email \"{email}\" not found")
    return user


async def list_users(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[User]:
    query = select(User).order_by(User.id).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def _commit_unique(db: AsyncSession, message: str) -> None:
    """Commit, reporting a unique-constraint race as AlreadyExists"""
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AlreadyExistsError(message) from None


async def register_user(
    db: AsyncSession,
    roles: RoleCatalog,
    username: str,
    email: str,
    password: str,
    rounds: int = DEFAULT_ROUNDS,
) -> User:
    """Create a new account holding only the USER role"""
    if not username or not username.strip():
        raise InvalidArgumentError("Username cannot be empty")
    if not email or not email.strip():
        raise InvalidArgumentError("Email cannot be empty")

    if await find_user_by_username(db, username) is not None:
        raise AlreadyExistsError(f"User \"{username}\" already exists")
    if await find_user_by_email(db, email) is not None:
        raise AlreadyExistsError(f"Email \"{email}\" already exists")

    error = password_length_error(password)
    if error:
        raise InvalidPasswordError(error)

    user_role = await db.get(Role, roles.find_by_name(USER).id)
    user = User(
        username=username,
        email=email,
        password=await run_in_threadpool(hash_password, password, rounds),
        roles=[user_role],
    )
    db.add(user)
    await _commit_unique(db, f"User \"{username}\" or email \"{email}\" already exists")
    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return user


async def authenticate(db: AsyncSession, username: str, password: str) -> Optional[User]:
    """Return the user if the credentials match, else None"""
    user = await find_user_by_username(db, username)
    if user is None:
        return None
    # bcrypt is CPU-bound, keep it off the event loop
    if not await run_in_threadpool(verify_password, password, user.password):
        return None
    return user


async def update_self(
    db: AsyncSession,
    user: User,
    current_password: str,
    email: Optional[str] = None,
    new_password: Optional[str] = None,
    rounds: int = DEFAULT_ROUNDS,
) -> User:
    """Self-service update of email and/or password after re-verifying the current one"""
    if not await run_in_threadpool(verify_password, current_password, user.password):
        raise InvalidPasswordError("Current password is not correct")

    if new_password:
        error = password_length_error(new_password)
        if error:
            raise InvalidPasswordError(error)

    conflict = f"User \"{user.username}\" could not be updated"
    if email and email != user.email:
        other = await find_user_by_email(db, email)
        if other is not None and other.id != user.id:
            raise AlreadyExistsError(f"Email \"{email}\" already exists")
        user.email = email
        conflict = f"Email \"{email}\" already exists"

    if new_password:
        user.password = await run_in_threadpool(hash_password, new_password, rounds)

    await _commit_unique(db, conflict)
    logger.info("User %s updated their account", user.username)
    return user


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """Hard-delete a user together with the tasks they own"""
    user = await get_user(db, user_id)
    await db.execute(delete(Task).where(Task.owner_id == user.id))
    await db.delete(user)
    await db.commit()
    logger.info("Deleted user %s (id=%s)", user.username, user_id)


async def add_role(db: AsyncSession, roles: RoleCatalog, user: User, role_name: str) -> User:
    entry = roles.find_by_name(role_name)
    if entry.name in user.role_names:
        raise DuplicateRoleError(f"User \"{user.username}\" already has role {entry.name}")

    user.roles.append(await db.get(Role, entry.id))
    await db.commit()
    logger.info("Added role %s to user %s", entry.name, user.username)
    return user


async def remove_role(db: AsyncSession, roles: RoleCatalog, user: User, role_name: str) -> User:
    """
    Take a role away from a user, who must keep at least one.

    The in-memory check can be stale when another request removed a role
    meanwhile, so the remaining grants are counted again inside the same
    transaction before committing. Callers that load ``user`` with
    ``for_update=True`` also serialize on the row where the database honors
    ``SELECT ... FOR UPDATE``.
    """
    username = user.username
    last_role = f"User \"{username}\" must keep at least one role"
    if len(user.roles) <= 1:
        raise LastRoleViolationError(last_role)
    entry = roles.find_by_name(role_name)
    held = next((role for role in user.roles if role.id == entry.id), None)
    if held is None:
        raise RoleNotHeldError(f"User \"{username}\" does not have role {entry.name}")

    user.roles.remove(held)
    await db.flush()
    remaining = await db.scalar(
        select(func.count()).select_from(user_roles).where(user_roles.c.user_id == user.id)
    )
    if not remaining:
        await db.rollback()
        logger.warning("Refused to remove the last role of user %s", username)
        raise LastRoleViolationError(last_role)

    await db.commit()
    logger.info("Removed role %s from user %s", entry.name, username)
    return user


def is_admin(principal: User) -> bool:
    return ADMIN in principal.role_names


async def ensure_admin(
    db: AsyncSession,
    roles: RoleCatalog,
    username: str,
    email: str,
    password: str,
    rounds: int = DEFAULT_ROUNDS,
) -> User:
    """Make sure the configured administrator exists and holds the ADMIN role"""
    user = await find_user_by_username(db, username)
    if user is None:
        user = await register_user(db, roles, username, email, password, rounds)
    if not is_admin(user):
        user = await add_role(db, roles, user, ADMIN)
    return user
