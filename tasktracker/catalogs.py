"""Fixed reference data: task statuses and user roles.

Both catalogs are seeded into the database at startup and then loaded once
into immutable lookup objects. Request handlers receive them through FastAPI
dependencies instead of reaching for globals.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Tuple, Type
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .errors import NotFoundError, RoleNotFoundError, StatusNotFoundError
from .models import Role, Status

logger = logging.getLogger(__name__)

TO_DO = "TO-DO"
IN_PROGRESS = "IN-PROGRESS"
DONE = "DONE"
DELETED = "DELETED"

USER = "USER"
ADMIN = "ADMIN"

STATUS_SEED: Tuple[Tuple[int, str], ...] = (
    (1, TO_DO),
    (2, IN_PROGRESS),
    (3, DONE),
    (4, DELETED),
)

ROLE_SEED: Tuple[Tuple[int, str], ...] = (
    (1, USER),
    (2, ADMIN),
)


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    name: str


class Catalog:
    """Read-only lookup over a small set of named rows"""

    label = "Entry"
    not_found: Type[NotFoundError] = NotFoundError

    def __init__(self, entries: Iterable[CatalogEntry]):
        entries = tuple(entries)
        self._by_id: Dict[int, CatalogEntry] = {e.id: e for e in entries}
        self._by_name: Dict[str, CatalogEntry] = {e.name.upper(): e for e in entries}

    @classmethod
    def from_seed(cls, seed: Iterable[Tuple[int, str]]):
        return cls(CatalogEntry(id=entry_id, name=name) for entry_id, name in seed)

    def __iter__(self):
        return iter(sorted(self._by_id.values(), key=lambda e: e.id))

    def __len__(self):
        return len(self._by_id)

    def is_valid(self, name) -> bool:
        """True if ``name`` (case-insensitive) is a known entry"""
        if not isinstance(name, str):
            return False
        return name.upper() in self._by_name

    def find_by_name(self, name: str) -> CatalogEntry:
        if not self.is_valid(name):
            raise self.not_found(f"{self.label} \"{name}\" not found")
        return self._by_name[name.upper()]

    def find_by_id(self, entry_id: int) -> CatalogEntry:
        try:
            return self._by_id[entry_id]
        except KeyError:
            raise self.not_found(f"{self.label} with ID {entry_id} not found") from None


class StatusCatalog(Catalog):
    label = "Status"
    not_found = StatusNotFoundError

    @property
    def deleted(self) -> CatalogEntry:
        return self.find_by_name(DELETED)

    @property
    def done(self) -> CatalogEntry:
        return self.find_by_name(DONE)

    @property
    def initial(self) -> CatalogEntry:
        return self.find_by_name(TO_DO)


class RoleCatalog(Catalog):
    label = "Role"
    not_found = RoleNotFoundError


async def seed_catalogs(db: AsyncSession) -> None:
    """Insert any missing status and role rows"""
    for model, seed in ((Status, STATUS_SEED), (Role, ROLE_SEED)):
        existing = set((await db.execute(select(model.id))).scalars().all())
        for entry_id, name in seed:
            if entry_id not in existing:
                db.add(model(id=entry_id, name=name))
                logger.info("Seeded %s %s=%s", model.__tablename__, entry_id, name)
    await db.commit()


async def load_status_catalog(db: AsyncSession) -> StatusCatalog:
    result = await db.execute(select(Status).order_by(Status.id))
    return StatusCatalog(CatalogEntry(id=s.id, name=s.name) for s in result.scalars())


async def load_role_catalog(db: AsyncSession) -> RoleCatalog:
    result = await db.execute(select(Role).order_by(Role.id))
    return RoleCatalog(CatalogEntry(id=r.id, name=r.name) for r in result.scalars())
