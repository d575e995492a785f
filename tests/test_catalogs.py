# tests/test_catalogs.py

from __future__ import annotations

import pytest

from tasktracker.catalogs import StatusCatalog, load_role_catalog, load_status_catalog
from tasktracker.errors import ErrorKind, RoleNotFoundError, StatusNotFoundError


def test_status_catalog_has_fixed_ids(statuses: StatusCatalog) -> None:
    assert [(s.id, s.name) for s in statuses] == [
        (1, "TO-DO"),
        (2, "IN-PROGRESS"),
        (3, "DONE"),
        (4, "DELETED"),
    ]
    assert statuses.initial.id == 1
    assert statuses.done.id == 3
    assert statuses.deleted.id == 4


def test_status_lookup_is_case_insensitive(statuses: StatusCatalog) -> None:
    assert statuses.find_by_name("in-progress").id == 2
    assert statuses.find_by_name("Done").name == "DONE"
    assert statuses.is_valid("to-do")
    assert not statuses.is_valid("bogus")
    assert not statuses.is_valid(None)


@pytest.mark.parametrize("name", [" done ", "DONE ", "in progress", ""])
def test_status_lookup_only_normalizes_case(statuses: StatusCatalog, name: str) -> None:
    assert not statuses.is_valid(name)
    with pytest.raises(StatusNotFoundError):
        statuses.find_by_name(name)


def test_unknown_status_raises_not_found(statuses: StatusCatalog) -> None:
    with pytest.raises(StatusNotFoundError) as exc_info:
        statuses.find_by_name("bogus")
    assert exc_info.value.kind is ErrorKind.NOT_FOUND

    with pytest.raises(StatusNotFoundError):
        statuses.find_by_id(99)


def test_role_catalog_lookup(roles) -> None:
    assert roles.find_by_name("admin").id == 2
    assert roles.find_by_id(1).name == "USER"
    with pytest.raises(RoleNotFoundError):
        roles.find_by_name("superuser")


@pytest.mark.asyncio
async def test_catalogs_load_from_seeded_database(db) -> None:
    statuses = await load_status_catalog(db)
    roles = await load_role_catalog(db)

    assert len(statuses) == 4
    assert statuses.find_by_name("deleted").id == 4
    assert {r.name for r in roles} == {"USER", "ADMIN"}
