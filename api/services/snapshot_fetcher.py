"""
Snapshot Fetcher Service - Read-only PocketBase queries for one graph build.

This service handles:
- Fetching the owner's profile, contacts, accepted connections and note activity
- Fetching profiles (with anonymity flags) for every account the build touches
- The privileged read of contacts owned by the owner's connections

Independent slices are fetched concurrently. A failing slice is reported as a
partial-fetch diagnostic and continues empty; it never aborts the build.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from nexus.errors import SnapshotFetchError
from nexus.graph.diagnostics import DiagnosticKind, Diagnostics
from nexus.logging_config import TRACE
from nexus.models import ActivityRecord, Connection, Contact, GraphSnapshot, Profile
from pocketbase import PocketBase

logger = logging.getLogger(__name__)

BATCH_SIZE = 50
RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")


def is_valid_record_id(value: str | None) -> bool:
    return bool(value) and RECORD_ID_PATTERN.match(value) is not None  # type: ignore[arg-type]


def _unique_ids(ids: Iterable[str | None]) -> list[str]:
    """Valid ids in first-seen order; anything unsafe to put in a filter is dropped."""
    seen: dict[str, None] = {}
    for value in ids:
        if is_valid_record_id(value):
            seen.setdefault(value, None)  # type: ignore[arg-type]
        elif value:
            logger.debug(f"Ignoring unsafe record id {value!r}")
    return list(seen)


def _or_filter(field: str, ids: list[str]) -> str:
    return " || ".join(f'{field} = "{value}"' for value in ids)


def _record_data(record: Any) -> dict[str, Any]:
    if isinstance(record, dict):
        return record
    return dict(vars(record))


def _parse_records(
    model: type[ModelT],
    records: Iterable[Any],
    slice_name: str,
    diagnostics: Diagnostics,
) -> list[ModelT]:
    parsed = []
    for record in records:
        data = _record_data(record)
        try:
            parsed.append(model.model_validate(data))
        except ValidationError as e:
            diagnostics.report(
                DiagnosticKind.MALFORMED_RECORD,
                f"Dropping invalid {slice_name} row: {e.error_count()} validation error(s)",
                subject_id=str(data.get("id")) if data.get("id") else None,
            )
    return parsed


async def _read(slice_name: str, read: Callable[..., list[Any]], **kwargs: Any) -> list[Any]:
    """Run one blocking PocketBase call in a worker thread."""
    logger.log(TRACE, f"PocketBase read {slice_name}: {kwargs.get('query_params')}")
    try:
        return await asyncio.to_thread(read, **kwargs)
    except Exception as e:
        raise SnapshotFetchError(slice_name, str(e)) from e


async def fetch_owner_profile(owner_id: str, client: PocketBase, diagnostics: Diagnostics) -> Profile | None:
    records = await _read(
        "owner_profile",
        client.collection("profiles").get_full_list,
        query_params={"filter": f'id = "{owner_id}"'},
    )
    profiles = _parse_records(Profile, records, "profiles", diagnostics)
    return profiles[0] if profiles else None


async def fetch_owned_contacts(owner_id: str, client: PocketBase, diagnostics: Diagnostics) -> list[Contact]:
    records = await _read(
        "owned_contacts",
        client.collection("contacts").get_full_list,
        query_params={"filter": f'owner_id = "{owner_id}"', "sort": "created"},
    )
    contacts = _parse_records(Contact, records, "contacts", diagnostics)
    logger.debug(f"Fetched {len(contacts)} owned contacts for {owner_id}")
    return contacts


async def fetch_accepted_connections(owner_id: str, client: PocketBase, diagnostics: Diagnostics) -> list[Connection]:
    records = await _read(
        "connections",
        client.collection("connections").get_full_list,
        query_params={
            "filter": f'status = "accepted" && (inviter_id = "{owner_id}" || invitee_id = "{owner_id}")',
            "sort": "created",
        },
    )
    return _parse_records(Connection, records, "connections", diagnostics)


async def fetch_activity(owner_id: str, client: PocketBase, diagnostics: Diagnostics) -> list[ActivityRecord]:
    """Notes on the owner's contacts, selected through the contact relation."""
    records = await _read(
        "activity",
        client.collection("contact_notes").get_full_list,
        query_params={"filter": f'contact_id.owner_id = "{owner_id}"', "fields": "id,contact_id,entry_date"},
    )
    return _parse_records(ActivityRecord, records, "contact_notes", diagnostics)


async def fetch_profiles(
    profile_ids: Iterable[str | None],
    client: PocketBase,
    diagnostics: Diagnostics,
) -> dict[str, Profile]:
    ids = _unique_ids(profile_ids)
    profiles: dict[str, Profile] = {}
    for i in range(0, len(ids), BATCH_SIZE):
        batch_ids = ids[i : i + BATCH_SIZE]
        records = await _read(
            "profiles",
            client.collection("profiles").get_full_list,
            query_params={"filter": _or_filter("id", batch_ids)},
        )
        for profile in _parse_records(Profile, records, "profiles", diagnostics):
            profiles[profile.id] = profile
    return profiles


async def fetch_connected_contacts(
    mutual_ids: Iterable[str],
    privileged_client: PocketBase,
    diagnostics: Diagnostics,
) -> list[Contact]:
    """Contacts owned by the given accounts.

    Must run on the superuser client: collection rules only let an account
    read its own contacts.
    """
    ids = _unique_ids(mutual_ids)
    contacts: list[Contact] = []
    for i in range(0, len(ids), BATCH_SIZE):
        batch_ids = ids[i : i + BATCH_SIZE]
        records = await _read(
            "connected_contacts",
            privileged_client.collection("contacts").get_full_list,
            query_params={"filter": _or_filter("owner_id", batch_ids), "sort": "owner_id,created"},
        )
        contacts.extend(_parse_records(Contact, records, "contacts", diagnostics))
    logger.debug(f"Fetched {len(contacts)} contacts owned by {len(ids)} connections")
    return contacts


async def _guarded(read: Awaitable[T], default: T, diagnostics: Diagnostics) -> T:
    try:
        return await read
    except SnapshotFetchError as e:
        diagnostics.report(
            DiagnosticKind.PARTIAL_FETCH,
            f"Failed to load {e.slice_name}, continuing without it: {e}",
            subject_id=e.slice_name,
        )
        return default


def candidate_mutual_ids(owner_id: str, connections: Iterable[Connection]) -> list[str]:
    others = (c.other_party(owner_id) for c in connections if c.is_accepted)
    return [profile_id for profile_id in _unique_ids(others) if profile_id != owner_id]


async def fetch_snapshot(
    owner_id: str,
    pb_client: PocketBase,
    privileged_client: PocketBase | None = None,
    diagnostics: Diagnostics | None = None,
    as_of: datetime | None = None,
) -> GraphSnapshot:
    """Fetch everything one build needs, once.

    Args:
        owner_id: Profile id of the requesting user
        pb_client: Client for the owner's own reads
        privileged_client: Superuser client for connected users' contacts
            (defaults to pb_client)
        diagnostics: Collector for partial-fetch and malformed-row reports
        as_of: Instant recency is measured against (defaults to now)

    Returns:
        GraphSnapshot; slices that failed to load are empty
    """
    if not is_valid_record_id(owner_id):
        raise ValueError(f"Invalid owner id: {owner_id!r}")
    diagnostics = diagnostics if diagnostics is not None else Diagnostics(owner_id=owner_id)
    privileged_client = privileged_client or pb_client

    owner_profile, owned_contacts, connections, activities = await asyncio.gather(
        _guarded(fetch_owner_profile(owner_id, pb_client, diagnostics), None, diagnostics),
        _guarded(fetch_owned_contacts(owner_id, pb_client, diagnostics), [], diagnostics),
        _guarded(fetch_accepted_connections(owner_id, pb_client, diagnostics), [], diagnostics),
        _guarded(fetch_activity(owner_id, pb_client, diagnostics), [], diagnostics),
    )

    # Second-degree reads depend on who the owner is connected to
    mutual_ids = candidate_mutual_ids(owner_id, connections)
    linked_ids = [c.linked_profile_id for c in owned_contacts]
    profiles, connected_contacts = await asyncio.gather(
        _guarded(fetch_profiles([*mutual_ids, *linked_ids], pb_client, diagnostics), {}, diagnostics),
        _guarded(fetch_connected_contacts(mutual_ids, privileged_client, diagnostics), [], diagnostics),
    )

    # Anonymity flags of accounts that connections' cards link to
    missing = [
        c.linked_profile_id
        for c in connected_contacts
        if c.linked_profile_id and c.linked_profile_id != owner_id and c.linked_profile_id not in profiles
    ]
    if missing:
        profiles.update(await _guarded(fetch_profiles(missing, pb_client, diagnostics), {}, diagnostics))

    logger.info(
        f"Snapshot for {owner_id}: {len(owned_contacts)} contacts, {len(connections)} connections, "
        f"{len(activities)} notes, {len(connected_contacts)} connected contacts, {len(profiles)} profiles"
    )

    extra: dict[str, Any] = {"as_of": as_of} if as_of is not None else {}
    return GraphSnapshot(
        owner_id=owner_id,
        owner_profile=owner_profile,
        owned_contacts=owned_contacts,
        connections=connections,
        activities=activities,
        profiles=profiles,
        connected_contacts=connected_contacts,
        **extra,
    )
