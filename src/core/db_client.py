"""PocketBase REST client wrapper with CRUD operations."""

import json
import logging
import re
from datetime import date, datetime, time
from typing import Any

import httpx

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Raised when the backend rejects a request or cannot be reached."""


class RecordNotFoundError(DatabaseError):
    """Raised when the requested record does not exist or is not visible to the caller."""


class AuthError(DatabaseError):
    """Raised when the backend refuses the caller's credentials or token."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter expressions via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _records_url(collection: str, record_id: str | None = None) -> str:
    base = f"{settings.pocketbase_url.rstrip('/')}/api/collections/{collection}/records"
    return f"{base}/{record_id}" if record_id else base


def _auth_headers(token: str | None) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = token
    return headers


def _serialize(data: dict[str, Any]) -> dict[str, Any]:
    """Convert date/time values into the ISO strings the backend stores."""
    values: dict[str, Any] = {}
    for key, val in data.items():
        if isinstance(val, datetime | date):
            values[key] = val.isoformat()
        elif isinstance(val, time):
            values[key] = val.strftime("%H:%M")
        else:
            values[key] = val
    return values


def _error_message(response: httpx.Response) -> str:
    """Extract the backend's error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


def raise_for_backend_status(response: httpx.Response, *, context: str) -> None:
    """Translate a non-success backend response into the matching exception."""
    if response.is_success:
        return

    detail = _error_message(response)
    if response.status_code == constants.HTTP_NOT_FOUND:
        raise RecordNotFoundError(f"{context}: {detail}")
    if response.status_code in (constants.HTTP_UNAUTHORIZED, constants.HTTP_FORBIDDEN):
        raise AuthError(f"{context}: {detail}")
    raise DatabaseError(f"{context}: {detail} (status {response.status_code})")


async def send_request(
    method: str,
    url: str,
    *,
    token: str | None = None,
    payload: dict[str, Any] | None = None,
    params: dict[str, Any] | None = None,
    context: str,
) -> httpx.Response:
    """Issue one request to the backend, converting transport failures into DatabaseError."""
    try:
        async with httpx.AsyncClient(timeout=settings.api_timeout_seconds) as client:
            response = await client.request(
                method,
                url,
                json=_serialize(payload) if payload is not None else None,
                params=params,
                headers=_auth_headers(token),
            )
    except httpx.HTTPError as e:
        raise DatabaseError(f"{context}: {e}") from e

    raise_for_backend_status(response, context=context)
    return response


async def create_record(*, collection: str, data: dict[str, Any], token: str | None = None) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id and timestamps."""
    _validate_collection_name(collection)
    try:
        response = await send_request(
            "POST",
            _records_url(collection),
            token=token,
            payload=data,
            context=f"Failed to create record in {collection}",
        )
    except DatabaseError as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        raise

    record = response.json()
    logger.info("Created record", extra={"collection": collection, "record_id": record.get("id")})
    return record


async def get_record(*, collection: str, record_id: str, token: str | None = None) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    try:
        response = await send_request(
            "GET",
            _records_url(collection, record_id),
            token=token,
            context=f"Record not available in {collection}: {record_id}",
        )
    except DatabaseError as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise

    logger.info("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return response.json()


async def update_record(
    *, collection: str, record_id: str, data: dict[str, Any], token: str | None = None
) -> dict[str, Any]:
    """Patch a record by ID with only the given fields and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    try:
        response = await send_request(
            "PATCH",
            _records_url(collection, record_id),
            token=token,
            payload=data,
            context=f"Failed to update record in {collection}",
        )
    except DatabaseError as e:
        logger.error(
            "update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)}
        )
        raise

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id, "fields": list(data)})
    return response.json()


async def delete_record(*, collection: str, record_id: str, token: str | None = None) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    try:
        await send_request(
            "DELETE",
            _records_url(collection, record_id),
            token=token,
            context=f"Failed to delete record from {collection}",
        )
    except DatabaseError as e:
        logger.error(
            "delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)}
        )
        raise

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
    token: str | None = None,
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination.

    ``sort`` uses the backend syntax: a field name, prefixed with ``-`` for descending.
    """
    body = await _list_page(
        collection=collection, page=page, per_page=per_page, filter_query=filter_query, sort=sort, token=token
    )
    records = body.get("items", [])
    logger.info("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    per_page: int = constants.DEFAULT_PER_PAGE_LIMIT,
    token: str | None = None,
) -> list[dict[str, Any]]:
    """List every matching record, requesting pages until the backend's ``totalPages`` is reached."""
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        body = await _list_page(
            collection=collection, page=page, per_page=per_page, filter_query=filter_query, sort=sort, token=token
        )
        records.extend(body.get("items", []))
        if page >= int(body.get("totalPages") or 1):
            break
        page += 1

    logger.info("Listed all records", extra={"collection": collection, "count": len(records), "pages": page})
    return records


async def _list_page(
    *,
    collection: str,
    page: int,
    per_page: int,
    filter_query: str,
    sort: str,
    token: str | None,
) -> dict[str, Any]:
    _validate_collection_name(collection)

    params: dict[str, Any] = {"page": page, "perPage": per_page}
    if filter_query:
        params["filter"] = filter_query
    if sort:
        if re.match(r"^-?[A-Za-z_][A-Za-z0-9_]*$", sort.strip()):
            params["sort"] = sort.strip()
        else:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})

    try:
        response = await send_request(
            "GET",
            _records_url(collection),
            token=token,
            params=params,
            context=f"Failed to list records from {collection}",
        )
    except DatabaseError as e:
        logger.error("list_records_failed", extra={"collection": collection, "page": page, "error": str(e)})
        raise

    return response.json()


async def get_first_record(
    *, collection: str, filter_query: str, token: str | None = None
) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, per_page=1, filter_query=filter_query, token=token)
    return records[0] if records else None
