"""Ingest and query route handlers.

``POST /receive`` is the single write path for records from the gateway
collector or any other publisher; ``GET /messages`` lists fresh records.
"""

from typing import Union

from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel

from serverwatch.ingest.service import IngestService
from serverwatch.storage.memory import RecordStore
from serverwatch.storage.models import Record, RecordUpdate

router = APIRouter(tags=["messages"])


class IngestResponse(BaseModel):
    """Acknowledgement of an ingest call.

    Attributes:
        status: Always "ok"
        count: Number of stored keys after the call, stale ones included
    """

    status: str = "ok"
    count: int


def get_ingest_service(request: Request) -> IngestService:
    """Return the application's IngestService."""
    return request.app.state.ingest_service


def get_store(request: Request) -> RecordStore:
    """Return the application's RecordStore."""
    return request.app.state.store


@router.post("/receive", response_model=IngestResponse)
async def receive(
    body: Union[list[RecordUpdate], RecordUpdate] = Body(...),
    service: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    """Upsert one record or a batch of records.

    Request Body:
        A single object or an array of objects with optional fields
        serverName, moneyPerSec, players, author, jobId, id

    Returns:
        {"status": "ok", "count": <stored keys>}

    Example:
        >>> POST /receive
        >>> {"jobId": "abc-123-def-456", "serverName": "Farm A", "moneyPerSec": 0}
        >>> {"status": "ok", "count": 1}
    """
    count = await service.ingest(body)
    return IngestResponse(count=count)


@router.get("/messages", response_model=list[Record])
async def list_messages(
    request: Request,
    store: RecordStore = Depends(get_store),
) -> list[Record]:
    """List fresh records, most recently observed first."""
    return await store.list_fresh(request.app.state.clock())
