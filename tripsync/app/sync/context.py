"""Conversation state carried between AI turns."""

import uuid

from pydantic import BaseModel


class SyncContext(BaseModel):
    """State the caller passes into each ``apply`` and gets back updated.

    ``previous_location`` is the last place the conversation was about; ADD
    actions without their own location context use it as the search hint.
    """

    trip_id: uuid.UUID
    previous_location: str | None = None
