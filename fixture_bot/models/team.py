# fixture_bot/models/team.py
from typing import Optional
from pydantic import BaseModel


class Team(BaseModel):
    """A persisted team row, keyed by its exact name."""

    id: int
    name: str
    logo: str = ""
    short_name: str = ""


class TeamCreate(BaseModel):
    """Payload for the upsert-by-name team write."""

    name: str
    logo: str = ""
    short_name: str


class TeamEnrichment(BaseModel):
    """Logo and short name found by the auxiliary team search."""

    logo: Optional[str] = None
    short_name: Optional[str] = None
