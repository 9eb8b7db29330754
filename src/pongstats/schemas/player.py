# src/pongstats/schemas/player.py

"""Pydantic schemas for the Player resource."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ===============================================
# Base Schema: Defines shared attributes for creation
# ===============================================
class PlayerBase(BaseModel):
    """Shared properties for a player."""

    display_name: str = Field(..., min_length=2, max_length=50)
    photo_url: str | None = None


# ===============================================
# Create Schema: Callers bring their own auth uid
# ===============================================
class PlayerCreate(PlayerBase):
    """Properties to receive via API on create."""

    id: str = Field(..., min_length=1, max_length=128)


# ===============================================
# Update Schema: Defines all fields as optional
# ===============================================
class PlayerUpdate(BaseModel):
    """Properties to receive via API on update, all optional."""

    display_name: str | None = Field(default=None, min_length=2, max_length=50)
    photo_url: str | None = None


# ===============================================
# Read Schema: Defines attributes for returning data
# ===============================================
class PlayerRead(PlayerBase):
    """Properties to return to the client."""

    id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
