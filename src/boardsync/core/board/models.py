"""
Board data models for boardsync.

Defines the entities the board store works with: dashboards, their ordered
columns, the cards inside them, members and invitations. Models are Pydantic
value types; the only structural fields the store rewrites are ``Column.order``,
the position of a card inside ``Column.cards`` and the denormalized
``Card.column_id`` back-reference.

Wire payloads (REST, GraphQL, the local storage file) use camelCase names, so
every model accepts and emits camelCase aliases while exposing snake_case
attributes in Python.

Entities compare and hash by ``id``: two ``Card`` objects with the same id are
the same card even when one of them carries newer field values.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Self


def _to_wire_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, list):
        return [_to_wire_value(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class WireModel(BaseModel):
    """Base model for payloads exchanged with a data source."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    # Fields a partial update may never change
    _immutable: ClassVar[frozenset[str]] = frozenset({"id", "created_at"})

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict using camelCase names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def wire_updates(cls, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Normalize a partial update to wire names.

        Accepts snake_case attribute names or camelCase aliases, drops
        immutable fields and passes unknown keys through unchanged.
        """
        aliases = {name: field.alias or name for name, field in cls.model_fields.items()}
        by_alias = {alias: name for name, alias in aliases.items()}
        result: dict[str, Any] = {}
        for key, value in updates.items():
            name = key if key in aliases else by_alias.get(key)
            if name in cls._immutable:
                continue
            result[aliases[name] if name else key] = _to_wire_value(value)
        return result

    def merged(self, updates: dict[str, Any]) -> Self:
        """Return a validated copy with ``updates`` applied on top of this model."""
        return self.model_validate({**self.to_wire(), **self.wire_updates(updates)})


class Entity(WireModel):
    """A wire model with identity semantics."""

    id: str = Field(..., min_length=1, description="Opaque unique identifier")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))


class InvitationStatus(str, Enum):
    """Lifecycle of a dashboard invitation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class User(Entity):
    """A registered user."""

    email: str
    full_name: str | None = None
    avatar: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthResponse(User):
    """A user plus the tokens issued on login or registration."""

    token: str
    refresh_token: str | None = None

    def to_user(self) -> User:
        """Strip the tokens and return the plain user."""
        return User.model_validate(self.model_dump(exclude={"token", "refresh_token"}))


# ==============================================================================
# Card payload
# ==============================================================================
#
# The store never interprets these; it only has to carry them across moves.


class CardMember(Entity):
    email: str


class Label(Entity):
    text: str
    color: str


class ChecklistItem(Entity):
    text: str
    completed: bool = False


class Checklist(Entity):
    title: str
    items: list[ChecklistItem] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """True when every item is checked (vacuously true when empty)."""
        return all(item.completed for item in self.items)


class Comment(Entity):
    text: str
    user_id: str
    user_email: str
    created_at: datetime


class Attachment(Entity):
    name: str
    url: str
    type: str
    size: int = Field(default=0, ge=0)
    created_at: datetime


class Card(Entity):
    """
    A card inside a column.

    ``column_id`` is denormalized and must always name the column that
    actually contains the card. Unknown fields sent by a backend are kept
    as-is so that a move never drops data the store does not understand.
    """

    number: int = Field(default=0, description="Display number, distinct but not contiguous")
    title: str
    column_id: str
    description: str = ""
    members: list[CardMember] = Field(default_factory=list)
    labels: list[Label] = Field(default_factory=list)
    checklists: list[Checklist] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    due_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(extra="allow")


class Column(Entity):
    """An ordered column of cards."""

    title: str
    order: int = Field(..., description="Position among sibling columns (ascending)")
    cards: list[Card] = Field(default_factory=list)
    # Serialized as "is_archive"; GraphQL backends send "isArchive"
    is_archived: bool = Field(
        default=False,
        alias="is_archive",
        validation_alias=AliasChoices("is_archive", "isArchive", "is_archived"),
    )

    def card_ids(self) -> list[str]:
        return [card.id for card in self.cards]


class DashboardSettings(WireModel):
    is_public: bool = False
    allow_comments: bool = True
    allow_invites: bool = True
    theme: str | None = None


class Invitation(Entity):
    """An invitation for an email address to join a dashboard."""

    dashboard_id: str
    inviter_id: str | None = None
    inviter_email: str | None = None
    invitee_email: str
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: datetime

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING

    def matches(self, dashboard_id: str, email: str) -> bool:
        """Check whether this invitation targets ``email`` on ``dashboard_id``."""
        return (
            self.dashboard_id == dashboard_id
            and self.invitee_email.strip().lower() == email.strip().lower()
        )


class Dashboard(Entity):
    """
    A board: ordered columns plus the people allowed to edit them.

    Invariant: ``owner_ids`` is non-empty and every owner is also a member.
    """

    title: str
    created_at: datetime
    updated_at: datetime | None = None
    owner_ids: list[str] = Field(..., min_length=1)
    members: list[User] = Field(default_factory=list)
    columns: list[Column] = Field(default_factory=list)
    background: str | None = None
    description: str | None = None
    is_public: bool | None = None
    settings: DashboardSettings | None = None
    invitations: list[Invitation] = Field(default_factory=list)

    @model_validator(mode="after")
    def _owners_are_members(self) -> Dashboard:
        member_ids = {member.id for member in self.members}
        missing = [owner for owner in self.owner_ids if owner not in member_ids]
        if missing:
            raise ValueError(f"Owners must be members of the dashboard: {', '.join(missing)}")
        return self

    def sorted_columns(self) -> list[Column]:
        """Columns ascending by ``order``."""
        return sorted(self.columns, key=lambda column: column.order)

    def find_column(self, column_id: str) -> Column | None:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def pending_invitation_for(self, email: str) -> Invitation | None:
        """Return the pending invitation for ``email`` on this dashboard, if any."""
        for invitation in self.invitations:
            if invitation.is_pending and invitation.matches(self.id, email):
                return invitation
        return None
