from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ListingForm(BaseModel):
    """
    Submit/edit form as posted by the site.
    Every field is optional here; presence and content rules belong to the
    listing validator so that missing fields are reported uniformly.
    """
    clientId: str | None = None
    prefix: str | None = None
    shortDesc: str | None = None
    longDesc: str | None = None
    inviteUrl: str | None = None
    owners: str | None = None

    def to_payload(self) -> dict[str, str]:
        # explicit nulls count as missing
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


class ListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invite: str | None
    prefix: str
    short_desc: str
    long_desc: str
    owner_id: str
    additional_owner_ids: list[str] = Field(default_factory=list)
    username: str
    discriminator: str | None
    avatar: str | None
    approved: bool
    added_at: datetime


class OwnedListingsOut(BaseModel):
    approved: list[ListingOut]
    pending: list[ListingOut]


class DeletedOut(BaseModel):
    status: str = "deleted"
    listing_id: str
