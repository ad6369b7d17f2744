from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TypeVar

from botlist.core.security import Principal
from botlist.models.listing import Listing
from botlist.services.errors import DuplicateKey, ErrorKind, UpstreamError, WorkflowError
from botlist.services.identity import IdentityResolver
from botlist.services.membership import MembershipAuthority
from botlist.services.outbox import OutboundQueue
from botlist.services.store import ListingStore
from botlist.services.validation import parse_owner_ids, validate


log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 15


@dataclass(frozen=True)
class OwnedListings:
    approved: list[Listing]
    pending: list[Listing]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _mention(user_id: str) -> str:
    return f"<@{user_id}>"


class ListingWorkflow:
    """
    Submit / edit / delete / list operations over bot listings.

    Listing lifecycle: a successful submit creates a pending listing
    (approved=False); approval happens outside this service; delete removes
    the listing from either state. Edit only touches content fields.

    Every rejection is raised as WorkflowError before the store is mutated.
    Notifications and guild removals are best-effort: they are queued on the
    outbound queue and their failures are logged, never raised. Submit and
    delete queue the acting user's id only; the worker looks up names and
    guild membership when it delivers them.
    """

    def __init__(
        self,
        *,
        store: ListingStore,
        identity: IdentityResolver,
        membership: MembershipAuthority,
        outbound: OutboundQueue,
        log_channel_id: str | None,
        admin_role_id: str | None,
        page_size: int = DEFAULT_PAGE_SIZE,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._identity = identity
        self._membership = membership
        self._outbound = outbound
        self._log_channel_id = log_channel_id
        self._admin_role_id = admin_role_id
        self._page_size = page_size
        self._rng = rng or random.Random()
        self._clock = clock

    # helpers

    @staticmethod
    def _require_principal(principal: Principal | None) -> Principal:
        if principal is None:
            raise WorkflowError(ErrorKind.UNAUTHENTICATED, "You need to log in to do that")
        return principal

    @staticmethod
    async def _primary(call: Awaitable[T], what: str) -> T:
        try:
            return await call
        except UpstreamError as e:
            log.warning("%s failed: %s", what, e)
            raise WorkflowError(ErrorKind.UPSTREAM_UNAVAILABLE, f"Unable to complete {what}, try again later")

    @staticmethod
    async def _best_effort(call: Awaitable[Any], what: str) -> None:
        try:
            await call
        except Exception:
            log.exception("best-effort %s failed", what)

    async def _name_of(self, user_id: str) -> str:
        try:
            account = await self._identity.fetch_account(user_id)
        except Exception:
            log.warning("could not resolve %s for audit message", user_id, exc_info=True)
            account = None
        return account.username if account else _mention(user_id)

    async def _notify(self, message: str, *, actor_id: str | None = None) -> None:
        if not self._log_channel_id:
            log.debug("no log channel configured, dropping: %s", message)
            return
        await self._best_effort(
            self._outbound.post(self._log_channel_id, message, actor_id=actor_id),
            "notification",
        )

    async def _is_admin(self, principal_id: str) -> bool:
        if not self._admin_role_id:
            return False
        roles = await self._primary(self._membership.roles_of(principal_id), "role lookup")
        return self._admin_role_id in roles

    async def _get_or_404(self, listing_id: str, message: str) -> Listing:
        listing = await self._store.get(listing_id)
        if listing is None:
            raise WorkflowError(ErrorKind.NOT_FOUND, message)
        return listing

    # operations

    async def submit(self, payload: Mapping[str, Any], principal: Principal | None) -> Listing:
        principal = self._require_principal(principal)

        validate(payload, is_new_submission=True).raise_for_error()
        client_id = str(payload["clientId"])

        account = await self._primary(self._identity.fetch_account(client_id), "account lookup")
        if account is None:
            raise WorkflowError(ErrorKind.UNKNOWN_ACCOUNT, "Unable to find information related to the clientId")

        existing = await self._store.get(client_id)
        if existing is not None:
            raise WorkflowError(ErrorKind.ALREADY_LISTED, f"{existing.username} is already listed!")

        if not account.is_service_account:
            raise WorkflowError(ErrorKind.NOT_A_SERVICE_ACCOUNT, "The specified clientId is not associated with a bot")

        if not await self._primary(self._membership.is_member(principal.id), "membership check"):
            raise WorkflowError(ErrorKind.NOT_A_COMMUNITY_MEMBER, "You need to be in the server to add bots")

        listing = Listing(
            id=client_id,
            invite=payload.get("inviteUrl"),
            prefix=str(payload["prefix"]),
            short_desc=str(payload["shortDesc"]),
            long_desc=str(payload["longDesc"]),
            owner_id=principal.id,
            additional_owner_ids=parse_owner_ids(payload.get("owners")),
            username=account.username,
            discriminator=account.discriminator,
            avatar=account.avatar,
            approved=False,
            added_at=self._clock(),
        )
        try:
            listing = await self._store.insert(listing)
        except DuplicateKey:
            raise WorkflowError(ErrorKind.DUPLICATE_KEY, f"{account.username} is already listed!")

        log.info("listing %s submitted by %s", listing.id, principal.id)

        await self._notify(f"added {account.username} ({_mention(account.id)})", actor_id=principal.id)
        return listing

    async def edit(self, listing_id: str, payload: Mapping[str, Any], principal: Principal | None) -> Listing:
        principal = self._require_principal(principal)

        if isinstance(payload, Mapping):
            # the listing id comes from the route; a body clientId still gets validated
            payload = {"clientId": listing_id, **payload}
        validate(payload, is_new_submission=False).raise_for_error()

        listing = await self._get_or_404(listing_id, "You cannot edit a bot that does not exist")

        # additional owners are stored but deliberately not consulted here
        if principal.id != listing.owner_id:
            raise WorkflowError(ErrorKind.NOT_OWNER, "You are not the owner of that bot")

        editor_name = await self._name_of(principal.id)

        values: dict[str, Any] = {
            "prefix": str(payload["prefix"]),
            "short_desc": str(payload["shortDesc"]),
            "long_desc": str(payload["longDesc"]),
        }
        if "inviteUrl" in payload:
            values["invite"] = payload["inviteUrl"]

        updated = await self._store.update(listing_id, values)
        if updated is None:
            raise WorkflowError(ErrorKind.NOT_FOUND, "You cannot edit a bot that does not exist")

        log.info("listing %s edited by %s", listing_id, principal.id)
        await self._notify(f"{editor_name} edited {updated.username} ({_mention(updated.id)})")
        return updated

    async def delete(self, listing_id: str, principal: Principal | None) -> None:
        principal = self._require_principal(principal)

        listing = await self._get_or_404(listing_id, "No bot exists with that ID")

        if principal.id != listing.owner_id and not await self._is_admin(principal.id):
            raise WorkflowError(ErrorKind.FORBIDDEN, "You do not have permission to do that")

        username, bot_id = listing.username, listing.id

        if not await self._store.delete(bot_id):
            raise WorkflowError(ErrorKind.NOT_FOUND, "No bot exists with that ID")

        log.info("listing %s deleted by %s", bot_id, principal.id)

        # the worker skips the removal when the bot already left the guild
        await self._best_effort(self._outbound.remove_member(bot_id, actor_id=principal.id), "guild removal")
        await self._notify(f"deleted {username} ({_mention(bot_id)})", actor_id=principal.id)

    async def get(self, listing_id: str) -> Listing:
        return await self._get_or_404(listing_id, "No bots found with that ID")

    async def list_approved(self) -> list[Listing]:
        listings = await self._store.filter(approved=True)
        # Fisher-Yates over the whole approved set, then one page of it
        self._rng.shuffle(listings)
        return listings[: self._page_size]

    async def list_queued(self) -> list[Listing]:
        return await self._store.filter(approved=False, order_by="added_at")

    async def list_all(self) -> list[Listing]:
        return await self._store.filter()

    async def list_owned_by(self, principal_id: str) -> OwnedListings:
        owned = await self._store.filter(owner_id=principal_id, order_by="added_at")
        return OwnedListings(
            approved=[x for x in owned if x.approved],
            pending=[x for x in owned if not x.approved],
        )
