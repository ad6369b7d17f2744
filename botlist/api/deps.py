from fastapi import Depends, Request, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from botlist.core.config import settings
from botlist.core.db import get_db, get_session_factory
from botlist.core.security import Principal, verify_session
from botlist.services.discord_client import DiscordHttpClient
from botlist.services.identity import DiscordIdentityResolver, IdentityResolver
from botlist.services.membership import DiscordMembershipAuthority, MembershipAuthority
from botlist.services.outbox import OutboundQueue, OutboxQueue
from botlist.services.store import SqlListingStore
from botlist.services.workflow import ListingWorkflow

session_header = APIKeyHeader(name="X-Session-Token", auto_error=False)


async def get_principal(token: str | None = Security(session_header)) -> Principal | None:
    # Anonymous requests are allowed through; the workflow decides what needs a login
    if not token:
        return None
    user_id = verify_session(token)
    if user_id is None:
        return None
    return Principal(id=user_id)


def get_discord_client(request: Request) -> DiscordHttpClient:
    return request.app.state.discord_client


def get_identity_resolver(client: DiscordHttpClient = Depends(get_discord_client)) -> IdentityResolver:
    return DiscordIdentityResolver(client)


def get_membership_authority(client: DiscordHttpClient = Depends(get_discord_client)) -> MembershipAuthority:
    return DiscordMembershipAuthority(client, guild_id=settings.list_guild_id)


def get_outbound_queue() -> OutboundQueue:
    return OutboxQueue(get_session_factory())


def get_workflow(
    db: AsyncSession = Depends(get_db),
    identity: IdentityResolver = Depends(get_identity_resolver),
    membership: MembershipAuthority = Depends(get_membership_authority),
    outbound: OutboundQueue = Depends(get_outbound_queue),
) -> ListingWorkflow:
    return ListingWorkflow(
        store=SqlListingStore(db),
        identity=identity,
        membership=membership,
        outbound=outbound,
        log_channel_id=settings.list_log_channel_id,
        admin_role_id=settings.website_admin_role_id,
        page_size=settings.approved_page_size,
    )
