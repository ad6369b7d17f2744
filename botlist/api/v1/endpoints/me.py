from fastapi import APIRouter, Depends

from botlist.api.deps import get_principal, get_workflow
from botlist.core.security import Principal
from botlist.schemas.listing import ListingOut, OwnedListingsOut
from botlist.services.errors import ErrorKind, WorkflowError
from botlist.services.workflow import ListingWorkflow

router = APIRouter()


@router.get("/me/listings", response_model=OwnedListingsOut)
async def my_listings(
    principal: Principal | None = Depends(get_principal),
    workflow: ListingWorkflow = Depends(get_workflow),
) -> OwnedListingsOut:
    if principal is None:
        raise WorkflowError(ErrorKind.UNAUTHENTICATED, "You need to log in to do that")
    owned = await workflow.list_owned_by(principal.id)
    return OwnedListingsOut(
        approved=[ListingOut.model_validate(r) for r in owned.approved],
        pending=[ListingOut.model_validate(r) for r in owned.pending],
    )
