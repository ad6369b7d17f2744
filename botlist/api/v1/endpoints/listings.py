from fastapi import APIRouter, Depends

from botlist.api.deps import get_principal, get_workflow
from botlist.core.security import Principal
from botlist.schemas.listing import DeletedOut, ListingForm, ListingOut
from botlist.services.workflow import ListingWorkflow

router = APIRouter()


@router.get("/listings", response_model=list[ListingOut])
async def list_approved(workflow: ListingWorkflow = Depends(get_workflow)) -> list[ListingOut]:
    rows = await workflow.list_approved()
    return [ListingOut.model_validate(r) for r in rows]


@router.get("/listings/queue", response_model=list[ListingOut])
async def list_queued(workflow: ListingWorkflow = Depends(get_workflow)) -> list[ListingOut]:
    rows = await workflow.list_queued()
    return [ListingOut.model_validate(r) for r in rows]


@router.get("/listings/all", response_model=list[ListingOut])
async def list_all(workflow: ListingWorkflow = Depends(get_workflow)) -> list[ListingOut]:
    rows = await workflow.list_all()
    return [ListingOut.model_validate(r) for r in rows]


@router.get("/listings/{listing_id}", response_model=ListingOut)
async def get_listing(listing_id: str, workflow: ListingWorkflow = Depends(get_workflow)) -> ListingOut:
    return ListingOut.model_validate(await workflow.get(listing_id))


@router.post("/listings", response_model=ListingOut, status_code=201)
async def submit_listing(
    form: ListingForm,
    principal: Principal | None = Depends(get_principal),
    workflow: ListingWorkflow = Depends(get_workflow),
) -> ListingOut:
    listing = await workflow.submit(form.to_payload(), principal)
    return ListingOut.model_validate(listing)


@router.put("/listings/{listing_id}", response_model=ListingOut)
async def edit_listing(
    listing_id: str,
    form: ListingForm,
    principal: Principal | None = Depends(get_principal),
    workflow: ListingWorkflow = Depends(get_workflow),
) -> ListingOut:
    listing = await workflow.edit(listing_id, form.to_payload(), principal)
    return ListingOut.model_validate(listing)


@router.delete("/listings/{listing_id}", response_model=DeletedOut)
async def delete_listing(
    listing_id: str,
    principal: Principal | None = Depends(get_principal),
    workflow: ListingWorkflow = Depends(get_workflow),
) -> DeletedOut:
    await workflow.delete(listing_id, principal)
    return DeletedOut(listing_id=listing_id)
