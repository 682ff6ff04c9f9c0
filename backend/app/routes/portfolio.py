"""Portfolio routes."""

from fastapi import APIRouter, File, Form, Path, Request, UploadFile, status

from staffline.portfolio import LinkStatus, PortfolioItem

from ..auth import AdminActor, CurrentActor
from ..database import AdminPortfolio, Portfolio
from ..logging_config import get_logger, log_admin_event
from ..models import LinkStatusUpdate, PortfolioItemResponse, PortfolioLinkCreate
from ..rate_limit import UPLOAD_LIMIT, WRITE_LIMIT, limiter

logger = get_logger("staffline.portfolio")
router = APIRouter(prefix="/portfolio", tags=["portfolio"])


def to_response(item: PortfolioItem) -> PortfolioItemResponse:
    return PortfolioItemResponse.model_validate(item.to_dict())


@router.get("/mine", response_model=list[PortfolioItemResponse])
async def my_items(actor: CurrentActor, portfolio: Portfolio):
    return [to_response(i) for i in await portfolio.list_items(actor.user_id)]


@router.post("/links", response_model=PortfolioItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def add_link(request: Request, body: PortfolioLinkCreate, actor: CurrentActor, portfolio: Portfolio):
    logger.info(f"POST /portfolio/links | expert={actor.user_id}")
    return to_response(await portfolio.add_link(actor, body.title, body.url))


@router.post("/files", response_model=PortfolioItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(UPLOAD_LIMIT)
async def add_file(
    request: Request,
    actor: CurrentActor,
    portfolio: Portfolio,
    title: str = Form(..., min_length=1, max_length=200),
    file: UploadFile = File(...),
):
    logger.info(f"POST /portfolio/files | expert={actor.user_id} | type={file.content_type}")
    data = await file.read()
    item = await portfolio.add_file(actor, title, file.filename or "file", data, file.content_type)
    return to_response(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(actor: CurrentActor, portfolio: Portfolio, item_id: str = Path(...)):
    logger.info(f"DELETE /portfolio/{item_id} | actor={actor.user_id}")
    await portfolio.delete_item(actor, item_id)


@router.put("/{item_id}/status", response_model=PortfolioItemResponse)
async def set_link_status(
    body: LinkStatusUpdate,
    admin: AdminActor,
    portfolio: AdminPortfolio,
    item_id: str = Path(...),
):
    """Approve or reject a portfolio item."""
    item = await portfolio.set_link_status(admin, item_id, LinkStatus(body.status))
    log_admin_event(f"portfolio_{body.status}", admin.user_id, item_id)
    return to_response(item)
