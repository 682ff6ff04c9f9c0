"""Profile routes: agency registration and the expert's own profile."""

from fastapi import APIRouter, File, Request, UploadFile, status

from staffline.profiles import DraftProfile, MarketplaceStatus, Profile

from ..auth import AccessToken, CurrentActor
from ..database import Accounts, Profiles
from ..logging_config import get_logger, log_auth_event
from ..models import (
    AgencyRegister,
    DraftIn,
    MarketplaceStatusUpdate,
    OwnProfileResponse,
    ProfileResponse,
    QualityScoreResponse,
)
from ..rate_limit import SIGNUP_LIMIT, UPLOAD_LIMIT, WRITE_LIMIT, limiter

logger = get_logger("staffline.profiles")
router = APIRouter(prefix="/profiles", tags=["profiles"])


def to_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse.model_validate(profile.to_dict())


def to_draft(body: DraftIn) -> DraftProfile:
    return DraftProfile(**body.model_dump())


@router.post("/agency", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SIGNUP_LIMIT)
async def register_agency(
    request: Request,
    body: AgencyRegister,
    claims: AccessToken,
    accounts: Accounts,
):
    """Create the agency profile for the signed-in user."""
    logger.info(f"POST /profiles/agency | user={claims.user_id}")
    email = claims.email or body.email
    profile = await accounts.register_agency(
        claims.user_id, email, full_name=body.full_name, agency_name=body.agency_name
    )
    log_auth_event("register_agency", claims.user_id, True)
    return to_response(profile)


@router.get("/me", response_model=OwnProfileResponse)
async def get_my_profile(actor: CurrentActor, profiles: Profiles):
    """Own profile with drafts, editor pre-fill and quality score."""
    profile = await profiles.get_own_profile(actor)
    editor = profile.editor_draft()
    return OwnProfileResponse(
        profile=to_response(profile),
        editor_draft=DraftIn(
            full_name=editor.full_name,
            avatar_url=editor.avatar_url,
            bio=editor.bio,
            skills=editor.skills,
            experience_years=editor.experience_years,
            willing_timezone_shift=editor.willing_timezone_shift,
        ),
        quality_score=profiles.quality_score(editor),
    )


@router.put("/me/draft", response_model=ProfileResponse)
@limiter.limit(WRITE_LIMIT)
async def submit_draft(request: Request, body: DraftIn, actor: CurrentActor, profiles: Profiles):
    """Save the draft and submit it for review."""
    logger.info(f"PUT /profiles/me/draft | expert={actor.user_id}")
    profile = await profiles.submit_draft(actor, actor.user_id, to_draft(body))
    return to_response(profile)


@router.post("/me/quality-score", response_model=QualityScoreResponse)
async def quality_score(body: DraftIn, actor: CurrentActor, profiles: Profiles):
    """Score an unsaved draft for editor guidance."""
    return QualityScoreResponse(quality_score=profiles.quality_score(to_draft(body)))


@router.post("/me/avatar", response_model=ProfileResponse)
@limiter.limit(UPLOAD_LIMIT)
async def upload_avatar(
    request: Request,
    actor: CurrentActor,
    profiles: Profiles,
    file: UploadFile = File(...),
):
    """Upload a new draft avatar; the published avatar changes on approval."""
    logger.info(f"POST /profiles/me/avatar | expert={actor.user_id} | type={file.content_type}")
    data = await file.read()
    profile = await profiles.upload_avatar_draft(
        actor, file.filename or "avatar", data, file.content_type
    )
    return to_response(profile)


@router.put("/me/marketplace-status", response_model=ProfileResponse)
async def set_marketplace_status(
    body: MarketplaceStatusUpdate, actor: CurrentActor, profiles: Profiles
):
    logger.info(f"PUT /profiles/me/marketplace-status | expert={actor.user_id} | status={body.status}")
    profile = await profiles.set_marketplace_status(actor, MarketplaceStatus(body.status))
    return to_response(profile)
