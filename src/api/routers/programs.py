"""
Program, donation and image routes.

Reads of the program catalogue are public; writes need an admin.
Donations are recorded by donors and admins against the signed-in
profile, so donor id and name never come from the request body.
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from src.api.dependencies import (
    get_donation_service,
    get_program_service,
    require_roles,
)
from src.api.models import (
    ApiResponse,
    DonationCreateRequest,
    DonationListResponse,
    DonationOut,
    DonationResponse,
    ImageUploadResponse,
    ProgramCreateRequest,
    ProgramListResponse,
    ProgramOut,
    ProgramResponse,
    ProgramUpdateRequest,
)
from src.domain.models import Role, UserProfile
from src.domain.programs import DonationService, ProgramService

router = APIRouter(tags=["programs"])

require_admin = require_roles(Role.ADMIN)
require_donor = require_roles(Role.DONOR, Role.ADMIN)
require_user = require_roles()

ANONYMOUS_DONOR = "Anonymous"


@router.get(
    "/programs",
    response_model=ProgramListResponse,
    response_model_exclude_none=True,
    summary="List programs",
)
def list_programs(
    status_filter: str | None = Query(default=None, alias="status"),
    service: ProgramService = Depends(get_program_service),
) -> ProgramListResponse:
    programs = service.list_programs(status_filter)
    return ProgramListResponse(
        success=True,
        message=f"{len(programs)} programs",
        programs=[ProgramOut.model_validate(program) for program in programs],
    )


# Registered before /programs/{program_id} so "featured" is not taken as an id
@router.get(
    "/programs/featured",
    response_model=ProgramListResponse,
    response_model_exclude_none=True,
    summary="Featured programs",
)
def featured_programs(
    service: ProgramService = Depends(get_program_service),
) -> ProgramListResponse:
    programs = service.featured_programs()
    return ProgramListResponse(
        success=True,
        message=f"{len(programs)} programs",
        programs=[ProgramOut.model_validate(program) for program in programs],
    )


@router.get(
    "/programs/{program_id}",
    response_model=ProgramResponse,
    response_model_exclude_none=True,
    summary="Get a program",
)
def get_program(
    program_id: str,
    service: ProgramService = Depends(get_program_service),
) -> ProgramResponse:
    program = service.get_program(program_id)
    return ProgramResponse(success=True, message="OK", program=ProgramOut.model_validate(program))


@router.post(
    "/programs",
    response_model=ProgramResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a program",
)
def create_program(
    request_data: ProgramCreateRequest,
    admin: UserProfile = Depends(require_admin),
    service: ProgramService = Depends(get_program_service),
) -> ProgramResponse:
    program = service.create_program(request_data.model_dump())
    return ProgramResponse(
        success=True,
        message="Program created",
        program=ProgramOut.model_validate(program),
    )


@router.put(
    "/programs/{program_id}",
    response_model=ProgramResponse,
    response_model_exclude_none=True,
    summary="Update a program",
)
def update_program(
    program_id: str,
    request_data: ProgramUpdateRequest,
    admin: UserProfile = Depends(require_admin),
    service: ProgramService = Depends(get_program_service),
) -> ProgramResponse:
    changes = request_data.model_dump(exclude_unset=True, exclude_none=True)
    program = service.update_program(program_id, changes)
    return ProgramResponse(
        success=True,
        message="Program updated",
        program=ProgramOut.model_validate(program),
    )


@router.delete(
    "/programs/{program_id}",
    response_model=ApiResponse,
    response_model_exclude_none=True,
)
def delete_program(
    program_id: str,
    admin: UserProfile = Depends(require_admin),
    service: ProgramService = Depends(get_program_service),
) -> ApiResponse:
    service.delete_program(program_id)
    return ApiResponse(success=True, message="Program deleted")


@router.get(
    "/programs/{program_id}/donations",
    response_model=DonationListResponse,
    response_model_exclude_none=True,
    summary="Donations to a program",
)
def program_donations(
    program_id: str,
    user: UserProfile = Depends(require_user),
    service: DonationService = Depends(get_donation_service),
) -> DonationListResponse:
    donations = service.donations_for_program(program_id)
    return DonationListResponse(
        success=True,
        message=f"{len(donations)} donations",
        donations=[DonationOut.model_validate(donation) for donation in donations],
    )


@router.post(
    "/donations",
    response_model=DonationResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Record a donation",
)
def record_donation(
    request_data: DonationCreateRequest,
    donor: UserProfile = Depends(require_donor),
    service: DonationService = Depends(get_donation_service),
) -> DonationResponse:
    """Record a donation for the signed-in donor and add it to the program total."""
    fields = request_data.model_dump()
    fields["donor_id"] = donor.uid
    fields["donor_name"] = ANONYMOUS_DONOR if request_data.is_anonymous else donor.name
    donation = service.record_donation(fields)
    return DonationResponse(
        success=True,
        message="Donation recorded",
        donation=DonationOut.model_validate(donation),
    )


@router.get(
    "/donations",
    response_model=DonationListResponse,
    response_model_exclude_none=True,
    summary="All donations",
)
def all_donations(
    admin: UserProfile = Depends(require_admin),
    service: DonationService = Depends(get_donation_service),
) -> DonationListResponse:
    donations = service.all_donations()
    return DonationListResponse(
        success=True,
        message=f"{len(donations)} donations",
        donations=[DonationOut.model_validate(donation) for donation in donations],
    )


@router.get(
    "/donations/mine",
    response_model=DonationListResponse,
    response_model_exclude_none=True,
    summary="My donations",
)
def my_donations(
    user: UserProfile = Depends(require_user),
    service: DonationService = Depends(get_donation_service),
) -> DonationListResponse:
    donations = service.donations_by_donor(user.uid)
    return DonationListResponse(
        success=True,
        message=f"{len(donations)} donations",
        donations=[DonationOut.model_validate(donation) for donation in donations],
    )


@router.delete(
    "/donations/{donation_id}",
    response_model=ApiResponse,
    response_model_exclude_none=True,
)
def delete_donation(
    donation_id: str,
    admin: UserProfile = Depends(require_admin),
    service: DonationService = Depends(get_donation_service),
) -> ApiResponse:
    service.delete_donation(donation_id)
    return ApiResponse(success=True, message="Donation deleted")


@router.post(
    "/images",
    response_model=ImageUploadResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ApiResponse, "description": "Not an image or too large"},
        502: {"model": ApiResponse, "description": "Image host failure"},
    },
    summary="Upload a program image",
)
def upload_image(
    image: UploadFile = File(...),
    admin: UserProfile = Depends(require_admin),
    service: ProgramService = Depends(get_program_service),
) -> ImageUploadResponse:
    content = image.file.read()
    image_url = service.upload_image(image.filename or "image", content, image.content_type)
    return ImageUploadResponse(success=True, message="Image uploaded", image_url=image_url)
