"""
Programs and donations - Catalogue and ledger services.

The program `raised` total follows the donation ledger: creating a
donation adds its amount, deleting one subtracts it (never below zero).
The two writes are separate store calls, not a transaction.
"""

import logging
from dataclasses import dataclass
from typing import Any

from .exceptions import ImageHostError, NotFound, ValidationFailed
from .models import Donation, DonationStatus, Program, ProgramStatus
from .ports import DonationRepository, ImageHost, ProgramRepository, UserDirectory

logger = logging.getLogger(__name__)

# Fields never taken from client input on update
IMMUTABLE_PROGRAM_FIELDS = frozenset({"id", "created_at", "updated_at", "raised"})


@dataclass
class ProgramService:
    programs: ProgramRepository
    images: ImageHost
    max_image_bytes: int = 5 * 1024 * 1024

    def list_programs(self, status: str | None = None) -> list[Program]:
        if status is not None:
            try:
                status = ProgramStatus(status).value
            except ValueError:
                raise ValidationFailed(f"Invalid program status: {status}") from None
        return self.programs.list_all(status)

    def featured_programs(self) -> list[Program]:
        return self.programs.list_featured()

    def get_program(self, program_id: str) -> Program:
        program = self.programs.get(program_id)
        if program is None:
            raise NotFound(f"Program {program_id} does not exist")
        return program

    def create_program(self, fields: dict[str, Any]) -> Program:
        """Create a program. The raised total always starts at zero."""
        data = {key: value for key, value in fields.items() if key not in IMMUTABLE_PROGRAM_FIELDS}
        program = self.programs.create(data)
        logger.info("Created program %s (%s)", program.id, program.title)
        return program

    def update_program(self, program_id: str, changes: dict[str, Any]) -> Program:
        """
        Apply changes to a program.

        If the image URL is replaced, the previous image is removed from
        the image host.
        """
        current = self.get_program(program_id)
        data = {key: value for key, value in changes.items() if key not in IMMUTABLE_PROGRAM_FIELDS}

        updated = self.programs.update(program_id, data)
        if updated is None:
            raise NotFound(f"Program {program_id} does not exist")

        if current.image_url and "image_url" in data and data["image_url"] != current.image_url:
            self._discard_image(current.image_url)
        return updated

    def delete_program(self, program_id: str) -> None:
        program = self.get_program(program_id)
        if not self.programs.delete(program_id):
            raise NotFound(f"Program {program_id} does not exist")
        if program.image_url:
            self._discard_image(program.image_url)
        logger.info("Deleted program %s", program_id)

    def upload_image(self, filename: str, content: bytes, content_type: str | None) -> str:
        """
        Upload a program image and return its hosted URL.

        Raises:
            ValidationFailed: Not an image, empty, or larger than the limit
            ImageHostError: Host rejected the upload
        """
        if not content_type or not content_type.startswith("image/"):
            raise ValidationFailed("Please select an image file")
        if not content:
            raise ValidationFailed("No file to upload")
        if len(content) > self.max_image_bytes:
            raise ValidationFailed(
                f"File size should be less than {self.max_image_bytes // (1024 * 1024)}MB"
            )
        return self.images.upload(filename, content, content_type)

    def _discard_image(self, image_url: str) -> None:
        try:
            self.images.delete(image_url)
        except ImageHostError:
            logger.warning("Could not delete image %s from host", image_url, exc_info=True)


@dataclass
class DonationService:
    programs: ProgramRepository
    donations: DonationRepository
    users: UserDirectory

    def record_donation(self, fields: dict[str, Any]) -> Donation:
        """
        Record a donation and add its amount to the program total.

        Raises:
            ValidationFailed: Non-positive amount
            NotFound: Program does not exist
        """
        amount = fields.get("amount")
        if amount is None or amount <= 0:
            raise ValidationFailed("Donation amount must be positive")

        program_id = fields["program_id"]
        if self.programs.get(program_id) is None:
            raise NotFound(f"Program {program_id} does not exist")

        data = dict(fields)
        data.setdefault("status", DonationStatus.COMPLETED.value)
        if not data.get("is_anonymous") and data.get("donor_id"):
            profile = self.users.get(data["donor_id"])
            if profile is not None:
                data["donor_avatar"] = profile.avatar

        donation = self.donations.create(data)
        self.programs.adjust_raised(program_id, donation.amount)
        logger.info(
            "Recorded donation %s of %s to program %s", donation.id, donation.amount, program_id
        )
        return donation

    def get_donation(self, donation_id: str) -> Donation:
        donation = self.donations.get(donation_id)
        if donation is None:
            raise NotFound(f"Donation {donation_id} does not exist")
        return donation

    def all_donations(self) -> list[Donation]:
        return self.donations.list_all()

    def donations_for_program(self, program_id: str) -> list[Donation]:
        return self.donations.list_by_program(program_id)

    def donations_by_donor(self, donor_id: str) -> list[Donation]:
        return self.donations.list_by_donor(donor_id)

    def delete_donation(self, donation_id: str) -> None:
        """Remove a donation and subtract its amount from the program total."""
        donation = self.get_donation(donation_id)
        # Only the caller whose delete removed the row adjusts the total
        if not self.donations.delete(donation_id):
            raise NotFound(f"Donation {donation_id} does not exist")
        if not self.programs.adjust_raised(donation.program_id, -donation.amount):
            logger.warning(
                "Program %s missing while deleting donation %s", donation.program_id, donation_id
            )
        logger.info("Deleted donation %s", donation_id)
