from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from app.models.return_request import ReturnRequest, ReturnStatus
from app.services.exceptions import InvalidStatus
from app.services.ra_number import RaNumberGenerator

ADMIN_FIELDS = ("admin_notes", "rejection_reason", "return_address")


class ReturnLifecycle:
    """
    Computes the column updates for a status transition.

    Any of the six statuses may follow any other. RA number and approved_at
    are written on the first approval only, completed_at on the first
    completion only.
    """

    def __init__(self, ra_generator: Optional[RaNumberGenerator] = None):
        self.ra_generator = ra_generator or RaNumberGenerator()

    @staticmethod
    def parse_status(target) -> ReturnStatus:
        try:
            return ReturnStatus(target)
        except ValueError:
            raise InvalidStatus(
                "Valid status is required",
                detail={"status": target, "allowed": ReturnStatus.values()},
            )

    def apply(
        self,
        current: ReturnRequest,
        target,
        fields: Optional[Mapping] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        status = self.parse_status(target)
        now = now or datetime.now(timezone.utc)
        fields = fields or {}

        update_set = {"status": status.value, "updated_at": now}

        for key in ADMIN_FIELDS:
            if key in fields:
                update_set[key] = fields[key]

        if status is ReturnStatus.APPROVED and not current.return_authorization_number:
            update_set["return_authorization_number"] = self.ra_generator.generate()
            update_set["approved_at"] = now

        if status is ReturnStatus.COMPLETED and current.completed_at is None:
            update_set["completed_at"] = now

        return update_set
