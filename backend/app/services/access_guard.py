from dataclasses import dataclass
from typing import Optional

from app.models.order import Order
from app.models.return_request import ReturnRequest
from app.models.user import STAFF_ROLES, User
from app.services.exceptions import Forbidden, Unauthenticated


@dataclass(frozen=True)
class Caller:
    """The identity a request is made under; guests are represented by None."""

    id: str
    email: Optional[str] = None
    role: str = "customer"
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            full_name=user.full_name,
            first_name=user.first_name,
            last_name=user.last_name,
        )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def display_name(self) -> Optional[str]:
        if self.full_name:
            return self.full_name
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return None


def is_staff(caller: Optional[Caller]) -> bool:
    return caller is not None and caller.is_staff


class AccessGuard:
    @staticmethod
    def can_create(caller: Optional[Caller], order: Order) -> None:
        if caller is None:
            return
        if order.user_id is not None and order.user_id != caller.id:
            raise Forbidden("This order does not belong to you.")

    @staticmethod
    def can_view_list(caller: Optional[Caller]) -> Optional[str]:
        """Return the user id the listing is scoped to, None for staff."""
        if is_staff(caller):
            return None
        if caller is None:
            raise Unauthenticated("Authentication required")
        return caller.id

    @staticmethod
    def can_view_one(caller: Optional[Caller], request: ReturnRequest) -> None:
        if is_staff(caller):
            return
        if caller is None:
            raise Unauthenticated("Authentication required")
        if request.user_id != caller.id:
            raise Forbidden("Access denied")

    @staticmethod
    def _staff_only(caller: Optional[Caller]) -> None:
        if caller is None:
            raise Unauthenticated("Authentication required")
        if not caller.is_staff:
            raise Forbidden("Admin access required")

    @classmethod
    def can_transition(cls, caller: Optional[Caller]) -> None:
        cls._staff_only(caller)

    @classmethod
    def can_delete(cls, caller: Optional[Caller]) -> None:
        cls._staff_only(caller)
