"""
Membership Module

Cooperative member registry. Only regular (approved, active) members may
borrow; the registry exposes the eligibility guard used at loan application.
"""

from datetime import date
from dataclasses import dataclass
from typing import List, Optional
from enum import Enum
import uuid

from .audit import AuditTrail, AuditEventType
from .context import Clock, Operator, SystemClock
from .exceptions import MemberEligibilityError, NotFoundError, ValidationError
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord


logger = get_logger("coop_lending.members")


class MemberStatus(Enum):
    """Membership lifecycle status"""
    APPLICANT = "applicant"   # Application submitted, pending review
    REGULAR = "regular"       # Approved, active member
    INACTIVE = "inactive"     # No transactions, arrears
    EXPELLED = "expelled"     # Removed by the cooperative
    RESIGNED = "resigned"     # Voluntarily resigned


@dataclass
class Member(StorageRecord):
    """Cooperative member profile"""
    member_number: str
    first_name: str
    last_name: str
    member_status: MemberStatus = MemberStatus.APPLICANT
    membership_date: Optional[date] = None
    is_active: bool = True

    def __post_init__(self):
        if not self.member_number or not self.member_number.strip():
            raise ValidationError("Member number is required")
        if not self.first_name or not self.last_name:
            raise ValidationError("Member first and last name are required")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_eligible_borrower(self) -> bool:
        return self.is_active and self.member_status == MemberStatus.REGULAR


class MemberRegistry:
    """Stores members and enforces borrowing eligibility"""

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail, clock: Optional[Clock] = None):
        self.storage = storage
        self.audit = audit_trail
        self.clock = clock or SystemClock()
        self.table_name = "members"

    def register_member(
        self,
        member_number: str,
        first_name: str,
        last_name: str,
        operator: Operator,
        member_status: MemberStatus = MemberStatus.REGULAR,
        membership_date: Optional[date] = None
    ) -> Member:
        """
        Register a member

        Args:
            member_number: Cooperative-issued member number (unique)
            first_name: Given name
            last_name: Family name
            operator: Staff member encoding the record
            member_status: Initial status
            membership_date: Date of admission, defaults to today

        Returns:
            Created Member
        """
        now = self.clock.now()
        member = Member(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            member_number=member_number.strip(),
            first_name=first_name,
            last_name=last_name,
            member_status=member_status,
            membership_date=membership_date or self.clock.today()
        )

        with self.storage.atomic():
            if self.get_member_by_number(member.member_number):
                raise ValidationError(f"Member number {member.member_number} already exists")

            self.storage.save(self.table_name, member.id, member.to_dict())
            self.audit.log_event(
                event_type=AuditEventType.MEMBER_REGISTERED,
                entity_type="member",
                entity_id=member.id,
                metadata={
                    "member_number": member.member_number,
                    "member_status": member.member_status.value
                },
                user_id=operator.id
            )

        log_action(logger, "info", f"Registered member {member.member_number}",
                   user_id=operator.id, action="register_member", resource=member.id)
        return member

    def get_member(self, member_id: str) -> Optional[Member]:
        data = self.storage.load(self.table_name, member_id)
        return Member.from_dict(data) if data else None

    def get_member_by_number(self, member_number: str) -> Optional[Member]:
        matches = self.storage.find(self.table_name, {"member_number": member_number})
        return Member.from_dict(matches[0]) if matches else None

    def list_members(self, status: Optional[MemberStatus] = None) -> List[Member]:
        if status:
            records = self.storage.find(self.table_name, {"member_status": status.value})
        else:
            records = self.storage.load_all(self.table_name)
        return [Member.from_dict(r) for r in records]

    def change_status(self, member_id: str, new_status: MemberStatus, operator: Operator) -> Member:
        """Move a member to a new membership status"""
        with self.storage.atomic():
            member = self.get_member(member_id)
            if not member:
                raise NotFoundError(f"Member {member_id} not found")

            old_status = member.member_status
            member.member_status = new_status
            member.updated_at = self.clock.now()
            self.storage.save(self.table_name, member.id, member.to_dict())

            self.audit.log_event(
                event_type=AuditEventType.MEMBER_STATUS_CHANGED,
                entity_type="member",
                entity_id=member.id,
                metadata={"old_status": old_status.value, "new_status": new_status.value},
                user_id=operator.id
            )

        log_action(logger, "info",
                   f"Member {member.member_number} status {old_status.value} -> {new_status.value}",
                   user_id=operator.id, action="change_member_status", resource=member.id)
        return member

    def ensure_eligible(self, member_id: str) -> Member:
        """
        Return the member if they may borrow

        Raises:
            NotFoundError: Unknown member
            MemberEligibilityError: Member is not a regular, active member
        """
        member = self.get_member(member_id)
        if not member:
            raise NotFoundError(f"Member {member_id} not found")
        if not member.is_eligible_borrower:
            raise MemberEligibilityError(
                f"Only active cooperative members may apply for a loan; "
                f"member {member.member_number} is {member.member_status.value}"
            )
        return member
