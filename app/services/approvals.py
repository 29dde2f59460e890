"""Member approval gate: pending -> approved (one way), plus the independent active toggle."""
import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import AccountDeactivatedError, AccountPendingError, NotFoundError, UpstreamServiceError
from app.models.member import MemberUser
from app.services import notifications
from app.services.notifications import NotificationResult
from app.timeutils import utcnow

log = logging.getLogger(__name__)

APPROVAL_EMAIL_WORKERS = 8


class GateState(str, enum.Enum):
    pending = "pending"
    active = "active"
    deactivated = "deactivated"


def member_gate_state(member: MemberUser) -> GateState:
    # deactivation wins over approval state
    if not member.is_active:
        return GateState.deactivated
    if not member.is_approved:
        return GateState.pending
    return GateState.active


def enforce_member_gate(member: MemberUser) -> None:
    state = member_gate_state(member)
    if state == GateState.deactivated:
        raise AccountDeactivatedError()
    if state == GateState.pending:
        raise AccountPendingError()


@dataclass
class ApprovalOutcome:
    member: MemberUser
    transitioned: bool
    notification: NotificationResult | None = None

    def as_response(self) -> dict:
        body = {"success": True, "member": self.member, "already_approved": not self.transitioned}
        if self.notification is not None:
            body.update(self.notification.as_response_fields())
        return body


def get_member_or_404(db: Session, member_id: int) -> MemberUser:
    member = db.query(MemberUser).filter(MemberUser.id == member_id).first()
    if not member:
        raise NotFoundError("Member not found")
    return member


def approve_member(db: Session, member_id: int, approved_by: str | None) -> ApprovalOutcome:
    """Approve once. Repeat calls are no-ops and send no second email."""
    member = get_member_or_404(db, member_id)
    if member.is_approved:
        return ApprovalOutcome(member=member, transitioned=False)
    try:
        flipped = db.execute(
            update(MemberUser)
            .where(MemberUser.id == member_id, MemberUser.is_approved.is_(False))
            .values(is_approved=True, approved_at=utcnow(), approved_by=approved_by)
        ).rowcount
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to approve member", details=str(getattr(e, "orig", e))) from e
    db.refresh(member)
    if flipped != 1:
        # a concurrent approval got there first and owns the email
        return ApprovalOutcome(member=member, transitioned=False)

    log.info("Member %s approved by %s", member.email, approved_by)
    result = notifications.send_member_approval_email(member.email, member.full_name)
    if not result.sent:
        log.warning("Approval email to %s not sent: %s", member.email, result.error)
    return ApprovalOutcome(member=member, transitioned=True, notification=result)


def bulk_approve_pending(db: Session, approved_by: str | None) -> int:
    """Approve every pending member in one statement, then email each of them concurrently."""
    try:
        rows = db.execute(
            update(MemberUser)
            .where(MemberUser.is_approved.is_(False))
            .values(is_approved=True, approved_at=utcnow(), approved_by=approved_by)
            .returning(MemberUser.id, MemberUser.email, MemberUser.full_name)
            .execution_options(synchronize_session=False)
        ).all()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to approve pending members", details=str(getattr(e, "orig", e))) from e

    if not rows:
        return 0
    workers = min(APPROVAL_EMAIL_WORKERS, len(rows))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda r: notifications.send_member_approval_email(r.email, r.full_name), rows))
    failed = [(r.email, res.error) for r, res in zip(rows, results) if not res.sent]
    log.info("Bulk approved %d member(s); %d approval email(s) failed", len(rows), len(failed))
    for email, error in failed:
        log.warning("Approval email to %s not sent: %s", email, error)
    return len(rows)


def set_member_active(db: Session, member_id: int, is_active: bool) -> MemberUser:
    member = get_member_or_404(db, member_id)
    member.is_active = bool(is_active)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamServiceError("Failed to update member status", details=str(getattr(e, "orig", e))) from e
    db.refresh(member)
    log.info("Member %s is_active=%s", member.email, member.is_active)
    return member
