"""Account lookups shared by admin and member flows (email is unique across both)."""
from sqlalchemy import func, literal, select, union_all
from sqlalchemy.orm import Session

from app.errors import ConflictError, ValidationError
from app.models.admin import AdminUser
from app.models.member import MemberUser

ADMIN = "admin"
MEMBER = "member"


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def find_account_by_email(db: Session, email: str) -> tuple[str, int] | None:
    """One query over both account tables; returns (account_type, id) or None."""
    email = normalize_email(email)
    if not email:
        return None
    admins = select(literal(ADMIN).label("account_type"), AdminUser.id.label("id")).where(
        func.lower(AdminUser.email) == email
    )
    members = select(literal(MEMBER).label("account_type"), MemberUser.id.label("id")).where(
        func.lower(MemberUser.email) == email
    )
    row = db.execute(union_all(admins, members)).first()
    if row is None:
        return None
    return row.account_type, row.id


def ensure_email_available(db: Session, email: str) -> None:
    found = find_account_by_email(db, email)
    if found is None:
        return
    account_type, _ = found
    if account_type == ADMIN:
        raise ConflictError("An admin with this email already exists")
    raise ConflictError("This email is already registered as a member")


def require_fields(**fields: str | None) -> None:
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}", details={"missing": missing})
