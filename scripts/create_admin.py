"""
Bootstrap an admin account from the command line. Every admin endpoint needs an
admin, so the first one has to be created here.

Run from project root:
  python scripts/create_admin.py admin@example.com "Jane Admin" --password 'S3cure!Passw0rd'
  python scripts/create_admin.py admin@example.com "Jane Admin"          # prints a setup link instead
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import Base, SessionLocal, engine
from app.errors import PortalError
from app.models.admin import AdminUser
from app.services.accounts import ensure_email_available, normalize_email
from app.services.identity import IdentityProvider
from app.services.invitations import insert_profile, issue_admin_invitation
from app.services.passwords import get_password_policy
from app.timeutils import utcnow


def main():
    parser = argparse.ArgumentParser(description="Create an admin account.")
    parser.add_argument("email")
    parser.add_argument("full_name")
    parser.add_argument("--password", help="set this password now instead of issuing a setup link")
    parser.add_argument("--send-email", action="store_true", help="also email the setup link")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    identity = IdentityProvider(db)
    try:
        if args.password:
            get_password_policy().enforce(args.password)
            email = normalize_email(args.email)
            ensure_email_available(db, email)
            auth_user = identity.provision_user(email, args.password, email_confirmed=True)
            admin = AdminUser(
                user_id=auth_user.id,
                email=email,
                full_name=args.full_name.strip(),
                is_active=True,
                must_change_password=False,
                last_password_change=utcnow(),
            )
            insert_profile(db, identity, admin, "Failed to create admin record")
            print(f"Created admin: {email} (id={admin.id}). Log in with the password you supplied.")
        else:
            issued = issue_admin_invitation(
                db, identity, email=args.email, full_name=args.full_name, send_email=args.send_email
            )
            print(f"Created admin: {issued.account.email} (id={issued.account.id})")
            print(f"Setup link (expires {issued.token.expires_at:%Y-%m-%d %H:%M} UTC):")
            print(f"  {issued.setup_link}")
            if args.send_email:
                print("Email sent." if issued.notification.sent else f"Email NOT sent: {issued.notification.error}")
    except PortalError as e:
        print(f"Error: {e.message}")
        if e.details:
            print(f"  details: {e.details}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
