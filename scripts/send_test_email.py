"""
Send a test email through the configured transport (Mailgun, else SendGrid).
Usage: python scripts/send_test_email.py <to_email>
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.config import get_settings
from app.services.notifications import BRAND, send_email


def main():
    to_email = (sys.argv[1] if len(sys.argv) > 1 else "").strip()
    if not to_email:
        print("Usage: python scripts/send_test_email.py <to_email>")
        sys.exit(1)

    settings = get_settings()
    if settings.mailgun_api_key and settings.mailgun_domain:
        print(f"Transport: Mailgun domain={settings.mailgun_domain} from={settings.mailgun_from_email}")
    elif settings.sendgrid_api_key:
        print(f"Transport: SendGrid from={settings.sendgrid_from_email}")
    else:
        print("No mail transport configured. Set MAILGUN_API_KEY and MAILGUN_DOMAIN (or SENDGRID_API_KEY) in .env")
        sys.exit(1)

    result = send_email(
        to_email,
        f"[{BRAND}] Test email",
        f"<p>This is a <strong>test email</strong> from the {BRAND} portal.</p>",
    )
    if result.sent:
        print("Success: test email sent. Check the inbox (and spam) for", to_email)
    else:
        print(f"Failed: {result.error}")
        print("  - For EU Mailgun accounts set MAILGUN_BASE_URL=https://api.eu.mailgun.net in .env")
        sys.exit(1)


if __name__ == "__main__":
    main()
