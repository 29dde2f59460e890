"""Affiliate Portal – FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import Base, engine, get_db
from app.errors import register_exception_handlers
from app.middleware.request_logging import RequestLoggingMiddleware, configure_logging
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from app.models import (  # noqa: F401
    AuthIdentity, AdminUser, MemberUser, InvitationToken,
    PartnerCompany, AffiliateClick, AffiliateConversion,
)
from app.routers import admins, analytics, auth, invitations, members, partners

settings = get_settings()
configure_logging(settings.log_level)
log = logging.getLogger("app.main")

app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(admins.router)
app.include_router(invitations.router)
app.include_router(members.router)
app.include_router(partners.router)
app.include_router(analytics.router)


@app.on_event("startup")
def startup():
    if settings.mailgun_api_key and settings.mailgun_domain:
        from_addr = settings.mailgun_from_email or ""
        from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
        send_domain = settings.mailgun_domain.lower()
        if from_domain and from_domain != send_domain:
            log.warning(
                "Mailgun from=%s does not match domain=%s; set MAILGUN_FROM_EMAIL=noreply@%s",
                from_addr,
                settings.mailgun_domain,
                settings.mailgun_domain,
            )
        else:
            log.info("Mailgun using domain=%s from=%s", settings.mailgun_domain, from_addr or "(none)")
    elif settings.sendgrid_api_key:
        log.info("Mail via SendGrid from=%s", settings.sendgrid_from_email)
    else:
        log.warning("No mail transport configured; invitation and approval emails will be reported as not sent")
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        log.warning("Database startup failed (tables skipped). Check DATABASE_URL and network. Error: %s", e)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/ready")
def ready(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        log.error("Readiness check failed: %s", e)
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "error"})
    return {"status": "ready", "database": "ok"}
