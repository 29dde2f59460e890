"""Shared schema types."""
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from app.timeutils import as_utc

# SQLite returns naive datetimes; every stored value is UTC
UTCDatetime = Annotated[datetime, AfterValidator(as_utc)]
