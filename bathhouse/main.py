import logging

from fastapi import FastAPI

from bathhouse.api.v1.bookings import router as bookings_router
from bathhouse.api.v1.openings import router as openings_router
from bathhouse.api.v1.schedule import router as schedule_router
from bathhouse.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_id", "date", "status", "conflicts", "count", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title="Bathhouse Booking", version="1.0.0")

app.include_router(bookings_router, prefix="/api/v1/bookings", tags=["bookings"])
app.include_router(schedule_router, prefix="/api/v1/schedule", tags=["schedule"])
app.include_router(openings_router, prefix="/api/v1/openings", tags=["openings"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
