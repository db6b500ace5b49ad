import logging

from fastapi import FastAPI

from .core.config import get_settings
from .routers import activities, auth, duplicates, migrations

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Activity Reconciliation Service",
    version="0.1.0",
)

app.include_router(auth.router)
# Registered before the activities router so "/activities/duplicates" is not
# captured by "/activities/{activity_id}".
app.include_router(duplicates.router)
app.include_router(activities.router)
app.include_router(migrations.router)


@app.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
