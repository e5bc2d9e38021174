from prometheus_fastapi_instrumentator import Instrumentator

from timetracker import create_app
from timetracker.core.config import settings
from timetracker.core.logging import setup_logging

setup_logging(settings.LOG_LEVEL, service=settings.APP_NAME)
app = create_app(settings)
Instrumentator().instrument(app).expose(app)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}
