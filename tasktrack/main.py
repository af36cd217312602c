from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
import logging

from tasktrack.core.config import settings
from tasktrack.core.errors import TrackingError
from tasktrack.routers import timer, time_logs, timesheets

app = FastAPI(title="Task Tracker Time & Timesheet API")

# Basic logging setup to help local debugging
logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)

# include routers
app.include_router(timer.router)
app.include_router(time_logs.router)
app.include_router(timesheets.router)


@app.exception_handler(TrackingError)
def tracking_error_handler(request: Request, exc: TrackingError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(OperationalError)
def operational_error_handler(request: Request, exc: OperationalError):
    logger.warning("Database busy on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": "Database busy, try again"})


@app.get("/")
def root():
    return {"message": "API is running!"}
