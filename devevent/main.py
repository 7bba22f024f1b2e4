from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from devevent.core.config import get_cors_origins
from devevent.core.errors import DevEventError
from devevent.core.logging_config import configure_logging, get_logger
from devevent.routes import bookings, events

configure_logging()
logger = get_logger("main")

app = FastAPI(title="DevEvent API")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Tables are created by the first successful database connection, not at import


@app.exception_handler(DevEventError)
async def devevent_error_handler(request: Request, exc: DevEventError):
    # Reaches here from dependencies, e.g. a missing DATABASE_URL in get_db
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc), "field": exc.field})


@app.get("/")
def read_root():
    return {"message": "DevEvent API", "status": "running"}


# Include the routers
app.include_router(events.router)
app.include_router(bookings.router)
