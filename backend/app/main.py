import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import CORS_ORIGINS, LOG_LEVEL
from app.database import init_db
from app.routes import blocks, board, courts, members, waitlist
from app.services.events import ChangeNotifier

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Courtside Scheduler API")

# In-process change feed; kiosks and displays subscribe through it.
app.state.notifier = ChangeNotifier()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if CORS_ORIGINS:
    _cors_origins.extend(o.strip() for o in CORS_ORIGINS.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(board.router, prefix="/api", tags=["board"])
app.include_router(courts.router, prefix="/api", tags=["courts"])
app.include_router(waitlist.router, prefix="/api", tags=["waitlist"])
app.include_router(blocks.router, prefix="/api", tags=["blocks"])
app.include_router(members.router, prefix="/api", tags=["members"])


@app.on_event("startup")
def on_startup():
    init_db()

    route_count = 0
    for r in app.routes:
        methods = getattr(r, "methods", None)
        path = getattr(r, "path", None)
        if path:
            methods_str = ", ".join(sorted(methods)) if methods else "N/A"
            logger.debug("%-20s %s", methods_str, path)
            route_count += 1
    logger.info("Courtside Scheduler started with %d routes", route_count)


@app.get("/api/health")
def health_check():
    return {"app_name": "Courtside Scheduler API", "status": "healthy"}
