from dotenv import load_dotenv

load_dotenv()

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api import auth, application, board, analytics, live, health
from .errors import TrackerError
from .models.db.database import engine, Base
from .models.db import user as user_model
from .models.db import application as application_model
from .utils.api_helpers import tracker_error_handler
from .utils.logging_config import setup_logging, get_logger
from .config.settings import get_settings

# Initialize settings
settings = get_settings()

# Setup logging configuration
setup_logging(
    level=settings.log_level,
    log_file=settings.log_file,
    sql_echo=settings.database_echo,
)
logger = get_logger(__name__)

# Validate configuration on startup
missing_settings = settings.validate_required_settings()
if missing_settings:
    for setting in missing_settings:
        logger.error("Configuration error: %s", setting)
    if settings.is_production():
        raise RuntimeError("Invalid configuration for production environment")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s v%s...", settings.app_name, settings.app_version)
    # Models are imported above so their tables are registered on Base
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized successfully")
    yield
    logger.info("Shutting down %s", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/docs" if settings.api_docs_enabled else None,
    redoc_url="/redoc" if settings.api_docs_enabled else None,
    lifespan=lifespan,
)

app.add_exception_handler(TrackerError, tracker_error_handler)

# Add CORS middleware if enabled
if settings.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Routers (live before application so /live is not read as an application id)
app.include_router(health.router, prefix="/api", tags=["Health Check"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(live.router, prefix="/api/applications", tags=["Live Feed"])
app.include_router(application.router, prefix="/api/applications", tags=["Application Tracker"])
app.include_router(board.router, prefix="/api/board", tags=["Kanban Board"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])


@app.get("/")
def read_root():
    return {"message": f"Welcome to the {settings.app_name} API"}
