from contextlib import asynccontextmanager
from pathlib import Path

import conf
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from routes.base import router
from utils import log

from clients.couchbase import check_connection

log.init(conf.get_log_level())
logger = log.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Check database connection
    logger.info("Verifying Couchbase connection...")
    await check_connection()
    logger.info("Couchbase connection verified.")

    # Initialize auction lifecycle scheduler
    from lifecycle.scheduler import init_scheduler, shutdown_scheduler

    init_scheduler()

    yield

    shutdown_scheduler()


app = FastAPI(
    title="Timber Auction API",
    version="0.1.0",
    docs_url="/docs",
    lifespan=lifespan,
    debug=conf.get_http_expose_errors(),
)

app.include_router(router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if not conf.validate():
    raise ValueError("Invalid configuration.")

http_conf = conf.get_http_conf()
lifecycle_conf = conf.get_lifecycle_conf()
logger.info(
    f"Starting timber auction API on port {http_conf.port} "
    f"(lifecycle sweep every {lifecycle_conf.interval_seconds}s)"
)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=http_conf.host,
        port=http_conf.port,
        reload=http_conf.autoreload,
        log_level="info",
        reload_dirs=[str(Path(__file__).parent), "/models", "/clients"],
        log_config=None,
    )
