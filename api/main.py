"""
Network Test Harness API

FastAPI application exposing the load generator and the mini testnet.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import close_container
from api.responses import INTERNAL_ERROR, fail, invalid_request
from api.routers import health, load_generator, mini_testnet
from netharness import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Stop in-flight runs so driver threads exit with the server
    close_container()


app = FastAPI(
    title="Network Test Harness API",
    description="Synthetic load generation and miniature testnet simulation",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return invalid_request(exc.errors())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return fail(500, INTERNAL_ERROR)


app.include_router(health.router)
app.include_router(load_generator.router)
app.include_router(mini_testnet.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
