import logging

import uvicorn

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import HOST, LOG_LEVEL, PORT
from app.core.errors import Internal, ServiceError
from app.db.base import Base, engine
from app.api.routes import auth
from app.api.routes import providers as providers_router
from app.api.routes import reservations as reservations_router
from app.api.routes import review as review_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="Home Services Booking API")

@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "message": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    # reads and anything else not already wrapped by the service layer
    logger.error(f"{request.method} {request.url.path} database error: {exc}")
    error = Internal("Database error")
    return JSONResponse(status_code=error.status_code, content={"error": error.code, "message": error.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"error": "invalid_input", "message": "Request validation failed", "details": details},
    )


@app.get("/")
def root():
    return {"message": "Home Services Booking API running"}


app.include_router(auth.router, prefix="/api/auth")
app.include_router(providers_router.router)
app.include_router(reservations_router.router)
app.include_router(review_router.router)


def run():
    uvicorn.run("app.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
