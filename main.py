# main.py
"""
FastAPI entry point for the meal planning service.
Request-id middleware, structured request logging and consistent JSON errors
for the meal plan and chat endpoints.
"""
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mealplanner.api.meal_plans import router as meal_plans_router
from mealplanner.config.settings import settings
from mealplanner.services.errors import MealPlannerError, RateLimitError, ValidationError

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting meal planner...")
    app.state.model_configured = bool(settings.openai_api_key or settings.use_azure)
    if not app.state.model_configured:
        logger.warning("⚠️ No OpenAI/Azure credentials configured; generation endpoints will fail")
    try:
        yield
    finally:
        logger.info("Shutting down meal planner...")


app = FastAPI(
    title="Meal Planner",
    description="AI-powered three-day meal plans with conversational modification",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    logger.info("→ Incoming request %s %s id=%s from=%s", request.method, request.url.path, request_id, request.client)
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        logger.exception("Handler error for request id=%s: %s", request_id, exc)
        return JSONResponse(
            {"ok": False, "error": "internal_error", "message": "Internal server error",
             "diagnostics": {"request_id": request_id}},
            status_code=500,
        )
    logger.info("← Completed request id=%s status=%s", request_id, getattr(response, "status_code", None))
    response.headers["X-Request-Id"] = request_id
    return response


@app.exception_handler(MealPlannerError)
async def meal_planner_error_handler(request: Request, exc: MealPlannerError):
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(level, "%s during %s: %s", exc.code, exc.operation, exc)
    headers: Dict[str, str] = {}
    if isinstance(exc, RateLimitError):
        headers["X-RateLimit-Remaining"] = str(exc.remaining)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    err = ValidationError(
        "Invalid request body",
        operation=request.url.path,
        errors=[
            {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ],
    )
    return JSONResponse(err.to_dict(), status_code=err.status_code)


app.include_router(meal_plans_router, prefix="/api", tags=["meal-plan"])


@app.get("/")
async def root() -> Dict[str, str]:
    return {"message": "Meal planner is running!", "status": "healthy"}


@app.get("/health")
async def health_check() -> Dict[str, Any]:
    return {"status": "healthy", "service": "meal-planner"}


@app.get("/ready")
async def readiness_check():
    configured = getattr(app.state, "model_configured", None)
    if configured is None:
        configured = bool(settings.openai_api_key or settings.use_azure)
    if configured:
        return JSONResponse({"ready": True, "model": "configured"}, status_code=200)
    return JSONResponse({"ready": False, "model": "unconfigured"}, status_code=503)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 5000)), reload=True)
