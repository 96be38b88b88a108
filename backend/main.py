from dotenv import load_dotenv

# Load environment variables before the config module reads them
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.palette import router as palette_router
from app.config import config
from app.errors import PaletteError
from app.schemas import HealthResponse, MetricsResponse
from app.utils.ids import REQUEST_ID_HEADER, resolve_request_id
from app.utils.logging import get_logger
from app.utils.metrics import get_metrics

logger = get_logger()

app = FastAPI(
    title="Color Palette API",
    description="Extracts perceptually diverse color palettes from images",
    version=config.VERSION
)


@app.middleware("http")
async def unhandled_errors(request: Request, call_next):
    """Log unexpected failures server-side and hide their details from clients."""
    try:
        return await call_next(request)
    except Exception as exc:
        request_id = getattr(request.state, "request_id", None)
        get_logger(request_id).exception(f"Unhandled error on {request.url.path}: {type(exc).__name__}")
        get_metrics().request_failed(type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": "Internal server error."})


# Middleware added later wraps earlier ones; CORS sits outside the error middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER]
)


@app.middleware("http")
async def response_headers(request: Request, call_next):
    """Assign a request id and attach the id and CSP headers to every response."""
    request.state.request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request.state.request_id
    response.headers["Content-Security-Policy"] = config.CONTENT_SECURITY_POLICY
    return response


@app.exception_handler(PaletteError)
async def palette_error_handler(request: Request, exc: PaletteError):
    """Convert pipeline failures into structured JSON errors."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


app.include_router(palette_router)


@app.get("/healthz", response_model=HealthResponse)
def health_check():
    """Service health check."""
    return HealthResponse(
        ok=True,
        version=config.VERSION,
        service=config.SERVICE_NAME
    )


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Color Palette API",
        "version": config.VERSION,
        "docs": "/docs"
    }


@app.get("/metrics", response_model=MetricsResponse)
def palette_metrics():
    """Get in-process palette metrics."""
    return get_metrics().snapshot()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"API running on http://{config.HOST}:{config.PORT}")
    uvicorn.run(app, host=config.HOST, port=config.PORT)
