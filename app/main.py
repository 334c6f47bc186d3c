import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import Settings, get_settings
from app.routers import upload, auth
from app.utils.errors import PPEServiceError

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="PPE Video Detection API")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PPEServiceError)
async def ppe_service_error_handler(request: Request, exc: PPEServiceError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(p) for p in err.get("loc", [])[1:]) for err in exc.errors()})
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": f"Invalid request: {', '.join(f for f in fields if f) or 'body'}"},
    )


app.include_router(upload.router, prefix="/upload", tags=["upload"])
app.include_router(auth.router, tags=["auth"])


@app.get("/")
def home():
    return {"message": "PPE detection API is running"}


@app.get("/health")
def health(current: Settings = Depends(get_settings)):
    return {"status": "ok", "auth_enabled": current.auth_enabled}
