from fastapi import FastAPI

from app.api.auth import router as auth_router
from app.api.chat import router as chat_router
from app.api.documents import router as documents_router
from app.api.metrics import router as metrics_router
from app.api.profile import router as profile_router
from app.api.summarize import router as summarize_router
from app.api.upload import router as upload_router
from app.config import get_settings
from app.db.session import init_db
from app.observability.logging import configure_logging
from app.observability.middleware import RequestContextMiddleware


app = FastAPI(title="Civic Document Digest", version="0.1.0")
app.add_middleware(RequestContextMiddleware)
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(upload_router)
app.include_router(documents_router)
app.include_router(chat_router)
app.include_router(summarize_router)
app.include_router(metrics_router)


@app.on_event("startup")
def _startup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    settings.upload_path.mkdir(parents=True, exist_ok=True)
    init_db()


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
