# counselor_api/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from counselor_api.api.routes import (
    auth_routes,
    counsel_routes,
    counselor_routes,
    note_routes,
    root_routes,
    share_routes,
)
from counselor_api.core.config import settings
from counselor_api.core.errors import register_error_handlers
from counselor_api.core.startup import shutdown_event, startup_event

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Christian Counselor API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

register_error_handlers(app)

app.include_router(root_routes.router)
app.include_router(auth_routes.router, prefix="/api/auth")
app.include_router(counsel_routes.router, prefix="/api/counsel")
app.include_router(note_routes.router, prefix="/api/counsel")
app.include_router(share_routes.router, prefix="/api/shares")
app.include_router(counselor_routes.router, prefix="/api/counselors")


@app.on_event("startup")
async def app_startup():
    await startup_event(app)


@app.on_event("shutdown")
async def app_shutdown():
    await shutdown_event(app)
