"""
Smart Kandang - API Server

Provides endpoints for:
- Twilio WhatsApp webhook ("cek" command)
- Mobile app: device check, sensor history, feeding schedule
- Health check

The MQTT processor runs inside the same event loop, started by the
application lifespan.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Form, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from kandang.core.config import settings
from kandang.core.errors import PersistenceFailure

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


class ScheduleIn(BaseModel):
    """Body of POST /api/schedule."""

    times: list[str]


def _missing_id() -> JSONResponse:
    return JSONResponse({"error": "Parameter ?id= diperlukan"}, status_code=400)


def _database_error() -> JSONResponse:
    return JSONResponse({"error": "Database error"}, status_code=500)


def get_services(request: Request):
    return request.app.state.services


router = APIRouter()


# ==================== WHATSAPP WEBHOOK ====================

@router.post("/whatsapp-webhook")
async def whatsapp_webhook(
    Body: str = Form(""),
    From: str = Form(""),
    services=Depends(get_services),
):
    """
    Inbound WhatsApp message from Twilio.
    Always acknowledged with an empty 200, whatever the outcome.
    """
    if From:
        await services.commands.handle(From, Body)
    else:
        logger.warning("⚠️ Webhook call without 'From', ignored")
    return Response(status_code=200)


# ==================== MOBILE APP API ====================

@router.get("/api/check-device")
async def check_device(id: str | None = Query(None), services=Depends(get_services)):
    """Validate a device id entered in the app."""
    if not id:
        return _missing_id()
    try:
        device = await services.registry.get_device(id)
    except PersistenceFailure as e:
        logger.error(f"❌ Error in /api/check-device: {e}")
        return _database_error()

    if device is None:
        return JSONResponse({"status": "error", "message": "Device not found"}, status_code=404)

    return {
        "status": "success",
        "device": {"device_id": device.device_id, "device_name": device.device_name},
    }


@router.get("/api/sensor-data")
async def sensor_data(id: str | None = Query(None), services=Depends(get_services)):
    """Last 20 readings, newest first."""
    if not id:
        return _missing_id()
    try:
        rows = await services.readings.recent(id)
    except PersistenceFailure as e:
        logger.error(f"❌ Error in /api/sensor-data: {e}")
        return _database_error()

    return [row.to_dict() for row in rows]


@router.get("/api/schedule")
async def get_schedule(id: str | None = Query(None), services=Depends(get_services)):
    """Stored feeding times ({"times": []} if none)."""
    if not id:
        return _missing_id()
    try:
        times = await services.schedules.get(id)
    except PersistenceFailure as e:
        logger.error(f"❌ Error in /api/schedule (GET): {e}")
        return _database_error()

    return {"times": times}


@router.post("/api/schedule")
async def save_schedule(
    request: Request,
    id: str | None = Query(None),
    services=Depends(get_services),
):
    """Save feeding times and push them to the device."""
    if not id:
        return _missing_id()
    try:
        body = ScheduleIn.model_validate(await request.json())
    except ValueError as e:
        # Invalid JSON and failed validation both land here
        logger.warning(f"⚠️ Bad schedule body for {id}: {e}")
        return JSONResponse({"error": "Body harus berisi daftar 'times'"}, status_code=400)

    try:
        await services.schedules.save(id, body.times)
    except Exception as e:
        logger.error(f"❌ Error in /api/schedule (POST): {e}")
        return JSONResponse({"error": "Server error"}, status_code=500)

    return {"status": "success"}


# ==================== HEALTH CHECK ====================

@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": VERSION}


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Smart Kandang API",
        "version": VERSION,
        "status": "running",
        "endpoints": {
            "webhook": "/whatsapp-webhook",
            "check_device": "/api/check-device?id=",
            "sensor_data": "/api/sensor-data?id=",
            "schedule": "/api/schedule?id=",
            "health": "/health",
        },
    }


# ==================== APP ====================

def create_app(services=None) -> FastAPI:
    """
    Build the application.

    When `services` is given it is used as-is and nothing is started;
    otherwise the real services are built and MQTT is connected on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.services is not None:
            yield
            return

        from kandang.services.container import build_services

        app.state.services = build_services()
        mqtt = app.state.services.mqtt
        logger.info("🚀 Starting Smart Kandang backend...")
        mqtt.start()
        try:
            yield
        finally:
            mqtt.stop()

    app = FastAPI(
        title="Smart Kandang API",
        description="Enclosure monitoring: telemetry, WhatsApp alerts and feeding schedules",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.services = services

    # Mobile app is served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
