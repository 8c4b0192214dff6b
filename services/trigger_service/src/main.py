#!/usr/bin/env python
"""Trigger Service - FastAPI service receiving reward, command and scene triggers."""

import argparse
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from app_logging.logger import logger
from config.config import Settings
from services.obs_media_service.core.models import TriggerEvent, TriggerKind
from services.trigger_service.src.trigger_handler import TriggerHandler

app = FastAPI(title="DMFL Trigger Service")

settings = Settings()
trigger_handler: TriggerHandler | None = None

_STATUS_CODES = {"success": 200, "busy": 409, "failed": 500}


def initialize_trigger_handler() -> None:
    """Build the handler and clear a busy flag left behind by a previous run."""
    global trigger_handler

    trigger_handler = TriggerHandler.from_settings(settings)
    trigger_handler.reset()
    logger.info(
        f"Trigger handler ready (media scene={settings.media_queue.OBS_MEDIA_SCENE!r}, "
        f"media source={settings.media_queue.OBS_MEDIA_SOURCE!r})"
    )


# Initialize on startup
initialize_trigger_handler()


def _handler() -> TriggerHandler:
    if not trigger_handler:
        logger.error("Trigger handler not initialized")
        raise HTTPException(status_code=500, detail="Trigger handler not initialized")
    return trigger_handler


def _respond(trigger: TriggerEvent, result: dict[str, Any]) -> JSONResponse:
    if trigger.kind == TriggerKind.SCENE_CHANGED:
        return JSONResponse(result)
    return JSONResponse(result, status_code=_STATUS_CODES.get(result["status"], 500))


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "trigger_service"}


@app.post("/triggers")
def receive_trigger(trigger: TriggerEvent) -> JSONResponse:
    """
    Run one trigger to completion and report what happened.

    Request body:
    {
        "kind": "command",
        "name": "dmflPlayRandomXFiles",
        "raw_input": "3"
    }
    """
    result = _handler().handle(trigger)
    return _respond(trigger, result)


@app.post("/triggers/host")
def receive_host_trigger(args: dict[str, Any]) -> JSONResponse:
    """Accept the argument dictionary of a Streamer.bot action as-is."""
    try:
        trigger = TriggerEvent.from_host_args(args)
    except ValueError as e:
        logger.warning(f"Rejected host trigger: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    result = _handler().handle(trigger)
    return _respond(trigger, result)


@app.get("/status")
def status() -> dict[str, Any]:
    return _handler().status()


@app.post("/status/reset")
def reset_status() -> dict[str, Any]:
    handler = _handler()
    handler.reset()
    return {"ok": True, "busy": handler.media_queue.is_busy()}


def main() -> None:
    """Run the trigger service."""
    parser = argparse.ArgumentParser(description="DMFL Trigger Service")
    parser.add_argument(
        "--host",
        default=settings.trigger_service.TRIGGER_HOST,
        help="Host to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.trigger_service.TRIGGER_PORT,
        help="Port to listen on",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        default=False,
        help="Enable hot reload",
    )
    args = parser.parse_args()

    logger.info(f"Starting Trigger Service on {args.host}:{args.port}")

    import uvicorn

    uvicorn.run(
        "services.trigger_service.src.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=["services/trigger_service", "services/obs_media_service"]
        if args.reload
        else None,
    )


if __name__ == "__main__":
    main()
