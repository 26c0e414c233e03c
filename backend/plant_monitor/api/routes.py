import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request

from plant_monitor.schemas import (
    AlertDecisionOut,
    AlertStateOut,
    DeleteResponse,
    DeviceListResponse,
    DeviceResponse,
    PresenceStatus,
    ReadingCreateResponse,
    ReadingIn,
    ReadingListResponse,
    ReadingResponse,
)
from plant_monitor.services import MonitorServices, dispatch_alert

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services(request: Request) -> MonitorServices:
    return request.app.state.services


@router.get("/health")
def health(services: MonitorServices = Depends(get_services)) -> dict[str, Any]:
    return {"status": "ok", "message": "Backend is running", "timestamp": services.clock()}


@router.post("/readings", response_model=ReadingCreateResponse, status_code=201)
def submit_reading(
    payload: ReadingIn,
    background_tasks: BackgroundTasks,
    services: MonitorServices = Depends(get_services),
) -> ReadingCreateResponse:
    result = services.readings.ingest(payload)
    if result.message is not None:
        # Delivery runs after the response is sent; its failures stay in the log
        background_tasks.add_task(dispatch_alert, services.notifier, result.message)

    return ReadingCreateResponse(
        message="Data received successfully",
        data=result.reading,
        total_readings=result.total_readings,
        device_reading_count=result.presence.total_reading_count,
        alert=AlertDecisionOut(
            dispatched=result.decision.dispatched,
            reason=result.decision.reason,
            trigger=result.decision.trigger,
        ),
    )


@router.get("/readings", response_model=ReadingListResponse)
def list_readings(
    limit: int = Query(default=100, ge=1, le=1000),
    skip: int = Query(default=0, ge=0),
    device_id: str | None = Query(default=None, alias="deviceId"),
    hours: int | None = Query(default=None, ge=1, le=24 * 365),
    services: MonitorServices = Depends(get_services),
) -> ReadingListResponse:
    start_time = services.clock() - timedelta(hours=hours) if hours else None
    items = services.store.get_multi(device_id=device_id, skip=skip, limit=limit, start_time=start_time)
    total = services.store.count(device_id=device_id, start_time=start_time)
    return ReadingListResponse(count=len(items), total=total, items=items)


@router.get("/readings/latest", response_model=ReadingResponse)
def get_latest_reading(
    device_id: str | None = Query(default=None, alias="deviceId"),
    services: MonitorServices = Depends(get_services),
) -> ReadingResponse:
    reading = services.store.get_latest(device_id)
    if reading is None:
        raise HTTPException(status_code=404, detail="No data found")
    return ReadingResponse(data=reading)


@router.delete("/readings", response_model=DeleteResponse)
def delete_readings(services: MonitorServices = Depends(get_services)) -> DeleteResponse:
    deleted = services.store.delete_all()
    logger.warning(f"Deleted {deleted} readings and all device presence records")
    return DeleteResponse(message="All readings deleted", deleted_count=deleted)


@router.get("/devices", response_model=DeviceListResponse)
def list_devices(services: MonitorServices = Depends(get_services)) -> DeviceListResponse:
    devices = services.presence.list_devices()
    return DeviceListResponse(count=len(devices), items=devices)


@router.get("/devices/{device_id}", response_model=DeviceResponse)
def get_device(device_id: str, services: MonitorServices = Depends(get_services)) -> DeviceResponse:
    device = services.presence.get_device(device_id)
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")
    return DeviceResponse(data=device)


@router.get("/alerts/state", response_model=AlertStateOut)
def get_alert_state(services: MonitorServices = Depends(get_services)) -> AlertStateOut:
    return AlertStateOut(**services.policy.state())


@router.get("/stats")
def get_stats(services: MonitorServices = Depends(get_services)) -> dict[str, Any]:
    devices = services.presence.list_devices()
    latest = services.store.get_latest()
    connected = sum(1 for device in devices if device.status == PresenceStatus.CONNECTED)
    return {
        "success": True,
        "data": {
            "totalReadings": services.store.count(),
            "latestReading": latest.model_dump(mode="json", by_alias=True) if latest else None,
            "deviceCount": len(devices),
            "connectedDevices": connected,
            "alertsDispatched": services.policy.alerts_dispatched,
        },
    }
