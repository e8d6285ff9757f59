"""Appointment router - FastAPI endpoints for booking and the status workflow"""

import logging
from typing import Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    WebSocketException,
    status,
)
from sqlalchemy.orm import Session

from ...auth import get_current_client, get_current_user, get_websocket_user
from ...database import get_db
from ...email_service import send_appointment_status_email
from ...models import Appointment, User
from ...realtime import SnapshotStream
from ...shared.validators import USER_ROLES
from ...storage import read_upload
from .schemas import (
    AppointmentListResponse,
    AppointmentResponse,
    MarkViewedResponse,
    PriceProposal,
    PriceResponse,
)
from .service import AppointmentService, subscribe_appointments

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])
ws_router = APIRouter(tags=["Realtime"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def _notify(background_tasks: BackgroundTasks, appointment: Appointment) -> None:
    # Payload is built now; the session is closed by the time the task runs
    payload = AppointmentService.notification_payload(appointment)
    if payload:
        background_tasks.add_task(send_appointment_status_email, **payload)


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    role: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments for the current user, newest first, without the ones they hid"""
    appointments, unread_count = service.list_appointments(current_user, role)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_model(a) for a in appointments],
        unreadCount=unread_count,
    )


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    artistId: int = Form(...),
    date: str = Form(...),
    time: str = Form(...),
    description: str = Form(...),
    bodyArea: str = Form(...),
    contactName: str = Form(...),
    contactPhone: str = Form(...),
    contactEmail: str = Form(...),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_client),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment with an artist (multipart form, optional reference image)"""
    appointment = service.create_appointment(
        client=current_user,
        artist_id=artistId,
        day=date,
        slot=time,
        description=description,
        body_area=bodyArea,
        contact_name=contactName,
        contact_phone=contactPhone,
        contact_email=contactEmail,
        image=await read_upload(image),
    )
    return AppointmentResponse.from_model(appointment)


@router.post("/mark-viewed", response_model=MarkViewedResponse)
async def mark_all_viewed(
    role: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return MarkViewedResponse(updated=service.mark_all_viewed(current_user, role))


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return AppointmentResponse.from_model(service.get_appointment(appointment_id, current_user))


@router.post("/{appointment_id}/price", response_model=AppointmentResponse)
async def propose_price(
    appointment_id: int,
    data: PriceProposal,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Artist quotes a price for a pending request"""
    appointment = service.propose_price(appointment_id, current_user, data.price)
    return AppointmentResponse.from_model(appointment)


@router.post("/{appointment_id}/price-response", response_model=AppointmentResponse)
async def respond_to_price(
    appointment_id: int,
    data: PriceResponse,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Client accepts (confirmed) or declines (cancelled) the proposed price"""
    appointment = service.respond_to_price(appointment_id, current_user, data.accepted)
    _notify(background_tasks, appointment)
    return AppointmentResponse.from_model(appointment)


@router.post("/{appointment_id}/reject", response_model=AppointmentResponse)
async def reject_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.reject(appointment_id, current_user)
    _notify(background_tasks, appointment)
    return AppointmentResponse.from_model(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.cancel(appointment_id, current_user)
    return AppointmentResponse.from_model(appointment)


@router.post("/{appointment_id}/hide", status_code=204)
async def hide_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Hide the appointment from the current user's list; the other side still sees it"""
    service.hide(appointment_id, current_user)


@ws_router.websocket("/ws/appointments")
async def appointments_socket(websocket: WebSocket, user: User = Depends(get_websocket_user)):
    """Streams the user's appointment list on every change"""
    if user.role not in USER_ROLES:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Select a role first")

    await websocket.accept()
    stream = SnapshotStream(websocket)
    subscription = subscribe_appointments(user.id, user.role, stream.callback("appointments"))
    try:
        await stream.run()
    except WebSocketDisconnect:
        logger.debug(f"Appointment socket closed for user {user.id}")
    finally:
        subscription.close()
