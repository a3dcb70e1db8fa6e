import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from buildsetu.config import DEFAULT_PAGE_LIMIT
from buildsetu.database import get_db
from buildsetu.dependencies import get_current_actor
from buildsetu.models import SupportMessage, SupportTicket, TicketStatus
from buildsetu.policy import Actor
from buildsetu.responses import ok, paginated, iso
from buildsetu.services import support as desk

router = APIRouter(prefix="/support", tags=["support"])


class CreateTicketPayload(BaseModel):
    subject: str = Field(min_length=1)
    description: str = Field(min_length=1)


class CreateMessagePayload(BaseModel):
    message: str = Field(min_length=1)


class UpdateTicketStatusPayload(BaseModel):
    status: TicketStatus


def _serialize_message(m: SupportMessage) -> dict:
    return {
        "id":          str(m.id),
        "ticket_id":   str(m.ticket_id),
        "sender_type": m.sender_type.value,
        "message":     m.message,
        "created_at":  iso(m.created_at),
    }


def _serialize_ticket(t: SupportTicket) -> dict:
    return {
        "id":          str(t.id),
        "user_id":     str(t.user_id),
        "subject":     t.subject,
        "description": t.description,
        "status":      TicketStatus(t.status).value,
        "messages":    [_serialize_message(m) for m in t.messages],
        "created_at":  iso(t.created_at),
        "updated_at":  iso(t.updated_at),
    }


@router.get("")
def list_tickets(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    page:  int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1),
):
    result = desk.list_tickets(db, actor, page=page, limit=limit, status=status_filter)
    return paginated(result, _serialize_ticket)


@router.get("/{ticket_id}")
def get_ticket(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return ok(_serialize_ticket(desk.get_ticket(db, actor, ticket_id)))


@router.post("", status_code=201)
def create_ticket(
    payload: CreateTicketPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    ticket = desk.create_ticket(db, actor, payload.subject, payload.description)
    return ok(_serialize_ticket(ticket))


@router.get("/{ticket_id}/messages")
def list_messages(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return ok([_serialize_message(m) for m in desk.list_messages(db, actor, ticket_id)])


@router.post("/{ticket_id}/messages", status_code=201)
def add_message(
    ticket_id: uuid.UUID,
    payload: CreateMessagePayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return ok(_serialize_message(desk.add_message(db, actor, ticket_id, payload.message)))


# =====================================================
# ADMIN: UPDATE STATUS
# =====================================================

@router.put("/{ticket_id}/status")
def update_ticket_status(
    ticket_id: uuid.UUID,
    payload: UpdateTicketStatusPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    ticket = desk.update_ticket_status(db, actor, ticket_id, payload.status)
    return ok(_serialize_ticket(ticket))
