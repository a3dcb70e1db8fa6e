"""
Support desk: tickets with an append-only message thread.

Ticket owners and ADMIN can read and reply. Only ADMIN moves a ticket
through its status graph.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from buildsetu.database import transaction
from buildsetu.errors import ConflictError, NotFoundError
from buildsetu.models import SenderType, SupportMessage, SupportTicket, TicketStatus
from buildsetu.pagination import Page, paginate
from buildsetu.policy import Actor, can_list_all, require_owned, require_ticket_status_setter

logger = logging.getLogger(__name__)

TICKET_TRANSITIONS = {
    TicketStatus.open: {TicketStatus.in_progress, TicketStatus.closed},
    TicketStatus.in_progress: {TicketStatus.resolved, TicketStatus.closed},
    # Reopen if the fix did not hold
    TicketStatus.resolved: {TicketStatus.closed, TicketStatus.in_progress},
    TicketStatus.closed: set(),
}


def _get_visible_ticket(db: Session, actor: Actor, ticket_id, with_messages: bool = False) -> SupportTicket:
    query = db.query(SupportTicket)
    if with_messages:
        query = query.options(selectinload(SupportTicket.messages))
    ticket = query.filter(SupportTicket.id == ticket_id).first()
    if not ticket:
        raise NotFoundError("Support ticket")
    require_owned(actor, ticket.user_id, "Support ticket")
    return ticket


# =====================================================
# TICKETS
# =====================================================

def create_ticket(db: Session, actor: Actor, subject: str, description: str) -> SupportTicket:
    with transaction(db):
        ticket = SupportTicket(
            user_id=actor.id,
            subject=subject,
            description=description,
            status=TicketStatus.open,
        )
        db.add(ticket)

    db.refresh(ticket)
    logger.info("Support ticket opened | ticket_id=%s | user_id=%s", ticket.id, actor.id)
    return ticket


def get_ticket(db: Session, actor: Actor, ticket_id) -> SupportTicket:
    return _get_visible_ticket(db, actor, ticket_id, with_messages=True)


def list_tickets(
    db: Session,
    actor: Actor,
    page: int = 1,
    limit: int = 10,
    status: Optional[TicketStatus] = None,
) -> Page:
    query = db.query(SupportTicket).options(selectinload(SupportTicket.messages))
    if not can_list_all(actor.role):
        query = query.filter(SupportTicket.user_id == actor.id)
    if status is not None:
        query = query.filter(SupportTicket.status == status)

    query = query.order_by(SupportTicket.created_at.desc(), SupportTicket.id)
    return paginate(query, page, limit)


def update_ticket_status(db: Session, actor: Actor, ticket_id, new_status: TicketStatus) -> SupportTicket:
    require_ticket_status_setter(actor)
    new_status = TicketStatus(new_status)

    with transaction(db):
        ticket = (
            db.query(SupportTicket)
            .filter(SupportTicket.id == ticket_id)
            .with_for_update()
            .first()
        )
        if not ticket:
            raise NotFoundError("Support ticket")

        current = TicketStatus(ticket.status)
        if new_status not in TICKET_TRANSITIONS[current]:
            raise ConflictError(
                f"Cannot change ticket status from {current.value} to {new_status.value}",
                resource="Support ticket",
                reason="invalid_transition",
                details={
                    "from": current.value,
                    "to": new_status.value,
                    "allowed": sorted(s.value for s in TICKET_TRANSITIONS[current]),
                },
            )
        ticket.status = new_status

    db.refresh(ticket)
    logger.info(
        "Support ticket status changed | ticket_id=%s | from=%s | to=%s",
        ticket.id,
        current.value,
        new_status.value,
    )
    return ticket


# =====================================================
# MESSAGES (APPEND-ONLY)
# =====================================================

def add_message(db: Session, actor: Actor, ticket_id, message: str) -> SupportMessage:
    with transaction(db):
        ticket = (
            db.query(SupportTicket)
            .filter(SupportTicket.id == ticket_id)
            .with_for_update()
            .first()
        )
        if not ticket:
            raise NotFoundError("Support ticket")
        require_owned(actor, ticket.user_id, "Support ticket")

        last_sequence = (
            db.query(func.max(SupportMessage.sequence))
            .filter(SupportMessage.ticket_id == ticket.id)
            .scalar()
        )

        entry = SupportMessage(
            ticket_id=ticket.id,
            sequence=(last_sequence or 0) + 1,
            sender_type=SenderType.admin if actor.is_admin else SenderType.user,
            message=message,
        )
        db.add(entry)

    db.refresh(entry)
    logger.info(
        "Support message added | ticket_id=%s | message_id=%s | sender=%s",
        ticket_id,
        entry.id,
        entry.sender_type.value,
    )
    return entry


def list_messages(db: Session, actor: Actor, ticket_id) -> list:
    ticket = _get_visible_ticket(db, actor, ticket_id)
    return (
        db.query(SupportMessage)
        .filter(SupportMessage.ticket_id == ticket.id)
        .order_by(SupportMessage.created_at.asc(), SupportMessage.sequence.asc())
        .all()
    )
