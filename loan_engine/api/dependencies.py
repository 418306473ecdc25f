"""Dependency injection for FastAPI endpoints"""

from fastapi import BackgroundTasks, Depends, Header, Request
from sqlalchemy.orm import Session

from loan_engine.config import settings
from loan_engine.domain.exceptions import ValidationError
from loan_engine.infrastructure.clients.notifications import NotificationClient
from loan_engine.infrastructure.database.session import get_db
from loan_engine.services.applications import ApplicationService
from loan_engine.services.contracts import ContractService
from loan_engine.services.documents import DocumentGate
from loan_engine.services.notifications import LoggingNotifier, Notifier, WebhookNotifier
from loan_engine.services.quotes import QuoteService
from loan_engine.services.risk import RiskService
from loan_engine.services.servicing import ServicingService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor(x_actor_id: str = Header(default="")) -> str:
    """Acting user id from X-Actor-ID; authentication happens upstream"""
    actor = x_actor_id.strip()
    if not actor:
        raise ValidationError("X-Actor-ID header is required")
    return actor


def get_notification_client() -> NotificationClient:
    """Provide notification webhook client instance"""
    return NotificationClient()


def get_notifier(
    background_tasks: BackgroundTasks,
    client: NotificationClient = Depends(get_notification_client),
) -> Notifier:
    """Webhook delivery after the response when enabled, log-only otherwise"""
    if settings.notifications_enabled:
        return WebhookNotifier(background_tasks.add_task, client)
    return LoggingNotifier()


def get_application_service(
    db: Session = Depends(get_db), notifier: Notifier = Depends(get_notifier)
) -> ApplicationService:
    return ApplicationService(db, notifier)


def get_document_gate(db: Session = Depends(get_db), notifier: Notifier = Depends(get_notifier)) -> DocumentGate:
    return DocumentGate(db, notifier)


def get_contract_service(
    db: Session = Depends(get_db), notifier: Notifier = Depends(get_notifier)
) -> ContractService:
    return ContractService(db, notifier)


def get_servicing_service(
    db: Session = Depends(get_db), notifier: Notifier = Depends(get_notifier)
) -> ServicingService:
    return ServicingService(db, notifier)


def get_risk_service(db: Session = Depends(get_db)) -> RiskService:
    return RiskService(db)


def get_quote_service(db: Session = Depends(get_db)) -> QuoteService:
    return QuoteService(db)
