"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from ach_engine.config import settings
from ach_engine.infrastructure.clients.transmission import ACHOperatorClient, FileTransmitter
from ach_engine.infrastructure.database.session import get_db
from ach_engine.services.batch_orchestrator import BatchOrchestrator


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_company_id(x_company_id: str = Header(..., min_length=1)) -> str:
    """Tenant identifier passed explicitly by the caller"""
    return x_company_id


def get_transmitter() -> Optional[FileTransmitter]:
    """Provide the ACH operator client when transmission is enabled"""
    if not settings.transmission_enabled:
        return None
    return ACHOperatorClient()


def get_orchestrator(
    db: Session = Depends(get_db),
    transmitter: Optional[FileTransmitter] = Depends(get_transmitter),
) -> BatchOrchestrator:
    return BatchOrchestrator(db, transmitter=transmitter)
