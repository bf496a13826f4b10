"""
Service layer for the Becky API.

Services encapsulate business logic separate from route handlers.
"""
from services.account_service import AccountService
from services.movement_service import MovementService
from services.loan_service import LoanService
from services.report_service import ReportService

__all__ = [
    'AccountService',
    'MovementService',
    'LoanService',
    'ReportService',
]
