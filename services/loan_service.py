"""
Loan ledger service.

Tracks money the user lent, borrowed or fronted for a group. A shared
expense is recorded as two linked movements: the user's own share (expense)
and the part the others still owe (pending income). Settlements record the
cash transfer as a plain movement and reduce the pending balance on the
loan and on its linked pair.
"""
import logging
from datetime import date
from decimal import Decimal

from extensions import db
from models import Account, Movement
from services.account_service import AccountService
from services.movement_service import MovementService
from utils import money, split_amount, format_amount, parse_date, to_float

logger = logging.getLogger(__name__)


class LoanService:
    """Service for loans and shared expenses."""

    class ValidationError(Exception):
        """Raised when loan data is invalid."""
        pass

    class NotFoundError(Exception):
        """Raised when an account or loan is missing or not owned."""
        pass

    MAX_DESCRIPTION_LENGTH = 500

    @staticmethod
    def _positive_amount(value, field):
        try:
            amount = money(value)
        except ValueError:
            raise LoanService.ValidationError(f'{field} must be a number')
        if amount <= 0:
            raise LoanService.ValidationError(f'{field} must be greater than 0')
        return amount

    @staticmethod
    def _check_description_length(text):
        if len(text) > LoanService.MAX_DESCRIPTION_LENGTH:
            raise LoanService.ValidationError(
                f'Description is too long (max {LoanService.MAX_DESCRIPTION_LENGTH} characters including the loan note)'
            )
        return text

    @staticmethod
    def _parse_date(value):
        try:
            return parse_date(value)
        except ValueError:
            raise LoanService.ValidationError('Date must be in YYYY-MM-DD format')

    @staticmethod
    def _require(data, fields):
        missing = [f for f in fields if data.get(f) in (None, '')]
        if missing:
            raise LoanService.ValidationError(f"{', '.join(fields[:-1])}, and {fields[-1]} are required")

    @staticmethod
    def _owned_account(user_id, account_id):
        account = AccountService.get_user_account(user_id, account_id)
        if not account:
            raise LoanService.NotFoundError('Account not found')
        return account

    @staticmethod
    def create_shared_expense(user_id, data):
        """
        Split an expense the user paid for a group.

        The user's share is rounded half-up to cents and the rounding
        difference stays in the pending amount, so share + pending equals
        the total exactly. Both movements and their mutual link are written
        in a single transaction.

        Args:
            user_id (int): Caller's ID
            data (dict): accountId, totalAmount, participants, description,
                date, and optional category, concept, participantsList

        Returns:
            tuple: (expense Movement, summary dict)

        Raises:
            ValidationError: If the data is invalid
            NotFoundError: If the account is not the caller's
        """
        LoanService._require(data, ['accountId', 'totalAmount', 'participants', 'description', 'date'])

        total = LoanService._positive_amount(data['totalAmount'], 'Total amount')

        participants = data['participants']
        if isinstance(participants, bool) or not isinstance(participants, int):
            raise LoanService.ValidationError('Participants must be an integer')
        if participants < 2:
            raise LoanService.ValidationError('Participants must be at least 2')

        description = data['description']
        if not isinstance(description, str) or not description.strip():
            raise LoanService.ValidationError('Description is required')
        description = description.strip()

        concept = data.get('concept') or Movement.CONCEPT_OTHERS
        if concept not in Movement.CONCEPTS:
            raise LoanService.ValidationError(f"Concept must be one of: {', '.join(Movement.CONCEPTS)}")

        people = data.get('participantsList') or []
        if not isinstance(people, list):
            raise LoanService.ValidationError('participantsList must be a list')

        my_share, pending = split_amount(total, participants)
        if my_share <= 0:
            raise LoanService.ValidationError(
                f'Total amount is too small to split between {participants} participants'
            )

        expense_description = LoanService._check_description_length(
            f'{description} (mi parte: {format_amount(my_share)} de '
            f'{format_amount(total)} entre {participants} personas)'
        )
        receivable_description = LoanService._check_description_length(
            f'Pendiente por cobrar: {description}'
        )

        movement_date = LoanService._parse_date(data['date'])
        account = LoanService._owned_account(user_id, data['accountId'])

        status = Movement.status_for(pending)

        expense = Movement(
            account_id=account.id,
            type=Movement.TYPE_EXPENSE,
            concept=concept,
            amount=my_share,
            description=expense_description,
            date=movement_date,
            category=data.get('category'),
            is_loan=True,
            loan_type=Movement.LOAN_SHARED,
            original_amount=total,
            participants=participants,
            pending_amount=pending,
            loan_status=status,
        )
        expense.set_related_people(people)

        try:
            db.session.add(expense)
            db.session.flush()

            if pending > 0:
                receivable = Movement(
                    account_id=account.id,
                    type=Movement.TYPE_INCOME,
                    concept=Movement.CONCEPT_OTHERS,
                    amount=pending,
                    description=receivable_description,
                    date=movement_date,
                    category=Movement.CATEGORY_PENDING_LOAN,
                    is_loan=True,
                    loan_type=Movement.LOAN_LENT,
                    original_amount=total,
                    participants=participants,
                    pending_amount=pending,
                    loan_status=Movement.STATUS_ACTIVE,
                    related_movement_id=expense.id,
                )
                receivable.set_related_people(people)
                db.session.add(receivable)
                db.session.flush()

                expense.related_movement_id = receivable.id

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            f"Shared expense {expense.id} created for user {user_id}: "
            f"{my_share} of {total} between {participants}"
        )

        summary = {
            'totalAmount': to_float(total),
            'myShare': to_float(my_share),
            'pendingAmount': to_float(pending),
            'participants': participants,
            'description': description,
        }
        return expense, summary

    @staticmethod
    def create_simple_loan(user_id, data):
        """
        Record money lent to, or borrowed from, one person.

        Lending is an expense (money leaves the account) and borrowing is an
        income. The whole amount starts pending.

        Returns:
            tuple: (loan Movement, summary dict)

        Raises:
            ValidationError: If the data is invalid
            NotFoundError: If the account is not the caller's
        """
        LoanService._require(data, ['accountId', 'amount', 'loanType', 'description', 'date'])

        loan_type = data['loanType']
        if loan_type not in Movement.SIMPLE_LOAN_TYPES:
            raise LoanService.ValidationError('loanType must be either "lent" or "borrowed"')

        amount = LoanService._positive_amount(data['amount'], 'Amount')

        description = data['description']
        if not isinstance(description, str) or not description.strip():
            raise LoanService.ValidationError('Description is required')
        description = description.strip()

        lent = loan_type == Movement.LOAN_LENT
        loan_description = LoanService._check_description_length(
            f"{'Presté' if lent else 'Me prestaron'}: {description}"
        )

        movement_date = LoanService._parse_date(data['date'])
        account = LoanService._owned_account(user_id, data['accountId'])

        related_person = data.get('relatedPerson')

        loan = Movement(
            account_id=account.id,
            type=Movement.TYPE_EXPENSE if lent else Movement.TYPE_INCOME,
            concept=Movement.CONCEPT_OTHERS,
            amount=amount,
            description=loan_description,
            date=movement_date,
            category=data.get('category') or Movement.CATEGORY_LOAN,
            is_loan=True,
            loan_type=loan_type,
            original_amount=amount,
            participants=2,
            pending_amount=amount,
            loan_status=Movement.STATUS_ACTIVE,
        )
        loan.set_related_people([related_person] if related_person else [])

        db.session.add(loan)
        db.session.commit()

        logger.info(f"Simple loan {loan.id} ({loan_type}) created for user {user_id}")

        summary = {
            'amount': to_float(amount),
            'loanType': loan_type,
            'description': description,
            'relatedPerson': related_person,
        }
        return loan, summary

    @staticmethod
    def get_pending_loans(user_id):
        """
        Active loans across all the user's accounts, newest first.

        Shared expenses count as money lent (the others owe the user).

        Returns:
            dict: {loans, count, summary {totalLent, totalBorrowed, netBalance}}
        """
        account_ids = AccountService.get_user_account_ids(user_id)
        if not account_ids:
            return {
                'loans': [],
                'count': 0,
                'summary': {'totalLent': 0, 'totalBorrowed': 0, 'netBalance': 0},
            }

        loans = Movement.query.filter(
            Movement.account_id.in_(account_ids),
            Movement.is_loan.is_(True),
            Movement.loan_status == Movement.STATUS_ACTIVE
        ).order_by(Movement.date.desc(), Movement.id.desc()).all()

        total_lent = Decimal('0')
        total_borrowed = Decimal('0')
        for loan in loans:
            pending = loan.pending_amount or Decimal('0')
            if loan.loan_type in (Movement.LOAN_LENT, Movement.LOAN_SHARED):
                total_lent += pending
            elif loan.loan_type == Movement.LOAN_BORROWED:
                total_borrowed += pending

        return {
            'loans': [loan.to_dict(include_account=True) for loan in loans],
            'count': len(loans),
            'summary': {
                'totalLent': to_float(total_lent),
                'totalBorrowed': to_float(total_borrowed),
                'netBalance': to_float(total_lent - total_borrowed),
            },
        }

    @staticmethod
    def settle_loan(user_id, movement_id, amount_paid=None, description=None):
        """
        Record a (partial) payment against a loan.

        Args:
            user_id (int): Caller's ID
            movement_id (int): Loan movement ID
            amount_paid: Amount received or paid back; defaults to the
                whole pending amount
            description (str, optional): Settlement movement description

        Returns:
            tuple: (settlement Movement, remaining Decimal, status str)

        Raises:
            NotFoundError: If the loan is missing or not the caller's
            ValidationError: If the loan is already settled or the amount
                is not between 0 and the pending amount
        """
        loan = MovementService.get_user_movement(user_id, movement_id, loans_only=True)
        if not loan:
            raise LoanService.NotFoundError('Loan not found')

        pending = loan.pending_amount or Decimal('0')
        if loan.loan_status == Movement.STATUS_SETTLED or pending <= 0:
            raise LoanService.ValidationError('Loan is already settled')

        if amount_paid is None:
            paid = pending
        else:
            paid = LoanService._positive_amount(amount_paid, 'Amount paid')
            if paid > pending:
                raise LoanService.ValidationError(
                    f'Amount paid ({format_amount(paid)}) exceeds the pending amount ({format_amount(pending)})'
                )

        if description is not None and not isinstance(description, str):
            raise LoanService.ValidationError('Description must be a string')
        if description:
            LoanService._check_description_length(description)
        else:
            # Default note is cut to fit the column
            description = f'Cobro/Pago de préstamo: {loan.description}'[:LoanService.MAX_DESCRIPTION_LENGTH]

        remaining = pending - paid
        status = Movement.status_for(remaining)

        settlement = Movement(
            account_id=loan.account_id,
            type=Movement.TYPE_INCOME if loan.loan_type == Movement.LOAN_LENT else Movement.TYPE_EXPENSE,
            concept=Movement.CONCEPT_OTHERS,
            amount=paid,
            description=description,
            date=date.today(),
            category=Movement.CATEGORY_LOAN_SETTLEMENT,
            is_loan=False,
        )

        try:
            db.session.add(settlement)

            loan.pending_amount = remaining
            loan.loan_status = status

            if loan.related_movement_id:
                pair = db.session.get(Movement, loan.related_movement_id)
                if pair is not None:
                    pair.pending_amount = remaining
                    pair.loan_status = status
                else:
                    logger.warning(
                        f"Loan {loan.id} points at missing movement {loan.related_movement_id}"
                    )

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Loan {loan.id} settled by {paid}: {remaining} remaining ({status})")

        return settlement, remaining, status

    @staticmethod
    def get_loans_report(user_id):
        """
        Outstanding lent/borrowed balances for email reports.

        Returns:
            dict: {totalLent, totalBorrowed, netPosition, pendingLoans}
        """
        loans = Movement.query.join(Account).filter(
            Account.user_id == user_id,
            Movement.is_loan.is_(True),
            Movement.loan_status == Movement.STATUS_ACTIVE,
            Movement.loan_type.in_(Movement.SIMPLE_LOAN_TYPES),
            Movement.pending_amount > 0
        ).order_by(Movement.date.desc()).all()

        total_lent = sum(
            (l.pending_amount for l in loans if l.loan_type == Movement.LOAN_LENT), Decimal('0')
        )
        total_borrowed = sum(
            (l.pending_amount for l in loans if l.loan_type == Movement.LOAN_BORROWED), Decimal('0')
        )

        return {
            'totalLent': total_lent,
            'totalBorrowed': total_borrowed,
            'netPosition': total_lent - total_borrowed,
            'pendingLoans': loans,
        }
