"""
Movement service.

Handles movement CRUD, validation and the spending aggregates used by the
dashboard and the Becky assistant.
"""
import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal

from extensions import db
from models import Account, Movement
from services.account_service import AccountService
from utils import money, parse_date, parse_month, month_bounds, add_months, to_float

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('type', 'concept', 'amount', 'description', 'date', 'category')


class MovementService:
    """Service for movement operations."""

    class ValidationError(Exception):
        """Raised when movement validation fails."""
        pass

    class NotFoundError(Exception):
        """Raised when a movement or account is missing or not owned."""
        pass

    @staticmethod
    def validate_movement_data(data, partial=False):
        """
        Validate and normalize movement fields.

        Args:
            data (dict): Raw request fields
            partial (bool): Only validate the fields present (updates)

        Returns:
            tuple: (errors, cleaned) where cleaned holds parsed values
        """
        errors = []
        cleaned = {}

        def wanted(field):
            return not partial or field in data

        if wanted('type'):
            movement_type = data.get('type')
            if movement_type not in Movement.TYPES:
                errors.append('Movement type must be either "income" or "expense"')
            else:
                cleaned['type'] = movement_type

        if wanted('concept'):
            concept = data.get('concept')
            if concept is None and not partial and data.get('type') == Movement.TYPE_INCOME:
                cleaned['concept'] = Movement.CONCEPT_OTHERS
            elif concept not in Movement.CONCEPTS:
                errors.append(f"Movement concept must be one of: {', '.join(Movement.CONCEPTS)}")
            else:
                cleaned['concept'] = concept

        if wanted('amount'):
            try:
                amount = money(data.get('amount'))
                if amount <= 0:
                    raise ValueError
                cleaned['amount'] = amount
            except ValueError:
                errors.append('Amount must be a positive number')

        if wanted('description'):
            description = data.get('description')
            if not description or not isinstance(description, str) or not description.strip():
                errors.append('Description is required')
            elif len(description) > 500:
                errors.append('Description must be less than 500 characters')
            else:
                cleaned['description'] = description.strip()

        if wanted('date'):
            try:
                cleaned['date'] = parse_date(data.get('date'))
            except ValueError:
                errors.append('Valid date is required (YYYY-MM-DD)')

        if 'category' in data:
            category = data.get('category')
            if category is not None and not isinstance(category, str):
                errors.append('Category must be a string')
            else:
                cleaned['category'] = category

        return errors, cleaned

    @staticmethod
    def get_user_movement(user_id, movement_id, loans_only=False):
        """
        Get a movement only if it lives in one of the user's accounts.

        Returns:
            Movement or None
        """
        query = Movement.query.join(Account).filter(
            Movement.id == movement_id,
            Account.user_id == user_id
        )
        if loans_only:
            query = query.filter(Movement.is_loan.is_(True))
        return query.first()

    @staticmethod
    def list_account_movements(user_id, account_id):
        """
        List movements of an owned account, newest first.

        Raises:
            NotFoundError: If the account is not the user's
        """
        account = AccountService.get_user_account(user_id, account_id)
        if not account:
            raise MovementService.NotFoundError('Account not found')

        return Movement.query.filter_by(account_id=account.id).order_by(
            Movement.date.desc(),
            Movement.created_at.desc()
        ).all()

    @staticmethod
    def create_movement(user_id, account_id, data):
        """
        Create a plain income/expense movement.

        Raises:
            NotFoundError: If the account is not the user's
            ValidationError: If the data is invalid
        """
        account = AccountService.get_user_account(user_id, account_id)
        if not account:
            raise MovementService.NotFoundError('Account not found')

        if data.get('type') == Movement.TYPE_EXPENSE and not data.get('concept'):
            raise MovementService.ValidationError('Concept is required for expenses')

        errors, cleaned = MovementService.validate_movement_data(data)
        if errors:
            raise MovementService.ValidationError('; '.join(errors))

        movement = Movement(account_id=account.id, is_loan=False, **cleaned)
        db.session.add(movement)
        db.session.commit()

        return movement

    @staticmethod
    def update_movement(user_id, movement_id, data):
        """
        Edit the plain fields of a movement.

        Loan bookkeeping (pending amount, status, pairing) is only changed
        through settlements.

        Raises:
            NotFoundError: If the movement is not the user's
            ValidationError: If the data is invalid
        """
        movement = MovementService.get_user_movement(user_id, movement_id)
        if not movement:
            raise MovementService.NotFoundError('Movement not found')

        updates = {key: value for key, value in data.items() if key in EDITABLE_FIELDS}
        if not updates:
            raise MovementService.ValidationError(
                f"Nothing to update. Editable fields: {', '.join(EDITABLE_FIELDS)}"
            )

        errors, cleaned = MovementService.validate_movement_data(updates, partial=True)
        if errors:
            raise MovementService.ValidationError('; '.join(errors))

        for field, value in cleaned.items():
            setattr(movement, field, value)

        db.session.commit()

        return movement

    @staticmethod
    def delete_movement(user_id, movement_id):
        """
        Delete a movement, unlinking its shared-expense pair if any.

        Raises:
            NotFoundError: If the movement is not the user's
        """
        movement = MovementService.get_user_movement(user_id, movement_id)
        if not movement:
            raise MovementService.NotFoundError('Movement not found')

        Movement.query.filter_by(related_movement_id=movement.id).update(
            {'related_movement_id': None}
        )
        db.session.delete(movement)
        db.session.commit()

    @staticmethod
    def _user_movements_query(user_id):
        return Movement.query.join(Account).filter(Account.user_id == user_id)

    @staticmethod
    def get_monthly_expenses(user_id, month, concept=None):
        """
        Total expenses of a month, optionally for one concept.

        Args:
            month (str): Month name ("January") or YYYY-MM
            concept (str, optional): needs, wants, savings or others

        Raises:
            ValidationError: If month or concept are invalid
        """
        try:
            year, month_number = parse_month(month)
        except ValueError as e:
            raise MovementService.ValidationError(str(e))

        if concept and concept not in Movement.CONCEPTS:
            raise MovementService.ValidationError(
                f"Concept must be one of: {', '.join(Movement.CONCEPTS)}"
            )

        start, end = month_bounds(year, month_number)
        query = MovementService._user_movements_query(user_id).filter(
            Movement.type == Movement.TYPE_EXPENSE,
            Movement.date >= start,
            Movement.date <= end
        )
        if concept:
            query = query.filter(Movement.concept == concept)

        movements = query.order_by(Movement.date.desc()).all()
        total = sum((m.amount for m in movements), Decimal('0'))

        return {
            'month': month,
            'concept': concept,
            'totalAmount': to_float(total),
            'movementCount': len(movements),
            'movements': [
                {
                    'amount': to_float(m.amount),
                    'description': m.description,
                    'date': m.date.strftime('%Y-%m-%d'),
                    'category': m.category,
                }
                for m in movements
            ],
        }

    @staticmethod
    def get_monthly_spending_by_category(user_id, month):
        """Expense totals of a month grouped by category."""
        try:
            year, month_number = parse_month(month)
        except ValueError as e:
            raise MovementService.ValidationError(str(e))

        start, end = month_bounds(year, month_number)
        movements = MovementService._user_movements_query(user_id).filter(
            Movement.type == Movement.TYPE_EXPENSE,
            Movement.date >= start,
            Movement.date <= end
        ).all()

        categories = {}
        for movement in movements:
            key = movement.category or 'uncategorized'
            categories[key] = categories.get(key, Decimal('0')) + movement.amount

        total = sum(categories.values(), Decimal('0'))

        return {
            'month': month,
            'categories': {key: to_float(value) for key, value in sorted(categories.items())},
            'total': to_float(total),
        }

    @staticmethod
    def get_spending_trends(user_id, months=6, today=None):
        """Income and expense totals for each of the last N months (oldest first)."""
        if months < 1 or months > 24:
            raise MovementService.ValidationError('Months must be between 1 and 24')

        today = today or date.today()
        first_month = add_months(today.replace(day=1), -(months - 1))

        buckets = OrderedDict()
        for offset in range(months):
            current = add_months(first_month, offset)
            buckets[current.strftime('%Y-%m')] = {'income': Decimal('0'), 'expenses': Decimal('0')}

        movements = MovementService._user_movements_query(user_id).filter(
            Movement.date >= first_month,
            Movement.is_loan.is_(False)
        ).all()

        for movement in movements:
            bucket = buckets.get(movement.date.strftime('%Y-%m'))
            if bucket is None:
                continue
            key = 'income' if movement.type == Movement.TYPE_INCOME else 'expenses'
            bucket[key] += movement.amount

        return {
            'months': months,
            'trends': [
                {
                    'month': month_key,
                    'income': to_float(values['income']),
                    'expenses': to_float(values['expenses']),
                    'balance': to_float(values['income'] - values['expenses']),
                }
                for month_key, values in buckets.items()
            ],
        }

    @staticmethod
    def get_financial_summary(user_id):
        """Income, expenses and balance over every non-loan movement."""
        movements = MovementService._user_movements_query(user_id).filter(
            Movement.is_loan.is_(False)
        ).all()

        total_income = sum(
            (m.amount for m in movements if m.type == Movement.TYPE_INCOME), Decimal('0')
        )
        total_expenses = sum(
            (m.amount for m in movements if m.type == Movement.TYPE_EXPENSE), Decimal('0')
        )

        return {
            'totalIncome': to_float(total_income),
            'totalExpenses': to_float(total_expenses),
            'balance': to_float(total_income - total_expenses),
            'accountCount': len(AccountService.get_user_account_ids(user_id)),
            'movementCount': len(movements),
        }

    @staticmethod
    def get_savings_progress(user_id, savings_goal):
        """Compare the money put into savings against the user's goal."""
        savings = MovementService._user_movements_query(user_id).filter(
            Movement.type == Movement.TYPE_EXPENSE,
            Movement.concept == Movement.CONCEPT_SAVINGS
        ).all()

        current = sum((m.amount for m in savings), Decimal('0'))
        goal = Decimal(str(savings_goal or 0))
        progress = (current / goal * 100) if goal > 0 else Decimal('0')

        return {
            'currentSavings': to_float(current),
            'savingsGoal': to_float(goal),
            'progressPercentage': round(float(progress), 2),
            'remaining': to_float(max(Decimal('0'), goal - current)),
        }
