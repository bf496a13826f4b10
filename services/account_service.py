"""
Account service.

Handles account lookup, ownership checks and creation.
"""
from extensions import db
from models import Account, Movement


class AccountService:
    """Service for account operations."""

    class ValidationError(Exception):
        """Raised when account validation fails."""
        pass

    @staticmethod
    def get_user_account(user_id, account_id):
        """
        Get an account only if it belongs to the user.

        Args:
            user_id (int): The owner's ID
            account_id (int): The account ID

        Returns:
            Account or None
        """
        try:
            account_id = int(account_id)
        except (TypeError, ValueError):
            return None

        return Account.query.filter_by(id=account_id, user_id=user_id).first()

    @staticmethod
    def get_user_account_ids(user_id):
        """Return the IDs of every account the user owns."""
        rows = db.session.query(Account.id).filter(Account.user_id == user_id).all()
        return [row[0] for row in rows]

    @staticmethod
    def list_accounts(user_id, recent=10):
        """
        List the user's accounts with their most recent movements.

        Returns:
            list[tuple]: (Account, list[Movement]) pairs
        """
        accounts = Account.query.filter_by(user_id=user_id).order_by(Account.created_at).all()

        result = []
        for account in accounts:
            movements = Movement.query.filter_by(account_id=account.id).order_by(
                Movement.date.desc(),
                Movement.created_at.desc()
            ).limit(recent).all()
            result.append((account, movements))

        return result

    @staticmethod
    def validate_account_data(data):
        """
        Validate account fields.

        Returns:
            list[str]: Error messages, empty when valid
        """
        errors = []

        name = data.get('name')
        if not name or not isinstance(name, str) or not name.strip():
            errors.append('Account name is required')
        elif len(name.strip()) > 100:
            errors.append('Account name must be less than 100 characters')

        bank = data.get('bank')
        if bank is not None and not isinstance(bank, str):
            errors.append('Bank must be a string')

        account_type = data.get('type')
        if account_type and account_type not in Account.TYPES:
            errors.append(f"Account type must be one of: {', '.join(Account.TYPES)}")

        return errors

    @staticmethod
    def create_account(user_id, data):
        """
        Create an account for the user.

        Raises:
            ValidationError: If the data is invalid
        """
        errors = AccountService.validate_account_data(data)
        if errors:
            raise AccountService.ValidationError('; '.join(errors))

        account = Account(
            user_id=user_id,
            name=data['name'].strip(),
            bank=data.get('bank'),
            type=data.get('type')
        )
        db.session.add(account)
        db.session.commit()

        return account
