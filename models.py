"""
Database models for the Becky personal finance tracker.
"""
import json
from datetime import datetime

from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db
from utils import to_float


DEFAULT_PREFERENCES = {
    'monthlyBudget': 3000,
    'savingsGoal': 5000,
    'categories': ['housing', 'food', 'utilities', 'entertainment', 'dining', 'savings'],
}


class User(db.Model):
    """User model for authentication."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    # Relationships
    accounts = db.relationship('Account', back_populates='user', cascade='all, delete-orphan')
    contacts = db.relationship('Contact', back_populates='user', cascade='all, delete-orphan')
    email_reports = db.relationship('EmailReport', back_populates='user', cascade='all, delete-orphan')
    context = db.relationship('UserContext', back_populates='user', uselist=False, cascade='all, delete-orphan')

    def set_password(self, password):
        """Hash and set the user's password."""
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        """Check if the provided password matches the hash."""
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<User {self.id}: {self.email}>'


class UserContext(db.Model):
    """Per-user assistant context: preferences and recent conversation."""

    __tablename__ = 'user_contexts'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False)
    # JSON document: {"preferences": {...}, "lastInteraction": "...", "conversationHistory": [...]}
    data = db.Column(db.Text, nullable=False, default='{}')
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship('User', back_populates='context')

    HISTORY_LIMIT = 10

    @staticmethod
    def initial_data():
        return {
            'preferences': dict(DEFAULT_PREFERENCES),
            'lastInteraction': datetime.utcnow().isoformat(),
            'conversationHistory': [],
        }

    def get_data(self):
        return json.loads(self.data) if self.data else {}

    def set_data(self, value):
        self.data = json.dumps(value)

    @property
    def preferences(self):
        return self.get_data().get('preferences', {})

    @property
    def conversation_history(self):
        return self.get_data().get('conversationHistory', [])

    def record_exchange(self, user_message, becky_response):
        """Append a chat exchange, keeping only the most recent ones."""
        data = self.get_data()
        now = datetime.utcnow().isoformat()
        history = data.get('conversationHistory', [])
        history.append({
            'timestamp': now,
            'userMessage': user_message,
            'beckyResponse': becky_response,
        })
        data['conversationHistory'] = history[-self.HISTORY_LIMIT:]
        data['lastInteraction'] = now
        self.set_data(data)

    def __repr__(self):
        return f'<UserContext {self.id}: User {self.user_id}>'


class Account(db.Model):
    """Bank account (or cash wallet) owned by a user."""

    __tablename__ = 'accounts'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    bank = db.Column(db.String(100), nullable=True)
    type = db.Column(db.String(20), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = db.relationship('User', back_populates='accounts')
    movements = db.relationship('Movement', back_populates='account', cascade='all, delete-orphan')

    TYPES = ('checking', 'savings', 'cash', 'credit')

    def to_dict(self, recent_movements=None):
        data = {
            'id': self.id,
            'userId': self.user_id,
            'name': self.name,
            'bank': self.bank,
            'type': self.type,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
        if recent_movements is not None:
            data['movements'] = [m.to_dict() for m in recent_movements]
        return data

    def __repr__(self):
        return f'<Account {self.id}: {self.name}>'


class Movement(db.Model):
    """A single income or expense ledger entry.

    Loan movements (is_loan=True) also carry the loan bookkeeping fields.
    A shared expense is stored as two movements pointing at each other
    through related_movement_id.
    """

    __tablename__ = 'movements'
    __table_args__ = (
        db.Index('idx_movement_account_date', 'account_id', 'date'),
        db.Index('idx_movement_loan_status', 'is_loan', 'loan_status'),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), nullable=False, index=True)
    type = db.Column(db.String(10), nullable=False)  # income | expense
    concept = db.Column(db.String(10), nullable=False, default='others')
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.String(500), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    category = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Loan bookkeeping
    is_loan = db.Column(db.Boolean, default=False, nullable=False)
    loan_type = db.Column(db.String(10), nullable=True)  # shared | lent | borrowed
    original_amount = db.Column(db.Numeric(12, 2), nullable=True)
    participants = db.Column(db.Integer, nullable=True)
    pending_amount = db.Column(db.Numeric(12, 2), nullable=True)
    related_people = db.Column(db.Text, nullable=True)  # JSON array of names
    loan_status = db.Column(db.String(10), nullable=True)  # active | settled
    related_movement_id = db.Column(db.Integer, db.ForeignKey('movements.id'), nullable=True)

    # Relationships
    account = db.relationship('Account', back_populates='movements')

    # Movement types
    TYPE_INCOME = 'income'
    TYPE_EXPENSE = 'expense'
    TYPES = (TYPE_INCOME, TYPE_EXPENSE)

    # Budgeting buckets
    CONCEPT_NEEDS = 'needs'
    CONCEPT_WANTS = 'wants'
    CONCEPT_SAVINGS = 'savings'
    CONCEPT_OTHERS = 'others'
    CONCEPTS = (CONCEPT_NEEDS, CONCEPT_WANTS, CONCEPT_SAVINGS, CONCEPT_OTHERS)

    # Loan types
    LOAN_SHARED = 'shared'
    LOAN_LENT = 'lent'
    LOAN_BORROWED = 'borrowed'
    LOAN_TYPES = (LOAN_SHARED, LOAN_LENT, LOAN_BORROWED)
    SIMPLE_LOAN_TYPES = (LOAN_LENT, LOAN_BORROWED)

    # Loan status
    STATUS_ACTIVE = 'active'
    STATUS_SETTLED = 'settled'

    # Reserved categories
    CATEGORY_LOAN = 'loan'
    CATEGORY_PENDING_LOAN = 'pending_loan'
    CATEGORY_LOAN_SETTLEMENT = 'loan_settlement'

    @staticmethod
    def status_for(pending_amount):
        """A loan is settled once nothing is pending."""
        if pending_amount is None or pending_amount <= 0:
            return Movement.STATUS_SETTLED
        return Movement.STATUS_ACTIVE

    def get_related_people(self):
        return json.loads(self.related_people) if self.related_people else []

    def set_related_people(self, people):
        self.related_people = json.dumps(list(people or []))

    def to_dict(self, include_account=False):
        """Convert movement to dictionary for JSON serialization."""
        data = {
            'id': self.id,
            'accountId': self.account_id,
            'type': self.type,
            'concept': self.concept,
            'amount': to_float(self.amount),
            'description': self.description,
            'date': self.date.strftime('%Y-%m-%d'),
            'category': self.category,
            'isLoan': self.is_loan,
            'loanType': self.loan_type,
            'originalAmount': to_float(self.original_amount),
            'participants': self.participants,
            'pendingAmount': to_float(self.pending_amount),
            'relatedPeople': self.get_related_people(),
            'loanStatus': self.loan_status,
            'relatedMovementId': self.related_movement_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
        if include_account:
            data['account'] = {'name': self.account.name if self.account else None}
        return data

    def __repr__(self):
        return f'<Movement {self.id}: {self.type} ${self.amount}>'


class Contact(db.Model):
    """Person the user lends to, borrows from or shares expenses with."""

    __tablename__ = 'contacts'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(120), nullable=True)
    nickname = db.Column(db.String(50), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship('User', back_populates='contacts')

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'nickname': self.nickname,
            'notes': self.notes,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Contact {self.id}: {self.name}>'


class EmailReport(db.Model):
    """Email report subscription processed by the scheduler."""

    __tablename__ = 'email_reports'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    report_type = db.Column(db.String(30), nullable=False)
    frequency = db.Column(db.String(20), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_sent = db.Column(db.DateTime, nullable=True)
    next_send = db.Column(db.DateTime, nullable=True, index=True)
    config = db.Column(db.Text, nullable=False, default='{}')
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship('User', back_populates='email_reports')

    TYPE_LOANS_SUMMARY = 'loans_summary'
    TYPE_WEEKLY_SUMMARY = 'weekly_summary'
    TYPE_DEBT_ALERT = 'debt_alert'
    REPORT_TYPES = (TYPE_LOANS_SUMMARY, TYPE_WEEKLY_SUMMARY, TYPE_DEBT_ALERT)

    FREQUENCY_DAILY = 'daily'
    FREQUENCY_WEEKLY = 'weekly'
    FREQUENCY_MONTHLY = 'monthly'
    FREQUENCY_IMMEDIATE = 'immediate'
    FREQUENCIES = (FREQUENCY_DAILY, FREQUENCY_WEEKLY, FREQUENCY_MONTHLY, FREQUENCY_IMMEDIATE)

    def get_config(self):
        return json.loads(self.config) if self.config else {}

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'reportType': self.report_type,
            'frequency': self.frequency,
            'isActive': self.is_active,
            'lastSent': self.last_sent.isoformat() if self.last_sent else None,
            'nextSend': self.next_send.isoformat() if self.next_send else None,
            'config': self.get_config(),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<EmailReport {self.id}: {self.report_type} ({self.frequency})>'
