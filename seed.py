"""Seed a demo user and sample data for local development.

Usage:
    flask seed
    python seed.py
"""
from datetime import date

from extensions import db
from models import User, UserContext, Account, Movement, Contact
from services.loan_service import LoanService

DEMO_EMAIL = 'test@becky.com'
DEMO_PASSWORD = 'password123'

SAMPLE_MOVEMENTS = [
    # (account key, type, concept, amount, description, date, category)
    ('checking', 'income', 'others', '5000', 'Salary payment', date(2024, 1, 15), 'salary'),
    ('checking', 'income', 'others', '500', 'Freelance work', date(2024, 1, 20), 'freelance'),
    ('checking', 'expense', 'needs', '1200', 'Rent payment', date(2024, 1, 1), 'housing'),
    ('checking', 'expense', 'needs', '300', 'Grocery shopping', date(2024, 1, 5), 'food'),
    ('checking', 'expense', 'needs', '150', 'Electricity bill', date(2024, 1, 10), 'utilities'),
    ('checking', 'expense', 'wants', '80', 'Netflix subscription', date(2024, 1, 3), 'entertainment'),
    ('checking', 'expense', 'wants', '200', 'Restaurant dinner', date(2024, 1, 12), 'dining'),
    ('savings', 'expense', 'savings', '1000', 'Monthly savings transfer', date(2024, 1, 15), 'savings'),
]


def seed_demo_data():
    """Create the demo user with accounts, movements, a contact and loans.

    Does nothing if the demo user already exists.

    Returns:
        The demo User
    """
    db.create_all()

    user = User.query.filter_by(email=DEMO_EMAIL).first()
    if user:
        print(f'Demo user already exists (ID: {user.id})')
        return user

    user = User(email=DEMO_EMAIL, name='Test User')
    user.set_password(DEMO_PASSWORD)
    db.session.add(user)
    db.session.flush()

    context = UserContext(user_id=user.id)
    context.set_data(UserContext.initial_data())
    db.session.add(context)

    accounts = {
        'checking': Account(user_id=user.id, name='Main Checking', bank='Chase Bank', type='checking'),
        'savings': Account(user_id=user.id, name='Savings Account', bank='Chase Bank', type='savings'),
    }
    db.session.add_all(accounts.values())
    db.session.flush()

    for account_key, movement_type, concept, amount, description, day, category in SAMPLE_MOVEMENTS:
        db.session.add(Movement(
            account_id=accounts[account_key].id,
            type=movement_type,
            concept=concept,
            amount=amount,
            description=description,
            date=day,
            category=category,
            is_loan=False
        ))

    db.session.add(Contact(user_id=user.id, name='Ana García', nickname='Anita', phone='+54 11 5555-0101'))
    db.session.commit()
    print(f'Created demo user {user.email} with {len(SAMPLE_MOVEMENTS)} movements')

    checking_id = accounts['checking'].id
    LoanService.create_shared_expense(user.id, {
        'accountId': checking_id,
        'totalAmount': 100,
        'participants': 5,
        'description': 'Fotocopias del grupo',
        'date': '2024-01-18',
        'category': 'office',
        'participantsList': ['Ana', 'Luis', 'Marta', 'Pedro'],
    })
    LoanService.create_simple_loan(user.id, {
        'accountId': checking_id,
        'amount': 50,
        'loanType': 'lent',
        'description': 'Cena de cumpleaños',
        'date': '2024-01-22',
        'relatedPerson': 'Ana',
    })
    print('Created a shared expense and a simple loan')

    return user


if __name__ == '__main__':
    from app import app

    with app.app_context():
        seed_demo_data()
