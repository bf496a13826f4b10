"""
Tests for movement endpoints, spending aggregates and user summaries.
"""
from datetime import date

import pytest


pytestmark = pytest.mark.integration


class TestCreateMovement:
    """Tests for POST /movements/account/<account_id>"""

    def test_create_expense(self, client, auth_headers, account_id):
        response = client.post(f'/movements/account/{account_id}', headers=auth_headers, json={
            'type': 'expense',
            'concept': 'needs',
            'amount': 85.5,
            'description': 'Groceries',
            'date': '2024-01-15',
            'category': 'food'
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['amount'] == 85.5
        assert data['accountId'] == account_id
        assert data['isLoan'] is False
        assert data['loanStatus'] is None
        assert data['date'] == '2024-01-15'

    def test_income_defaults_to_others(self, client, auth_headers, account_id):
        response = client.post(f'/movements/account/{account_id}', headers=auth_headers, json={
            'type': 'income',
            'amount': 5000,
            'description': 'Salary',
            'date': '2024-01-01'
        })

        assert response.status_code == 201
        assert response.get_json()['concept'] == 'others'

    def test_expense_requires_concept(self, client, auth_headers, account_id):
        response = client.post(f'/movements/account/{account_id}', headers=auth_headers, json={
            'type': 'expense',
            'amount': 10,
            'description': 'Coffee',
            'date': '2024-01-01'
        })

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Concept is required for expenses'

    @pytest.mark.parametrize('field,value,message', [
        ('type', 'transfer', 'Movement type must be either'),
        ('concept', 'luxury', 'Movement concept must be one of'),
        ('amount', 0, 'Amount must be a positive number'),
        ('amount', 'lots', 'Amount must be a positive number'),
        ('description', '', 'Description is required'),
        ('date', 'yesterday', 'Valid date is required'),
        ('category', 5, 'Category must be a string'),
    ])
    def test_validation(self, client, auth_headers, account_id, field, value, message):
        payload = {
            'type': 'expense',
            'concept': 'wants',
            'amount': 10,
            'description': 'Coffee',
            'date': '2024-01-01',
        }
        payload[field] = value

        response = client.post(f'/movements/account/{account_id}', headers=auth_headers, json=payload)

        assert response.status_code == 400
        assert message in response.get_json()['error']

    def test_other_users_account(self, client, other_user, account_id):
        response = client.post(f'/movements/account/{account_id}', headers=other_user['headers'], json={
            'type': 'income',
            'amount': 10,
            'description': 'Gift',
            'date': '2024-01-01'
        })

        assert response.status_code == 404


class TestMovementCrud:
    """Tests for listing, reading, updating and deleting movements."""

    def test_list_newest_first(self, client, auth_headers, user, account_id, make_movement):
        make_movement(user, account_id, date='2024-01-01')
        make_movement(user, account_id, date='2024-02-01')

        response = client.get(f'/movements/account/{account_id}', headers=auth_headers)

        assert response.status_code == 200
        assert [m['date'] for m in response.get_json()] == ['2024-02-01', '2024-01-01']

    def test_list_other_users_account(self, client, other_user, account_id):
        response = client.get(f'/movements/account/{account_id}', headers=other_user['headers'])
        assert response.status_code == 404

    def test_get_movement(self, client, auth_headers, user, account_id, make_movement):
        movement = make_movement(user, account_id)

        response = client.get(f"/movements/{movement['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()['description'] == 'Groceries'

    def test_get_other_users_movement(self, client, other_user, user, account_id, make_movement):
        movement = make_movement(user, account_id)

        response = client.get(f"/movements/{movement['id']}", headers=other_user['headers'])

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Movement not found'

    def test_update_movement(self, client, auth_headers, user, account_id, make_movement):
        movement = make_movement(user, account_id)

        response = client.put(f"/movements/{movement['id']}", headers=auth_headers, json={
            'amount': 120,
            'category': 'supermarket'
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['amount'] == 120.0
        assert data['category'] == 'supermarket'
        assert data['description'] == 'Groceries'

    def test_update_ignores_loan_fields(self, client, auth_headers, user, account_id, make_movement):
        movement = make_movement(user, account_id)

        response = client.put(f"/movements/{movement['id']}", headers=auth_headers, json={
            'pendingAmount': 10
        })

        assert response.status_code == 400
        assert 'Nothing to update' in response.get_json()['error']

    def test_update_validation(self, client, auth_headers, user, account_id, make_movement):
        movement = make_movement(user, account_id)

        response = client.put(f"/movements/{movement['id']}", headers=auth_headers, json={'amount': -1})
        assert response.status_code == 400

    def test_delete_movement(self, client, auth_headers, user, account_id, make_movement):
        movement = make_movement(user, account_id)

        response = client.delete(f"/movements/{movement['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()['message'] == 'Movement deleted successfully'
        assert client.get(f"/movements/{movement['id']}", headers=auth_headers).status_code == 404

    def test_delete_unlinks_pair(self, client, auth_headers, account_id):
        expense = client.post('/loans/shared-expense', headers=auth_headers, json={
            'accountId': account_id,
            'totalAmount': 60,
            'participants': 3,
            'description': 'Pizza',
            'date': '2024-01-10'
        }).get_json()['expense']

        client.delete(f"/movements/{expense['relatedMovementId']}", headers=auth_headers)

        remaining = client.get(f"/movements/{expense['id']}", headers=auth_headers).get_json()
        assert remaining['relatedMovementId'] is None

    def test_delete_other_users_movement(self, client, other_user, user, account_id, make_movement):
        movement = make_movement(user, account_id)

        response = client.delete(f"/movements/{movement['id']}", headers=other_user['headers'])
        assert response.status_code == 404


class TestSpendingAggregates:
    """Tests for monthly totals, categories and trends."""

    @pytest.fixture
    def january(self, user, account_id, make_movement):
        make_movement(user, account_id, concept='needs', amount=1200, category='housing', date='2024-01-01')
        make_movement(user, account_id, concept='needs', amount=300, category='food', date='2024-01-05')
        make_movement(user, account_id, concept='wants', amount=80, category='entertainment', date='2024-01-03')
        make_movement(user, account_id, concept='wants', amount=45.5, category=None, date='2024-01-20')
        make_movement(user, account_id, type='income', amount=5000, category='salary', date='2024-01-15')
        make_movement(user, account_id, concept='needs', amount=999, category='food', date='2024-02-02')

    def test_monthly_expenses(self, client, auth_headers, january):
        response = client.get('/movements/monthly?month=2024-01', headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['month'] == '2024-01'
        assert data['totalAmount'] == 1625.5
        assert data['movementCount'] == 4
        assert data['movements'][0]['date'] == '2024-01-20'

    def test_monthly_expenses_by_concept(self, client, auth_headers, january):
        data = client.get('/movements/monthly?month=2024-01&concept=wants', headers=auth_headers).get_json()

        assert data['concept'] == 'wants'
        assert data['totalAmount'] == 125.5
        assert data['movementCount'] == 2

    def test_monthly_expenses_invalid_month(self, client, auth_headers):
        response = client.get('/movements/monthly?month=Smarch', headers=auth_headers)
        assert response.status_code == 400

    def test_monthly_expenses_invalid_concept(self, client, auth_headers):
        response = client.get('/movements/monthly?month=2024-01&concept=toys', headers=auth_headers)
        assert response.status_code == 400

    def test_spending_by_category(self, client, auth_headers, january):
        data = client.get('/movements/monthly/categories?month=2024-01', headers=auth_headers).get_json()

        assert data['categories'] == {
            'entertainment': 80.0,
            'food': 300.0,
            'housing': 1200.0,
            'uncategorized': 45.5,
        }
        assert data['total'] == 1625.5

    def test_spending_trends(self, app, user, january):
        from services.movement_service import MovementService

        with app.app_context():
            data = MovementService.get_spending_trends(user['id'], months=3, today=date(2024, 2, 20))

        assert data['months'] == 3
        assert [t['month'] for t in data['trends']] == ['2023-12', '2024-01', '2024-02']
        assert data['trends'][0] == {'month': '2023-12', 'income': 0.0, 'expenses': 0.0, 'balance': 0.0}
        assert data['trends'][1]['income'] == 5000.0
        assert data['trends'][1]['expenses'] == 1625.5
        assert data['trends'][1]['balance'] == 3374.5
        assert data['trends'][2]['expenses'] == 999.0

    def test_spending_trends_excludes_loans(self, app, user, account_id, client, auth_headers):
        from services.movement_service import MovementService

        client.post('/loans/simple-loan', headers=auth_headers, json={
            'accountId': account_id,
            'amount': 50,
            'loanType': 'lent',
            'description': 'Cena',
            'date': '2024-01-20'
        })

        with app.app_context():
            data = MovementService.get_spending_trends(user['id'], months=1, today=date(2024, 1, 31))

        assert data['trends'][0]['expenses'] == 0.0

    @pytest.mark.parametrize('months', [0, 25])
    def test_spending_trends_range(self, client, auth_headers, months):
        response = client.get(f'/movements/trends?months={months}', headers=auth_headers)
        assert response.status_code == 400

    def test_spending_trends_default(self, client, auth_headers):
        data = client.get('/movements/trends', headers=auth_headers).get_json()
        assert data['months'] == 6
        assert len(data['trends']) == 6


class TestUserSummaries:
    """Tests for /users/me endpoints."""

    def test_me(self, client, auth_headers, user):
        data = client.get('/users/me', headers=auth_headers).get_json()

        assert data['id'] == user['id']
        assert data['email'] == user['email']
        assert 'password_hash' not in data

    def test_financial_summary_excludes_loans(self, client, auth_headers, user, account_id, make_movement):
        make_movement(user, account_id, type='income', amount=1000)
        make_movement(user, account_id, amount=250)
        client.post('/loans/simple-loan', headers=auth_headers, json={
            'accountId': account_id,
            'amount': 50,
            'loanType': 'lent',
            'description': 'Cena',
            'date': '2024-01-20'
        })

        data = client.get('/users/me/summary', headers=auth_headers).get_json()

        assert data == {
            'totalIncome': 1000.0,
            'totalExpenses': 250.0,
            'balance': 750.0,
            'accountCount': 1,
            'movementCount': 2,
        }

    def test_savings_progress(self, client, auth_headers, user, account_id, make_movement):
        make_movement(user, account_id, concept='savings', amount=1000, category='savings')

        data = client.get('/users/me/savings', headers=auth_headers).get_json()

        assert data == {
            'currentSavings': 1000.0,
            'savingsGoal': 5000.0,
            'progressPercentage': 20.0,
            'remaining': 4000.0,
        }
