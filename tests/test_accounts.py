"""
Tests for account and contact endpoints.
"""
import pytest


pytestmark = pytest.mark.integration


class TestAccounts:
    """Tests for /accounts"""

    def test_create_account(self, client, auth_headers, user):
        response = client.post('/accounts', headers=auth_headers, json={
            'name': '  Savings  ',
            'bank': 'Galicia',
            'type': 'savings'
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['name'] == 'Savings'
        assert data['bank'] == 'Galicia'
        assert data['type'] == 'savings'
        assert data['userId'] == user['id']

    def test_create_account_minimal(self, client, auth_headers):
        response = client.post('/accounts', headers=auth_headers, json={'name': 'Wallet'})

        assert response.status_code == 201
        assert response.get_json()['type'] is None

    @pytest.mark.parametrize('payload,message', [
        ({'bank': 'Galicia'}, 'Account name is required'),
        ({'name': 'x' * 101}, 'Account name must be less than 100 characters'),
        ({'name': 'Card', 'type': 'crypto'}, 'Account type must be one of'),
        ({'name': 'Card', 'bank': 12}, 'Bank must be a string'),
    ])
    def test_create_account_validation(self, client, auth_headers, payload, message):
        response = client.post('/accounts', headers=auth_headers, json=payload)

        assert response.status_code == 400
        assert message in response.get_json()['error']

    def test_create_account_empty_body(self, client, auth_headers):
        response = client.post('/accounts', headers=auth_headers)
        assert response.status_code == 400

    def test_list_accounts_with_recent_movements(self, client, auth_headers, user, account_id, make_movement):
        for day in range(1, 13):
            make_movement(user, account_id, date=f'2024-01-{day:02d}', description=f'Day {day}')

        response = client.get('/accounts', headers=auth_headers)

        assert response.status_code == 200
        accounts = response.get_json()
        assert len(accounts) == 1
        movements = accounts[0]['movements']
        assert len(movements) == 10
        assert movements[0]['date'] == '2024-01-12'

    def test_list_only_own_accounts(self, client, user, other_user, make_account):
        make_account(user, name='Alice Checking')
        make_account(other_user, name='Bob Checking')

        names = [a['name'] for a in client.get('/accounts', headers=user['headers']).get_json()]
        assert names == ['Alice Checking']

    def test_get_account(self, client, auth_headers, account_id):
        response = client.get(f'/accounts/{account_id}', headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()['id'] == account_id

    def test_get_other_users_account(self, client, other_user, account_id):
        response = client.get(f'/accounts/{account_id}', headers=other_user['headers'])

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Account not found'


class TestContacts:
    """Tests for /contacts"""

    def test_create_and_list(self, client, auth_headers):
        response = client.post('/contacts', headers=auth_headers, json={
            'name': 'Luis',
            'phone': '+54 11 5555-0102',
            'nickname': 'Lucho'
        })
        assert response.status_code == 201
        assert response.get_json()['nickname'] == 'Lucho'

        client.post('/contacts', headers=auth_headers, json={'name': 'Ana'})

        data = client.get('/contacts', headers=auth_headers).get_json()
        assert data['count'] == 2
        assert [c['name'] for c in data['contacts']] == ['Ana', 'Luis']

    def test_name_required(self, client, auth_headers):
        response = client.post('/contacts', headers=auth_headers, json={'phone': '123'})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Name is required'

    def test_optional_fields_must_be_strings(self, client, auth_headers):
        response = client.post('/contacts', headers=auth_headers, json={'name': 'Ana', 'phone': 1234})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'phone must be a string'

    def test_contacts_are_private(self, client, auth_headers, other_user):
        client.post('/contacts', headers=auth_headers, json={'name': 'Ana'})

        data = client.get('/contacts', headers=other_user['headers']).get_json()
        assert data == {'contacts': [], 'count': 0}
