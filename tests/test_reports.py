"""
Tests for email report subscriptions, report generation and the scheduler.
"""
from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest

from email_service import EmailError


@pytest.fixture
def mock_send_email():
    with patch('services.report_service.send_email') as mock_send:
        yield mock_send


@pytest.fixture
def borrowed_loan(client, auth_headers, account_id):
    response = client.post('/loans/simple-loan', headers=auth_headers, json={
        'accountId': account_id,
        'amount': 40,
        'loanType': 'borrowed',
        'description': 'Libro',
        'date': '2024-01-20',
        'relatedPerson': 'Luis'
    })
    return response.get_json()['loan']


@pytest.mark.unit
class TestCalculateNextSend:
    """Tests for calculate_next_send."""

    NOW = datetime(2024, 1, 31, 9, 0)

    def test_daily(self):
        from services.scheduler_service import calculate_next_send
        assert calculate_next_send('daily', self.NOW) == datetime(2024, 2, 1, 9, 0)

    def test_weekly(self):
        from services.scheduler_service import calculate_next_send
        assert calculate_next_send('weekly', self.NOW) == datetime(2024, 2, 7, 9, 0)

    def test_monthly_clamps_day(self):
        from services.scheduler_service import calculate_next_send
        assert calculate_next_send('monthly', self.NOW) == datetime(2024, 2, 29, 9, 0)

    def test_immediate_has_no_next_send(self):
        from services.scheduler_service import calculate_next_send
        assert calculate_next_send('immediate', self.NOW) is None


@pytest.mark.integration
class TestReportSubscriptions:
    """Tests for /reports CRUD."""

    def test_create_weekly_report(self, client, auth_headers, user, mock_send_email):
        response = client.post('/reports', headers=auth_headers, json={
            'reportType': 'loans_summary',
            'frequency': 'weekly',
            'config': {'includeSettled': False}
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['userId'] == user['id']
        assert data['reportType'] == 'loans_summary'
        assert data['isActive'] is True
        assert data['nextSend'] is not None
        assert data['lastSent'] is None
        assert data['config'] == {'includeSettled': False}
        mock_send_email.assert_not_called()

    def test_immediate_report_is_sent(self, client, auth_headers, user, mock_send_email):
        response = client.post('/reports', headers=auth_headers, json={
            'reportType': 'weekly_summary',
            'frequency': 'immediate'
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['lastSent'] is not None
        assert data['nextSend'] is None
        mock_send_email.assert_called_once()
        assert mock_send_email.call_args[0][0] == user['email']

    def test_immediate_report_mail_failure(self, client, auth_headers, mock_send_email):
        mock_send_email.side_effect = EmailError('SMTP down')

        response = client.post('/reports', headers=auth_headers, json={
            'reportType': 'loans_summary',
            'frequency': 'immediate'
        })

        assert response.status_code == 201
        assert response.get_json()['lastSent'] is None

    @pytest.mark.parametrize('payload,message', [
        ({'reportType': 'yearly_digest', 'frequency': 'weekly'}, 'Invalid report type'),
        ({'reportType': 'loans_summary', 'frequency': 'hourly'}, 'Invalid frequency'),
        ({'reportType': 'loans_summary', 'frequency': 'weekly', 'config': [1]}, 'Config must be an object'),
    ])
    def test_create_validation(self, client, auth_headers, payload, message):
        response = client.post('/reports', headers=auth_headers, json=payload)

        assert response.status_code == 400
        assert response.get_json()['error'].startswith(message)

    def test_list_reports(self, client, auth_headers, other_user):
        client.post('/reports', headers=auth_headers, json={'reportType': 'loans_summary', 'frequency': 'daily'})
        client.post('/reports', headers=other_user['headers'], json={'reportType': 'debt_alert', 'frequency': 'daily'})

        reports = client.get('/reports', headers=auth_headers).get_json()

        assert isinstance(reports, list)
        assert [r['reportType'] for r in reports] == ['loans_summary']

    def test_toggle_report(self, client, auth_headers):
        report = client.post('/reports', headers=auth_headers, json={
            'reportType': 'debt_alert', 'frequency': 'daily'
        }).get_json()

        response = client.put(f"/reports/{report['id']}/toggle", headers=auth_headers, json={'isActive': False})

        assert response.status_code == 200
        assert response.get_json()['isActive'] is False

    def test_toggle_requires_boolean(self, client, auth_headers):
        report = client.post('/reports', headers=auth_headers, json={
            'reportType': 'debt_alert', 'frequency': 'daily'
        }).get_json()

        response = client.put(f"/reports/{report['id']}/toggle", headers=auth_headers, json={'isActive': 'no'})
        assert response.status_code == 400

    def test_other_users_report(self, client, auth_headers, other_user):
        report = client.post('/reports', headers=auth_headers, json={
            'reportType': 'debt_alert', 'frequency': 'daily'
        }).get_json()

        toggle = client.put(f"/reports/{report['id']}/toggle", headers=other_user['headers'], json={'isActive': False})
        delete = client.delete(f"/reports/{report['id']}", headers=other_user['headers'])

        assert toggle.status_code == 404
        assert delete.status_code == 404
        assert delete.get_json()['error'] == 'Report not found'

    def test_delete_report(self, client, auth_headers):
        report = client.post('/reports', headers=auth_headers, json={
            'reportType': 'debt_alert', 'frequency': 'daily'
        }).get_json()

        response = client.delete(f"/reports/{report['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert client.get('/reports', headers=auth_headers).get_json() == []


@pytest.mark.integration
class TestSendAndPreview:
    """Tests for send-now, preview and test-email."""

    def test_send_loans_summary(self, client, auth_headers, borrowed_loan, mock_send_email):
        response = client.post('/reports/send-now', headers=auth_headers, json={'reportType': 'loans_summary'})

        assert response.status_code == 200
        assert response.get_json() == {'message': 'Report sent successfully', 'sent': True}

        recipient, subject, html_body, text_body = mock_send_email.call_args[0]
        assert subject == 'Resumen de Préstamos - Becky'
        assert 'Me prestaron: Libro' in html_body
        assert 'Total adeudado: $40.00' in text_body

    def test_debt_alert_without_debts(self, client, auth_headers, account_id, mock_send_email):
        response = client.post('/reports/send-now', headers=auth_headers, json={'reportType': 'debt_alert'})

        assert response.status_code == 200
        assert response.get_json()['sent'] is False
        mock_send_email.assert_not_called()

    def test_debt_alert_with_debts(self, client, auth_headers, borrowed_loan, mock_send_email):
        response = client.post('/reports/send-now', headers=auth_headers, json={'reportType': 'debt_alert'})

        assert response.get_json()['sent'] is True
        assert mock_send_email.call_args[0][1] == 'Alerta de Deudas - Becky'

    def test_send_invalid_type(self, client, auth_headers):
        response = client.post('/reports/send-now', headers=auth_headers, json={'reportType': 'nope'})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid report type'

    def test_send_mail_failure(self, client, auth_headers, mock_send_email):
        mock_send_email.side_effect = EmailError('SMTP down')

        response = client.post('/reports/send-now', headers=auth_headers, json={'reportType': 'weekly_summary'})
        assert response.status_code == 503

    def test_preview_loans_summary(self, client, auth_headers, borrowed_loan):
        data = client.get('/reports/preview/loans_summary', headers=auth_headers).get_json()

        assert data['totalLent'] == 0.0
        assert data['totalBorrowed'] == 40.0
        assert data['netPosition'] == -40.0
        assert data['pendingLoans'][0]['relatedPeople'] == ['Luis']
        assert data['pendingLoans'][0]['type'] == 'borrowed'

    def test_preview_weekly_summary(self, client, auth_headers, user, account_id, make_movement):
        today = date.today().strftime('%Y-%m-%d')
        make_movement(user, account_id, amount=30, category='food', date=today)
        make_movement(user, account_id, type='income', amount=100, date=today)

        data = client.get('/reports/preview/weekly_summary', headers=auth_headers).get_json()

        assert data['totalIncome'] == 100.0
        assert data['totalExpenses'] == 30.0
        assert data['balance'] == 70.0
        assert data['topCategories'] == [{'category': 'food', 'amount': 30.0}]
        assert 'totalLent' in data['loans']

    def test_preview_unknown_type(self, client, auth_headers):
        response = client.get('/reports/preview/debt_alert', headers=auth_headers)
        assert response.status_code == 400

    def test_test_email(self, client, auth_headers, mock_send_email):
        response = client.post('/reports/test-email', headers=auth_headers)

        assert response.status_code == 200
        assert mock_send_email.call_args[0][1] == 'Prueba de Email - Becky'

    def test_test_email_failure(self, client, auth_headers, mock_send_email):
        mock_send_email.side_effect = EmailError('SMTP down')

        response = client.post('/reports/test-email', headers=auth_headers)
        assert response.status_code == 503


@pytest.mark.unit
class TestReportRendering:
    """Tests for report bodies."""

    def test_loans_email_escapes_user_data(self, app):
        from services.report_service import ReportService

        summary = {'totalLent': 0, 'totalBorrowed': 0, 'netPosition': 0, 'pendingLoans': []}
        html = ReportService.render_loans_email(summary, '<script>alert(1)</script>')

        assert '<script>' not in html
        assert '&lt;script&gt;' in html
        assert '¡No tienes préstamos pendientes!' in html

    def test_weekly_report_top_categories(self, app, user, account_id, make_movement):
        from services.report_service import ReportService

        for index, category in enumerate(['a', 'b', 'c', 'd', 'e', 'f']):
            make_movement(user, account_id, amount=10 + index, category=category, date='2024-03-10')
        make_movement(user, account_id, amount=500, category='old', date='2024-02-01')

        with app.app_context():
            summary = ReportService.generate_weekly_report(user['id'], today=date(2024, 3, 12))

        assert summary['period'] == '05/03/2024 - 12/03/2024'
        assert [c['category'] for c in summary['topCategories']] == ['f', 'e', 'd', 'c', 'b']

    def test_unknown_report_type(self, app, user):
        from services.report_service import ReportService

        with app.app_context():
            with pytest.raises(ValueError):
                ReportService.send_report(user['id'], 'monthly_digest')


@pytest.mark.integration
class TestProcessDueReports:
    """Tests for the scheduled job."""

    def _report(self, db, user_id, report_type, next_send, is_active=True):
        from models import EmailReport
        report = EmailReport(
            user_id=user_id,
            report_type=report_type,
            frequency='weekly',
            is_active=is_active,
            next_send=next_send
        )
        db.session.add(report)
        db.session.commit()
        return report.id

    def test_sends_due_reports(self, app, db, user, mock_send_email):
        from models import EmailReport
        from services.scheduler_service import process_due_reports

        now = datetime(2024, 5, 1, 12, 0)
        with app.app_context():
            due_id = self._report(db, user['id'], 'loans_summary', now - timedelta(hours=1))
            future_id = self._report(db, user['id'], 'loans_summary', now + timedelta(days=1))
            paused_id = self._report(db, user['id'], 'loans_summary', now - timedelta(days=1), is_active=False)

            results = process_due_reports(now)

            assert results == {'sent': 1, 'failed': 0}
            due = db.session.get(EmailReport, due_id)
            assert due.last_sent == now
            assert due.next_send == now + timedelta(days=7)
            assert db.session.get(EmailReport, future_id).last_sent is None
            assert db.session.get(EmailReport, paused_id).last_sent is None

    def test_failure_does_not_stop_others(self, app, db, user, mock_send_email):
        from models import EmailReport
        from services.scheduler_service import process_due_reports

        mock_send_email.side_effect = [EmailError('SMTP down'), None]
        now = datetime(2024, 5, 1, 12, 0)
        with app.app_context():
            first_id = self._report(db, user['id'], 'loans_summary', now - timedelta(hours=2))
            second_id = self._report(db, user['id'], 'weekly_summary', now - timedelta(hours=1))

            results = process_due_reports(now)

            assert results == {'sent': 1, 'failed': 1}
            sent_ids = {
                report_id for report_id in (first_id, second_id)
                if db.session.get(EmailReport, report_id).last_sent is not None
            }
            assert len(sent_ids) == 1

    def test_run_with_app(self, app, mock_send_email):
        from services.scheduler_service import run_due_reports_with_app

        assert run_due_reports_with_app(app) == {'sent': 0, 'failed': 0}

    def test_scheduler_disabled_in_testing(self, app):
        from services.scheduler_service import init_scheduler

        assert init_scheduler(app) is None
