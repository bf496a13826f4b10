"""
Report service for building and emailing financial summaries.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal

from markupsafe import escape

from extensions import db
from models import Account, EmailReport, Movement, User
from email_service import send_email
from services.loan_service import LoanService
from utils import format_currency, to_float

logger = logging.getLogger(__name__)

LOANS_SUBJECT = 'Resumen de Préstamos - Becky'
WEEKLY_SUBJECT = 'Resumen Semanal - Becky'
DEBT_ALERT_SUBJECT = 'Alerta de Deudas - Becky'

EMAIL_STYLE = """
        body { font-family: Arial, sans-serif; margin: 0; padding: 20px; background-color: #f5f5f5; }
        .container { max-width: 600px; margin: 0 auto; background: white; padding: 30px; border-radius: 10px; }
        .header { text-align: center; color: #2563eb; margin-bottom: 30px; }
        .summary-card { background: #f8fafc; padding: 20px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #2563eb; }
        .loan-item { background: white; padding: 15px; margin: 10px 0; border-radius: 6px; border: 1px solid #e2e8f0; }
        .category-item { display: flex; justify-content: space-between; padding: 8px 0; border-bottom: 1px solid #e2e8f0; }
        .amount-positive { color: #059669; font-weight: bold; }
        .amount-negative { color: #dc2626; font-weight: bold; }
        .footer { text-align: center; margin-top: 30px; color: #6b7280; font-size: 14px; }
"""

FOOTER = """
        <div class="footer">
            <p>Este reporte fue generado automáticamente por Becky</p>
            <p>Para más detalles, inicia sesión en tu cuenta</p>
        </div>"""


class ReportService:
    """Service for report generation and delivery."""

    class NotFoundError(Exception):
        """Raised when the report's user does not exist."""
        pass

    @staticmethod
    def generate_loans_report(user_id):
        """Outstanding lent/borrowed balances."""
        return LoanService.get_loans_report(user_id)

    @staticmethod
    def generate_weekly_report(user_id, today=None):
        """
        Summarize the last 7 days of non-loan movements.

        Returns:
            dict: {period, totalIncome, totalExpenses, balance,
                   topCategories, loans}
        """
        today = today or date.today()
        week_ago = today - timedelta(days=7)

        movements = Movement.query.join(Account).filter(
            Account.user_id == user_id,
            Movement.date >= week_ago,
            Movement.is_loan.is_(False)
        ).all()

        total_income = Decimal('0')
        total_expenses = Decimal('0')
        category_totals = {}

        for movement in movements:
            if movement.type == Movement.TYPE_INCOME:
                total_income += movement.amount
            else:
                total_expenses += movement.amount
                category = movement.category or 'Sin categoría'
                category_totals[category] = category_totals.get(category, Decimal('0')) + movement.amount

        top_categories = sorted(category_totals.items(), key=lambda item: item[1], reverse=True)[:5]

        return {
            'period': f"{week_ago.strftime('%d/%m/%Y')} - {today.strftime('%d/%m/%Y')}",
            'totalIncome': total_income,
            'totalExpenses': total_expenses,
            'balance': total_income - total_expenses,
            'topCategories': [{'category': c, 'amount': a} for c, a in top_categories],
            'loans': ReportService.generate_loans_report(user_id),
        }

    @staticmethod
    def serialize_loans_report(summary):
        """Make a loans report JSON serializable."""
        return {
            'totalLent': to_float(summary['totalLent']),
            'totalBorrowed': to_float(summary['totalBorrowed']),
            'netPosition': to_float(summary['netPosition']),
            'pendingLoans': [
                {
                    'id': loan.id,
                    'description': loan.description,
                    'amount': to_float(loan.pending_amount),
                    'type': loan.loan_type,
                    'date': loan.date.strftime('%Y-%m-%d'),
                    'relatedPeople': loan.get_related_people(),
                }
                for loan in summary['pendingLoans']
            ],
        }

    @staticmethod
    def serialize_weekly_report(summary):
        """Make a weekly report JSON serializable."""
        return {
            'period': summary['period'],
            'totalIncome': to_float(summary['totalIncome']),
            'totalExpenses': to_float(summary['totalExpenses']),
            'balance': to_float(summary['balance']),
            'topCategories': [
                {'category': item['category'], 'amount': to_float(item['amount'])}
                for item in summary['topCategories']
            ],
            'loans': ReportService.serialize_loans_report(summary['loans']),
        }

    @staticmethod
    def _amount_class(amount):
        return 'amount-positive' if amount >= 0 else 'amount-negative'

    @staticmethod
    def _loans_card(summary, title):
        net = summary['netPosition']
        return f"""
        <div class="summary-card">
            <h3>{title}</h3>
            <p><strong>Total prestado:</strong> <span class="amount-positive">{format_currency(summary['totalLent'])}</span></p>
            <p><strong>Total adeudado:</strong> <span class="amount-negative">{format_currency(summary['totalBorrowed'])}</span></p>
            <p><strong>Posición neta:</strong> <span class="{ReportService._amount_class(net)}">{format_currency(net)}</span></p>
        </div>"""

    @staticmethod
    def _loan_item(loan):
        lent = loan.loan_type == Movement.LOAN_LENT
        people = loan.get_related_people()
        people_line = ''
        if people:
            people_line = f"<p>Involucrados: {escape(', '.join(people))}</p>"
        return f"""
            <div class="loan-item">
                <p><strong>{escape(loan.description)}</strong></p>
                <p>Tipo: {'Prestado' if lent else 'Adeudado'}</p>
                <p>Monto: <span class="{'amount-positive' if lent else 'amount-negative'}">{format_currency(loan.pending_amount)}</span></p>
                <p>Fecha: {loan.date.strftime('%d/%m/%Y')}</p>
                {people_line}
            </div>"""

    @staticmethod
    def render_loans_email(summary, user_name):
        """Build the HTML body of the loans report."""
        if summary['pendingLoans']:
            items = ''.join(ReportService._loan_item(loan) for loan in summary['pendingLoans'])
            pending_section = f"""
        <div class="summary-card">
            <h3>Préstamos Pendientes</h3>{items}
        </div>"""
        else:
            pending_section = """
        <div class="summary-card"><p>¡No tienes préstamos pendientes!</p></div>"""

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <style>{EMAIL_STYLE}</style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Resumen de Préstamos</h1>
            <p>Hola {escape(user_name)}, aquí está tu resumen de deudas pendientes</p>
        </div>
{ReportService._loans_card(summary, 'Resumen General')}
{pending_section}
{FOOTER}
    </div>
</body>
</html>
"""

    @staticmethod
    def render_weekly_email(summary, user_name):
        """Build the HTML body of the weekly report."""
        categories = ''
        if summary['topCategories']:
            rows = ''.join(
                f"""
            <div class="category-item">
                <span>{escape(item['category'])}</span>
                <span class="amount-negative">{format_currency(item['amount'])}</span>
            </div>"""
                for item in summary['topCategories']
            )
            categories = f"""
        <div class="summary-card">
            <h3>Principales Categorías de Gasto</h3>{rows}
        </div>"""

        balance = summary['balance']
        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <style>{EMAIL_STYLE}</style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Resumen Semanal</h1>
            <p>Hola {escape(user_name)}, aquí está tu resumen financiero</p>
            <p><em>{summary['period']}</em></p>
        </div>
        <div class="summary-card">
            <h3>Resumen Financiero</h3>
            <p><strong>Ingresos:</strong> <span class="amount-positive">{format_currency(summary['totalIncome'])}</span></p>
            <p><strong>Gastos:</strong> <span class="amount-negative">{format_currency(summary['totalExpenses'])}</span></p>
            <p><strong>Balance:</strong> <span class="{ReportService._amount_class(balance)}">{format_currency(balance)}</span></p>
        </div>
{categories}
{ReportService._loans_card(summary['loans'], 'Estado de Préstamos')}
{FOOTER}
    </div>
</body>
</html>
"""

    @staticmethod
    def render_loans_text(summary, user_name):
        """Plain text alternative of the loans report."""
        lines = [
            f'Hola {user_name}, aquí está tu resumen de deudas pendientes',
            '',
            f"Total prestado: {format_currency(summary['totalLent'])}",
            f"Total adeudado: {format_currency(summary['totalBorrowed'])}",
            f"Posición neta: {format_currency(summary['netPosition'])}",
        ]
        for loan in summary['pendingLoans']:
            lines.append(f"- {loan.description}: {format_currency(loan.pending_amount)}")
        return '\n'.join(lines)

    @staticmethod
    def _get_user(user_id):
        user = db.session.get(User, user_id)
        if not user:
            raise ReportService.NotFoundError('User not found')
        return user

    @staticmethod
    def send_loans_report(user_id, subject=LOANS_SUBJECT):
        """
        Email the loans report to the user.

        Raises:
            NotFoundError: If the user does not exist
            EmailError: If delivery fails
        """
        user = ReportService._get_user(user_id)
        summary = ReportService.generate_loans_report(user_id)

        send_email(
            user.email,
            subject,
            ReportService.render_loans_email(summary, user.name),
            ReportService.render_loans_text(summary, user.name)
        )
        logger.info(f"Loans report sent to user {user_id}")

    @staticmethod
    def send_weekly_report(user_id):
        """Email the weekly report to the user."""
        user = ReportService._get_user(user_id)
        summary = ReportService.generate_weekly_report(user_id)

        send_email(
            user.email,
            WEEKLY_SUBJECT,
            ReportService.render_weekly_email(summary, user.name),
            f"Hola {user.name}, tu balance de {summary['period']} es {format_currency(summary['balance'])}"
        )
        logger.info(f"Weekly report sent to user {user_id}")

    @staticmethod
    def send_debt_alert(user_id):
        """
        Email the loans report only when the user owes money.

        Returns:
            bool: True if an alert was sent
        """
        summary = ReportService.generate_loans_report(user_id)
        if summary['totalBorrowed'] <= 0:
            logger.info(f"No debts for user {user_id}, skipping debt alert")
            return False

        ReportService.send_loans_report(user_id, subject=DEBT_ALERT_SUBJECT)
        return True

    @staticmethod
    def send_test_email(user_id):
        """Send a short message to check the mail configuration."""
        user = ReportService._get_user(user_id)
        html_body = f"""
<h2>Prueba de Email - Becky</h2>
<p>Hola {escape(user.name)},</p>
<p>Este es un email de prueba para verificar que la configuración de correo está funcionando correctamente.</p>
<p>Si recibes este mensaje, ¡todo está listo!</p>
<hr>
<p><em>Enviado desde Becky - Tu asistente de finanzas personales</em></p>
"""
        send_email(user.email, 'Prueba de Email - Becky', html_body)

    @staticmethod
    def send_report(user_id, report_type):
        """
        Dispatch a report by type.

        Returns:
            bool: False when nothing was sent (debt alert without debts)

        Raises:
            ValueError: If the report type is unknown
        """
        if report_type == EmailReport.TYPE_LOANS_SUMMARY:
            ReportService.send_loans_report(user_id)
        elif report_type == EmailReport.TYPE_WEEKLY_SUMMARY:
            ReportService.send_weekly_report(user_id)
        elif report_type == EmailReport.TYPE_DEBT_ALERT:
            return ReportService.send_debt_alert(user_id)
        else:
            raise ValueError(f'Unknown report type: {report_type}')
        return True
