"""
Scheduler service for email report subscriptions.

Handles:
- Subscription creation, toggling and deletion
- Next-send calculation per frequency
- Sending every report that is due (run hourly by APScheduler)
"""
import json
import logging
from datetime import datetime, timedelta

from extensions import db
from models import EmailReport
from services.report_service import ReportService
from utils import add_months

logger = logging.getLogger(__name__)


class ReportValidationError(Exception):
    """Raised when a report subscription is invalid."""
    pass


def calculate_next_send(frequency, now=None):
    """Return when a report with this frequency should go out next.

    Immediate reports are sent once, on creation, and have no next send.

    Args:
        frequency: daily, weekly, monthly or immediate
        now: Reference time (defaults to utcnow)

    Returns:
        datetime or None
    """
    now = now or datetime.utcnow()

    if frequency == EmailReport.FREQUENCY_IMMEDIATE:
        return None
    if frequency == EmailReport.FREQUENCY_WEEKLY:
        return now + timedelta(days=7)
    if frequency == EmailReport.FREQUENCY_MONTHLY:
        return add_months(now, 1)
    return now + timedelta(days=1)


def validate_report_data(report_type, frequency):
    """Raise ReportValidationError for unknown report types or frequencies."""
    if report_type not in EmailReport.REPORT_TYPES:
        raise ReportValidationError(
            f"Invalid report type. Must be one of: {', '.join(EmailReport.REPORT_TYPES)}"
        )
    if frequency not in EmailReport.FREQUENCIES:
        raise ReportValidationError(
            f"Invalid frequency. Must be one of: {', '.join(EmailReport.FREQUENCIES)}"
        )


def create_scheduled_report(user_id, report_type, frequency, config=None):
    """Create an active report subscription.

    Raises:
        ReportValidationError: If type, frequency or config are invalid
    """
    validate_report_data(report_type, frequency)
    if config is not None and not isinstance(config, dict):
        raise ReportValidationError('Config must be an object')

    report = EmailReport(
        user_id=user_id,
        report_type=report_type,
        frequency=frequency,
        is_active=True,
        next_send=calculate_next_send(frequency),
        config=json.dumps(config or {})
    )
    db.session.add(report)
    db.session.commit()

    logger.info(f"Report {report.id} ({report_type}, {frequency}) created for user {user_id}")
    return report


def get_user_report(user_id, report_id):
    """Get a report subscription only if the user owns it."""
    return EmailReport.query.filter_by(id=report_id, user_id=user_id).first()


def toggle_report_status(report, is_active):
    """Activate or pause a subscription."""
    report.is_active = bool(is_active)
    db.session.commit()
    return report


def delete_report(report):
    """Delete a subscription."""
    db.session.delete(report)
    db.session.commit()


def mark_sent(report, now=None):
    """Record a delivery and schedule the next one."""
    now = now or datetime.utcnow()
    report.last_sent = now
    report.next_send = calculate_next_send(report.frequency, now)


def process_due_reports(now=None):
    """Send every active report whose next send time has passed.

    A failure for one report is logged and does not stop the others.

    Args:
        now: Reference time (defaults to utcnow)

    Returns:
        Dict with sent and failed counts.
    """
    now = now or datetime.utcnow()

    due_reports = EmailReport.query.filter(
        EmailReport.is_active.is_(True),
        EmailReport.next_send.isnot(None),
        EmailReport.next_send <= now
    ).all()

    sent = 0
    failed = 0
    for report in due_reports:
        try:
            ReportService.send_report(report.user_id, report.report_type)
            mark_sent(report, now)
            db.session.commit()
            sent += 1
        except Exception as e:
            db.session.rollback()
            failed += 1
            logger.error(f"Failed to send report {report.id} to user {report.user_id}: {e}")

    if due_reports:
        logger.info(f"Processed {len(due_reports)} due reports: {sent} sent, {failed} failed")

    return {'sent': sent, 'failed': failed}


def run_due_reports_with_app(app):
    """Run process_due_reports inside the given app's context.

    Used by the background scheduler and the CLI, where no request context
    exists.
    """
    with app.app_context():
        return process_due_reports()


def init_scheduler(app):
    """Start the APScheduler job that sends due reports every hour.

    Only runs outside debug/testing to avoid duplicate jobs during
    development.

    Returns:
        The started scheduler, or None
    """
    if app.debug or app.config.get('TESTING'):
        logger.info("Report scheduler disabled in debug/testing mode")
        return None

    try:
        from apscheduler.schedulers.background import BackgroundScheduler

        scheduler = BackgroundScheduler(timezone=app.config['REPORT_SCHEDULER_TIMEZONE'])
        scheduler.add_job(
            func=lambda: run_due_reports_with_app(app),
            trigger='cron',
            minute=0,
            id='send_due_reports',
            replace_existing=True
        )
        scheduler.start()
        logger.info("Background scheduler started for email reports")
        return scheduler
    except Exception as e:
        logger.warning(f"Failed to initialize scheduler: {e}")
        return None
