"""
Email report API routes.

Endpoints:
- GET /reports - List report subscriptions
- POST /reports - Create subscription
- PUT /reports/<id>/toggle - Activate/pause subscription
- DELETE /reports/<id> - Delete subscription
- POST /reports/send-now - Send a report immediately
- GET /reports/preview/<type> - Report data without sending
- POST /reports/test-email - Check the mail configuration
"""
import logging

from flask import request, jsonify, g

from extensions import db
from models import EmailReport
from api_decorators import jwt_required
from email_service import EmailError
from services.report_service import ReportService
from services import scheduler_service
from services.scheduler_service import ReportValidationError
from blueprints.api import api_bp

logger = logging.getLogger(__name__)


@api_bp.route('/reports', methods=['GET'])
@jwt_required
def api_list_reports():
    """List the user's report subscriptions, newest first."""
    reports = EmailReport.query.filter_by(user_id=g.current_user_id).order_by(
        EmailReport.created_at.desc(),
        EmailReport.id.desc()
    ).all()

    return jsonify([r.to_dict() for r in reports])


@api_bp.route('/reports', methods=['POST'])
@jwt_required
def api_create_report():
    """Create a report subscription.

    Request body:
        {"reportType": "loans_summary", "frequency": "weekly", "config": {}}

    Immediate subscriptions are sent right away.
    """
    data = request.get_json(silent=True) or {}

    try:
        report = scheduler_service.create_scheduled_report(
            g.current_user_id,
            data.get('reportType'),
            data.get('frequency'),
            data.get('config')
        )
    except ReportValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create report")
        return jsonify({'error': 'Internal server error'}), 500

    if report.frequency == EmailReport.FREQUENCY_IMMEDIATE:
        try:
            ReportService.send_report(g.current_user_id, report.report_type)
            scheduler_service.mark_sent(report)
            db.session.commit()
        except EmailError:
            logger.warning(f"Immediate report {report.id} could not be sent")

    return jsonify(report.to_dict()), 201


@api_bp.route('/reports/<int:report_id>/toggle', methods=['PUT'])
@jwt_required
def api_toggle_report(report_id):
    """Activate or pause a subscription.

    Request body:
        {"isActive": false}
    """
    report = scheduler_service.get_user_report(g.current_user_id, report_id)

    if not report:
        return jsonify({'error': 'Report not found'}), 404

    data = request.get_json(silent=True) or {}
    is_active = data.get('isActive')
    if not isinstance(is_active, bool):
        return jsonify({'error': 'isActive must be a boolean'}), 400

    report = scheduler_service.toggle_report_status(report, is_active)
    return jsonify(report.to_dict())


@api_bp.route('/reports/<int:report_id>', methods=['DELETE'])
@jwt_required
def api_delete_report(report_id):
    """Delete a subscription."""
    report = scheduler_service.get_user_report(g.current_user_id, report_id)

    if not report:
        return jsonify({'error': 'Report not found'}), 404

    scheduler_service.delete_report(report)
    return jsonify({'message': 'Report deleted successfully'})


@api_bp.route('/reports/send-now', methods=['POST'])
@jwt_required
def api_send_report_now():
    """Send a report immediately.

    Request body:
        {"reportType": "weekly_summary"}
    """
    data = request.get_json(silent=True) or {}
    report_type = data.get('reportType')

    if report_type not in EmailReport.REPORT_TYPES:
        return jsonify({'error': 'Invalid report type'}), 400

    try:
        sent = ReportService.send_report(g.current_user_id, report_type)
    except EmailError:
        return jsonify({'error': 'Could not send email'}), 503

    if not sent:
        return jsonify({'message': 'Nothing to report', 'sent': False})

    return jsonify({'message': 'Report sent successfully', 'sent': True})


@api_bp.route('/reports/preview/<report_type>', methods=['GET'])
@jwt_required
def api_preview_report(report_type):
    """Return the data a report would contain."""
    if report_type == EmailReport.TYPE_LOANS_SUMMARY:
        summary = ReportService.generate_loans_report(g.current_user_id)
        return jsonify(ReportService.serialize_loans_report(summary))

    if report_type == EmailReport.TYPE_WEEKLY_SUMMARY:
        summary = ReportService.generate_weekly_report(g.current_user_id)
        return jsonify(ReportService.serialize_weekly_report(summary))

    return jsonify({'error': 'Invalid report type'}), 400


@api_bp.route('/reports/test-email', methods=['POST'])
@jwt_required
def api_test_email():
    """Send a test email to the current user."""
    try:
        ReportService.send_test_email(g.current_user_id)
    except EmailError:
        return jsonify({'error': 'Could not send test email'}), 503

    return jsonify({'message': 'Test email sent successfully'})
