from flask import Flask, request, jsonify, g
from pathlib import Path
import sys
import logging

sys.path.insert(0, str(Path(__file__).parent / 'src'))

from database.db import init_db, SessionLocal
from database.repository import PayrollRepository
from processors.payroll_service import PayrollService
from utils.errors import PayrollError, ValidationError
from config.settings import SECRET_KEY, DEBUG, LOG_LEVEL, LOG_FORMAT

logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['SECRET_KEY'] = SECRET_KEY
app.config['DEBUG'] = DEBUG
app.config['SESSION_FACTORY'] = SessionLocal
app.config['TODAY_PROVIDER'] = None  # date.today unless overridden


init_db()


def get_service() -> PayrollService:
    """Payroll service bound to this request's database session"""
    if 'db' not in g:
        g.db = app.config['SESSION_FACTORY']()
    today = app.config['TODAY_PROVIDER']
    repo = PayrollRepository(g.db)
    return PayrollService(repo, today) if today else PayrollService(repo)


@app.teardown_appcontext
def close_session(exception=None):
    db = g.pop('db', None)
    if db is not None:
        db.close()


def error_response(e: Exception):
    if isinstance(e, PayrollError):
        return jsonify(e.to_dict()), e.status_code
    logger.exception("Unhandled error")
    return jsonify({
        'success': False,
        'message': str(e)
    }), 500


def request_data() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data

# ============================================================================
# API Endpoints
# ============================================================================

@app.route('/api/companies/<company_id>/payrolls', methods=['POST'])
def create_payroll(company_id):
    """Create one employee's payroll"""
    try:
        data = request_data()
        if not data.get('employee_id'):
            raise ValidationError('Invalid payroll request', [
                {'field': 'employee_id', 'message': 'Employee is required'}
            ])

        payroll = get_service().create_payroll(
            company_id,
            data['employee_id'],
            data.get('month'),
            data.get('year'),
            allowances=data.get('allowances'),
            deductions=data.get('deductions'),
            bonuses=data.get('bonuses', 0),
            bonus_notes=data.get('bonus_notes'),
            notes=data.get('notes')
        )

        return jsonify({
            'success': True,
            'message': 'Payroll created successfully',
            'payroll': PayrollRepository.payroll_to_dict(payroll)
        }), 201

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/payrolls')
def get_payrolls(company_id):
    """List payrolls with optional filters and pagination"""
    try:
        page = get_service().get_payrolls(
            company_id,
            employee_id=request.args.get('employee_id'),
            month=request.args.get('month'),
            year=request.args.get('year'),
            status=request.args.get('status'),
            page=request.args.get('page', 1),
            limit=request.args.get('limit', 20)
        )
        return jsonify({
            'success': True,
            'payrolls': [PayrollRepository.payroll_to_dict(p) for p in page['payrolls']],
            'pagination': page['pagination']
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/employees/<employee_id>/payrolls/last')
def get_last_payroll_for_employee(company_id, employee_id):
    try:
        payroll = get_service().get_last_payroll_for_employee(company_id, employee_id)
        return jsonify({
            'success': True,
            'payroll': PayrollRepository.payroll_to_dict(payroll) if payroll else None
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/payrolls/generate', methods=['POST'])
def generate_monthly_payroll(company_id):
    """Generate payrolls for all active employees"""
    try:
        data = request_data()
        results = get_service().generate_monthly_payroll(
            company_id,
            data.get('month'),
            data.get('year'),
            force_regenerate=bool(data.get('force_regenerate', False))
        )

        return jsonify({
            'success': True,
            'message': (
                f'Generated {len(results.success)} payrolls, '
                f'regenerated {len(results.regenerated)}, '
                f'skipped {len(results.skipped)}, failed {len(results.failed)}'
            ),
            'results': results.to_dict()
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/employees/<employee_id>/projection')
def get_payroll_projection(company_id, employee_id):
    """Projected payroll for the current month"""
    try:
        projection = get_service().get_payroll_projection(company_id, employee_id)
        return jsonify({
            'success': True,
            'payroll': projection.to_dict()
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/payrolls/<int:payroll_id>')
def get_payroll(company_id, payroll_id):
    try:
        payroll = get_service().get_payroll(company_id, payroll_id)
        return jsonify({
            'success': True,
            'payroll': PayrollRepository.payroll_to_dict(payroll)
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/payrolls/<int:payroll_id>', methods=['PUT'])
def update_payroll(company_id, payroll_id):
    """Edit amounts of an unpaid payroll"""
    try:
        payroll = get_service().update_payroll(company_id, payroll_id, changes=request_data())
        return jsonify({
            'success': True,
            'message': 'Payroll updated',
            'payroll': PayrollRepository.payroll_to_dict(payroll)
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/payrolls/<int:payroll_id>/approve', methods=['POST'])
def approve_payroll(company_id, payroll_id):
    try:
        payroll = get_service().approve_payroll(company_id, payroll_id)
        return jsonify({
            'success': True,
            'message': 'Payroll approved',
            'payroll': PayrollRepository.payroll_to_dict(payroll)
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/payrolls/<int:payroll_id>/pay', methods=['POST'])
def mark_as_paid(company_id, payroll_id):
    """Mark a payroll as paid and settle its advances"""
    try:
        data = request_data()
        payroll = get_service().mark_as_paid(
            company_id,
            payroll_id,
            method=data.get('payment_method', 'bank_transfer'),
            reference=data.get('payment_reference')
        )
        return jsonify({
            'success': True,
            'message': 'Payroll marked as paid',
            'payroll': PayrollRepository.payroll_to_dict(payroll)
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/payrolls/pay', methods=['POST'])
def bulk_mark_as_paid(company_id):
    """Mark several payrolls as paid"""
    try:
        data = request_data()
        payroll_ids = data.get('payroll_ids')
        if not isinstance(payroll_ids, list) or not payroll_ids:
            raise ValidationError('Invalid payment request', [
                {'field': 'payroll_ids', 'message': 'A non-empty list of payroll IDs is required'}
            ])

        results = get_service().bulk_mark_as_paid(
            company_id,
            payroll_ids,
            method=data.get('payment_method', 'bank_transfer'),
            reference=data.get('payment_reference')
        )
        return jsonify({
            'success': True,
            'message': f"Marked {len(results['updated'])} payrolls as paid",
            'results': results
        })

    except Exception as e:
        return error_response(e)

@app.route('/api/companies/<company_id>/payrolls/<int:payroll_id>', methods=['DELETE'])
def delete_payroll(company_id, payroll_id):
    try:
        get_service().delete_payroll(company_id, payroll_id)
        return jsonify({'success': True, 'message': 'Payroll deleted'})

    except Exception as e:
        return error_response(e)

if __name__ == '__main__':
    app.run(debug=DEBUG, host='0.0.0.0', port=5000)
