"""JSON endpoints through Flask's test client"""
from datetime import date

import pytest

from app import app as flask_app
from conftest import TODAY

FEB = (2025, 2)


@pytest.fixture
def client(db_session):
    flask_app.config['TESTING'] = True
    flask_app.config['TODAY_PROVIDER'] = lambda: TODAY
    with flask_app.test_client() as client:
        yield client
    flask_app.config['TODAY_PROVIDER'] = None


def create(client, employee_id='e1', **body):
    body.setdefault('month', 2)
    body.setdefault('year', 2025)
    return client.post('/api/companies/acme/payrolls', json=dict(employee_id=employee_id, **body))


def test_create_payroll(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB, skip_dates=(date(2025, 2, 3),))

    response = create(client, allowances={'housing': 500}, bonuses=250, bonus_notes='Target met')

    assert response.status_code == 201
    data = response.get_json()
    assert data['success'] is True
    payroll = data['payroll']
    assert payroll['status'] == 'DRAFT'
    assert payroll['gross_salary'] == '20750.00'
    assert payroll['net_salary'] == '19750.00'
    assert payroll['allowances'] == [{'category': 'housing', 'amount': '500.00', 'note': ''}]
    assert payroll['bonus_notes'] == 'Target met'


def test_create_requires_employee(client, company):
    response = client.post('/api/companies/acme/payrolls', json={'month': 2, 'year': 2025})

    assert response.status_code == 400
    assert response.get_json()['errors'][0]['field'] == 'employee_id'


def test_invalid_period_is_400(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)

    response = create(client, month=14)

    assert response.status_code == 400
    assert response.get_json()['code'] == 'VALIDATION_ERROR'


def test_duplicate_is_409(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)
    create(client)

    response = create(client)

    assert response.status_code == 409
    assert response.get_json()['code'] == 'DUPLICATE_PAYROLL'


def test_unknown_employee_is_404(client, company):
    response = create(client, employee_id='ghost')

    assert response.status_code == 404
    assert response.get_json()['success'] is False


def test_generate_monthly_payroll(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)
    make_employee('e2', 20000, attended_month=FEB)

    response = client.post('/api/companies/acme/payrolls/generate', json={'month': 2, 'year': 2025})

    assert response.status_code == 200
    results = response.get_json()['results']
    assert len(results['success']) == 2
    assert results['failed'] == []

    forced = client.post(
        '/api/companies/acme/payrolls/generate',
        json={'month': 2, 'year': 2025, 'force_regenerate': True}
    ).get_json()['results']
    assert len(forced['regenerated']) == 2


def test_projection(client, make_employee):
    make_employee('e1', 22000, attended_month=(2025, 3))

    response = client.get('/api/companies/acme/employees/e1/projection')

    assert response.status_code == 200
    payroll = response.get_json()['payroll']
    assert payroll['status'] == 'PROJECTION'
    assert payroll['days_passed_working'] == 10
    assert payroll['net_salary'] == '10000.00'


def test_payroll_lifecycle(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)
    payroll_id = create(client).get_json()['payroll']['id']

    assert client.get(f'/api/companies/acme/payrolls/{payroll_id}').status_code == 200

    updated = client.put(f'/api/companies/acme/payrolls/{payroll_id}', json={'bonuses': 100})
    assert updated.get_json()['payroll']['net_salary'] == '20100.00'

    approved = client.post(f'/api/companies/acme/payrolls/{payroll_id}/approve')
    assert approved.get_json()['payroll']['status'] == 'APPROVED'

    paid = client.post(
        f'/api/companies/acme/payrolls/{payroll_id}/pay',
        json={'payment_method': 'cash', 'payment_reference': 'R-7'}
    )
    assert paid.status_code == 200
    assert paid.get_json()['payroll']['payment_reference'] == 'R-7'

    again = client.post(f'/api/companies/acme/payrolls/{payroll_id}/pay')
    assert again.status_code == 409
    assert again.get_json()['code'] == 'PAYROLL_ALREADY_PAID'

    deleted = client.delete(f'/api/companies/acme/payrolls/{payroll_id}')
    assert deleted.status_code == 409


def test_bulk_pay(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)
    payroll_id = create(client).get_json()['payroll']['id']

    response = client.post('/api/companies/acme/payrolls/pay', json={'payroll_ids': [payroll_id, 404]})

    results = response.get_json()['results']
    assert results['updated'] == [payroll_id]
    assert results['failed'][0]['payroll_id'] == 404

    assert client.post('/api/companies/acme/payrolls/pay', json={}).status_code == 400


def test_delete_draft(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)
    payroll_id = create(client).get_json()['payroll']['id']

    assert client.delete(f'/api/companies/acme/payrolls/{payroll_id}').status_code == 200
    assert client.get(f'/api/companies/acme/payrolls/{payroll_id}').status_code == 404


@pytest.mark.parametrize('body', [
    {'bonuses': 'abc'},
    {'bonuses': -5000},
    {'allowances': {'housing': 'NaN'}},
    {'deductions': {'uniform': 'Infinity'}},
])
def test_invalid_amounts_are_400(client, make_employee, body):
    make_employee('e1', 20000, attended_month=FEB)

    response = create(client, **body)

    assert response.status_code == 400
    data = response.get_json()
    assert data['code'] == 'VALIDATION_ERROR'
    assert data['errors'][0]['field'] in ('bonuses', 'allowances.housing', 'deductions.uniform')


def test_update_ignores_route_keys_in_body(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)
    payroll_id = create(client).get_json()['payroll']['id']

    response = client.put(
        f'/api/companies/acme/payrolls/{payroll_id}',
        json={'company_id': 'other-co', 'payroll_id': 999, 'allowances': {'housing': 500}}
    )

    assert response.status_code == 200
    payroll = response.get_json()['payroll']
    assert payroll['id'] == payroll_id
    assert payroll['company_id'] == 'acme'
    assert payroll['total_allowances'] == '500.00'
    assert payroll['net_salary'] == '20500.00'


def test_list_payrolls(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)
    make_employee('e2', 20000, attended_month=FEB)
    client.post('/api/companies/acme/payrolls/generate', json={'month': 2, 'year': 2025})
    create(client, month=1)

    response = client.get('/api/companies/acme/payrolls?month=2&year=2025&limit=1&page=2')

    assert response.status_code == 200
    data = response.get_json()
    assert [p['employee_id'] for p in data['payrolls']] == ['e2']
    assert data['pagination'] == {'page': 2, 'limit': 1, 'total': 2, 'total_pages': 2}

    by_employee = client.get('/api/companies/acme/payrolls?employee_id=e1').get_json()['payrolls']
    assert [(p['year'], p['month']) for p in by_employee] == [(2025, 2), (2025, 1)]

    assert client.get('/api/companies/acme/payrolls?limit=0').status_code == 400


def test_last_payroll_for_employee(client, make_employee):
    make_employee('e1', 20000, attended_month=FEB)
    make_employee('e2', 20000)
    payroll_id = create(client).get_json()['payroll']['id']

    response = client.get('/api/companies/acme/employees/e1/payrolls/last')
    assert response.status_code == 200
    assert response.get_json()['payroll']['id'] == payroll_id

    assert client.get('/api/companies/acme/employees/e2/payrolls/last').get_json()['payroll'] is None
    assert client.get('/api/companies/acme/employees/ghost/payrolls/last').status_code == 404
