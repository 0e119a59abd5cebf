"""HTTP API tests."""
import pytest


@pytest.fixture
def user_id(client):
    response = client.post('/api/v1/users', json={'name': 'Api User'})
    assert response.status_code == 201
    return response.get_json()['data']['id']


def _create_bucket(client, user_id, **payload):
    response = client.post(f'/api/v1/users/{user_id}/buckets', json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'


def test_distribution_flow(client, user_id):
    client.post(f'/api/v1/users/{user_id}/income', json={'amount': '1000', 'is_recurring': True})
    rent = _create_bucket(client, user_id, name='Rent', mode='spend', allocation_type='amount', planned_amount='700')
    _create_bucket(client, user_id, name='Food', mode='spend', allocation_type='amount', planned_amount='500')

    response = client.get(f'/api/v1/users/{user_id}/distribution')
    data = response.get_json()['data']
    assert response.status_code == 200
    assert data['is_over_planned'] is True
    assert data['total_income']['amount'] == 1000.0
    assert data['total_funded']['amount'] == 1000.0
    assert data['over_planned_by']['formatted'] == '$200.00'

    response = client.post(f'/api/v1/users/{user_id}/distribution')
    assert response.get_json()['data']['funding_ratio'] == 0.8333

    bucket = client.get(f"/api/v1/buckets/{rent['id']}").get_json()['data']
    assert bucket['funded_amount'] == 583.33
    assert bucket['spent_amount'] == 0.0


def test_expense_and_spent_endpoint(client, user_id):
    food = _create_bucket(client, user_id, name='Food', mode='spend', allocation_type='amount', planned_amount='50')

    response = client.post(f'/api/v1/users/{user_id}/expenses',
                           json={'bucket_id': food['id'], 'amount': '12.50', 'date': '2025-01-10'})
    assert response.status_code == 201
    expense_id = response.get_json()['data']['id']

    spent = client.get(f"/api/v1/buckets/{food['id']}/spent?start=2025-01-01&end=2025-02-01").get_json()['data']
    assert spent['spent']['amount'] == 12.5

    listing = client.get(f'/api/v1/users/{user_id}/expenses?ym=2025-01').get_json()['data']
    assert listing['pagination']['total'] == 1

    assert client.delete(f'/api/v1/expenses/{expense_id}').status_code == 200
    spent = client.get(f"/api/v1/buckets/{food['id']}/spent").get_json()['data']
    assert spent['spent']['amount'] == 0.0


def test_invalid_configuration_is_400(client, user_id):
    response = client.post(f'/api/v1/users/{user_id}/buckets',
                           json={'name': 'Goal', 'mode': 'save', 'target_amount': '100', 'contribution_type': 'amount'})

    body = response.get_json()
    assert response.status_code == 400
    assert body['success'] is False
    assert body['error']['code'] == 'invalid_configuration'


def test_mode_change_is_rejected(client, user_id):
    food = _create_bucket(client, user_id, name='Food', mode='spend', allocation_type='amount', planned_amount='50')

    response = client.put(f"/api/v1/buckets/{food['id']}", json={'mode': 'save'})

    assert response.status_code == 400


def test_missing_records_are_404(client, user_id):
    assert client.get('/api/v1/buckets/999').status_code == 404
    assert client.get('/api/v1/users/999/buckets').status_code == 404
    response = client.delete('/api/v1/income/999')
    assert response.status_code == 404
    assert response.get_json()['error']['code'] == 'not_found'


def test_unknown_route_uses_envelope(client):
    response = client.get('/api/v1/nothing-here')

    assert response.status_code == 404
    assert response.get_json()['success'] is False


def test_rollover_endpoints(client, user_id):
    _create_bucket(client, user_id, name='Food', mode='spend', allocation_type='amount', planned_amount='50')
    _create_bucket(client, user_id, name='Goal', mode='save', target_amount='500',
                   contribution_type='amount', contribution_amount='100')

    response = client.post(f'/api/v1/users/{user_id}/rollover')
    data = response.get_json()['data']
    assert response.status_code == 200
    assert data['buckets_processed'] == 2
    goal = next(r for r in data['results'] if r['mode'] == 'save')
    assert goal['new_balance'] == 100.0

    # Buckets were just rolled into this month, so the guard never re-runs them
    check = client.post(f'/api/v1/users/{user_id}/rollover/check').get_json()['data']
    assert check['performed'] is False

    history = client.get(f'/api/v1/users/{user_id}/rollover/history').get_json()['data']
    assert len(history['runs']) == 1
    assert len(history['runs'][0]['entries']) == 2


def test_recurring_expense_endpoints(client, user_id):
    food = _create_bucket(client, user_id, name='Food', mode='spend', allocation_type='amount', planned_amount='50')

    response = client.post(f'/api/v1/users/{user_id}/recurring-expenses',
                           json={'bucket_id': food['id'], 'name': 'Gym', 'amount': '20', 'day_of_month': 5})
    assert response.status_code == 201
    template_id = response.get_json()['data']['id']

    listing = client.get(f'/api/v1/users/{user_id}/recurring-expenses').get_json()['data']
    assert [t['id'] for t in listing['recurring_expenses']] == [template_id]

    assert client.delete(f'/api/v1/recurring-expenses/{template_id}').status_code == 200
