import pytest
from app import create_app
import os
import tempfile

@pytest.fixture
def client(tmp_path):
    # Create a temporary file to isolate the database for each test session
    db_fd, db_path = tempfile.mkstemp()

    # Configure app for testing
    app = create_app({
        'TESTING': True,
        'DATABASE': db_path,
        'BACKUP_DIR': str(tmp_path / 'backups'),
        'SECRET_KEY': 'dev-key-for-testing'
    })

    with app.test_client() as client:
        yield client

    # Cleanup
    os.close(db_fd)
    os.unlink(db_path)

def test_health(client):
    """Test that the app answers."""
    rv = client.get('/health')
    assert rv.status_code == 200
    assert rv.get_json()['success'] is True

def test_empty_plot_list(client):
    """Test that a fresh database lists no plots."""
    rv = client.get('/api/plots')
    assert rv.status_code == 200
    assert rv.get_json()['plots'] == []

def test_empty_dashboard(client):
    """Test that the dashboard of an empty database is all zeros."""
    rv = client.get('/api/dashboard')
    assert rv.status_code == 200
    dashboard = rv.get_json()['dashboard']
    assert dashboard['total_completed_cycles'] == 0
    assert dashboard['total_harvest_kg'] == 0

def test_writes_require_csrf_token(client):
    """Test that CSRF protection rejects writes without a token."""
    rv = client.post('/api/plots', json={'name': 'Plot A'})
    assert rv.status_code == 400

def test_writes_accept_csrf_token(client):
    """Test that a token from /api/csrf-token is accepted."""
    token = client.get('/api/csrf-token').get_json()['csrf_token']
    rv = client.post('/api/plots', json={
        'name': 'Plot A',
        'planting_date': '2025-01-01',
        'days_to_maturity': 135,
        'days_to_open_netting': 75,
    }, headers={'X-CSRFToken': token})
    assert rv.status_code == 201
