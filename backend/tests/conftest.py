import os, sys, pytest
# Ensure backend directory is on path so 'pizzeria' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from pizzeria import create_app, get_db
from pizzeria.models.base import Base
# Import all model modules to ensure tables are registered before create_all
import pizzeria.models.store_settings  # noqa: F401
import pizzeria.models.customer  # noqa: F401
import pizzeria.models.menu  # noqa: F401
import pizzeria.models.order  # noqa: F401
import pizzeria.models.review  # noqa: F401
import pizzeria.models.audit  # noqa: F401

TEST_CONFIG = {
    'TESTING': True,
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
    'SUPPORT_PHONE': '(21) 97540-6476',
    'STAFF_ADMIN_PASSWORD': 'admin-pass',
    'STAFF_PASSWORD': 'staff-pass',
    'RABBIT_HOST': None,
}

@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app(TEST_CONFIG)
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app

@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()

@pytest.fixture()
def gate(app_instance):
    return app_instance.extensions['store_gate']

@pytest.fixture()
def feed(app_instance):
    return app_instance.extensions['change_feed']
