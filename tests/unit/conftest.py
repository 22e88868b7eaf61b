import os
from pathlib import Path

import pytest
import yaml

os.environ.setdefault("CONFIG_TYPE", "app.config.UnitTestConfig")

from app import create_app, db  # noqa: E402
from app.blueprints.auth.models import User  # noqa: E402

from utils import login_user  # noqa: E402


def pytest_collection_modifyitems(config, items):
    """
    Check for tests to skip
    """

    filepath = Path(__file__).resolve().parent / "config.yml"
    with open(filepath) as file:
        settings = yaml.safe_load(file)

    if settings["run_slow_tests"]:
        # do not skip slow tests
        return
    skip_slow = pytest.mark.skip(reason="need run_slow_tests=True in config.yml to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture()
def app():
    app = create_app()

    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope="session")
def admin_credentials():
    return {
        "username": "admin",
        "email": "admin@example.org",
        "password": "AdminPass123",
        "full_name": "Test Admin",
        "role": "admin",
    }


@pytest.fixture(scope="session")
def user_credentials():
    return {
        "username": "supervisor",
        "email": "supervisor@example.org",
        "password": "SupervisorPass123",
        "full_name": "Field Supervisor",
        "role": "user",
    }


@pytest.fixture(scope="session")
def other_user_credentials():
    return {
        "username": "other_supervisor",
        "email": "other@example.org",
        "password": "OtherPass123",
        "full_name": "Other Supervisor",
        "role": "user",
    }


@pytest.fixture(autouse=True)
def setup_database(app, admin_credentials, user_credentials, other_user_credentials):
    """
    Set up the schema and the test users on a per-test basis
    """

    with app.app_context():
        db.create_all()

        for credentials in (
            admin_credentials,
            user_credentials,
            other_user_credentials,
        ):
            db.session.add(
                User(
                    username=credentials["username"],
                    email=credentials["email"],
                    full_name=credentials["full_name"],
                    password=credentials["password"],
                    role=credentials["role"],
                )
            )
        db.session.commit()

    yield

    # Clean up the database after each test
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def admin_headers(client, admin_credentials):
    """
    Log in the admin as a setup step and return its auth headers
    """
    return login_user(client, admin_credentials)


@pytest.fixture()
def user_headers(client, user_credentials):
    """
    Log in the field supervisor as a setup step and return its auth headers
    """
    return login_user(client, user_credentials)


@pytest.fixture()
def other_user_headers(client, other_user_credentials):
    return login_user(client, other_user_credentials)


@pytest.fixture()
def user_uid(app, user_credentials):
    with app.app_context():
        return (
            User.query.filter_by(username=user_credentials["username"]).first().user_uid
        )
