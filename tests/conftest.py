from datetime import datetime, timezone

import pytest

from rent_bot.config import AdminConfig
from rent_bot.database import UserRecord, UserStore
from rent_bot.events import Sender
from rent_bot.services.flow import FlowController
from rent_bot.services.session import SessionRegistry

ADMIN_ID = 1000
TENANT_ID = 42
NOW = datetime(2025, 3, 15, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return UserStore(tmp_path / "users.json")


@pytest.fixture
def admin_config():
    return AdminConfig(
        admins=(ADMIN_ID, 2000),
        card_number="8600 1234 5678 9012",
        main_admin_username="@house_admin",
    )


@pytest.fixture
def sessions():
    return SessionRegistry()


@pytest.fixture
def flow(store, admin_config, sessions):
    return FlowController(store, admin_config, sessions, clock=lambda: NOW)


@pytest.fixture
def tenant():
    return Sender(id=TENANT_ID, first_name="Aziz", last_name="Karimov", username="aziz")


@pytest.fixture
def admin():
    return Sender(id=ADMIN_ID, first_name="Admin", username="boss")


@pytest.fixture
def registered_tenant(store, tenant):
    store.save_users(
        [
            UserRecord(
                id=tenant.id,
                first_name=tenant.first_name,
                last_name=tenant.last_name,
                username=tenant.username,
                phone="+998901234567",
                apartment="12",
                lang="ru",
            )
        ]
    )
    return tenant
