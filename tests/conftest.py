import os
import uuid

import pytest

# must be set before core.database creates its engine
os.environ.setdefault("BACHES_DATABASE_URL", "sqlite:///:memory:")

from core.database import SessionLocal, reset_db  # noqa: E402
from core.domain import Severity, Status  # noqa: E402
from core.repository import create_report, create_user  # noqa: E402


@pytest.fixture(autouse=True)
def session_factory():
    reset_db()
    yield SessionLocal


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from web.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def seed(session_factory):
    """Insert rows directly; returns a small helper namespace."""

    class Seeder:
        def user(self, name="Ana", role="USER"):
            user_id = str(uuid.uuid4())
            with session_factory() as session:
                create_user(session, user_id, name, f"{user_id}@example.com", role)
                session.commit()
            return user_id

        def report(
            self,
            author_id,
            lat,
            lon,
            status=Status.PENDING,
            severity=Severity.MEDIUM,
            created_at=1_700_000_000_000,
            with_location=True,
            address=None,
        ):
            report_id = str(uuid.uuid4())
            with session_factory() as session:
                create_report(
                    session,
                    report_id=report_id,
                    author_id=author_id,
                    description="Bache en la calle",
                    severity=severity,
                    latitude=lat,
                    longitude=lon,
                    address=address,
                    status=status,
                    created_at=created_at,
                    with_location=with_location,
                )
                session.commit()
            return report_id

    return Seeder()
