"""
Community Watch - Test Configuration and Fixtures
"""
import os
import asyncio
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncGenerator, List
import pytest
import aiosmtplib
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment
_test_dir = Path(tempfile.mkdtemp(prefix="community-watch-tests-"))
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{_test_dir / 'test.db'}"

os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = TEST_DATABASE_URL
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['UPLOAD_PATH'] = str(_test_dir / 'uploads')
os.environ['LOG_FILE'] = str(_test_dir / 'logs' / 'test.log')
os.environ['SMTP_USER'] = ''

from community_watch.main import app
from community_watch.core.database import Base, get_db
from community_watch.core.security import get_password_hash, issue_token
from community_watch.models import User, UserRole, EmailGroup, Report
from community_watch.services.email_service import get_mail_sender
from community_watch.services.storage_service import LocalBlobStore, get_blob_store

fake = Faker()

# Test database setup
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
    connect_args={"timeout": 30},
)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@dataclass
class SentMail:
    recipients: List[str]
    subject: str
    body: str
    attachments: list = field(default_factory=list)


class RecordingMailer:
    """Mail sender that keeps messages in memory; can be slowed down or made to fail per address"""

    def __init__(self, delay: float = 0.0, fail_for=()):
        self.delay = delay
        self.fail_for = set(fail_for)
        self.sent: List[SentMail] = []

    async def send(self, recipients, subject, body, attachments=()):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_for.intersection(recipients):
            raise aiosmtplib.SMTPException("Mailbox unavailable")
        self.sent.append(SentMail(list(recipients), subject, body, list(attachments)))


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory():
    """Factory for extra sessions (one per concurrent caller)"""
    return TestSessionLocal


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "uploads")


@pytest.fixture
async def client(db_session: AsyncSession, mailer: RecordingMailer, blob_store: LocalBlobStore) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database, mail and storage overrides"""
    async def override_get_db():
        # One session per request, like production
        async with TestSessionLocal() as session:
            try:
                yield session
                if session.new or session.dirty or session.deleted:
                    await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mail_sender] = lambda: mailer
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, username: str, password: str, role: UserRole) -> User:
    user = User(
        username=username,
        hashed_password=get_password_hash(password),
        role=role.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await _create_user(db_session, fake.user_name(), 'adminpassword123', UserRole.ADMIN)


@pytest.fixture
async def superadmin_user(db_session: AsyncSession) -> User:
    """Create a superadmin test user"""
    return await _create_user(db_session, f"super-{fake.user_name()}", 'superpassword123', UserRole.SUPERADMIN)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    """Generate authentication headers for admin user"""
    return {'Authorization': f'Bearer {issue_token(admin_user)}'}


@pytest.fixture
def superadmin_headers(superadmin_user: User) -> dict:
    """Generate authentication headers for superadmin user"""
    return {'Authorization': f'Bearer {issue_token(superadmin_user)}'}


@pytest.fixture
async def email_groups(db_session: AsyncSession) -> List[EmailGroup]:
    """Two forwarding groups with distinct recipients"""
    groups = [
        EmailGroup(name="St Mungos Team", emails="outreach@stmungos.test, duty@stmungos.test"),
        EmailGroup(name="Hither Green Safer Neighborhoods", emails="snt@police.test"),
    ]
    db_session.add_all(groups)
    await db_session.commit()
    for group in groups:
        await db_session.refresh(group)
    return groups


@pytest.fixture
async def report(db_session: AsyncSession) -> Report:
    """A stored report without evidence"""
    report = Report(
        reference_number="CW-4321",
        type="antisocial behaviour",
        location="Hither Green Lane, Lewisham",
        date="2024-03-05",
        time="21:30",
        description=fake.sentence(),
        evidence=[],
    )
    db_session.add(report)
    await db_session.commit()
    await db_session.refresh(report)
    return report
