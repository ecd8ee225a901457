"""Shared fixtures for tests: in-memory database, settings, recording mail sender."""

from concurrent.futures import Executor, Future

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from membership.core.config import Settings
from membership.core.errors import NotificationError
from membership.core.security import hash_password
from membership.models import Base, User
from membership.schemas.enrollment import EnrollmentCreate
from membership.services.notifications import EmailMessage, NotificationDispatcher


def make_settings(**overrides: object) -> Settings:
    """Settings isolated from .env, with cheap bcrypt rounds."""
    values: dict[str, object] = {
        "DATABASE_URL": "sqlite://",
        "BCRYPT_ROUNDS": 4,
        "ADMIN_EMAIL": "admin@association.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory() -> sessionmaker:
    """Fresh in-memory SQLite database shared by every session from the factory."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_session() -> Session:
    return make_session_factory()()


class InlineExecutor(Executor):
    """Runs submitted work immediately so tests can observe deliveries."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


class RecordingSender:
    """Mail sender that records messages, or fails every send when fail=True."""

    name = "recording"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[EmailMessage] = []
        self.attempts = 0

    def send(self, message: EmailMessage) -> None:
        self.attempts += 1
        if self.fail:
            raise NotificationError("provider down", status_code=503)
        self.sent.append(message)

    def kinds(self) -> list[str]:
        return [m.kind for m in self.sent]


def make_dispatcher(sender: RecordingSender | None = None) -> NotificationDispatcher:
    return NotificationDispatcher(sender or RecordingSender(), executor=InlineExecutor())


def enrollment_payload(**overrides: object) -> EnrollmentCreate:
    """Valid applicant payload (Amina from Dakar) with optional overrides."""
    data: dict[str, object] = {
        "first_name": "Amina",
        "last_name": "Diallo",
        "email": "amina@x.com",
        "phone": "+221 77 000 00 00",
        "country": "Senegal",
        "city": "Dakar",
        "company_name": "Amina Textiles",
        "interests": ["formations"],
    }
    data.update(overrides)
    return EnrollmentCreate(**data)


def add_user(
    db: Session,
    email: str = "member@x.com",
    role: str = "member",
    password: str = "correct-horse",
    first_name: str = "Moussa",
) -> User:
    user = User(
        first_name=first_name,
        last_name="Ndiaye",
        email=email,
        password_hash=hash_password(password, rounds=4),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
