import pytest
from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from classroom_invites.config import settings
from classroom_invites.database import Base, create_db_engine
from classroom_invites.dependencies import get_db, create_access_token
from classroom_invites.main import app
from classroom_invites.models.enrollment import Enrollment
from classroom_invites.models.invite_code import InviteCode
from classroom_invites.models.school_class import SchoolClass
from classroom_invites.models.user import User

test_engine = create_db_engine(settings.test_database_url)
TestSession = sessionmaker(bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_connection():
    connection = test_engine.connect()
    transaction = connection.begin()
    yield connection
    transaction.rollback()
    connection.close()


@pytest.fixture
def db(db_connection):
    session = TestSession(bind=db_connection)
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def committed_db():
    """Sessions that really commit, for tests spanning several connections.

    Yields a session factory; every table is emptied afterwards.
    """
    yield TestSession
    with test_engine.begin() as conn:
        for model in (Enrollment, InviteCode, SchoolClass, User):
            conn.execute(delete(model))


def make_user(db, email, role="student", name=None, password="password123"):
    user = User(email=email, name=name or email.split("@")[0], role=role, password_hash="x")
    user.set_password(password)
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def admin_user(db):
    return make_user(db, "admin@test.com", role="admin", name="Admin", password="admin123")


@pytest.fixture
def teacher_user(db):
    return make_user(db, "teacher@test.com", role="teacher", name="Teacher", password="teacher123")


@pytest.fixture
def student_user(db):
    return make_user(db, "student@test.com", role="student", name="Student", password="student123")


@pytest.fixture
def admin_token(admin_user):
    return create_access_token(admin_user)


@pytest.fixture
def teacher_token(teacher_user):
    return create_access_token(teacher_user)


@pytest.fixture
def student_token(student_user):
    return create_access_token(student_user)


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def teacher_headers(teacher_token):
    return {"Authorization": f"Bearer {teacher_token}"}


@pytest.fixture
def student_headers(student_token):
    return {"Authorization": f"Bearer {student_token}"}


@pytest.fixture
def sample_class(db, teacher_user):
    school_class = SchoolClass(
        name="Turma A", period="2025.1", capacity=40, owner_id=teacher_user.id
    )
    db.add(school_class)
    db.flush()
    return school_class


@pytest.fixture
def enrolled_class(db, sample_class, student_user):
    enrollment = Enrollment(
        class_id=sample_class.id, user_id=student_user.id, role="student"
    )
    db.add(enrollment)
    db.flush()
    return sample_class


@pytest.fixture
def user_factory(db):
    """Create users without hashing a password, for bulk scenarios."""
    created = []

    def factory(email=None, role="student"):
        email = email or f"user{len(created) + 1}@test.com"
        user = User(email=email, name=email.split("@")[0], role=role, password_hash="x")
        db.add(user)
        db.flush()
        created.append(user)
        return user

    return factory


@pytest.fixture
def bound_session_factory(db_connection):
    """Session factory joined to the per-test transaction, for code that opens its own sessions."""
    return lambda: TestSession(bind=db_connection)


@pytest.fixture
def engine():
    return test_engine
