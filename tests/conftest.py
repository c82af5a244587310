import os

os.environ.setdefault("INTERNAL_API_TOKEN", "test-gateway-token")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import Base, get_db
from models.academic_years import AcademicYear
from models.classes import Class
from models.exam_terms import ExamTerm, PublicationState
from models.parent_students import ParentStudent
from models.student_scores import StudentScore  # noqa: F401  (테이블 등록)
from models.students import Student
from models.subjects import Subject
from models.teacher_assignments import TeacherAssignment
from models.teachers import Teacher
from schemas.auth import Actor, Role
from services.score_ledger import ScoreLedger

GATEWAY_TOKEN = os.environ["INTERNAL_API_TOKEN"]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def school(db):
    """
    학년도 1, 시험 학기 1, 학급 2, 과목 2, 교사 2, 학생 3, 학부모 1
    - teacher    : JSS 1A 수학 담당
    - teacher2   : JSS 1A 영어 담당
    - ada, ben   : JSS 1A / cara : JSS 1B
    - parent     : ada 의 보호자
    """
    year = AcademicYear(year_name="2024/2025", start_date=date(2024, 9, 1),
                        end_date=date(2025, 7, 31), is_current=True)
    db.add(year)
    db.flush()

    term = ExamTerm(term_name="First Term 2024", academic_year_id=year.id,
                    start_date=date(2024, 9, 9), end_date=date(2024, 12, 13),
                    publication_state=PublicationState.DRAFT)
    class_a = Class(class_name="JSS 1A", grade_level=7, section="A", academic_year_id=year.id)
    class_b = Class(class_name="JSS 1B", grade_level=7, section="B", academic_year_id=year.id)
    math = Subject(subject_name="Mathematics", subject_code="MTH")
    english = Subject(subject_name="English Language", subject_code="ENG")
    teacher = Teacher(user_id="user_teacher", teacher_code="T-001", full_name="Grace Hopper")
    teacher2 = Teacher(user_id="user_teacher2", teacher_code="T-002", full_name="Alan Turing")
    db.add_all([term, class_a, class_b, math, english, teacher, teacher2])
    db.flush()

    ada = Student(user_id="user_ada", student_code="S-001", full_name="Ada Lovelace", class_id=class_a.id)
    ben = Student(user_id="user_ben", student_code="S-002", full_name="Ben Okafor", class_id=class_a.id)
    cara = Student(user_id="user_cara", student_code="S-003", full_name="Cara Mensah", class_id=class_b.id)
    db.add_all([ada, ben, cara])
    db.flush()

    db.add_all([
        TeacherAssignment(teacher_id=teacher.id, class_id=class_a.id, subject_id=math.id,
                          academic_year_id=year.id),
        TeacherAssignment(teacher_id=teacher2.id, class_id=class_a.id, subject_id=english.id,
                          academic_year_id=year.id),
        ParentStudent(parent_user_id="user_parent", student_id=ada.id),
    ])
    db.commit()

    return SimpleNamespace(
        year_id=year.id,
        term_id=term.id,
        class_a=class_a.id,
        class_b=class_b.id,
        math=math.id,
        english=english.id,
        teacher_id=teacher.id,
        teacher2_id=teacher2.id,
        ada=ada.id,
        ben=ben.id,
        cara=cara.id,
    )


@pytest.fixture
def actors():
    return SimpleNamespace(
        admin=Actor(user_id="user_admin", role=Role.ADMIN),
        teacher=Actor(user_id="user_teacher", role=Role.TEACHER),
        teacher2=Actor(user_id="user_teacher2", role=Role.TEACHER),
        ada=Actor(user_id="user_ada", role=Role.STUDENT),
        ben=Actor(user_id="user_ben", role=Role.STUDENT),
        parent=Actor(user_id="user_parent", role=Role.PARENT),
        stranger_parent=Actor(user_id="user_nobody", role=Role.PARENT),
    )


@pytest.fixture
def ledger(db):
    return ScoreLedger(db)


@pytest.fixture
def client(session_factory):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id: str, role: str) -> dict:
    return {
        "Authorization": f"Bearer {GATEWAY_TOKEN}",
        "X-User-Id": user_id,
        "X-User-Role": role,
    }


@pytest.fixture
def headers():
    return auth_headers
