from database.db import Base, engine

# ✅ 테이블 등록을 위해 모델 전부 import
from models.academic_years import AcademicYear  # noqa: F401
from models.classes import Class  # noqa: F401
from models.exam_terms import ExamTerm  # noqa: F401
from models.parent_students import ParentStudent  # noqa: F401
from models.student_scores import StudentScore  # noqa: F401
from models.students import Student  # noqa: F401
from models.subjects import Subject  # noqa: F401
from models.teacher_assignments import TeacherAssignment  # noqa: F401
from models.teachers import Teacher  # noqa: F401


def create_tables():
    Base.metadata.create_all(bind=engine)
    print("✅ 성적 원장 테이블 생성 완료")


if __name__ == "__main__":
    create_tables()
