from datetime import date

from sqlalchemy.orm import Session

from database.db import SessionLocal
from models.academic_years import AcademicYear
from models.classes import Class
from models.exam_terms import ExamTerm, PublicationState
from models.parent_students import ParentStudent
from models.students import Student
from models.subjects import Subject
from models.teacher_assignments import TeacherAssignment
from models.teachers import Teacher


# ✅ 로컬 개발용 최소 기준 데이터 (학년도 1 / 시험 학기 1 / 학급 1 / 과목 2 / 교사 1 / 학생 2 / 학부모 1)
def seed_demo():
    db: Session = SessionLocal()

    year = AcademicYear(year_name="2024/2025", start_date=date(2024, 9, 1),
                        end_date=date(2025, 7, 31), is_current=True)
    db.add(year)
    db.flush()

    klass = Class(class_name="JSS 1A", grade_level=7, section="A", academic_year_id=year.id)
    math = Subject(subject_name="Mathematics", subject_code="MTH")
    english = Subject(subject_name="English Language", subject_code="ENG")
    teacher = Teacher(user_id="demo_teacher", teacher_code="T-001", full_name="Grace Hopper")
    term = ExamTerm(term_name="First Term 2024", academic_year_id=year.id,
                    start_date=date(2024, 9, 9), end_date=date(2024, 12, 13),
                    publication_state=PublicationState.DRAFT)
    db.add_all([klass, math, english, teacher, term])
    db.flush()

    ada = Student(user_id="demo_student", student_code="S-001", full_name="Ada Lovelace", class_id=klass.id)
    ben = Student(user_id="demo_student2", student_code="S-002", full_name="Ben Okafor", class_id=klass.id)
    db.add_all([ada, ben])
    db.flush()

    db.add_all([
        TeacherAssignment(teacher_id=teacher.id, class_id=klass.id, subject_id=math.id, academic_year_id=year.id),
        TeacherAssignment(teacher_id=teacher.id, class_id=klass.id, subject_id=english.id, academic_year_id=year.id),
        ParentStudent(parent_user_id="demo_parent", student_id=ada.id),
    ])

    db.commit()
    db.close()
    print("✅ 데모 기준 데이터 입력 완료")


if __name__ == "__main__":
    seed_demo()
