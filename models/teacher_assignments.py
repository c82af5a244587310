from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from database.db import Base

class TeacherAssignment(Base):
    __tablename__ = "teacher_assignments"  # 교사 ↔ (학급, 과목) 배정 테이블

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False)              # 담당 교사
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)                 # 담당 학급
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)              # 담당 과목
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=True)   # 배정 학년도

    __table_args__ = (
        UniqueConstraint(
            "teacher_id", "class_id", "subject_id", "academic_year_id",
            name="uq_teacher_class_subject_year",
        ),
    )
