import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint
from database.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class SubmissionState(str, enum.Enum):
    DRAFT = "draft"            # 교사 수정 가능
    SUBMITTED = "submitted"    # 제출 완료, 점수 잠금


class StudentScore(Base):
    __tablename__ = "student_scores"  # 학생별 과목 성적 원장

    id = Column(Integer, primary_key=True, index=True)                          # 성적 고유 ID (Primary Key)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)     # 학생 ID
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)     # 과목 ID
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)        # 학급 ID
    exam_term_id = Column(Integer, ForeignKey("exam_terms.id"), nullable=False) # 시험 학기 ID
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False)     # 작성(소유) 교사 ID

    class_score = Column(Numeric(5, 2), nullable=False, default=0)        # 수업 점수 (0~30)
    quiz_score = Column(Numeric(5, 2), nullable=False, default=0)         # 퀴즈 점수 (0~20)
    exam_score = Column(Numeric(5, 2), nullable=False, default=0)         # 시험 점수 (0~40)
    attendance_score = Column(Numeric(5, 2), nullable=False, default=0)   # 출석 점수 (0~10)
    total_score = Column(Numeric(5, 2), nullable=False, default=0)        # 합계 (파생값, 0~100)
    grade = Column(String(5), nullable=False, default="F")                # 등급 (파생값, 예: A+, B)
    remarks = Column(Text)                                                # 교사 코멘트

    submission_state = Column(
        Enum(
            SubmissionState,
            native_enum=False,
            length=20,
            values_callable=lambda states: [s.value for s in states],
        ),
        nullable=False,
        default=SubmissionState.DRAFT,
    )                                                                     # 제출 상태
    submitted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint(
            "student_id", "subject_id", "class_id", "exam_term_id",
            name="uq_score_student_subject_class_term",
        ),
    )
