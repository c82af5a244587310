import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, ForeignKey
from database.db import Base


class PublicationState(str, enum.Enum):
    DRAFT = "draft"            # 교사/관리자만 조회 가능
    PUBLISHED = "published"    # 학생/학부모에게 공개 (되돌릴 수 없음)


class ExamTerm(Base):
    __tablename__ = "exam_terms"  # 시험 학기(성적 집계 기간) 테이블

    id = Column(Integer, primary_key=True, index=True)                         # 시험 학기 고유 ID
    term_name = Column(String(100), nullable=False)                           # 학기명 (예: First Term 2024)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"))       # 학년도 ID
    start_date = Column(Date)                                                 # 시작일
    end_date = Column(Date)                                                   # 종료일
    publication_state = Column(
        Enum(
            PublicationState,
            native_enum=False,
            length=20,
            values_callable=lambda states: [s.value for s in states],
        ),
        nullable=False,
        default=PublicationState.DRAFT,
    )                                                                         # 공개 상태
    published_at = Column(DateTime(timezone=True))                            # 공개 시각
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
