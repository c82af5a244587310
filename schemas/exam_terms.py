from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models.exam_terms import PublicationState


# ✅ 생성(Create) 요청용 스키마
# → id / 공개 상태는 서버에서 관리하므로 제외
class ExamTermCreate(BaseModel):
    term_name: str                             # 학기명 (예: First Term 2024)
    academic_year_id: Optional[int] = None     # 학년도 ID
    start_date: Optional[date] = None          # 시작일
    end_date: Optional[date] = None            # 종료일


# ✅ 응답(Response) / 조회(Read) 용 스키마
class ExamTerm(ExamTermCreate):
    id: int
    publication_state: PublicationState
    published_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)
