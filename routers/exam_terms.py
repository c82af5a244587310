from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import get_actor
from schemas.auth import Actor
from schemas.exam_terms import ExamTerm as ExamTermSchema, ExamTermCreate
from services.score_ledger import ScoreLedger

router = APIRouter(prefix="/exam-terms", tags=["시험 학기"])


def serialize_term(term) -> dict:
    return ExamTermSchema.model_validate(term).model_dump(mode="json")


# ==========================================================
# [1단계] 시험 학기 CRUD
# ==========================================================

# ✅ [CREATE] 시험 학기 추가 (관리자)
@router.post("", status_code=201)
def create_exam_term(payload: ExamTermCreate, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    term = ScoreLedger(db).create_term(actor, payload)
    return {
        "success": True,
        "data": serialize_term(term),
        "message": "Exam term created"
    }


# ✅ [READ] 역할별 시험 학기 목록
@router.get("")
def list_exam_terms(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    terms = ScoreLedger(db).list_terms(actor)
    return {
        "success": True,
        "data": [serialize_term(t) for t in terms],
        "message": "Exam terms loaded"
    }


# ✅ [READ] 시험 학기 상세
@router.get("/{term_id}")
def read_exam_term(term_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    term = ScoreLedger(db).get_term(actor, term_id)
    return {
        "success": True,
        "data": serialize_term(term),
        "message": "Exam term loaded"
    }


# ==========================================================
# [2단계] 성적 공개 (관리자, 되돌릴 수 없음)
# ==========================================================

# ✅ [PUBLISH] 제출된 성적을 학생/학부모에게 공개
@router.post("/{term_id}/publish")
def publish_exam_term(term_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    term = ScoreLedger(db).publish_term(actor, term_id)
    return {
        "success": True,
        "data": serialize_term(term),
        "message": "Results published"
    }
