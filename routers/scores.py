from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db
from dependencies.security import get_actor
from schemas.auth import Actor
from schemas.common import make_meta
from schemas.scores import ScoreRecord, ScoreUpsert, SubmitRequest
from services.score_ledger import ScoreLedger

router = APIRouter(prefix="/scores", tags=["성적 입력"])


def serialize_score(record) -> dict:
    return ScoreRecord.model_validate(record).model_dump(mode="json")


# ==========================================================
# [1단계] 성적 입력 (교사)
# ==========================================================

# ✅ [UPSERT] 구성 점수 저장 → 합계/등급 재계산 후 반환
@router.put("")
def upsert_score(payload: ScoreUpsert, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    record = ScoreLedger(db).upsert_score(
        actor, payload.key(), payload.components(), remarks=payload.remarks
    )
    return {
        "success": True,
        "data": serialize_score(record),
        "message": "Score saved as draft"
    }


# ✅ [ROSTER] 학급/과목/학기 명단 로드 (없는 레코드는 Draft 로 생성)
@router.get("/roster")
def load_roster(
    class_id: int,
    subject_id: int,
    exam_term_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    records = ScoreLedger(db).load_roster(actor, class_id, subject_id, exam_term_id)
    return {
        "success": True,
        "data": [serialize_score(r) for r in records],
        "message": f"Roster loaded ({len(records)} students)"
    }


# ==========================================================
# [2단계] 제출 (교사)
# ==========================================================

# ✅ [SUBMIT] 일괄 제출 (항목별 결과 보고)
@router.post("/submit")
def submit_scores(payload: SubmitRequest, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    result = ScoreLedger(db).submit(
        actor, payload.student_ids, payload.subject_id, payload.class_id, payload.exam_term_id
    )
    return {
        "success": True,
        "data": result.model_dump(),
        "message": f"{result.updated} scores submitted, {len(result.skipped)} already submitted"
    }


# ✅ [READ] 교사 본인 제출 이력
@router.get("/submissions")
def list_submissions(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    total, records = ScoreLedger(db).list_submissions(actor, page=page, size=size)
    return {
        "success": True,
        "data": [serialize_score(r) for r in records],
        "meta": make_meta(total, page, size).model_dump(),
        "message": "Submitted scores loaded"
    }
