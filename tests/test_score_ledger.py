from datetime import date
from decimal import Decimal

import pytest

from models.exam_terms import PublicationState
from models.student_scores import StudentScore, SubmissionState
from models.teacher_assignments import TeacherAssignment
from schemas.exam_terms import ExamTermCreate
from schemas.scores import ScoreKey
from services.score_ledger import ScoreLedger
from services.exceptions import NothingToPublish, NotFound, PermissionDenied, RecordLocked, ValidationError

SCENARIO = {"class_score": 25, "quiz_score": 18, "exam_score": 35, "attendance_score": 9}


def _key(school, student_id, subject_id=None, class_id=None):
    return ScoreKey(
        student_id=student_id,
        subject_id=subject_id or school.math,
        class_id=class_id or school.class_a,
        exam_term_id=school.term_id,
    )


def _submit(ledger, actors, school, *student_ids):
    return ledger.submit(actors.teacher, list(student_ids), school.math, school.class_a, school.term_id)


# ==========================================================
# 성적 입력
# ==========================================================

def test_upsert_computes_total_and_grade(ledger, school, actors):
    record = ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)

    assert record.id is not None
    assert record.total_score == Decimal("87")
    assert record.grade == "A"
    assert record.submission_state == SubmissionState.DRAFT
    assert record.teacher_id == school.teacher_id


def test_upsert_treats_missing_components_as_zero(ledger, school, actors):
    record = ledger.upsert_score(actors.teacher, _key(school, school.ada), {"exam_score": 40})

    assert record.class_score == 0
    assert record.quiz_score == 0
    assert record.total_score == Decimal("40")
    assert record.grade == "D"


def test_upsert_rejects_out_of_range_component(ledger, school, actors, db):
    with pytest.raises(ValidationError) as exc_info:
        ledger.upsert_score(actors.teacher, _key(school, school.ada), {"quiz_score": 21})

    assert exc_info.value.field == "quiz_score"
    assert db.query(StudentScore).count() == 0


def test_upsert_updates_existing_draft_in_place(ledger, school, actors, db):
    first = ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)
    first_id = first.id
    second = ledger.upsert_score(
        actors.teacher, _key(school, school.ada), dict(SCENARIO, exam_score=40), remarks="Excellent"
    )

    assert second.id == first_id
    assert second.exam_score == Decimal("40")
    assert second.total_score == Decimal("92")
    assert second.grade == "A+"
    assert second.remarks == "Excellent"
    assert db.query(StudentScore).count() == 1


def test_upsert_after_submit_is_locked_and_leaves_values(ledger, school, actors, db):
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)
    _submit(ledger, actors, school, school.ada)

    with pytest.raises(RecordLocked):
        ledger.upsert_score(actors.teacher, _key(school, school.ada), {"class_score": 30})

    db.expire_all()
    record = db.query(StudentScore).one()
    assert record.class_score == Decimal("25")
    assert record.quiz_score == Decimal("18")
    assert record.exam_score == Decimal("35")
    assert record.attendance_score == Decimal("9")
    assert record.total_score == Decimal("87")
    assert record.submission_state == SubmissionState.SUBMITTED


def test_locked_record_wins_over_invalid_payload(ledger, school, actors):
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)
    _submit(ledger, actors, school, school.ada)

    with pytest.raises(RecordLocked):
        ledger.upsert_score(actors.teacher, _key(school, school.ada), {"quiz_score": 99})


def test_upsert_rejects_more_than_two_decimal_places(ledger, school, actors, db):
    with pytest.raises(ValidationError) as exc_info:
        ledger.upsert_score(actors.teacher, _key(school, school.ada),
                            {"class_score": Decimal("10.005"), "quiz_score": Decimal("10.005")})
    assert exc_info.value.field == "class_score"
    assert db.query(StudentScore).count() == 0


def test_stored_components_add_up_to_stored_total(ledger, school, actors, db):
    ledger.upsert_score(actors.teacher, _key(school, school.ada),
                        {"class_score": Decimal("10.25"), "quiz_score": Decimal("19.99"),
                         "exam_score": Decimal("33.3"), "attendance_score": Decimal("7.46")})

    db.expire_all()
    record = db.query(StudentScore).one()
    parts = record.class_score + record.quiz_score + record.exam_score + record.attendance_score
    assert parts == record.total_score == Decimal("71.00")
    assert record.grade == "B+"


def test_upsert_recovers_when_same_key_is_inserted_concurrently(ledger, school, actors, db,
                                                                session_factory, monkeypatch):
    key = _key(school, school.ada)
    real_get_score = ledger.repo.get_score
    calls = []

    # 첫 조회 직후 다른 세션이 같은 키로 레코드를 먼저 생성
    def get_score_racing_other_session(score_key):
        calls.append(score_key)
        if len(calls) == 1:
            other = ScoreLedger(session_factory())
            other.upsert_score(actors.teacher, score_key, {"exam_score": 10})
            other.db.close()
            return None
        return real_get_score(score_key)

    monkeypatch.setattr(ledger.repo, "get_score", get_score_racing_other_session)

    record = ledger.upsert_score(actors.teacher, key, SCENARIO)

    assert len(calls) == 2
    assert record.total_score == Decimal("87")
    db.expire_all()
    assert db.query(StudentScore).count() == 1


def test_upsert_into_published_term_is_locked(ledger, school, actors):
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)
    _submit(ledger, actors, school, school.ada)
    ledger.publish_term(actors.admin, school.term_id)

    with pytest.raises(RecordLocked):
        ledger.upsert_score(actors.teacher, _key(school, school.ben), SCENARIO)


def test_upsert_by_unassigned_teacher_is_denied(ledger, school, actors):
    with pytest.raises(PermissionDenied):
        ledger.upsert_score(actors.teacher2, _key(school, school.ada), SCENARIO)


def test_upsert_on_other_teachers_record_is_denied(ledger, school, actors, db):
    db.add(TeacherAssignment(teacher_id=school.teacher2_id, class_id=school.class_a,
                             subject_id=school.math, academic_year_id=school.year_id))
    db.commit()
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)

    with pytest.raises(PermissionDenied):
        ledger.upsert_score(actors.teacher2, _key(school, school.ada), {"class_score": 1})


@pytest.mark.parametrize("actor_name", ["admin", "ada", "parent"])
def test_upsert_requires_teacher_role(ledger, school, actors, actor_name):
    with pytest.raises(PermissionDenied):
        ledger.upsert_score(getattr(actors, actor_name), _key(school, school.ada), SCENARIO)


def test_upsert_student_outside_class_fails_validation(ledger, school, actors):
    with pytest.raises(ValidationError) as exc_info:
        ledger.upsert_score(actors.teacher, _key(school, school.cara), SCENARIO)
    assert exc_info.value.field == "student_id"


def test_upsert_unknown_keys_raise_not_found(ledger, school, actors):
    with pytest.raises(NotFound):
        ledger.upsert_score(actors.teacher, _key(school, 9999), SCENARIO)

    missing_term = ScoreKey(student_id=school.ada, subject_id=school.math,
                            class_id=school.class_a, exam_term_id=9999)
    with pytest.raises(NotFound):
        ledger.upsert_score(actors.teacher, missing_term, SCENARIO)


# ==========================================================
# 명단 로드
# ==========================================================

def test_load_roster_creates_draft_records_once(ledger, school, actors, db):
    roster = ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)

    assert [r.student_id for r in roster] == [school.ada, school.ben]
    assert all(r.submission_state == SubmissionState.DRAFT for r in roster)
    assert all(r.total_score == 0 and r.grade == "F" for r in roster)

    again = ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    assert [r.id for r in again] == [r.id for r in roster]
    assert db.query(StudentScore).count() == 2


def test_load_roster_keeps_existing_scores(ledger, school, actors):
    ledger.upsert_score(actors.teacher, _key(school, school.ben), SCENARIO)

    roster = ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    by_student = {r.student_id: r for r in roster}
    assert by_student[school.ben].total_score == Decimal("87")
    assert by_student[school.ada].total_score == 0


# ==========================================================
# 제출
# ==========================================================

def test_submit_reports_each_student(ledger, school, actors):
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)

    result = _submit(ledger, actors, school, school.ada, school.ben, 9999)

    assert result.updated == 1
    assert result.skipped == []
    assert result.not_found == [school.ben, 9999]
    assert result.forbidden == []


def test_submit_twice_skips_everything_second_time(ledger, school, actors, db):
    ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)

    first = _submit(ledger, actors, school, school.ada, school.ben)
    db.expire_all()
    before = {r.id: (r.total_score, r.submitted_at) for r in db.query(StudentScore).all()}

    second = _submit(ledger, actors, school, school.ada, school.ben)
    db.expire_all()
    after = {r.id: (r.total_score, r.submitted_at) for r in db.query(StudentScore).all()}

    assert first.updated == 2
    assert second.updated == 0
    assert second.skipped == [school.ada, school.ben]
    assert before == after


def test_submit_reports_records_owned_by_another_teacher(ledger, school, actors, db):
    db.add(TeacherAssignment(teacher_id=school.teacher2_id, class_id=school.class_a,
                             subject_id=school.math, academic_year_id=school.year_id))
    db.commit()
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)

    result = ledger.submit(actors.teacher2, [school.ada], school.math, school.class_a, school.term_id)

    assert result.updated == 0
    assert result.forbidden == [school.ada]


# ==========================================================
# 학기 공개
# ==========================================================

def test_publish_without_submitted_scores_fails(ledger, school, actors, db):
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)

    with pytest.raises(NothingToPublish):
        ledger.publish_term(actors.admin, school.term_id)

    term = ledger.get_term(actors.admin, school.term_id)
    assert term.publication_state == PublicationState.DRAFT


def test_publish_requires_admin(ledger, school, actors):
    with pytest.raises(PermissionDenied):
        ledger.publish_term(actors.teacher, school.term_id)


def test_publish_unknown_term(ledger, school, actors):
    with pytest.raises(NotFound):
        ledger.publish_term(actors.admin, 9999)


def test_publish_twice_never_reverts(ledger, school, actors):
    ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)
    _submit(ledger, actors, school, school.ada)

    first = ledger.publish_term(actors.admin, school.term_id)
    published_at = first.published_at
    second = ledger.publish_term(actors.admin, school.term_id)

    assert first.publication_state == PublicationState.PUBLISHED
    assert second.publication_state == PublicationState.PUBLISHED
    assert second.published_at == published_at


def test_submit_after_publish_reports_skipped_and_locked(ledger, school, actors, db):
    ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    _submit(ledger, actors, school, school.ada)
    ledger.publish_term(actors.admin, school.term_id)

    result = _submit(ledger, actors, school, school.ada, school.ben)

    assert result.updated == 0
    assert result.skipped == [school.ada]
    assert result.locked == [school.ben]
    db.expire_all()
    ben = db.query(StudentScore).filter(StudentScore.student_id == school.ben).one()
    assert ben.submission_state == SubmissionState.DRAFT


# ==========================================================
# 결과 조회
# ==========================================================

def test_student_sees_nothing_until_published(ledger, school, actors):
    ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    _submit(ledger, actors, school, school.ada, school.ben)

    assert ledger.view_results(actors.ada, school.term_id) == []
    assert ledger.view_results(actors.parent, school.term_id) == []


def test_admin_sees_drafts_and_submitted(ledger, school, actors):
    ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    _submit(ledger, actors, school, school.ada)

    records = ledger.view_results(actors.admin, school.term_id)
    states = {r.student_id: r.submission_state for r in records}
    assert states == {school.ada: SubmissionState.SUBMITTED, school.ben: SubmissionState.DRAFT}


def test_teacher_sees_only_own_records(ledger, school, actors):
    ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    ledger.load_roster(actors.teacher2, school.class_a, school.english, school.term_id)

    mine = ledger.view_results(actors.teacher, school.term_id)
    theirs = ledger.view_results(actors.teacher2, school.term_id)

    assert {r.subject_id for r in mine} == {school.math}
    assert {r.subject_id for r in theirs} == {school.english}
    assert len(mine) == 2


def test_student_and_parent_see_only_submitted_after_publish(ledger, school, actors):
    ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    ledger.load_roster(actors.teacher2, school.class_a, school.english, school.term_id)
    _submit(ledger, actors, school, school.ada, school.ben)
    ledger.publish_term(actors.admin, school.term_id)

    ada_results = ledger.view_results(actors.ada, school.term_id)
    parent_results = ledger.view_results(actors.parent, school.term_id)

    # 영어 성적은 아직 Draft → 보이지 않음
    assert [(r.student_id, r.subject_id) for r in ada_results] == [(school.ada, school.math)]
    assert [r.id for r in parent_results] == [r.id for r in ada_results]
    assert ledger.view_results(actors.stranger_parent, school.term_id) == []


def test_view_results_unknown_term(ledger, school, actors):
    with pytest.raises(NotFound):
        ledger.view_results(actors.ada, 9999)


def test_end_to_end_scenario(ledger, school, actors):
    entered = ledger.upsert_score(actors.teacher, _key(school, school.ada), SCENARIO)
    assert entered.total_score == Decimal("87")
    assert entered.grade == "A"

    result = _submit(ledger, actors, school, school.ada)
    assert result.updated == 1

    term = ledger.publish_term(actors.admin, school.term_id)
    assert term.publication_state == PublicationState.PUBLISHED

    records = ledger.view_results(actors.ada, school.term_id)
    assert len(records) == 1
    assert records[0].total_score == Decimal("87")
    assert records[0].grade == "A"
    assert records[0].submission_state == SubmissionState.SUBMITTED


# ==========================================================
# 제출 이력 / 시험 학기 관리
# ==========================================================

def test_list_submissions_returns_teachers_submitted_records(ledger, school, actors):
    ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    _submit(ledger, actors, school, school.ada)

    total, items = ledger.list_submissions(actors.teacher, page=1, size=10)
    assert total == 1
    assert [r.student_id for r in items] == [school.ada]

    total, items = ledger.list_submissions(actors.teacher2, page=1, size=10)
    assert total == 0


def test_create_term_validates_payload(ledger, school, actors):
    with pytest.raises(ValidationError):
        ledger.create_term(actors.admin, ExamTermCreate(term_name="   "))
    with pytest.raises(ValidationError):
        ledger.create_term(actors.admin, ExamTermCreate(
            term_name="Second Term", start_date=date(2025, 4, 1), end_date=date(2025, 1, 6)))
    with pytest.raises(NotFound):
        ledger.create_term(actors.admin, ExamTermCreate(term_name="Second Term", academic_year_id=9999))
    with pytest.raises(PermissionDenied):
        ledger.create_term(actors.teacher, ExamTermCreate(term_name="Second Term"))


def test_list_terms_by_role(ledger, school, actors):
    second = ledger.create_term(actors.admin, ExamTermCreate(
        term_name="Second Term 2025", academic_year_id=school.year_id))
    second_id = second.id
    ledger.load_roster(actors.teacher, school.class_a, school.math, school.term_id)
    _submit(ledger, actors, school, school.ada)
    ledger.publish_term(actors.admin, school.term_id)

    assert {t.id for t in ledger.list_terms(actors.admin)} == {school.term_id, second_id}
    assert [t.id for t in ledger.list_terms(actors.teacher)] == [second_id]
    assert [t.id for t in ledger.list_terms(actors.ada)] == [school.term_id]

    with pytest.raises(NotFound):
        ledger.get_term(actors.parent, second_id)
