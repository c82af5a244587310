"""
services/exceptions.py

성적 원장(Score Ledger) 도메인 예외 모음.
- 모두 사용자에게 그대로 보여줄 수 있는 복구 가능한 오류
- code / status_code 는 middlewares/error_handler.py 에서 표준 에러 응답으로 변환할 때 사용
"""


class ScoreLedgerError(Exception):
    """성적 원장 예외의 공통 부모"""
    code = "SCORE_LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ScoreLedgerError):
    """점수 범위 초과 등 입력값 오류"""
    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class RecordLocked(ScoreLedgerError):
    """제출 완료된 성적(또는 공개된 학기)에 대한 수정 시도"""
    code = "RECORD_LOCKED"
    status_code = 409


class NothingToPublish(ScoreLedgerError):
    """제출된 성적이 하나도 없는 학기를 공개하려는 경우"""
    code = "NOTHING_TO_PUBLISH"
    status_code = 409


class NotFound(ScoreLedgerError):
    """성적/학기/학생 등 대상이 존재하지 않음"""
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, key=None):
        message = f"{resource} not found"
        if key is not None:
            message += f": {key}"
        super().__init__(message)


class PermissionDenied(ScoreLedgerError):
    """역할/배정/소유권 검사 실패"""
    code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)
