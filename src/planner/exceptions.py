"""WBS Plannerのカスタム例外定義

- NotFoundError: 参照先ID（project/phase/work/task/todo/user）が存在しない → 404
- ValidationError: 必須項目の欠落・不正な値 → 400
"""

from __future__ import annotations

from typing import Optional


class PlannerError(Exception):
    """WBS Planner基底例外"""

    pass


class NotFoundError(PlannerError):
    """参照先が存在しない"""

    pass


class ValidationError(PlannerError):
    """入力値の検証エラー"""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field

    def to_detail(self) -> dict:
        detail = {"message": str(self)}
        if self.field:
            detail["field"] = self.field
        return detail
