"""実績日からのステータス導出

Phase/Work/Taskのstatusは (actual_start有無, actual_end有無) の純関数。
空文字・空白のみの値は「未設定」と同じ扱い。
"""

from __future__ import annotations

from typing import Optional

from .models import PlanStatus


def is_present(value: Optional[str]) -> bool:
    """trim後に空でない値ならTrue"""
    return bool(value and value.strip())


def normalize_actual(value: Optional[str]) -> Optional[str]:
    """空文字・空白のみの実績日をNoneに正規化する"""
    if not is_present(value):
        return None
    return value.strip()


def derive_status(actual_start: Optional[str], actual_end: Optional[str]) -> PlanStatus:
    """実績日からステータスを導出する

    actual_endがあればDONE（actual_startの有無は問わない）、
    actual_startのみならIN_PROGRESS、どちらも無ければNOT_STARTED。
    """
    if is_present(actual_end):
        return PlanStatus.DONE
    if is_present(actual_start):
        return PlanStatus.IN_PROGRESS
    return PlanStatus.NOT_STARTED
