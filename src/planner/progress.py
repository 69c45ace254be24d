"""進捗率（0〜100の整数）の集計

重み: NOT_STARTED=0, IN_PROGRESS=0.5, DONE=1
丸めは四捨五入（round-half-up）。Pythonのround()は偶数丸めなので使わない。
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from .models import PlanStatus

_STATUS_WEIGHTS = {
    PlanStatus.NOT_STARTED: 0.0,
    PlanStatus.IN_PROGRESS: 0.5,
    PlanStatus.DONE: 1.0,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def status_weight(status: PlanStatus | str) -> float:
    return _STATUS_WEIGHTS.get(PlanStatus(status), 0.0)


def progress_from_status(status: PlanStatus | str) -> int:
    """単一ステータスの進捗率"""
    return _round_half_up(status_weight(status) * 100)


def progress_from_child_statuses(statuses: Iterable[PlanStatus | str]) -> int:
    """子ステータス群の平均進捗率。空なら0。"""
    weights = [status_weight(status) for status in statuses]
    if not weights:
        return 0
    return _round_half_up(sum(weights) / len(weights) * 100)


def combine_progress(percentages: Sequence[int]) -> int:
    """進捗率の単純平均（件数による重み付けはしない）。空なら0。"""
    if not percentages:
        return 0
    return _round_half_up(sum(percentages) / len(percentages))


def node_progress(child_statuses: Sequence[PlanStatus | str], own_status: PlanStatus | str) -> int:
    """非末端ノードの進捗率

    子が1件以上あれば子ステータスのみから算出し、子が無ければ自身のステータス
    から算出する。両者を混ぜることはしない。
    """
    if child_statuses:
        return progress_from_child_statuses(child_statuses)
    return progress_from_status(own_status)


def rollup_progress(child_progress: Sequence[int], own_status: PlanStatus | str) -> int:
    """Work / Phaseの進捗率

    子があれば子の進捗率の単純平均、無ければ自身のステータスから算出する。
    子がすべて末端なら子の進捗率は0/50/100のいずれかなので、
    progress_from_child_statuses と同じ値になる。
    """
    if child_progress:
        return combine_progress(child_progress)
    return progress_from_status(own_status)
