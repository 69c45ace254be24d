"""ホストによる行の計測とレイアウトの同期

サイドバーとチャートは別々にレイアウトされるため、描画後に行の矩形を計測し、
その結果でバーの縦位置を合わせる。計測は常に最新の1回だけが有効で、
新しい計測が始まると古い計測結果は破棄される（キューイングしない）。
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Protocol

from .layout import RowRect

logger = logging.getLogger(__name__)


class RowMeasurer(Protocol):
    """ホストが提供する計測機能（描画後に呼ばれる）"""

    def measure(self) -> Mapping[str, RowRect]: ...


class MeasurementCoordinator:
    """計測パスの世代管理"""

    def __init__(self) -> None:
        self._generation = 0
        self._pending: Optional[int] = None
        self._rects: dict[str, RowRect] = {}

    @property
    def rects(self) -> dict[str, RowRect]:
        """最後に受理された計測結果"""
        return dict(self._rects)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def begin(self) -> int:
        """新しい計測パスを開始する。進行中のパスは無効になる。"""
        self._generation += 1
        self._pending = self._generation
        return self._generation

    def complete(self, token: int, rects: Mapping[str, RowRect]) -> bool:
        """計測結果を受理する。古いパスの結果ならFalse。"""
        if token != self._pending:
            logger.debug("Discarding stale measurement pass %s (current %s)", token, self._pending)
            return False
        self._rects = dict(rects)
        self._pending = None
        return True

    def invalidate(self) -> int:
        """表示行の変化（展開/折りたたみ・再読込）やリサイズ時に呼ぶ

        旧い矩形は破棄し、再計測が終わるまでは均等行の配置にフォールバックする。
        """
        self._rects = {}
        return self.begin()

    def run(self, measurer: RowMeasurer) -> bool:
        """begin → measure → complete を1回で行う"""
        token = self.begin()
        return self.complete(token, measurer.measure())
