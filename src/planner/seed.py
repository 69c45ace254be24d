"""デモデータ投入

プロジェクトが1件も無いデータベースにサンプルのWBSを1件登録する。
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import PlanStatus, Project
from .service import ProjectService

logger = logging.getLogger(__name__)

DEMO_PHASES = [
    {
        "title": "企画・計画",
        "start": "2025-02-01",
        "end": "2025-02-14",
        "status": PlanStatus.DONE,
        "works": [
            {"title": "要求整理", "start": "2025-02-01", "end": "2025-02-07", "status": PlanStatus.DONE},
            {"title": "アーキ設計", "start": "2025-02-08", "end": "2025-02-14", "status": PlanStatus.DONE},
        ],
    },
    {
        "title": "実装",
        "start": "2025-02-15",
        "end": "2025-03-15",
        "status": PlanStatus.IN_PROGRESS,
        "works": [
            {"title": "バックエンド", "start": "2025-02-15", "end": "2025-03-05", "status": PlanStatus.IN_PROGRESS},
            {"title": "フロントエンド", "start": "2025-03-01", "end": "2025-03-15", "status": PlanStatus.NOT_STARTED},
        ],
    },
]

DEMO_TODOS = [
    ("下書き作成", PlanStatus.DONE, "start"),
    ("レビュー対応", PlanStatus.IN_PROGRESS, "end"),
    ("完了報告", PlanStatus.NOT_STARTED, "end"),
]


def _actual_dates(item: dict) -> dict:
    """ステータスに合う実績日（statusそのものは実績日から導出される）"""
    status = item["status"]
    return {
        "actual_start": item["start"] if status != PlanStatus.NOT_STARTED else None,
        "actual_end": item["end"] if status == PlanStatus.DONE else None,
    }


def seed_demo_data(service: ProjectService) -> Optional[Project]:
    """プロジェクトが無い場合のみデモプロジェクトを作成する

    Returns:
        作成したプロジェクト。既にデータがある場合はNone
    """
    user = service.ensure_demo_user()
    if service.projects.count() > 0:
        return None

    project = service.create_project("Sample Webアプリ構築", "要件定義に基づいたデモプロジェクト")
    for phase_data in DEMO_PHASES:
        phase = service.create_phase(
            project.id,
            phase_data["title"],
            phase_data["start"],
            phase_data["end"],
            **_actual_dates(phase_data),
        )
        for work_data in phase_data["works"]:
            work = service.create_work(
                project.id,
                phase.id,
                work_data["title"],
                work_data["start"],
                work_data["end"],
                **_actual_dates(work_data),
            )
            task_specs = [
                {"title": f"{work_data['title']} の詳細化", "status": PlanStatus.IN_PROGRESS},
                {"title": f"{work_data['title']} のレビュー", "status": PlanStatus.NOT_STARTED},
            ]
            for task_data in task_specs:
                task_data = {**task_data, "start": work_data["start"], "end": work_data["end"]}
                task = service.create_task(
                    project.id,
                    work.id,
                    task_data["title"],
                    task_data["start"],
                    task_data["end"],
                    **_actual_dates(task_data),
                )
                for index, (title, status, due_key) in enumerate(DEMO_TODOS):
                    service.create_todo(
                        project.id,
                        task.id,
                        title,
                        status=status,
                        assignee_id=user.id,
                        due_date=task_data[due_key],
                        today_flag=index == 0,
                    )

    logger.info("Seeded demo project %s", project.id)
    return project
