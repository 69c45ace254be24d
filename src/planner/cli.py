#!/usr/bin/env python3
"""
WBS Planner CLI - データベースを直接参照するコマンドラインインターフェース

Usage:
    python -m src.planner.cli projects [--format json|text]
    python -m src.planner.cli hierarchy --project-id ID [--format json|text]
    python -m src.planner.cli today [--project-id ID] [--assignee-id ID] [--status STATUS] [--format json|text]
    python -m src.planner.cli gantt --project-id ID [--collapse ID ...] [--format json|text]
    python -m src.planner.cli seed
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from src.gantt import ExpansionState, LayoutSettings, compute_layout, render_text

from .config import Config
from .database import Database
from .exceptions import NotFoundError, PlannerError
from .hierarchy import hierarchy_to_dict
from .logger import setup_logger
from .models import PlanStatus, ProjectHierarchy, ProjectSummary, Todo, TodayTodoFilter
from .seed import seed_demo_data
from .service import ProjectService

STATUS_CHOICES = [status.value for status in PlanStatus]
STATUS_LABELS = {
    PlanStatus.NOT_STARTED: "未着手",
    PlanStatus.IN_PROGRESS: "進行中",
    PlanStatus.DONE: "完了",
}


def format_summary_text(summary: ProjectSummary) -> str:
    """プロジェクトサマリをテキスト形式で整形"""
    project = summary.project
    todos = summary.todo_counts
    archived = " (アーカイブ)" if project.archived else ""
    return (
        f"[{project.id}] {project.name}{archived} | 進捗: {summary.progress}% "
        f"| Todo: {todos.done}/{todos.total}"
    )


def format_summary_json(summary: ProjectSummary) -> Dict[str, Any]:
    project = summary.project
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "archived": project.archived,
        "created_at": project.created_at,
        "progress": summary.progress,
        "todo_counts": {"total": summary.todo_counts.total, "done": summary.todo_counts.done},
        "phase_counts": {"total": summary.phase_counts.total, "done": summary.phase_counts.done},
        "work_counts": {"total": summary.work_counts.total, "done": summary.work_counts.done},
        "task_counts": {"total": summary.task_counts.total, "done": summary.task_counts.done},
    }


def format_todo_text(todo: Todo) -> str:
    due = todo.due_date or "未設定"
    flag = " ★" if todo.today_flag else ""
    return f"[{todo.id}] {STATUS_LABELS[PlanStatus(todo.status)]} | 期限: {due} | {todo.title}{flag}"


def format_todo_json(todo: Todo) -> Dict[str, Any]:
    return {
        "id": todo.id,
        "project_id": todo.project_id,
        "task_id": todo.task_id,
        "title": todo.title,
        "status": PlanStatus(todo.status).value,
        "assignee_id": todo.assignee_id,
        "due_date": todo.due_date,
        "today_flag": todo.today_flag,
    }


def format_hierarchy_text(tree: ProjectHierarchy) -> List[str]:
    """ツリーをインデント付きの行に整形"""
    lines = [f"{tree.project.name} ({tree.progress}%)"]
    for phase in tree.phases:
        lines.append(f"  {phase.title} [{STATUS_LABELS[phase.status]}] {phase.progress}%")
        for work in phase.works:
            lines.append(f"    {work.title} [{STATUS_LABELS[work.status]}] {work.progress}%")
            for task in work.tasks:
                lines.append(
                    f"      {task.title} [{STATUS_LABELS[task.status]}] {task.progress}%"
                )
                for todo in task.todos:
                    lines.append(f"        - {format_todo_text(todo)}")
    return lines


def cmd_projects(service: ProjectService, output_format: str) -> int:
    """プロジェクト一覧を表示"""
    summaries = service.list_projects()
    if output_format == "json":
        print(json.dumps([format_summary_json(item) for item in summaries], ensure_ascii=False))
    elif not summaries:
        print("プロジェクトは登録されていません。")
    else:
        for item in summaries:
            print(format_summary_text(item))
    return 0


def cmd_hierarchy(service: ProjectService, project_id: str, output_format: str) -> int:
    """WBSツリーを表示"""
    tree = service.get_hierarchy(project_id)
    if output_format == "json":
        print(json.dumps(hierarchy_to_dict(tree), ensure_ascii=False))
    else:
        print("\n".join(format_hierarchy_text(tree)))
    return 0


def cmd_today(
    service: ProjectService,
    project_id: Optional[str],
    assignee_id: Optional[str],
    status: Optional[str],
    output_format: str,
) -> int:
    """今日のTodoを表示"""
    todo_filter = TodayTodoFilter(
        assignee_id=assignee_id,
        status=PlanStatus(status) if status else None,
    )
    todos = service.list_today_todos(project_id, todo_filter)
    if output_format == "json":
        print(json.dumps([format_todo_json(todo) for todo in todos], ensure_ascii=False))
    elif not todos:
        print("今日のTodoはありません。")
    else:
        for todo in todos:
            print(format_todo_text(todo))
    return 0


def cmd_gantt(
    service: ProjectService,
    config: Config,
    project_id: str,
    collapse: List[str],
    output_format: str,
) -> int:
    """ガントチャートを表示"""
    tree = service.get_hierarchy(project_id)
    layout = compute_layout(
        tree.phases,
        expanded=ExpansionState.collapsed(collapse),
        settings=LayoutSettings.from_config(config.gantt),
    )
    if output_format == "json":
        print(json.dumps(layout.to_dict(), ensure_ascii=False))
    else:
        print(render_text(layout))
    return 0


def cmd_seed(service: ProjectService) -> int:
    """デモデータを投入"""
    project = seed_demo_data(service)
    if project is None:
        print("既にプロジェクトが存在するため、デモデータは投入しませんでした。")
    else:
        print(f"デモプロジェクトを作成しました: [{project.id}] {project.name}")
    return 0


def _add_format(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="出力フォーマット（デフォルト: text）",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="WBS Planner CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db-path",
        type=str,
        help="SQLiteデータベースファイルのパス（デフォルト: 設定ファイルの database.path）",
    )

    subparsers = parser.add_subparsers(dest="command", help="実行するコマンド", required=True)

    # projects コマンド
    parser_projects = subparsers.add_parser("projects", help="プロジェクト一覧を表示")
    _add_format(parser_projects)

    # hierarchy コマンド
    parser_hierarchy = subparsers.add_parser("hierarchy", help="WBSツリーを表示")
    parser_hierarchy.add_argument("--project-id", required=True, help="プロジェクトID")
    _add_format(parser_hierarchy)

    # today コマンド
    parser_today = subparsers.add_parser("today", help="今日のTodoを表示")
    parser_today.add_argument("--project-id", help="プロジェクトID（省略時は全プロジェクト）")
    parser_today.add_argument("--assignee-id", help="担当者ID")
    parser_today.add_argument("--status", choices=STATUS_CHOICES, help="ステータス")
    _add_format(parser_today)

    # gantt コマンド
    parser_gantt = subparsers.add_parser("gantt", help="ガントチャートを表示")
    parser_gantt.add_argument("--project-id", required=True, help="プロジェクトID")
    parser_gantt.add_argument(
        "--collapse",
        nargs="*",
        default=[],
        help="折りたたむPhase / Work / TaskのID",
    )
    _add_format(parser_gantt)

    # seed コマンド
    subparsers.add_parser("seed", help="空のデータベースにデモデータを投入")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLIエントリポイント"""
    args = build_parser().parse_args(argv)

    config = Config.load()
    if args.db_path:
        config.database.path = args.db_path
    setup_logger(log_level="WARNING", log_file=config.log_file)

    database = Database(config.database.path)
    service = ProjectService(database)
    try:
        if args.command == "projects":
            return cmd_projects(service, args.format)
        if args.command == "hierarchy":
            return cmd_hierarchy(service, args.project_id, args.format)
        if args.command == "today":
            return cmd_today(
                service, args.project_id, args.assignee_id, args.status, args.format
            )
        if args.command == "gantt":
            return cmd_gantt(service, config, args.project_id, args.collapse, args.format)
        if args.command == "seed":
            return cmd_seed(service)
        print(f"Error: 不明なコマンド: {args.command}", file=sys.stderr)
        return 1
    except NotFoundError as exc:
        print(f"Error: 見つかりません: {exc}", file=sys.stderr)
        return 1
    except PlannerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        database.close()


if __name__ == "__main__":
    sys.exit(main())
