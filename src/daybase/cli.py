from __future__ import annotations

import argparse
import io
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .domain.errors import DaybaseError
from .domain.models import PRIORITIES, RECURRENCES, TASK_STATUSES, from_ms, to_ms
from .logging_utils import configure_logging, pretty
from .service import KanbanService


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _service(args: argparse.Namespace) -> KanbanService:
    return KanbanService.for_directory(_resolve_project_dir(args.project_dir))


def _emit(payload: Any) -> int:
    sys.stdout.write(pretty(payload) + '\n')
    return 0


def _parse_due(raw: Optional[str], service: KanbanService) -> Optional[int]:
    """ISO date or datetime in board time, as epoch ms."""
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid due date {raw!r}: expected YYYY-MM-DD[THH:MM]") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=service.clock.tz)
    return to_ms(parsed)


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------

def _column_create(args: argparse.Namespace) -> int:
    service = _service(args)
    column = service.create_column(
        args.title,
        color=args.color,
        type=args.type,
        status_mapping=args.status_mapping,
        created_by=args.created_by,
    )
    return _emit({'column': column.to_dict()})


def _column_list(args: argparse.Namespace) -> int:
    return _emit({'columns': [c.to_dict() for c in _service(args).get_all_columns()]})


def _column_update(args: argparse.Namespace) -> int:
    column = _service(args).update_column(
        args.column_id,
        title=args.title,
        color=args.color,
        status_mapping=args.status_mapping,
    )
    return _emit({'column': column.to_dict()})


def _column_delete(args: argparse.Namespace) -> int:
    deleted = _service(args).delete_column(args.column_id, performed_by=args.performed_by)
    return _emit({'deleted': args.column_id, 'tasks_deleted': deleted})


def _column_reorder(args: argparse.Namespace) -> int:
    column = _service(args).reorder_column(args.column_id, args.order)
    return _emit({'column': column.to_dict()})


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def _task_create(args: argparse.Namespace) -> int:
    service = _service(args)
    task = service.create_task(
        args.title,
        args.column_id,
        description=args.description,
        assignee_id=args.assignee,
        priority=args.priority,
        tags=list(args.tag or []),
        due_date=_parse_due(args.due, service),
        recurrence=args.recurrence,
        created_by=args.created_by,
    )
    return _emit({'task': task.to_dict()})


def _task_list(args: argparse.Namespace) -> int:
    service = _service(args)
    if args.column_id:
        tasks = service.get_by_column(args.column_id)
    elif args.status:
        tasks = service.get_by_status(args.status)
    elif args.assignee:
        tasks = service.get_by_assignee(args.assignee)
    else:
        tasks = service.get_all()
    return _emit({'tasks': [t.to_dict() for t in tasks]})


def _task_move(args: argparse.Namespace) -> int:
    result = _service(args).move_task(args.task_id, args.column_id, args.order, args.performed_by)
    return _emit(result.to_dict())


def _task_done(args: argparse.Namespace) -> int:
    return _emit(_service(args).mark_done(args.task_id, args.performed_by).to_dict())


def _task_skip(args: argparse.Namespace) -> int:
    task = _service(args).skip_task(args.task_id, args.reason, args.performed_by)
    return _emit({'task': task.to_dict()})


def _task_delete(args: argparse.Namespace) -> int:
    task = _service(args).delete_task(args.task_id, args.performed_by)
    return _emit({'deleted': task.id})


def _task_today(args: argparse.Namespace) -> int:
    return _emit({'tasks': [t.to_dict() for t in _service(args).get_today_tasks()]})


def _task_overdue(args: argparse.Namespace) -> int:
    return _emit({'tasks': [t.to_dict() for t in _service(args).get_overdue()]})


def _task_history(args: argparse.Namespace) -> int:
    entries = _service(args).get_task_history(args.task_id)
    return _emit({'history': [e.to_dict() for e in entries]})


# ---------------------------------------------------------------------------
# Analytics and board
# ---------------------------------------------------------------------------

def _analytics(args: argparse.Namespace) -> int:
    service = _service(args)
    views = {
        'dashboard': service.get_dashboard_stats,
        'weekly': service.get_weekly_data,
        'team': service.get_team_stats,
        'completion': service.get_completion_stats,
        'priority': service.get_priority_distribution,
        'status': service.get_status_distribution,
    }
    return _emit({args.view: views[args.view]()})


def render_board(service: KanbanService, width: int = 120) -> str:
    """Plain-text table of every column and its tasks."""
    console = Console(record=True, width=width, file=io.StringIO())
    for lane in service.get_board():
        column = lane['column']
        flags = ' [dim](daily, locked)[/dim]' if column.is_daily else ''
        table = Table(title=f"{column.title}{flags} -> {column.status_mapping}", title_justify='left')
        table.add_column('Order', justify='right')
        table.add_column('ID')
        table.add_column('Title')
        table.add_column('Priority')
        table.add_column('Status')
        table.add_column('Due')
        for task in lane['tasks']:
            due = from_ms(task.due_date, service.clock.tz).strftime('%Y-%m-%d') if task.due_date else '-'
            table.add_row(str(task.order), task.id, task.title, task.priority, task.status, due)
        console.print(table)
    return console.export_text()


def _board_show(args: argparse.Namespace) -> int:
    sys.stdout.write(render_board(_service(args)))
    return 0


def _board_reset(args: argparse.Namespace) -> int:
    report = _service(args).reset_daily_base(args.performed_by)
    return _emit({'report': report.to_dict()})


def _board_seed(args: argparse.Namespace) -> int:
    result = _service(args).seed(with_samples=not args.no_samples)
    _emit(result)
    return 0 if result.get('success') else 1


def _server(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError:
        sys.stderr.write("Install server extras: pip install 'daybase[server]'\n")
        return 1

    from .server import create_app

    app = create_app(project_dir=_resolve_project_dir(args.project_dir))
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='daybase kanban board CLI')
    parser.add_argument('--project-dir', default=None, help='Board directory (default: current working directory)')
    parser.add_argument('--log-level', default='WARNING', help='Log level for stderr output')
    subparsers = parser.add_subparsers(dest='command', required=True)

    server = subparsers.add_parser('server', help='Start the HTTP API server')
    server.add_argument('--host', default='127.0.0.1')
    server.add_argument('--port', default=8000, type=int)
    server.set_defaults(func=_server)

    column = subparsers.add_parser('column', help='Manage columns')
    column_sub = column.add_subparsers(dest='column_cmd', required=True)
    ccreate = column_sub.add_parser('create', help='Create a column')
    ccreate.add_argument('title')
    ccreate.add_argument('--color', default=None)
    ccreate.add_argument('--type', default='custom', choices=['custom', 'daily'])
    ccreate.add_argument('--status-mapping', default=None, choices=list(TASK_STATUSES))
    ccreate.add_argument('--created-by', default=None)
    ccreate.set_defaults(func=_column_create)
    clist = column_sub.add_parser('list', help='List columns in display order')
    clist.set_defaults(func=_column_list)
    cupdate = column_sub.add_parser('update', help='Update a column')
    cupdate.add_argument('column_id')
    cupdate.add_argument('--title', default=None)
    cupdate.add_argument('--color', default=None)
    cupdate.add_argument('--status-mapping', default=None, choices=list(TASK_STATUSES))
    cupdate.set_defaults(func=_column_update)
    cdelete = column_sub.add_parser('delete', help='Delete a column and its tasks')
    cdelete.add_argument('column_id')
    cdelete.add_argument('--performed-by', default=None)
    cdelete.set_defaults(func=_column_delete)
    creorder = column_sub.add_parser('reorder', help='Set a column position')
    creorder.add_argument('column_id')
    creorder.add_argument('order', type=int)
    creorder.set_defaults(func=_column_reorder)

    task = subparsers.add_parser('task', help='Manage tasks')
    task_sub = task.add_subparsers(dest='task_cmd', required=True)
    tcreate = task_sub.add_parser('create', help='Create a task')
    tcreate.add_argument('title')
    tcreate.add_argument('--column-id', required=True)
    tcreate.add_argument('--description', default=None)
    tcreate.add_argument('--assignee', default=None)
    tcreate.add_argument('--priority', default='medium', choices=list(PRIORITIES))
    tcreate.add_argument('--tag', action='append')
    tcreate.add_argument('--due', default=None, help='YYYY-MM-DD or ISO datetime in board time')
    tcreate.add_argument('--recurrence', default='none', choices=list(RECURRENCES))
    tcreate.add_argument('--created-by', default=None)
    tcreate.set_defaults(func=_task_create)
    tlist = task_sub.add_parser('list', help='List tasks')
    tlist.add_argument('--column-id', default=None)
    tlist.add_argument('--status', default=None, choices=list(TASK_STATUSES))
    tlist.add_argument('--assignee', default=None)
    tlist.set_defaults(func=_task_list)
    tmove = task_sub.add_parser('move', help='Move a task to another column')
    tmove.add_argument('task_id')
    tmove.add_argument('column_id')
    tmove.add_argument('--order', type=int, default=None)
    tmove.add_argument('--performed-by', default=None)
    tmove.set_defaults(func=_task_move)
    tdone = task_sub.add_parser('done', help='Mark a task done in place')
    tdone.add_argument('task_id')
    tdone.add_argument('--performed-by', default=None)
    tdone.set_defaults(func=_task_done)
    tskip = task_sub.add_parser('skip', help='Postpone a task to tomorrow')
    tskip.add_argument('task_id')
    tskip.add_argument('--reason', default=None)
    tskip.add_argument('--performed-by', default=None)
    tskip.set_defaults(func=_task_skip)
    tdelete = task_sub.add_parser('delete', help='Delete a task')
    tdelete.add_argument('task_id')
    tdelete.add_argument('--performed-by', default=None)
    tdelete.set_defaults(func=_task_delete)
    ttoday = task_sub.add_parser('today', help="Today's focus list")
    ttoday.set_defaults(func=_task_today)
    toverdue = task_sub.add_parser('overdue', help='Unfinished tasks past their due date')
    toverdue.set_defaults(func=_task_overdue)
    thistory = task_sub.add_parser('history', help='Audit trail for a task')
    thistory.add_argument('task_id')
    thistory.set_defaults(func=_task_history)

    analytics = subparsers.add_parser('analytics', help='Board statistics')
    analytics.add_argument(
        'view',
        choices=['dashboard', 'weekly', 'team', 'completion', 'priority', 'status'],
    )
    analytics.set_defaults(func=_analytics)

    board = subparsers.add_parser('board', help='Board-wide operations')
    board_sub = board.add_subparsers(dest='board_cmd', required=True)
    bshow = board_sub.add_parser('show', help='Render the board as tables')
    bshow.set_defaults(func=_board_show)
    breset = board_sub.add_parser('reset-daily', help='Run the daily column reset')
    breset.add_argument('--performed-by', default=None)
    breset.set_defaults(func=_board_reset)
    bseed = board_sub.add_parser('seed', help='Create the default columns and sample tasks')
    bseed.add_argument('--no-samples', action='store_true')
    bseed.set_defaults(func=_board_seed)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    handler = getattr(args, 'func', None)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return int(handler(args) or 0)
    except (DaybaseError, argparse.ArgumentTypeError) as exc:
        sys.stderr.write(str(exc) + '\n')
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
