"""CLI entry point for hotel operations."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .client import APIError, ValdorAPI
from .config import ValdorConfig, load_config
from .db import ListingCache
from .menu import CandidateRecord, create_backend
from .menu.commit import CommitBatcher, CommitResult
from .menu.normalizer import CategoryPolicy
from .menu.session import ExtractionSession
from .results import Outcome, OutcomeKind
from .tasks import ColumnKey, Task, TaskBoard, TaskFilters
from .tasks.assignment import AssignmentEngine

logger = logging.getLogger(__name__)

_COLUMN_TITLES = {
    ColumnKey.PENDING: "Pending",
    ColumnKey.AWAITING_ASSIGNMENT: "Awaiting assignment",
    ColumnKey.IN_PROGRESS: "In progress",
    ColumnKey.COMPLETED: "Completed",
}


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="valdor-ops",
        description="Menu extraction and task assignment for hotel operations",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the config file (TOML)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # extract
    extract_parser = sub.add_parser("extract", help="Extract menu items from a photo or web page")
    source = extract_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--image", type=str, help="Menu photo (JPEG, PNG, WEBP)")
    source.add_argument("--url", type=str, help="Web page with a menu")
    extract_parser.add_argument(
        "--select", type=str, default=None, metavar="0,2,5",
        help="Comma-separated item positions to keep selected (default: all)",
    )
    extract_parser.add_argument(
        "--commit", action="store_true", help="Save the selected items to the menu"
    )
    extract_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # tasks
    tasks_parser = sub.add_parser("tasks", help="Task assignment board")
    tasks_sub = tasks_parser.add_subparsers(dest="tasks_command")

    board_parser = tasks_sub.add_parser("board", help="Show the task board")
    board_parser.add_argument("--status", default="all")
    board_parser.add_argument("--department", default="all")
    board_parser.add_argument("--priority", default="all")
    board_parser.add_argument("--search", default="")
    board_parser.add_argument("--json", action="store_true", help="Output as JSON")

    assign_parser = tasks_sub.add_parser("assign", help="Assign a task to a staff member")
    assign_parser.add_argument("task_id")
    assign_parser.add_argument("staff_id")

    unassign_parser = tasks_sub.add_parser("unassign", help="Return a task to the pending queue")
    unassign_parser.add_argument("task_id")
    unassign_parser.add_argument("--reason", default=None)

    tasks_sub.add_parser(
        "auto-assign", help="Assign every pending task to its top recommended staff member"
    )

    args = parser.parse_args(argv)

    if args.command is None or (args.command == "tasks" and args.tasks_command is None):
        parser.print_help()
        sys.exit(1)

    config = load_config(args.config)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    match args.command:
        case "extract":
            code = asyncio.run(_cmd_extract(config, args))
        case "tasks":
            code = asyncio.run(_cmd_tasks(config, args))
        case _:
            code = 1
    if code:
        sys.exit(code)


def _report(outcome: Outcome) -> None:
    stream = sys.stdout if outcome.ok or outcome.kind is OutcomeKind.NOTHING_TO_DO else sys.stderr
    if outcome.message:
        print(outcome.message, file=stream)
    if outcome.detail:
        print(f"  {outcome.detail}", file=stream)


def _open_cache(config: ValdorConfig) -> ListingCache | None:
    if not config.cache.enabled:
        return None
    return ListingCache(config.cache.path, ttl_seconds=config.cache.ttl_seconds)


async def _load_categories(api: ValdorAPI, cache: ListingCache | None) -> list[dict]:
    if cache is not None:
        cached = cache.get("categories")
        if cached is not None:
            return cached
    try:
        categories = await api.list_categories()
    except APIError as e:
        logger.warning("Could not load menu categories: %s", e.message)
        return []
    if cache is not None:
        cache.put("categories", categories)
    return categories


def _parse_selection(value: str) -> list[int]:
    positions = []
    for part in value.split(","):
        part = part.strip()
        if part:
            positions.append(int(part))
    return positions


def _record_to_dict(record: CandidateRecord) -> dict:
    return {
        "name_english": record.name_english,
        "name_local": record.name_local,
        "description": record.description,
        "price": str(record.price),
        "category": record.category,
        "ingredients": record.ingredients,
        "dietary_tags": sorted(record.dietary_tags),
        "is_vegetarian": record.is_vegetarian,
        "is_spicy": record.is_spicy,
        "confidence": record.confidence,
    }


def _print_candidates(session: ExtractionSession, as_json: bool) -> None:
    selected = session.selected
    if as_json:
        data = [
            {"index": i, "selected": i in selected, **_record_to_dict(r)}
            for i, r in enumerate(session.candidates)
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return
    print(f"\nExtracted items ({len(session.candidates)}):")
    for i, record in enumerate(session.candidates):
        mark = "x" if i in selected else " "
        print(
            f"  [{mark}] {i:>2} {record.display_name:<32} {record.price:>10}  "
            f"{record.category}  ({record.confidence:.0f}%)"
        )


async def _cmd_extract(config: ValdorConfig, args) -> int:
    cache = _open_cache(config)

    def invalidate_menu(result: CommitResult) -> None:
        if cache is not None:
            cache.invalidate("menu", "categories")

    try:
        async with ValdorAPI.from_config(config) as api:
            categories = await _load_categories(api, cache)
            session = ExtractionSession(
                create_backend(config, api),
                CommitBatcher(api, use_batch_endpoint=config.extraction.use_batch_endpoint),
                categories=categories,
                policy=CategoryPolicy(default_category=config.extraction.default_category),
                max_upload_bytes=config.extraction.max_upload_bytes,
                allowed_types=config.extraction.allowed_types,
                allow_heic=config.extraction.allow_heic,
                on_committed=invalidate_menu,
            )

            if args.image:
                path = Path(args.image)
                if not path.is_file():
                    print(f"File not found: {path}", file=sys.stderr)
                    return 1
                outcome = session.select_image(path.name, path.read_bytes())
            else:
                outcome = session.set_url(args.url)
            if not outcome.ok:
                _report(outcome)
                return 1
            if outcome.detail:
                print(outcome.detail, file=sys.stderr)

            print("Extracting menu items...", file=sys.stderr)
            outcome = await session.submit()
            if not outcome.ok:
                _report(outcome)
                return 1

            if args.select is not None:
                session.select_none()
                try:
                    positions = _parse_selection(args.select)
                except ValueError:
                    print(f"Invalid selection: {args.select}", file=sys.stderr)
                    return 1
                for position in positions:
                    session.toggle(position)

            _print_candidates(session, args.json)

            if not args.commit:
                return 0
            outcome = await session.commit()
            _report(outcome)
            return 0 if outcome.ok else 1
    finally:
        if cache is not None:
            cache.close()


def _print_board(board: TaskBoard, as_json: bool) -> None:
    if as_json:
        data = {
            key.value: [
                {
                    "id": t.id,
                    "title": t.title,
                    "department": t.department,
                    "priority": t.priority,
                    "status": t.status,
                    "assigned_to": t.assigned_to,
                    "due_date": t.due_date.isoformat() if t.due_date else None,
                    "location": t.location_label,
                    "recommended_staff": [
                        {"name": s.name, "staff_id": s.staff_id, "match_score": s.match_score}
                        for s in t.recommended_staff
                    ],
                }
                for t in tasks
            ]
            for key, tasks in board.columns.items()
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    for key, tasks in board.columns.items():
        print(f"\n{_COLUMN_TITLES[key]} ({len(tasks)})")
        for t in tasks:
            who = t.assigned_to or (
                t.recommended_staff[0].name if t.recommended_staff else "Awaiting assignment"
            )
            print(
                f"  {t.id:<24} {t.priority:<7} {t.title:<36} "
                f"{t.location_label:<16} {who} ({t.match_score}%)"
            )


async def _cmd_tasks(config: ValdorConfig, args) -> int:
    async with ValdorAPI.from_config(config) as api:
        filters = TaskFilters()
        if args.tasks_command == "board":
            filters = TaskFilters(
                status=args.status,
                department=args.department,
                priority=args.priority,
                search=args.search,
            )
        board = TaskBoard(
            api,
            AssignmentEngine(api, config.tasks.default_cancel_reason),
            filters,
        )

        outcome = await board.reload()
        if not outcome.ok:
            _report(outcome)
            return 1

        match args.tasks_command:
            case "board":
                _print_board(board, args.json)
                return 0
            case "assign":
                task = board.find(args.task_id) or Task(id=args.task_id, title=args.task_id)
                outcome = await board.assign(task, args.staff_id)
            case "unassign":
                task = board.find(args.task_id) or Task(id=args.task_id, title=args.task_id)
                outcome = await board.unassign(task, args.reason)
            case "auto-assign":
                outcome = await board.auto_assign_all()
            case _:
                return 1

    _report(outcome)
    return 0 if outcome.ok or outcome.kind is OutcomeKind.NOTHING_TO_DO else 1
