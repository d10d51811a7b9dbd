"""Coachgate CLI — validate config, run the server, seed data and exercise tools."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure project root is importable when running as script
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a coachgate.yaml config."""
    from pydantic import ValidationError

    from coachgate.config_loader import load_config
    from coachgate.tools.registry import athlete_tool_set, coach_tool_set

    path = args.config
    try:
        config = load_config(path)
    except FileNotFoundError:
        print(f"Error: config not found: {path}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, ValidationError) as exc:
        print(f"Error: invalid config: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Config OK: {config.app.name} v{config.app.version}")
    print(f"  Model backend: {config.models.backend.value} ({config.models.base_url})")
    print(f"  Default model: {config.models.default}")
    print(f"  Max steps:     {config.agent.max_steps}")
    print(f"  SQLite path:   {config.storage.sqlite_path}")
    print(f"  Rollout:       {config.rollout.percent}%"
          f" (+{len(config.rollout.force_enable_users)} forced)")

    for tool_set in (athlete_tool_set(), coach_tool_set()):
        print(f"  Tool set '{tool_set.name}':")
        for tool in tool_set:
            required = tool.minimum_role.value if tool.minimum_role else "any"
            print(f"    {tool.name:22s} min role: {required}")


def cmd_run(args: argparse.Namespace) -> None:
    """Start the coachgate server."""
    import os

    os.environ["COACHGATE_CONFIG"] = args.config

    # Validate first
    from coachgate.config_loader import load_config

    try:
        config = load_config(args.config)
    except Exception as exc:
        print(f"Error loading config: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Starting coachgate for '{config.app.name}'...")
    print(f"  Config: {args.config}")
    print(f"  Host:   {args.host}")
    print(f"  Port:   {args.port}")
    print(f"  Model:  {config.models.default}")
    print()

    import uvicorn

    uvicorn.run(
        "coachgate.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


def cmd_seed(args: argparse.Namespace) -> None:
    """Create the schema and demo accounts."""
    from coachgate.seed import seed_demo_data
    from coachgate.store import SqliteStore

    users = seed_demo_data(SqliteStore(args.db_path))
    print(f"Seeded {args.db_path}")
    for label, user_id in users.items():
        print(f"  {label:8s} {user_id}")


def cmd_tools(args: argparse.Namespace) -> None:
    """List the manifest and gate verdict for a role."""
    from coachgate.policy import RolePolicyEngine
    from coachgate.privileged import create_context_with_role
    from coachgate.store import SqliteStore
    from coachgate.tools.registry import athlete_tool_set, coach_tool_set

    sets = []
    if args.persona in ("athlete", "all"):
        sets.append(athlete_tool_set())
    if args.persona in ("coach", "all"):
        sets.append(coach_tool_set())

    ctx = create_context_with_role(SqliteStore(":memory:"), "cli-admin", args.role)
    policy = RolePolicyEngine()

    for tool_set in sets:
        for tool in tool_set:
            decision = policy.check_tool(tool, ctx)
            if args.json:
                entry = tool.manifest_entry().model_dump(mode="json", by_alias=True)
                entry["verdict"] = decision.verdict.value
                print(json.dumps(entry))
            else:
                mark = "allow" if decision.allowed else "deny "
                print(f"[{mark}] {tool.name:22s} {tool.description[:60]}")


def cmd_call(args: argparse.Namespace) -> None:
    """Dispatch one tool call through the gate as a real user."""
    from coachgate.context import create_context
    from coachgate.dispatcher import ToolDispatcher
    from coachgate.coach_service import tool_sets_for
    from coachgate.store import SqliteStore

    if not Path(args.db_path).exists():
        print(f"No database found at {args.db_path}", file=sys.stderr)
        sys.exit(1)

    async def _call() -> str:
        store = SqliteStore(args.db_path)
        ctx = await create_context(store, args.user_id)
        dispatcher = ToolDispatcher.for_turn(ctx, *tool_sets_for(ctx.role))
        result = await dispatcher.dispatch(args.tool_name, args.arguments)
        return result.model_dump_json(indent=2)

    print(asyncio.run(_call()))


def main() -> None:
    from coachgate.logging_config import setup_logging

    parser = argparse.ArgumentParser(
        prog="coachgate",
        description="Coachgate — permission-gated tool calling for an AI fitness coach",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command")

    # validate
    p_val = sub.add_parser("validate", help="Validate a coachgate.yaml config")
    p_val.add_argument("config", nargs="?", default="coachgate.yaml", help="Path to config")
    p_val.set_defaults(func=cmd_validate)

    # run
    p_run = sub.add_parser("run", help="Start the coachgate server")
    p_run.add_argument("config", nargs="?", default="coachgate.yaml", help="Path to config")
    p_run.add_argument("--host", default="127.0.0.1", help="Bind address")
    p_run.add_argument("--port", type=int, default=8080, help="Port")
    p_run.add_argument("--reload", action="store_true", help="Enable auto-reload")
    p_run.set_defaults(func=cmd_run)

    # seed
    p_seed = sub.add_parser("seed", help="Create schema and demo users")
    p_seed.add_argument("db_path", help="Path to SQLite database")
    p_seed.set_defaults(func=cmd_seed)

    # tools
    p_tools = sub.add_parser("tools", help="List tools and gate verdicts for a role")
    p_tools.add_argument("--role", choices=["free", "premium", "coach"], default="free")
    p_tools.add_argument("--persona", choices=["athlete", "coach", "all"], default="all")
    p_tools.add_argument("--json", action="store_true", help="Output manifest entries as JSON")
    p_tools.set_defaults(func=cmd_tools)

    # call
    p_call = sub.add_parser("call", help="Dispatch one tool call as a user")
    p_call.add_argument("db_path", help="Path to SQLite database")
    p_call.add_argument("user_id", help="Calling user id")
    p_call.add_argument("tool_name", help="Tool to call")
    p_call.add_argument("arguments", nargs="?", default="{}", help="JSON arguments")
    p_call.set_defaults(func=cmd_call)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
