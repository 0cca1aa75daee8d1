"""CLI entrypoint for querydeck."""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from querydeck.api.export import export_items
from querydeck.config.loader import load_config
from querydeck.database.item_repo import list_all_items
from querydeck.database.sqlite_client import get_engine, session_context
from querydeck.ingestion.seed_loader import load_seed_file
from querydeck.query.errors import InvalidPageRequest, InvalidSortField, QueryError
from querydeck.query.models import SortSpec
from querydeck.query.planner import build_planner
from querydeck.search.adapters import rebuild_item_search
from querydeck.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_CLIENT_ERROR = 2
EXIT_SERVICE_ERROR = 3


def _load_runtime_config(args: argparse.Namespace) -> Dict[str, Any]:
    config = load_config(args.config)
    if args.sqlite_path:
        config["database"]["sqlite_path"] = args.sqlite_path
    return config


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create tables and the search index table."""
    config = _load_runtime_config(args)
    sqlite_path = config["database"]["sqlite_path"]
    get_engine(sqlite_path).dispose()
    print(f"Initialized database at {sqlite_path}")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    """Load a seed file into the database."""
    config = _load_runtime_config(args)
    with session_context(config["database"]["sqlite_path"]) as session:
        counts = load_seed_file(args.file, session, index=not args.no_index)
    print(", ".join(f"{count} {section}" for section, count in counts.items()))
    return 0


def cmd_reindex(args: argparse.Namespace) -> int:
    """Rebuild the SQLite search index from the items table."""
    config = _load_runtime_config(args)
    with session_context(config["database"]["sqlite_path"]) as session:
        count = rebuild_item_search(session, list_all_items(session))
        session.commit()
    print(f"Indexed {count} items")
    return 0


def _build_request(args: argparse.Namespace) -> Dict[str, Any]:
    request: Dict[str, Any] = {
        "tenant_id": args.tenant,
        "search_text": args.search,
        "filters": {
            "template_ids": args.template_ids or None,
            "client_ids": args.client_ids or None,
        },
        "page": args.page,
        "page_size": args.page_size,
    }
    if args.sort:
        request["sort"] = SortSpec.parse(args.sort)
    return request


def cmd_items(args: argparse.Namespace) -> int:
    """List one page of a tenant's items."""
    config = _load_runtime_config(args)
    with session_context(config["database"]["sqlite_path"]) as session:
        planner = build_planner(config, session)
        try:
            request = _build_request(args)
            output = export_items(
                session,
                request,
                planner,
                format=args.format,
                out=args.out,
            )
        # ValueError also covers pydantic ValidationError and a blank tenant
        except (InvalidSortField, InvalidPageRequest, ValueError) as e:
            logger.error(str(e))
            return EXIT_CLIENT_ERROR
        except QueryError as e:
            logger.error(f"Listing failed: {e}", exc_info=True)
            return EXIT_SERVICE_ERROR
    print(output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="querydeck",
        description="Tenant-scoped item listing with search, related-field sorting and stable pagination",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config YAML (default: querydeck.config.yaml if present)",
    )
    parser.add_argument(
        "--sqlite-path",
        type=str,
        help="Override database.sqlite_path from config",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Override logging.level from config (DEBUG, INFO, WARNING, ERROR)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    init_parser = subparsers.add_parser("init-db", help="Create database tables and search index")
    init_parser.set_defaults(func=cmd_init_db)

    seed_parser = subparsers.add_parser("seed", help="Load clients, templates and items from a YAML/JSON file")
    seed_parser.add_argument("file", type=Path, help="Seed file path")
    seed_parser.add_argument(
        "--no-index",
        action="store_true",
        help="Skip adding items to the search index",
    )
    seed_parser.set_defaults(func=cmd_seed)

    reindex_parser = subparsers.add_parser("reindex", help="Rebuild the SQLite search index")
    reindex_parser.set_defaults(func=cmd_reindex)

    items_parser = subparsers.add_parser("items", help="List one page of items")
    items_parser.add_argument("--tenant", type=str, required=True, help="Tenant ID")
    items_parser.add_argument("--search", type=str, help="Full-text search")
    items_parser.add_argument(
        "--template-id",
        dest="template_ids",
        action="append",
        help="Restrict to a template (repeatable)",
    )
    items_parser.add_argument(
        "--client-id",
        dest="client_ids",
        action="append",
        help="Restrict to a client (repeatable)",
    )
    items_parser.add_argument(
        "--sort",
        type=str,
        help="Sort as field[:asc|desc], e.g. client.name:desc",
    )
    items_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    items_parser.add_argument("--page-size", type=int, help="Page size (default: from config)")
    items_parser.add_argument(
        "--format",
        type=str,
        choices=["json", "csv"],
        default="json",
        help="Output format (default: json)",
    )
    items_parser.add_argument(
        "--out",
        type=Path,
        help="Output file path (if not provided, prints to stdout)",
    )
    items_parser.set_defaults(func=cmd_items)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    
    if not args.command:
        parser.print_help()
        return 0

    config_level = None
    try:
        config_level = load_config(args.config)["logging"]["level"]
    except (FileNotFoundError, ValueError):
        # Reported properly by the command itself
        pass
    configure_logging(args.log_level or config_level or "INFO")
    
    try:
        return args.func(args)
    except Exception as e:
        logger.error(f"Error running command '{args.command}': {e}", exc_info=True)
        raise


if __name__ == "__main__":
    sys.exit(main())
