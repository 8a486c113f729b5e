"""
CLI entrypoint for the term builder.

Subcommands:
- insert: create a term
- update: change fields of an existing term
- copy:   clone a term, including its object relationships and metadata
- import: bulk insert terms from a CSV/Excel table

Every subcommand loads .env and configs/store.yaml, opens the configured term
store and writes through TermBuilder.
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from application import ImportColumns, TermBuilder, import_terms
from domain.errors import ClonePropagationError, TermBuilderError
from infrastructure.config import load_store_config
from infrastructure.constants import STORE_CONFIG_FILE
from infrastructure.io import ensure_exists, read_table
from infrastructure.observability import configure_logging
from infrastructure.stores import TermStore, make_store

logger = logging.getLogger(__name__)


def _add_field_args(p: argparse.ArgumentParser, *, with_name: bool) -> None:
    if with_name:
        p.add_argument("--name", type=str, default=None, help="Term name (max 200 characters)")
    p.add_argument("--slug", type=str, default=None, help="Term slug")
    p.add_argument("--parent", type=int, default=None, help="Parent term id (0 for none)")
    p.add_argument("--description", type=str, default=None, help="Term description")
    p.add_argument("--alias-of", dest="alias_of", type=str, default=None, help="Slug of the term to alias")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Insert, update, clone or import taxonomy terms")
    p.add_argument(
        "--config",
        type=str,
        default=str(STORE_CONFIG_FILE),
        help="Path to store.yaml (default: configs/store.yaml)",
    )
    p.add_argument(
        "--env",
        type=str,
        default=".env",
        help="Path to .env file (default: .env; skipped if missing)",
    )
    p.add_argument(
        "--console-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Console log level",
    )
    p.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional rotating log file (DEBUG level)",
    )

    sub = p.add_subparsers(dest="command", required=True)

    p_insert = sub.add_parser("insert", help="Create a term")
    p_insert.add_argument("name", type=str)
    p_insert.add_argument("--taxonomy", required=True)
    _add_field_args(p_insert, with_name=False)

    p_update = sub.add_parser("update", help="Update a term")
    p_update.add_argument("term_id", type=int)
    p_update.add_argument("--taxonomy", required=True)
    _add_field_args(p_update, with_name=True)

    p_copy = sub.add_parser("copy", help="Clone a term with its relationships and metadata")
    p_copy.add_argument("term_id", type=int)
    p_copy.add_argument("--taxonomy", default=None, help="Only copy if the source is in this taxonomy")
    _add_field_args(p_copy, with_name=True)

    p_import = sub.add_parser("import", help="Bulk insert terms from a CSV/Excel table")
    p_import.add_argument("file", type=str)
    p_import.add_argument("--taxonomy", required=True)
    p_import.add_argument("--name-col", default="name")
    p_import.add_argument("--slug-col", default="slug")
    p_import.add_argument("--description-col", default="description")
    p_import.add_argument("--parent-col", default="parent")
    p_import.add_argument("--alias-of-col", default="alias_of")

    return p.parse_args(argv)


def _apply_fields(builder: TermBuilder, args: argparse.Namespace) -> TermBuilder:
    if getattr(args, "name", None) is not None and args.command != "insert":
        builder.name(args.name)
    if args.slug is not None:
        builder.slug(args.slug)
    if args.parent is not None:
        builder.parent(args.parent)
    if args.description is not None:
        builder.description(args.description)
    if args.alias_of is not None:
        builder.alias_of(args.alias_of)
    return builder


def _run(args: argparse.Namespace, store: TermStore) -> int:
    if args.command == "insert":
        builder = _apply_fields(TermBuilder.insert(args.name, args.taxonomy, store=store), args)
        term_id = builder.save()
        print(term_id)
        return 0

    if args.command == "update":
        builder = _apply_fields(TermBuilder.update(args.term_id, args.taxonomy, store=store), args)
        print(builder.save())
        return 0

    if args.command == "copy":
        source = store.get_term(args.term_id, args.taxonomy)
        if source is None:
            logger.error("Source term %d not found", args.term_id)
            return 1
        builder = _apply_fields(TermBuilder.copy(source, store=store), args)
        print(builder.save())
        return 0

    if args.command == "import":
        import_path = Path(args.file)
        ensure_exists(import_path, "import table")
        df = read_table(import_path)
        logger.info("Import table loaded: %d rows, %d columns", df.shape[0], df.shape[1])
        report = import_terms(
            df,
            taxonomy=args.taxonomy,
            store=store,
            columns=ImportColumns(
                name=args.name_col,
                slug=args.slug_col,
                description=args.description_col,
                parent=args.parent_col,
                alias_of=args.alias_of_col,
            ),
        )
        for idx, term_id in report.created.items():
            print(f"{idx}\t{term_id}")
        return 0 if not report.failed else 1

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    env_file = Path(args.env)
    if env_file.exists():
        load_dotenv(env_file, override=True)

    configure_logging(
        log_file=Path(args.log_file) if args.log_file else None,
        console_level=getattr(logging, args.console_level),
    )

    config_path = Path(args.config)
    ensure_exists(config_path, "store.yaml")
    cfg = load_store_config(config_path)
    logger.info("Taxonomies: %s", ", ".join(cfg.taxonomies.names()) or "(none)")

    store = make_store(cfg)

    try:
        return _run(args, store)
    except ClonePropagationError as e:
        # the new term exists; print its id so the caller can repair or delete it
        logger.error("%s", e)
        print(e.term_id)
        return 1
    except TermBuilderError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
