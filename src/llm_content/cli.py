"""Command-line interface for llm-content."""

import argparse
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from . import __version__
from .core import BacklogProcessor, ConversionService
from .errors import LlmContentError
from .logging_config import configure_logging
from .models.config import LlmContentConfig
from .models.content import ContentItem
from .models.events import ConversionEvent, EventType
from .rendering import SnapshotRenderer
from .storage import ArtifactStore


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="llm-content",
        description="Convert rendered CMS content to Markdown for LLMs and crawlers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Mirror the CMS item catalog
  llm-content --config site.yaml import-items items.yaml

  # Convert every item that has no Markdown yet
  llm-content --config site.yaml generate --html-dir ./rendered

  # Print one document, generating it if needed
  llm-content --config site.yaml show 42 --html-dir ./rendered

  # Write llms-full.txt and llms.txt
  llm-content --config site.yaml export --output llms-full.txt
  llm-content --config site.yaml index --output llms.txt

  # Write the sitemap of Markdown views
  llm-content --config site.yaml sitemap --output llm-sitemap.xml
        """,
    )

    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        metavar="FILE",
        help="YAML configuration file",
    )
    parser.add_argument(
        "--database",
        "-d",
        type=Path,
        metavar="FILE",
        help="SQLite database (overrides the configuration)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress output",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    import_cmd = commands.add_parser("import-items", help="Load item records into the catalog")
    import_cmd.add_argument("file", type=Path, help="YAML or JSON list of items")

    generate_cmd = commands.add_parser("generate", help="Convert items that have no Markdown yet")
    generate_cmd.add_argument(
        "--html-dir",
        type=Path,
        required=True,
        metavar="DIR",
        help="Directory of pre-rendered HTML (<id>.<langcode>.html)",
    )
    generate_cmd.add_argument("--force", action="store_true", help="Regenerate every eligible item")
    generate_cmd.add_argument("--batch-size", type=int, default=25, help="Items per batch (default: 25)")
    _add_selection_arguments(generate_cmd, default_limit=0)

    missing_cmd = commands.add_parser("missing", help="List items without Markdown")
    _add_selection_arguments(missing_cmd, default_limit=0)

    show_cmd = commands.add_parser("show", help="Print the Markdown of one item")
    show_cmd.add_argument("item_id", type=int, help="Item id")
    show_cmd.add_argument("--langcode", "-l", help="Language (default translation if omitted)")
    show_cmd.add_argument(
        "--html-dir",
        type=Path,
        metavar="DIR",
        help="Generate from pre-rendered HTML when nothing is stored",
    )

    delete_cmd = commands.add_parser("delete", help="Delete stored Markdown of an item")
    delete_cmd.add_argument("item_id", type=int, help="Item id")
    delete_cmd.add_argument("--langcode", "-l", help="Only this language (all if omitted)")

    export_cmd = commands.add_parser("export", help="Concatenate stored documents (llms-full.txt)")
    _add_selection_arguments(export_cmd, default_limit=None)
    export_cmd.add_argument("--output", "-o", type=Path, metavar="FILE", help="Write to a file")

    index_cmd = commands.add_parser("index", help="Build the llms.txt index")
    _add_selection_arguments(index_cmd, default_limit=None)
    index_cmd.add_argument("--output", "-o", type=Path, metavar="FILE", help="Write to a file")

    sitemap_cmd = commands.add_parser("sitemap", help="Build the XML sitemap of Markdown views")
    _add_selection_arguments(sitemap_cmd, default_limit=None)
    sitemap_cmd.add_argument("--output", "-o", type=Path, metavar="FILE", help="Write to a file")

    return parser


def _add_selection_arguments(parser: argparse.ArgumentParser, default_limit: Optional[int]) -> None:
    parser.add_argument(
        "--types",
        "-t",
        nargs="+",
        metavar="TYPE",
        help="Content types (configured types if omitted)",
    )
    parser.add_argument("--limit", type=int, default=default_limit, help="Maximum items")


def load_config(args: argparse.Namespace) -> LlmContentConfig:
    """Build the configuration from the config file and global options."""
    config = LlmContentConfig.from_yaml_file(args.config) if args.config else LlmContentConfig()

    updates: dict[str, Any] = {}
    if args.database:
        updates["storage"] = config.storage.model_copy(update={"database": args.database})
    if args.verbose:
        updates["log_level"] = "DEBUG"
    elif args.quiet:
        updates["log_level"] = "ERROR"
    return config.model_copy(update=updates) if updates else config


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Accept unix seconds, ISO strings and YAML timestamps; naive means UTC."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if not isinstance(value, datetime):
        raise ValueError(f"Not a date: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def parse_items(text: str) -> list[ContentItem]:
    """Parse a YAML (or JSON) list of item records."""
    records = yaml.safe_load(text) or []
    if not isinstance(records, list):
        raise ValueError("Item file must contain a list of items")

    items = []
    for record in records:
        try:
            created = _parse_datetime(record["created"])
            if created is None:
                raise ValueError("created is required")
            items.append(
                ContentItem(
                    id=int(record["id"]),
                    langcode=str(record.get("langcode", "en")),
                    published=bool(record.get("published", True)),
                    type=str(record["type"]),
                    title=str(record.get("title", "")),
                    created=created,
                    revised=_parse_datetime(record.get("revised")),
                    path=record.get("path"),
                    default_translation=bool(record.get("default_translation", True)),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid item record {record!r}: {e}") from e
    return items


def _write_output(console: Console, content: str, output: Optional[Path], quiet: bool) -> None:
    if output is None:
        sys.stdout.write(content)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    if not quiet:
        console.print(f"[green]Wrote[/green] {output}")


def cmd_import_items(service: ConversionService, args: argparse.Namespace, console: Console) -> int:
    items = parse_items(args.file.read_text(encoding="utf-8"))
    for item in items:
        service.store.save_item(item)
    if not args.quiet:
        console.print(f"Imported {len(items)} item(s) into the catalog")
    return 0


def cmd_generate(service: ConversionService, args: argparse.Namespace, console: Console) -> int:
    processor = BacklogProcessor(service)

    if args.quiet:
        stats = processor.run(types=args.types, force=args.force, batch_size=args.batch_size, limit=args.limit)
        return 0 if stats.failed == 0 else 1

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting...", total=None)

        def on_event(event: ConversionEvent) -> None:
            if event.type == EventType.STARTED:
                progress.update(task, total=event.total, description=f"[cyan]{event.message}")
            elif event.type == EventType.ITEM_CONVERTED:
                progress.update(task, advance=1, description=f"[cyan]Converted item {event.item_id}")
            elif event.type in (EventType.ITEM_FAILED, EventType.ITEM_SKIPPED):
                progress.update(task, advance=1)
                if event.type == EventType.ITEM_FAILED:
                    console.print(f"[red]Failed:[/red] item {event.item_id} - {event.error}")
            elif event.type == EventType.COMPLETED:
                progress.update(task, description=f"[green]{event.message}")

        stats = processor.run(
            types=args.types,
            force=args.force,
            batch_size=args.batch_size,
            limit=args.limit,
            emit=on_event,
        )

    console.print()
    console.print("[bold]Results:[/bold]")
    console.print(f"  Items queued: {stats.total}")
    console.print(f"  Converted: {stats.processed}")
    console.print(f"  Skipped: {stats.skipped}")
    console.print(f"  Failed: {stats.failed}")
    console.print(f"  Duration: {stats.duration_seconds:.1f}s")
    return 0 if stats.failed == 0 else 1


def cmd_missing(service: ConversionService, args: argparse.Namespace, console: Console) -> int:
    for item_id in service.find_missing(args.types, args.limit):
        sys.stdout.write(f"{item_id}\n")
    return 0


def cmd_show(service: ConversionService, args: argparse.Namespace, console: Console) -> int:
    item = service.store.get_item(args.item_id, args.langcode)
    if item is None:
        console.print(f"[red]Error:[/red] Item {args.item_id} is not in the catalog")
        return 1

    if args.html_dir:
        body: Optional[str] = service.get_or_generate(item)
    else:
        body = service.get(item)

    if body is None:
        console.print(f"[yellow]No Markdown stored for item {item.id} ({item.langcode})[/yellow]")
        return 1
    sys.stdout.write(body)
    return 0


def cmd_delete(service: ConversionService, args: argparse.Namespace, console: Console) -> int:
    removed = service.delete(args.item_id, args.langcode)
    if not args.quiet:
        console.print(f"Deleted {removed} document(s) for item {args.item_id}")
    return 0


def cmd_export(service: ConversionService, args: argparse.Namespace, console: Console) -> int:
    _write_output(console, service.export_corpus(args.types, args.limit), args.output, args.quiet)
    return 0


def cmd_index(service: ConversionService, args: argparse.Namespace, console: Console) -> int:
    _write_output(console, service.build_index(args.types, args.limit), args.output, args.quiet)
    return 0


def cmd_sitemap(service: ConversionService, args: argparse.Namespace, console: Console) -> int:
    _write_output(console, service.build_sitemap(args.types, args.limit), args.output, args.quiet)
    return 0


COMMANDS = {
    "import-items": cmd_import_items,
    "generate": cmd_generate,
    "missing": cmd_missing,
    "show": cmd_show,
    "delete": cmd_delete,
    "export": cmd_export,
    "index": cmd_index,
    "sitemap": cmd_sitemap,
}


def run_command(args: argparse.Namespace) -> int:
    """Run a subcommand with given arguments."""
    # Diagnostics go to stderr; stdout carries Markdown
    console = Console(stderr=True)

    try:
        config = load_config(args)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    configure_logging(config)

    store = ArtifactStore(config.storage.database, timeout=config.storage.timeout)
    renderer = SnapshotRenderer(args.html_dir) if getattr(args, "html_dir", None) else None
    service = ConversionService(store, config=config, renderer=renderer)

    try:
        return COMMANDS[args.command](service, args, console)
    except (LlmContentError, OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1
    finally:
        store.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_command(args)


if __name__ == "__main__":
    sys.exit(main())
