import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import load_configuration
from .exceptions import ConfigurationError, MissingIdentifierError
from .identity import (
    ChainedIdentityProvider,
    IdentityProvider,
    PageStateIdentityProvider,
    StaticIdentityProvider,
    load_page_state,
)
from .locales import ExportLocale, get_locale_config
from .logging_utils import enable_file_logging, log_error, log_event, set_console_level
from .pipeline import run_export
from .progress import ConsoleProgressBar, NullProgress
from .scalable_api import BrokerApiClient

# One command per supported locale
COMMANDS = {
    "export-de": ExportLocale.DE,
    "export-en": ExportLocale.EN,
}


def command_help(locale: ExportLocale) -> str:
    """Help line naming the locale and its CSV header (the German export uses German column names)."""
    config = get_locale_config(locale)
    return (f"Export transactions as CSV ({locale.value}, '{config.delimiter}'-separated, "
            f"columns: {', '.join(config.headers)})")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="scalable-exporter",
        description="Export Scalable Capital transactions as a Portfolio Performance CSV.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for command, locale in COMMANDS.items():
        help_text = command_help(locale)
        sub = subparsers.add_parser(command, help=help_text, description=help_text)
        sub.add_argument("--config", type=str, default="config.json",
                         help="JSON configuration file. Defaults to 'config.json'.")
        sub.add_argument("--cookies", type=str, help="Raw Cookie header of the logged-in browser session.")
        sub.add_argument("--cookies-file", type=str, help="cookies.txt (Netscape format) exported from the browser.")
        sub.add_argument("--person-id", type=str, help="Person id, skips the page state search.")
        sub.add_argument("--portfolio-id", type=str, help="Portfolio id, skips the page address lookup.")
        sub.add_argument("--page-url", type=str, help="Address of the transactions page (contains portfolioId).")
        sub.add_argument("--page-state", type=str, help="JSON dump of the page's UI state tree.")
        sub.add_argument("--output-dir", type=str, help="Directory to save the export. Defaults to '.'.")
        sub.add_argument("--dump-json", action="store_true",
                         help="Also write the enriched transactions as JSON.")
        sub.add_argument("--quiet", action="store_true", help="Do not draw a progress bar.")
        sub.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "cookies": args.cookies,
        "cookies_file": args.cookies_file,
        "person_id": args.person_id,
        "portfolio_id": args.portfolio_id,
        "page_url": args.page_url,
        "page_state_file": args.page_state,
        "output_dir": args.output_dir,
    }


def build_identity_provider(config: Dict[str, Any]) -> IdentityProvider:
    """Explicit ids win; the page state and page address are the fallback."""
    page_state = None
    if config.get("page_state_file"):
        page_state = load_page_state(config["page_state_file"])
    return ChainedIdentityProvider(
        StaticIdentityProvider(config.get("person_id"), config.get("portfolio_id")),
        PageStateIdentityProvider(page_state, config.get("page_url")),
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    locale = COMMANDS[args.command]
    if args.verbose:
        set_console_level(logging.INFO)

    try:
        config = load_configuration(args.config, overrides=cli_overrides(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    enable_file_logging(config.get("log_dir") or "logs")

    try:
        identity_provider = build_identity_provider(config)
    except (OSError, ValueError) as e:
        log_error("Main", "PageStateError", f"Could not read page state {config.get('page_state_file')}", exception=e)
        return 1

    try:
        client = BrokerApiClient.from_config(config)
    except OSError as e:
        log_error("Main", "CookieFileError", f"Could not load cookies from {config.get('cookies_file')}", exception=e)
        return 1

    progress = NullProgress() if args.quiet else ConsoleProgressBar()
    try:
        result = run_export(
            client,
            identity_provider,
            locale,
            output_dir=config["output_dir"],
            progress=progress,
            page_size=config["page_size"],
            dump_json=args.dump_json,
        )
    except MissingIdentifierError as e:
        print(f"Error: {e}. Pass --person-id/--portfolio-id or --page-state/--page-url.", file=sys.stderr)
        return 1
    finally:
        client.close()

    log_event("Main", f"Export finished: {result.csv_path}")
    print(result.csv_path)
    if result.json_path:
        print(result.json_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
