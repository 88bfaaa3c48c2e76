from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .calendar_google import (
    authorize,
    authorized_http_factory,
    build_calendar_service,
    fetch_today_events,
    load_credentials,
)
from .config import load_config, load_excluded_names, require_sync_settings
from .event_time import summarize
from .models import EventSummary
from .notion_sync import NotionTableStore, make_notion_client, replace_all

logger = logging.getLogger(__name__)

CONFIG_PATH_DEFAULT = "config.yaml"


def run_once(config_path: str = CONFIG_PATH_DEFAULT, now: Optional[datetime] = None) -> Dict[str, int]:
    load_dotenv()
    cfg = load_config(config_path)
    require_sync_settings(cfg)
    tz = cfg.tz
    now = now or datetime.now(tz=tz)

    # Setup: fails before anything is read or written.
    excluded = load_excluded_names(cfg.exclude_path)
    creds = load_credentials(cfg.google.token_json)

    service = build_calendar_service(creds, cfg.request_timeout_seconds)
    raw_events = fetch_today_events(
        service,
        excluded,
        now,
        tz,
        http_factory=authorized_http_factory(creds, cfg.request_timeout_seconds),
        max_workers=cfg.google.max_workers,
    )
    summaries: List[EventSummary] = [summarize(e, now, tz) for e in raw_events]

    store = NotionTableStore(make_notion_client(cfg.notion.token, cfg.request_timeout_seconds))
    deleted, created = replace_all(
        store,
        cfg.notion.database_id,
        summaries,
        tz,
        page_size=cfg.notion.page_size,
        paginate=cfg.notion.paginate,
    )
    return {"fetched": len(raw_events), "deleted": deleted, "created": created}


def run_reported(config_path: str) -> Dict[str, Any]:
    try:
        counts = run_once(config_path)
    except Exception as e:
        logger.exception("Error running sync")
        return {"status": "Failed", "error": str(e)}
    return {"status": "Finished", **counts}


def handler(event: Any = None, context: Any = None) -> Dict[str, Any]:
    """Scheduler entry point. Never raises; failures are reported in the result."""
    return run_reported(os.environ.get("CALNOTION_CONFIG", CONFIG_PATH_DEFAULT))


def main() -> int:
    import argparse

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=os.environ.get("CALNOTION_CONFIG", CONFIG_PATH_DEFAULT))
    common.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "INFO"))

    ap = argparse.ArgumentParser(description="Copy today's Google Calendar events into a Notion database")
    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", parents=[common], help="Replace the Notion database rows with today's events")
    sub.add_parser("auth", parents=[common], help="Authorize Google Calendar access and store the token")
    args = ap.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "auth":
        load_dotenv()
        cfg = load_config(args.config)
        authorize(cfg.google.credentials_json, cfg.google.token_json)
        print("Authenticated and created token file successfully!")
        return 0

    result = run_reported(args.config)
    print(f"{result['status']}: {result}")
    return 0 if result["status"] == "Finished" else 1


if __name__ == "__main__":
    raise SystemExit(main())
