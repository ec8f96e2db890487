from __future__ import annotations

# ruff: noqa: E402

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from reality_radar.crawlers.base import ScrapePass
from reality_radar.db.session import dispose_engine, session_context
from reality_radar.errors import StructureChangeError
from reality_radar.logging_setup import configure_logging
from reality_radar.services.pass_service import PassService


@dataclass(frozen=True)
class CliArgs:
    path: Path
    source: str | None
    partial: bool


def _parse_args() -> CliArgs:
    parser = argparse.ArgumentParser(
        description="Replay a captured scrape pass (JSON) through ingestion."
    )
    _ = parser.add_argument("path", type=Path, help="JSON file: a pass object or a list of rows.")
    _ = parser.add_argument(
        "--source", default=None, help="Source name when the file holds bare rows."
    )
    _ = parser.add_argument(
        "--partial",
        action="store_true",
        help="Treat the rows as a partial pass; removal detection is skipped.",
    )
    namespace = parser.parse_args()
    return CliArgs(
        path=cast(Path, namespace.path),
        source=cast(str | None, namespace.source),
        partial=cast(bool, namespace.partial),
    )


def _load_payload(args: CliArgs) -> dict[str, Any]:
    data = json.loads(args.path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        if not args.source:
            raise SystemExit("--source is required when the file holds bare rows")
        data = {"source": args.source, "rows": data}
    if args.source:
        data["source"] = args.source
    if args.partial:
        data["complete"] = False
    return cast(dict[str, Any], data)


async def _async_main() -> int:
    configure_logging()
    args = _parse_args()
    scrape_pass = ScrapePass.from_mapping(_load_payload(args))

    try:
        async with session_context() as session:
            report = await PassService(session).run_pass(scrape_pass)
    except StructureChangeError as exc:
        print(json.dumps({"status": "structure_change", "error": str(exc)}))
        return 2
    finally:
        await dispose_engine()

    print(json.dumps(report.as_dict(), ensure_ascii=False, indent=2))
    return 0 if report.status != "failed" else 1


def main() -> None:
    raise SystemExit(asyncio.run(_async_main()))


if __name__ == "__main__":
    main()
