from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from rich import print
from rich.logging import RichHandler

from auditflow.config import OUTPUT_DIR
from auditflow.engine.fetcher import LogoFetcher
from auditflow.engine.report_generator import build_action_plan, generate_report_async


def _read_json(path: str) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8"))


async def export_one(result_path: str, brand_path: Optional[str] = None, out_dir: Path = OUTPUT_DIR) -> Path:
    result = _read_json(result_path)
    brand = _read_json(brand_path) if brand_path else None

    artifact = await generate_report_async(result, brand, fetcher=LogoFetcher(allow_files=True))

    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / artifact.filename
    out_path.write_bytes(artifact.content)

    actions = build_action_plan(result)
    print("[green]AuditFlow report OK[/green]")
    print(f"Saved: {out_path}")
    print(f"Pages: {artifact.page_count}")
    print(f"Actions: {len(actions)}")
    for action in actions:
        print(f"  [bold]{action.priority.value.upper()}[/bold] {action.task} ({action.impact})")
    return out_path


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Render a branded website audit PDF from an audit result JSON.")
    parser.add_argument("result", help="audit result JSON file")
    parser.add_argument("--brand", help="brand config JSON file (agencyName, accentColor, ...)")
    parser.add_argument("--out", default=str(OUTPUT_DIR), help="output directory")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )
    asyncio.run(export_one(args.result, args.brand, Path(args.out)))


if __name__ == "__main__":
    main()
