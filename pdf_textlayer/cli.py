from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from .config import load_config
from .errors import TextLayerError
from .job import create_job_dirs, init_job_outputs, new_job_id, snapshot_input
from .page_provider import PageProvider
from .pipeline import EnginePipeline, RunOptions, reconstruct_page
from .utils import ensure_job_relative_path, load_json


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pdf_textlayer")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Build text layers and page images for a PDF")
    run.add_argument("--input", required=True, help="Input PDF file")
    run.add_argument("--workspace", default="./workspace", help="Workspace root")
    run.add_argument("--config", default=str(Path("config") / "default.json"), help="Config path")
    run.add_argument("--transparent", action="store_true", help="Render with a transparent background")
    run.add_argument("--concurrency", type=int, default=None, help="Pages processed in parallel")
    run.add_argument("--page", type=int, default=None, help="Only this page (0-based)")

    svg = sub.add_parser("svg", help="Print one page's SVG text layer")
    svg.add_argument("--input", required=True, help="Input PDF file")
    svg.add_argument("--page", type=int, default=0, help="Page index (0-based)")
    svg.add_argument("--config", default=str(Path("config") / "default.json"), help="Config path")

    validate = sub.add_parser("validate", help="Validate job outputs and referenced file paths")
    validate.add_argument("--job-dir", required=True, help="Job directory (workspace/jobs/<job_id>)")

    return p


def cmd_run(args: argparse.Namespace) -> int:
    job_id = new_job_id()
    paths = create_job_dirs(args.workspace, job_id)
    init_job_outputs(paths)
    snapshot_input(paths, args.input)

    cfg = load_config(args.config)
    opts = RunOptions(
        input_path=args.input,
        transparent=bool(args.transparent),
        concurrency=args.concurrency,
        page=args.page,
    )
    try:
        EnginePipeline(paths=paths, cfg=cfg, opts=opts).run(job_id=job_id)
    except (TextLayerError, IndexError) as e:
        print(f"run_failed: {e}")
        return 1
    print(str(paths.job_dir))
    return 0


def cmd_svg(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    try:
        with PageProvider(args.input) as provider:
            page = provider.get_page(args.page)
            svg = reconstruct_page(page, page.width, page.height, config=cfg)
    except (TextLayerError, IndexError) as e:
        print(f"svg_failed: {e}")
        return 1
    sys.stdout.write(svg)
    return 0


def _check_ref(job_dir: Path, rel: Any, field: str, errors: list[str]) -> int:
    if not rel:
        return 0
    try:
        p = ensure_job_relative_path(job_dir, rel, field=field)
    except ValueError as e:
        errors.append(str(e))
        return 1
    if not p.exists():
        errors.append(f"missing {field}: {rel}")
        return 1
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    job_dir = Path(args.job_dir)
    errors: list[str] = []

    missing_contract_files = 0
    missing_files = 0
    failed_images = 0

    for f in ("result.json", "metrics.json", "errors.jsonl"):
        p = job_dir / f
        if not p.exists():
            missing_contract_files += 1
            errors.append(f"missing: {p}")

    try:
        result = load_json(job_dir / "result.json")
        pages = result.get("pages", []) if isinstance(result, dict) else []
        for page in pages:
            missing_files += _check_ref(job_dir, page.get("svg_path"), "svg_path", errors)
            for img in page.get("images", []):
                if img.get("image_path"):
                    missing_files += _check_ref(job_dir, img["image_path"], "image_path", errors)
                else:
                    failed_images += 1
    except Exception as e:
        errors.append(f"failed to read result.json: {e}")

    print(f"missing_contract_files={missing_contract_files}")
    print(f"missing_files={missing_files}")
    print(f"failed_images={failed_images}")

    if errors:
        for m in errors:
            print(m)
        return 1

    print("OK")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "run":
        return cmd_run(args)

    if args.command == "svg":
        return cmd_svg(args)

    if args.command == "validate":
        return cmd_validate(args)

    raise SystemExit(2)


if __name__ == "__main__":
    raise SystemExit(main())
