from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable

from .clustering import cluster_glyphs
from .config import EngineConfig, default_config
from .errors import EngineFailure
from .glyphs import iter_visible_glyphs
from .job import JobPaths, record_error
from .markup import render_svg
from .page_provider import PageProvider
from .raster import rasterize_page
from .types import PageError, PageHandle, PagePayload, TextBlock
from .utils import utc_now_iso
from .writer import JobWriter

logger = logging.getLogger(__name__)


def reconstruct_blocks(
    page: PageHandle,
    page_width: float,
    page_height: float,
    *,
    config: EngineConfig | None = None,
) -> list[TextBlock]:
    cfg = config or default_config()
    return cluster_glyphs(
        iter_visible_glyphs(page.glyphs(), page_height),
        gap_tolerance=cfg.gap_tolerance,
        baseline_mode=cfg.baseline_mode,
    )


def reconstruct_page(
    page: PageHandle,
    page_width: float,
    page_height: float,
    *,
    config: EngineConfig | None = None,
) -> str:
    """Glyph stream -> text blocks -> SVG text layer ('' for an empty page)."""
    cfg = config or default_config()
    blocks = reconstruct_blocks(page, page_width, page_height, config=cfg)
    return render_svg(page_width, page_height, blocks, style=cfg.markup)


def build_page_payload(
    page: PageHandle,
    page_index: int,
    transparent: bool = False,
    *,
    config: EngineConfig | None = None,
) -> PagePayload:
    """Text layer plus multi-scale rasters for one page.

    A glyph extraction failure leaves the markup empty but the rasters are
    still attempted. Raster failures, per scale or wholesale, are recorded as
    page errors and never discard the markup.
    """
    cfg = config or default_config()
    width, height = page.width, page.height
    errors: list[PageError] = []

    blocks: list[TextBlock] = []
    try:
        blocks = reconstruct_blocks(page, width, height, config=cfg)
    except EngineFailure as e:
        logger.warning("page %d: glyph extraction failed: %s", page_index, e)
        errors.append(PageError(page_index=page_index, stage="glyphs", message=str(e)))
    markup = render_svg(width, height, blocks, style=cfg.markup)

    try:
        images = rasterize_page(page, width, height, transparent, scales=cfg.scales)
    except Exception as e:
        # keep the text layer even when the raster path cannot start
        logger.exception("page %d: rasterization failed", page_index)
        errors.append(PageError(page_index=page_index, stage="raster", message=f"{type(e).__name__}: {e}"))
        images = []
    for img in images:
        if not img.ok:
            errors.append(PageError(page_index=page_index, stage="raster", message=img.error or "", scale=img.scale))

    return PagePayload(
        page_index=page_index,
        page_width=width,
        page_height=height,
        markup=markup,
        blocks=tuple(blocks),
        images=tuple(images),
        errors=tuple(errors),
    )


def _failed_payload(page: PageHandle, page_index: int, exc: Exception) -> PagePayload:
    try:
        width, height = page.width, page.height
    except Exception:
        width, height = 0.0, 0.0
    return PagePayload(
        page_index=page_index,
        page_width=width,
        page_height=height,
        markup="",
        errors=(PageError(page_index=page_index, stage="page", message=f"{type(exc).__name__}: {exc}"),),
    )


def _safe_build(page: PageHandle, page_index: int, transparent: bool, cfg: EngineConfig) -> PagePayload:
    try:
        return build_page_payload(page, page_index, transparent, config=cfg)
    except Exception as e:
        logger.exception("page %d failed", page_index)
        return _failed_payload(page, page_index, e)


def process_document(
    pages: Iterable[PageHandle],
    transparent: bool = False,
    *,
    config: EngineConfig | None = None,
    concurrency: int | None = None,
    first_index: int = 0,
) -> list[PagePayload]:
    """Build a payload per page, returned in document order.

    Pages are independent; with concurrency > 1 they are mapped over a
    bounded thread pool. One page failing yields a partial payload for that
    page and leaves the others intact.
    """
    cfg = config or default_config()
    workers = max(1, int(concurrency if concurrency is not None else cfg.concurrency))
    handles = list(pages)
    indices = range(first_index, first_index + len(handles))

    if workers == 1 or len(handles) <= 1:
        return [_safe_build(page, i, transparent, cfg) for page, i in zip(handles, indices)]

    with ThreadPoolExecutor(max_workers=min(workers, len(handles))) as executor:
        futures = [executor.submit(_safe_build, page, i, transparent, cfg) for page, i in zip(handles, indices)]
        return [f.result() for f in futures]


@dataclass
class RunOptions:
    input_path: str
    transparent: bool = False
    concurrency: int | None = None
    page: int | None = None  # 0-based; None = all pages


class EnginePipeline:
    def __init__(self, paths: JobPaths, cfg: EngineConfig, opts: RunOptions):
        self.paths = paths
        self.cfg = cfg
        self.opts = opts
        self.writer = JobWriter(paths=paths)

    def run(self, job_id: str) -> list[PagePayload]:
        metrics: dict[str, Any] = {
            "created_at": utc_now_iso(),
            "pages_total": 0,
            "pages_processed": 0,
            "pages_failed": 0,
            "blocks_total": 0,
            "images_written": 0,
            "image_failures": 0,
        }
        transparent = self.opts.transparent or self.cfg.transparent
        job_meta = {
            "job_id": job_id,
            "input": {"type": "pdf", "path": self.opts.input_path},
            "transparent": transparent,
            "scales": list(self.cfg.scales),
            "created_at": metrics["created_at"],
        }

        with PageProvider(self.opts.input_path) as provider:
            if self.opts.page is not None:
                handles = [provider.get_page(self.opts.page)]
                first_index = self.opts.page
            else:
                handles = list(provider.iter_pages())
                first_index = 0
            payloads = process_document(
                handles,
                transparent,
                config=self.cfg,
                concurrency=self.opts.concurrency,
                first_index=first_index,
            )

        pages: list[dict[str, Any]] = []
        for payload in payloads:
            metrics["pages_total"] += 1
            for err in payload.errors:
                message = err.message if err.scale is None else f"scale={err.scale}: {err.message}"
                record_error(self.paths, page_id=payload.page_id, stage=err.stage, message=message)
            if any(e.stage == "page" for e in payload.errors):
                metrics["pages_failed"] += 1
            else:
                metrics["pages_processed"] += 1
            metrics["blocks_total"] += len(payload.blocks)
            metrics["images_written"] += sum(1 for img in payload.images if img.ok)
            metrics["image_failures"] += sum(1 for img in payload.images if not img.ok)
            pages.append(self.writer.write_page(payload))

        logger.info(
            "job %s: %d pages, %d blocks, %d images",
            job_id,
            metrics["pages_total"],
            metrics["blocks_total"],
            metrics["images_written"],
        )
        self.writer.write_final(job_meta=job_meta, pages=pages, metrics=metrics)
        return payloads
