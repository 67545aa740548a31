from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .job import JobPaths
from .types import PagePayload
from .utils import scale_token, utc_now_iso, write_json


@dataclass
class JobWriter:
    paths: JobPaths

    def write_page(self, payload: PagePayload) -> dict[str, Any]:
        """Write one page's SVG and PNGs; return its result.json record."""
        page_id = payload.page_id

        svg_path = None
        if payload.markup:
            svg_path = f"pages/{page_id}.svg"
            (self.paths.job_dir / svg_path).write_text(payload.markup, encoding="utf-8")

        images: list[dict[str, Any]] = []
        for img in payload.images:
            rel = None
            if img.data is not None:
                rel = f"pages/{page_id}@{scale_token(img.scale)}x.png"
                (self.paths.job_dir / rel).write_bytes(img.data)
            images.append(
                {
                    "scale": img.scale,
                    "width": img.width,
                    "height": img.height,
                    "image_path": rel,
                    "error": img.error,
                }
            )

        return {
            "page_id": page_id,
            "page_index": payload.page_index,
            "page_width": payload.page_width,
            "page_height": payload.page_height,
            "svg_path": svg_path,
            "blocks": len(payload.blocks),
            "images": images,
            "errors": [{"stage": e.stage, "message": e.message, "scale": e.scale} for e in payload.errors],
        }

    def write_final(
        self,
        job_meta: dict[str, Any],
        pages: list[dict[str, Any]],
        metrics: dict[str, Any],
    ) -> None:
        now = utc_now_iso()

        # Mark completion only when final outputs are successfully written.
        metrics_out = dict(metrics)
        metrics_out["finished"] = True
        metrics_out["completed_at"] = now

        job_out = dict(job_meta)
        job_out["finished"] = True
        job_out["completed_at"] = now

        write_json(self.paths.result_json, {"job": job_out, "pages": pages})
        write_json(self.paths.metrics_json, metrics_out)
