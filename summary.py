"""Render the cached summary image shown at ``GET /countries/image``."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Sequence

import structlog
from PIL import Image, ImageDraw, ImageFont

from errors import SummaryGenerationFailure
from reconcile import ReconciledCountry

logger = structlog.get_logger(__name__)

WIDTH, HEIGHT = 800, 450
BACKGROUND = (255, 255, 255)
INK = (0, 0, 0)


def top_by_gdp(records: Sequence[ReconciledCountry], n: int = 5) -> List[ReconciledCountry]:
    """Highest estimated GDP first, unknown GDP last; ties keep input order."""
    ranked = sorted(
        records,
        key=lambda r: (r.estimated_gdp is None, -(r.estimated_gdp or 0)),
    )
    return ranked[:n]


def format_gdp(value) -> str:
    if value is None:
        return "N/A"
    return f"{value:,.2f}"


def render_summary(path: Path, total: int, top: Sequence[ReconciledCountry], refreshed_at: datetime) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    im = Image.new("RGB", (WIDTH, HEIGHT), BACKGROUND)
    draw = ImageDraw.Draw(im)
    font = ImageFont.load_default()

    y = 20
    draw.text((20, y), f"Total countries: {total}", fill=INK, font=font)
    y += 30
    draw.text((20, y), f"Last refresh: {refreshed_at.isoformat()}", fill=INK, font=font)
    y += 40
    draw.text((20, y), f"Top {len(top)} by estimated GDP:", fill=INK, font=font)
    y += 30
    if not top:
        draw.text((40, y), "No GDP data available.", fill=INK, font=font)
    for idx, c in enumerate(top, start=1):
        draw.text((40, y), f"{idx}. {c.name} - {format_gdp(c.estimated_gdp)}", fill=INK, font=font)
        y += 24

    im.save(path, "PNG")
    return path


class SummaryGenerator:
    def __init__(self, path: Path, top_n: int = 5):
        self.path = Path(path)
        self.top_n = top_n

    def generate(self, records: Sequence[ReconciledCountry], total: int, refreshed_at: datetime) -> Path:
        try:
            path = render_summary(self.path, total, top_by_gdp(records, self.top_n), refreshed_at)
        except Exception as exc:
            raise SummaryGenerationFailure(f"could not write {self.path}: {exc}") from exc
        logger.info("summary.generated", path=str(path), total=total)
        return path
