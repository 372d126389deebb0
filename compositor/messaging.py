import logging
from dataclasses import dataclass
from typing import Optional

from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_PROMO_TEXT = "Contact us on Telegram to order."
MARQUEE_TAG = "[marquee]"
COLOR_TAG = "[color]"


@dataclass
class PromoText:
    """
    Promo line shown next to the tool.

    `marquee` and `color` are display hints carried as tags inside the
    sheet cell; the tags are removed from `text`.
    """

    text: str
    marquee: bool = False
    color: bool = False


@dataclass
class PromoBanner:
    image_url: str
    redirect_url: Optional[str] = None


def parse_promo_text(raw: Optional[str]) -> PromoText:
    if not raw:
        return PromoText(text=DEFAULT_PROMO_TEXT)

    marquee = MARQUEE_TAG in raw
    color = COLOR_TAG in raw
    text = raw.replace(MARQUEE_TAG, "", 1).replace(COLOR_TAG, "", 1).strip()
    return PromoText(text=text, marquee=marquee, color=color)


class PromoLoader:
    """Reads promo cells from the control sheet, falling back on failure."""

    def __init__(self, sheet) -> None:
        self.sheet = sheet

    def text(self) -> PromoText:
        try:
            raw = self.sheet.read_promo_text()
        except TransportError as exc:
            logger.warning("Could not load promo text: %s", exc)
            return PromoText(text=DEFAULT_PROMO_TEXT)
        return parse_promo_text(raw)

    def banner(self) -> Optional[PromoBanner]:
        try:
            cells = self.sheet.read_promo_banner()
        except TransportError as exc:
            logger.warning("Could not load promo banner: %s", exc)
            return None
        if not cells:
            return None
        image_url, redirect_url = cells
        if not image_url:
            return None
        return PromoBanner(image_url=image_url, redirect_url=redirect_url or None)
