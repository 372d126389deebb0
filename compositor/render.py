import math
from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import quote

RENDER_BASE = "https://res.cloudinary.com/{cloud_name}/image/upload"
OUTPUT_FORMAT = "webp"

QUALITY_SEGMENT = "q_50,f_webp"

LOGO_GRAVITY = "north_west"
LOGO_OFFSET = (10, 10)
LOGO_WIDTH = 120

ELEMENT_SCALE = 0.9

CAPTION_FONT = "Roboto_28_bold"
CAPTION_COLOR = "FFFFFF"
CAPTION_BACKGROUND = "000000"
CAPTION_OFFSET = (0, 20)

# Characters encodeURIComponent leaves untouched.
_CAPTION_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class Transformation:
    """One path segment of a host transformation chain."""

    params: str

    def __str__(self) -> str:
        return self.params


def _layer_id(public_id: str) -> str:
    # Overlay layers address folders with ':' instead of '/'.
    return public_id.replace("/", ":")


def element_box(background_size: Tuple[int, int]) -> Tuple[int, int]:
    """
    Element overlay bounds: 90% of the background, floored so the overlay
    never exceeds the background.
    """
    width, height = background_size
    return math.floor(width * ELEMENT_SCALE), math.floor(height * ELEMENT_SCALE)


def logo_layer(logo_id: str) -> Transformation:
    x, y = LOGO_OFFSET
    return Transformation(
        f"l_{_layer_id(logo_id)},g_{LOGO_GRAVITY},x_{x},y_{y},w_{LOGO_WIDTH}"
    )


def element_layer(element_id: str, background_size: Tuple[int, int]) -> Transformation:
    width, height = element_box(background_size)
    return Transformation(f"l_{_layer_id(element_id)},w_{width},h_{height},c_fit,g_center")


def caption_layer(caption: str) -> Transformation:
    text = quote(caption.upper(), safe=_CAPTION_SAFE)
    x, y = CAPTION_OFFSET
    return Transformation(
        f"l_text:{CAPTION_FONT}:{text},co_rgb:{CAPTION_COLOR},"
        f"g_south,x_{x},y_{y},b_rgb:{CAPTION_BACKGROUND}"
    )


def transformation_chain(
    logo_id: str,
    background_size: Tuple[int, int],
    element_id: Optional[str] = None,
    caption: Optional[str] = None,
) -> List[Transformation]:
    """
    Ordered transformation segments: quality, logo, element, caption.
    Optional segments are dropped when their input is None.
    """
    segments: List[Optional[Transformation]] = [
        Transformation(QUALITY_SEGMENT),
        logo_layer(logo_id),
        element_layer(element_id, background_size) if element_id is not None else None,
        caption_layer(caption) if caption is not None else None,
    ]
    return [segment for segment in segments if segment is not None]


def build_transform_url(
    cloud_name: str,
    logo_id: str,
    background_id: str,
    background_size: Tuple[int, int],
    element_id: Optional[str] = None,
    caption: Optional[str] = None,
) -> str:
    url = RENDER_BASE.format(cloud_name=cloud_name)
    for segment in transformation_chain(logo_id, background_size, element_id, caption):
        url = f"{url}/{segment}"
    return f"{url}/{background_id}.{OUTPUT_FORMAT}"
