"""Placeholder media for scenes that could not be generated."""

from __future__ import annotations

from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from reelforge.common.logging import get_logger
from reelforge.common.models import MediaReference, Scene

logger = get_logger(__name__)

PLACEHOLDER_SCHEME = "placeholder://"

# Card colors keyed by style; unknown styles use "default".
STYLE_COLORS = {
    "cinematic": {"bg": (30, 28, 35), "fg": (170, 160, 180), "accent": (220, 90, 70)},
    "dramatic": {"bg": (25, 20, 20), "fg": (200, 80, 60), "accent": (255, 100, 50)},
    "product": {"bg": (45, 45, 50), "fg": (210, 210, 215), "accent": (90, 160, 230)},
    "broll": {"bg": (35, 45, 40), "fg": (150, 180, 160), "accent": (120, 200, 140)},
    "default": {"bg": (40, 40, 40), "fg": (150, 150, 150), "accent": (230, 70, 70)},
}


def placeholder_uri(scene_id: str) -> str:
    return f"{PLACEHOLDER_SCHEME}{scene_id}"


def create_placeholder_reference(
    scene: Scene,
    output_dir: str | Path | None = None,
    width: int = 1280,
    height: int = 720,
) -> MediaReference:
    """Placeholder reference for ``scene``.

    Without an output directory the reference is a ``placeholder://`` URI
    the renderer resolves on its own. With one, a still card is drawn and
    the reference points at the PNG.
    """
    uri = placeholder_uri(scene.id)
    if output_dir is not None:
        path = Path(output_dir) / f"placeholder_{scene.id}.png"
        create_placeholder_card(
            width=width,
            height=height,
            title=f"SCENE {scene.order + 1} UNAVAILABLE",
            text=scene.prompt or scene.id,
            style=scene.style,
            output_path=str(path),
        )
        uri = str(path)

    return MediaReference(
        uri=uri,
        kind=scene.content_type,
        provider_id=None,
        is_placeholder=True,
    )


def create_placeholder_card(
    width: int = 1280,
    height: int = 720,
    title: str = "PLACEHOLDER",
    text: str = "",
    style: str = "default",
    output_path: str | None = None,
) -> Image.Image:
    """Draw a flat card with a title badge and the wrapped scene prompt."""
    colors = STYLE_COLORS.get(style.lower(), STYLE_COLORS["default"])

    img = Image.new("RGB", (width, height), colors["bg"])
    draw = ImageDraw.Draw(img)

    # Vertical darkening, one line per row
    for y in range(height):
        factor = (y / height) * 0.3
        shade = tuple(int(c * (1 - factor)) for c in colors["bg"])
        draw.line([(0, y), (width, y)], fill=shade)

    # Diagonal cross marks the frame as missing
    draw.line([(0, 0), (width, height)], fill=colors["fg"], width=1)
    draw.line([(0, height), (width, 0)], fill=colors["fg"], width=1)
    draw.rectangle([(0, 0), (width - 1, height - 1)], outline=colors["accent"], width=4)

    font = ImageFont.load_default()

    badge_width = 20 + len(title) * 8
    draw.rectangle([(20, 20), (20 + badge_width, 50)], fill=colors["accent"])
    draw.text((30, 28), title, fill=(0, 0, 0), font=font)

    lines = _wrap_text(text, font, width - 100, draw)
    text_y = height // 2 - (len(lines) * 18) // 2
    for line in lines:
        bbox = draw.textbbox((0, 0), line, font=font)
        text_x = (width - (bbox[2] - bbox[0])) // 2
        draw.text((text_x, text_y), line, fill=colors["fg"], font=font)
        text_y += 18

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        img.save(output_path, "PNG")
        logger.debug("placeholder_saved", path=output_path)

    return img


def _wrap_text(text: str, font, max_width: int, draw: ImageDraw.ImageDraw) -> list[str]:
    """Greedy word wrap to ``max_width`` pixels."""
    words = text.split()
    lines: list[str] = []
    current: list[str] = []

    for word in words:
        candidate = " ".join(current + [word])
        bbox = draw.textbbox((0, 0), candidate, font=font)
        if bbox[2] - bbox[0] <= max_width or not current:
            current.append(word)
        else:
            lines.append(" ".join(current))
            current = [word]

    if current:
        lines.append(" ".join(current))
    return lines
