"""Pillow compositing for product shots: AI backdrops, studio backdrops, label cut-outs."""

import io
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from insta_sake.domain.image_params import CleanParams, LabelParams

ImageSource = Union[bytes, str, Path]

FEED_SIZE = 1080
PRODUCT_HEIGHT = 800
STUDIO_SUBJECT_HEIGHT = 900
SHADOW_BLUR = 18
SHADOW_OFFSET = (10, 14)

RESAMPLE = Image.Resampling.LANCZOS


def load_rgba(source: ImageSource) -> Image.Image:
    if isinstance(source, (bytes, bytearray)):
        img = Image.open(io.BytesIO(source))
    else:
        img = Image.open(source)
    img.load()
    return img.convert("RGBA")


def fit_inside(img: Image.Image, max_w: int, max_h: int) -> Image.Image:
    """Scale (up or down) to the largest size fitting the box, aspect kept."""
    w, h = img.size
    scale = min(max_w / w, max_h / h)
    size = (max(1, round(w * scale)), max(1, round(h * scale)))
    return img.resize(size, RESAMPLE)


def overlay(canvas: Image.Image, layer: Image.Image, left: int, top: int) -> Image.Image:
    """Alpha-composite ``layer`` at (left, top); parts outside the canvas are clipped."""
    sheet = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    sheet.paste(layer, (left, top))
    return Image.alpha_composite(canvas, sheet)


def centered(canvas_size: Tuple[int, int], layer_size: Tuple[int, int]) -> Tuple[int, int]:
    return (
        round((canvas_size[0] - layer_size[0]) / 2),
        round((canvas_size[1] - layer_size[1]) / 2),
    )


def radial_gradient(
    size: int,
    inner: str,
    outer: str,
    cx: float = 0.5,
    cy: float = 0.45,
    radius: float = 0.65,
) -> Image.Image:
    """Square RGBA gradient from ``inner`` at (cx, cy) to ``outer`` at ``radius``."""
    r = max(1, round(size * radius))
    # Pillow's ramp only reaches 255 at distance 128 * sqrt(2); stretch it so the inscribed circle does
    ramp = Image.radial_gradient("L").point(lambda v: min(255, round(v * 2 ** 0.5)))
    ramp = ramp.resize((2 * r, 2 * r), Image.Resampling.BILINEAR)
    mask = Image.new("L", (size, size), 255)
    mask.paste(ramp, (round(size * cx) - r, round(size * cy) - r))
    return Image.composite(
        Image.new("RGBA", (size, size), outer),
        Image.new("RGBA", (size, size), inner),
        mask,
    )


def drop_shadow(subject: Image.Image, blur: int, opacity: float) -> Tuple[Image.Image, int]:
    """Black, blurred silhouette of the subject; returns it with its padding."""
    pad = blur * 2
    alpha = Image.new("L", (subject.width + 2 * pad, subject.height + 2 * pad), 0)
    alpha.paste(subject.getchannel("A"), (pad, pad))
    alpha = alpha.filter(ImageFilter.GaussianBlur(radius=blur))
    alpha = alpha.point(lambda v: round(v * opacity))
    shadow = Image.new("RGBA", alpha.size, (0, 0, 0, 0))
    shadow.putalpha(alpha)
    return shadow, pad


def _save_png(img: Image.Image, out_path: Union[str, Path]) -> str:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    img.save(out, format="PNG")
    return str(out)


def composite_on_background(
    background: ImageSource,
    product: ImageSource,
    out_path: Union[str, Path],
) -> str:
    """Center the product photo on a generated backdrop (1080x1080 feed square)."""
    canvas = ImageOps.fit(load_rgba(background), (FEED_SIZE, FEED_SIZE), RESAMPLE)
    item = fit_inside(load_rgba(product), FEED_SIZE, PRODUCT_HEIGHT)
    left, top = centered(canvas.size, item.size)
    return _save_png(overlay(canvas, item, left, top), out_path)


def clean_studio(subject: ImageSource, out_path: Union[str, Path], params: CleanParams) -> str:
    """Place a cut-out subject on a soft studio gradient with an optional drop shadow."""
    inner, outer = params.colors
    backdrop = radial_gradient(FEED_SIZE, inner, outer).convert("RGB")
    canvas = ImageEnhance.Brightness(backdrop).enhance(params.brightness).convert("RGBA")

    cutout = load_rgba(subject)
    target_h = round(STUDIO_SUBJECT_HEIGHT * params.subject_scale)
    cutout = cutout.resize(
        (max(1, round(cutout.width * target_h / cutout.height)), target_h), RESAMPLE
    )

    left, top = centered(canvas.size, cutout.size)
    left += params.offset_x
    top += params.offset_y

    if params.shadow:
        shadow, pad = drop_shadow(cutout, SHADOW_BLUR, params.shadow_strength)
        canvas = overlay(
            canvas, shadow, left + SHADOW_OFFSET[0] - pad, top + SHADOW_OFFSET[1] - pad
        )
    canvas = overlay(canvas, cutout, left, top)
    return _save_png(canvas, out_path)


def label_export(subject: ImageSource, out_path: Union[str, Path], params: LabelParams) -> str:
    """Cut-out centered on a transparent or white canvas with a uniform margin."""
    fill = (255, 255, 255, 255) if params.background == "white" else (0, 0, 0, 0)
    canvas = Image.new("RGBA", (params.width, params.height), fill)

    max_w = round(params.width * (1 - params.margin * 2))
    max_h = round(params.height * (1 - params.margin * 2))
    cutout = fit_inside(load_rgba(subject), max_w, max_h)

    left, top = centered(canvas.size, cutout.size)
    return _save_png(overlay(canvas, cutout, left, top), out_path)
