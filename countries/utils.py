import json
import os
import tempfile
from datetime import datetime, timezone

from django.conf import settings
from PIL import Image, ImageDraw, ImageFont
from PIL.PngImagePlugin import PngInfo

from .exceptions import ArtifactWriteFailed

IMAGE_SIZE = (800, 400)
SUMMARY_FILENAME = "summary.png"


def get_summary_image_path():
    """Return full path to the summary image in the writable cache."""
    return os.path.join(os.path.abspath(settings.SUMMARY_CACHE_DIR), SUMMARY_FILENAME)


def reserve_temp_image_path():
    """Create an empty scratch file beside the summary image and return its path."""
    cache_dir = os.path.dirname(get_summary_image_path())
    try:
        os.makedirs(cache_dir, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix="summary-", suffix=".png.tmp", dir=cache_dir)
    except OSError as exc:
        raise ArtifactWriteFailed(f"Could not create a scratch file in {cache_dir}: {exc}") from exc
    os.close(fd)
    return path


def publish_summary_image(tmp_path):
    """Atomically move a rendered image onto the well-known summary path."""
    path = get_summary_image_path()
    os.replace(tmp_path, path)
    return path


def format_gdp(value):
    if value is None:
        return "N/A"
    return f"${value:,.0f}"


def load_fonts():
    try:
        return ImageFont.truetype("arial.ttf", 28), ImageFont.truetype("arial.ttf", 20)
    except OSError:
        return ImageFont.load_default(), ImageFont.load_default()


def generate_summary_image(total_countries, top, timestamp, path=None):
    """
    Render the summary PNG: total countries, the top countries by estimated
    GDP and the refresh timestamp. `top` is a list of (name, estimated_gdp)
    pairs, highest first.

    The same figures are stored in PNG text chunks so the image can be checked
    against the catalog without reading pixels.
    """
    if path is None:
        path = get_summary_image_path()

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        img = Image.new("RGB", IMAGE_SIZE, color="white")
        draw = ImageDraw.Draw(img)
        font_title, font_body = load_fonts()

        draw.text((40, 30), "Country GDP Summary", fill="black", font=font_title)
        draw.text((40, 80), f"Total Countries: {total_countries}", fill="black", font=font_body)
        draw.text((40, 110), f"Last Refresh: {timestamp}", fill="black", font=font_body)
        draw.text((40, 160), "Top 5 Countries by Estimated GDP:", fill="black", font=font_body)

        y = 195
        if not top:
            draw.text((60, y), "No GDP data available.", fill="gray", font=font_body)
        for name, gdp in top:
            draw.text((60, y), f"{name}: {format_gdp(gdp)}", fill="blue", font=font_body)
            y += 30

        info = PngInfo()
        info.add_text("total_countries", str(total_countries))
        info.add_text("top_countries", json.dumps(
            [[name, None if gdp is None else str(gdp)] for name, gdp in top]
        ))
        info.add_text("generated_at", timestamp)

        img.save(path, "PNG", pnginfo=info)
    except (OSError, ValueError) as exc:
        raise ArtifactWriteFailed(f"Could not write summary image to {path}: {exc}") from exc
    return path


def get_now():
    """Return current UTC datetime (aware)."""
    return datetime.now(timezone.utc)
