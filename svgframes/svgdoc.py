"""SVG document inspection: validity, intrinsic size and SMIL animation elements."""

import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

from svgframes.clock import parse_clock_value
from svgframes.models import ImageSize

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"
DEFAULT_IMAGE_SIZE = 300

# Element types that drive SMIL animation
ANIMATION_TAGS = ("animate", "animateTransform", "animateMotion", "set")

_LENGTH_RE = re.compile(r"^\s*(\d+(?:\.\d+)?|\.\d+)\s*(?:px)?\s*$")
_NUMBER = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?"
_NUMBER_RE = re.compile(_NUMBER)
_NUMBER_LIST_RE = re.compile(rf"^\s*{_NUMBER}(?:[\s,]+{_NUMBER})*\s*$")

# Serialize without ns0: prefixes
ET.register_namespace("", SVG_NAMESPACE)
ET.register_namespace("xlink", XLINK_NAMESPACE)


class InvalidSvgError(ValueError):
    pass


@dataclass
class SvgDocument:
    text: str
    size: ImageSize
    animation_elements: int = 0

    @property
    def is_animated(self) -> bool:
        return self.animation_elements > 0


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse_length(value: str | None) -> float | None:
    if value is None:
        return None
    m = _LENGTH_RE.match(value)
    if not m:
        return None
    length = float(m.group(1))
    return length if length > 0 else None


def _intrinsic_size(root: ET.Element) -> ImageSize:
    width = _parse_length(root.get("width"))
    height = _parse_length(root.get("height"))

    view_box = root.get("viewBox")
    if view_box and (width is None or height is None):
        parts = re.split(r"[\s,]+", view_box.strip())
        if len(parts) == 4:
            try:
                vb_width, vb_height = float(parts[2]), float(parts[3])
            except ValueError:
                vb_width = vb_height = 0.0
            if vb_width > 0 and vb_height > 0:
                if width is None and height is None:
                    width, height = vb_width, vb_height
                elif width is None:
                    width = height * vb_width / vb_height
                else:
                    height = width * vb_height / vb_width

    return ImageSize(
        width=max(1, round(width)) if width else DEFAULT_IMAGE_SIZE,
        height=max(1, round(height)) if height else DEFAULT_IMAGE_SIZE,
    )


def _parse_root(text: str) -> ET.Element:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise InvalidSvgError(f"The chosen file is not a valid SVG: {e}") from e

    if _local_name(root.tag) != "svg":
        raise InvalidSvgError("The chosen file is not a valid SVG: root element is not <svg>")
    return root


def parse_svg(text: str) -> SvgDocument:
    """Parse SVG markup. Raises InvalidSvgError unless the root element is <svg>."""
    root = _parse_root(text)
    animations = sum(1 for el in root.iter() if _local_name(el.tag) in ANIMATION_TAGS)
    return SvgDocument(text=text, size=_intrinsic_size(root), animation_elements=animations)


def load_svg(path: str | Path) -> SvgDocument:
    return parse_svg(Path(path).read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Freezing animation at a point in time
# ---------------------------------------------------------------------------

def _format_number(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _numbers(value: str) -> list[float] | None:
    if not _NUMBER_LIST_RE.match(value):
        return None
    return [float(n) for n in _NUMBER_RE.findall(value)]


def _progress(el: ET.Element, time: float) -> float | None:
    """Fraction of the current simple duration at ``time``, or None when inactive."""
    begin = parse_clock_value(el.get("begin", "0s").split(";")[0])
    if begin is None:
        # Event-based begin (click, other.end, ...) never fires in a still image
        return None
    elapsed = time - begin.seconds
    if elapsed < 0:
        return None

    dur = parse_clock_value(el.get("dur", ""))
    if dur is None or dur.seconds <= 0:
        # Only <set> makes sense without a duration: it holds forever
        return 0.0 if _local_name(el.tag) == "set" else None

    repeat = el.get("repeatCount", "1").strip()
    if repeat == "indefinite":
        count = math.inf
    else:
        try:
            count = float(repeat)
        except ValueError:
            count = 1.0

    if elapsed < dur.seconds * count:
        return (elapsed % dur.seconds) / dur.seconds
    if el.get("fill") != "freeze":
        return None
    return count % 1 or 1.0


def _keyframes(el: ET.Element, base: str | None) -> list[str]:
    if _local_name(el.tag) == "set":
        to = el.get("to")
        return [to] if to is not None else []
    values = el.get("values")
    if values:
        return [v.strip() for v in values.split(";") if v.strip()]
    to = el.get("to")
    if to is None:
        return []
    start = el.get("from", base)
    return [start, to] if start is not None else [to]


def _interpolate(frames: list[str], progress: float, discrete: bool) -> str:
    if len(frames) == 1:
        return frames[0]
    if discrete:
        return frames[min(int(progress * len(frames)), len(frames) - 1)]

    position = progress * (len(frames) - 1)
    i = min(int(position), len(frames) - 2)
    local = position - i
    a, b = _numbers(frames[i]), _numbers(frames[i + 1])
    if a is None or b is None or len(a) != len(b):
        return frames[i + 1] if local >= 0.5 else frames[i]
    return " ".join(_format_number(x + (y - x) * local) for x, y in zip(a, b))


def _target(el: ET.Element, parents: dict, ids: dict) -> ET.Element | None:
    href = el.get("href") or el.get(f"{{{XLINK_NAMESPACE}}}href")
    if href and href.startswith("#"):
        return ids.get(href[1:])
    return parents.get(el)


def freeze_svg(text: str, time: float) -> str:
    """Return ``text`` with its animation applied at ``time`` and removed.

    Covers the common cases only: ``<set>``, and ``from``/``to``/``values``
    of ``<animate>`` and ``<animateTransform>`` with linear or discrete
    interpolation and ``repeatCount``/``fill="freeze"``. ``<animateMotion>``
    is dropped without being applied. Later animations of the same
    attribute win.
    """
    root = _parse_root(text)
    parents = {child: parent for parent in root.iter() for child in parent}
    ids = {el.get("id"): el for el in root.iter() if el.get("id")}
    animations = [el for el in root.iter() if _local_name(el.tag) in ANIMATION_TAGS]
    originals: dict[tuple[ET.Element, str], str | None] = {}

    for el in animations:
        tag = _local_name(el.tag)
        if tag == "animateMotion":
            continue
        name = "transform" if tag == "animateTransform" else el.get("attributeName")
        target = _target(el, parents, ids)
        if target is None or not name:
            continue
        progress = _progress(el, time)
        if progress is None:
            continue

        base = originals.setdefault((target, name), target.get(name))
        frames = _keyframes(el, None if tag == "animateTransform" else base)
        if not frames:
            continue
        discrete = tag == "set" or el.get("calcMode") == "discrete"
        value = _interpolate(frames, progress, discrete)
        if tag == "animateTransform":
            value = f"{el.get('type', 'translate')}({value})"
            if el.get("additive") == "sum" and base:
                value = f"{base} {value}"
        target.set(name, value)

    for el in animations:
        parents[el].remove(el)
    return ET.tostring(root, encoding="unicode")
