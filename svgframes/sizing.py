"""Output width/height reconciliation under an aspect-ratio lock."""

import math
import re
from dataclasses import dataclass

from svgframes.models import ImageSize
from svgframes.svgdoc import DEFAULT_IMAGE_SIZE

MAX_IMAGE_SIZE = 4096

_NON_NUMERIC_RE = re.compile(r"[^\d.]")


def clamp_dimension(value: float) -> int:
    return int(max(1, min(MAX_IMAGE_SIZE, value)))


def filter_dimension_text(text: str) -> str:
    """Keep digits and the first decimal point only."""
    digits = _NON_NUMERIC_RE.sub("", text)
    head, sep, tail = digits.partition(".")
    return head + sep + tail.replace(".", "")


@dataclass
class SizeInputs:
    """What the two size fields should display after an edit."""

    width: str
    height: str
    size: ImageSize


class SizeSolver:
    """Keeps output width and height in range and, optionally, in proportion.

    Both dimensions follow the same rule: the edited one is floored and
    clamped, the other is derived from the original aspect ratio, and if the
    derived one overflows it is clamped and the edited one is derived back.
    """

    def __init__(self, original_width: int, original_height: int, lock_aspect: bool = True):
        self.original_width = max(1, original_width)
        self.original_height = max(1, original_height)
        self.lock_aspect = lock_aspect
        self.width_text = str(clamp_dimension(original_width))
        self.height_text = str(clamp_dimension(original_height))
        self._last_edited = "width"

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height of the source image."""
        return self.original_width / self.original_height

    @property
    def size(self) -> ImageSize:
        return ImageSize(width=self._dimension(self.width_text), height=self._dimension(self.height_text))

    def set_width(self, text: str, finalize: bool = False) -> SizeInputs:
        return self._apply("width", text, finalize)

    def set_height(self, text: str, finalize: bool = False) -> SizeInputs:
        return self._apply("height", text, finalize)

    def set_lock_aspect(self, locked: bool) -> SizeInputs:
        """Toggle the lock and re-apply the most recently edited field."""
        self.lock_aspect = locked
        current = self.width_text if self._last_edited == "width" else self.height_text
        return self._apply(self._last_edited, current, finalize=False)

    def _apply(self, which: str, text: str, finalize: bool) -> SizeInputs:
        self._last_edited = which
        is_width = which == "width"
        other_text = self.height_text if is_width else self.width_text

        filtered = filter_dimension_text(text)
        if not filtered or filtered == ".":
            dimension = DEFAULT_IMAGE_SIZE
        else:
            # Long digit strings overflow to inf; cap before flooring
            dimension = math.floor(min(float(filtered), MAX_IMAGE_SIZE + 1))
        if dimension > MAX_IMAGE_SIZE:
            dimension = MAX_IMAGE_SIZE
            filtered = str(dimension)
        dimension = clamp_dimension(dimension)

        if self.lock_aspect or not other_text:
            to_other = 1 / self.aspect_ratio if is_width else self.aspect_ratio
            other = math.floor(dimension * to_other)
            if other > MAX_IMAGE_SIZE:
                other = MAX_IMAGE_SIZE
                dimension = clamp_dimension(math.floor(other / to_other))
                filtered = str(dimension)
            other_text = str(clamp_dimension(other))

        shown = str(dimension) if filtered or finalize else ""
        if is_width:
            self.width_text, self.height_text = shown, other_text
        else:
            self.height_text, self.width_text = shown, other_text
        return SizeInputs(width=self.width_text, height=self.height_text, size=self.size)

    @staticmethod
    def _dimension(text: str) -> int:
        filtered = filter_dimension_text(text)
        if not filtered or filtered == ".":
            return DEFAULT_IMAGE_SIZE
        return clamp_dimension(float(filtered))
