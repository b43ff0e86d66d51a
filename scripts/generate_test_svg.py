#!/usr/bin/env python3
"""Generate a synthetic animated SVG for SVG Frames pipeline testing.

Produces a 320x240 image with:
  - a blue square sliding left to right over 2s (<animate>)
  - a red circle spinning around the centre (<animateTransform>)
  - a label that switches colour at 1s (<set>)
"""

import sys
from pathlib import Path

SVG = """\
<svg xmlns="http://www.w3.org/2000/svg" width="320" height="240" viewBox="0 0 320 240">
  <rect width="320" height="240" fill="black"/>
  <rect y="20" width="60" height="60" fill="blue">
    <animate attributeName="x" from="0" to="260" dur="2s" repeatCount="indefinite"/>
  </rect>
  <g transform="translate(160 150)">
    <circle cx="50" r="20" fill="red">
      <animateTransform attributeName="transform" type="rotate"
                        from="0" to="360" dur="2s" repeatCount="indefinite"/>
    </circle>
  </g>
  <text x="10" y="230" fill="white" font-size="16">SVG Frames
    <set attributeName="fill" to="yellow" begin="1s"/>
  </text>
</svg>
"""


def generate_test_svg(output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(SVG, encoding="utf-8")
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/animated.svg")
    generate_test_svg(out)
