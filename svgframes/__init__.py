"""SVG Frames — SVG to raster conversion with animation timing and frame export."""
